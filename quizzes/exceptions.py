"""
Quiz attempt errors. Each maps to one HTTP status and a user-facing reason;
the project exception handler renders them as
``{"status": "error", "message": ..., "code": ...}``.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class QuizAttemptError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Quiz attempt error"
    default_code = 'quiz_attempt_error'


# Not found
class QuizNotFound(QuizAttemptError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Quiz not found"
    default_code = 'quiz_not_found'


class AttemptNotFound(QuizAttemptError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Quiz attempt not found"
    default_code = 'attempt_not_found'


# Authorization
class EnrollmentRequired(QuizAttemptError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Enrollment required"
    default_code = 'enrollment_required'


# Policy violations
class MaxAttemptsExceeded(QuizAttemptError):
    default_detail = "You have exceeded the maximum number of attempts for this quiz"
    default_code = 'max_attempts_exceeded'


class TimeLimitExceeded(QuizAttemptError):
    default_detail = "Time limit exceeded"
    default_code = 'time_limit_exceeded'


class AlreadySubmitted(QuizAttemptError):
    default_detail = "Quiz attempt already submitted"
    default_code = 'already_submitted'


class NotAwaitingReview(QuizAttemptError):
    default_detail = "Quiz attempt has no pending manual grading"
    default_code = 'not_awaiting_review'


class AttemptConflict(QuizAttemptError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Another attempt was started at the same time; please retry"
    default_code = 'attempt_conflict'
