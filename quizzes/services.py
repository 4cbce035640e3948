"""
Quiz attempt lifecycle: start/resume, lazy expiry, submission and essay
review.

Per (user, quiz) an attempt moves IN_PROGRESS -> SUBMITTED or
IN_PROGRESS -> EXPIRED, both terminal. Concurrent requests are settled by
the database: unique constraints on the attempt number and on the single
in-progress attempt, and conditional UPDATEs that only touch rows still
IN_PROGRESS. Expiry happens only when a later call reads the attempt.
"""
import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from courses.permissions import can_manage_course
from courses.services import run_completion_cascade
from events.utils import create_log

from .access import can_attempt
from .exceptions import (
    AlreadySubmitted,
    AttemptConflict,
    AttemptNotFound,
    EnrollmentRequired,
    MaxAttemptsExceeded,
    NotAwaitingReview,
    TimeLimitExceeded,
)
from .grading import GradeResult, grade
from .models import Question, QuestionType, QuizAttempt

logger = logging.getLogger(__name__)


@dataclass
class StartResult:
    attempt: QuizAttempt
    questions: List[Question]
    time_remaining_ms: Optional[int]
    resumed: bool


@dataclass
class SubmitResult:
    attempt: QuizAttempt
    grade: GradeResult
    completion: Optional[dict] = None


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def deliver_questions(quiz):
    """
    Questions in authored order, or in a fresh random order per delivery
    when the quiz asks for it. The order is never stored; grading matches
    answers by question id.
    """
    questions = list(quiz.questions.all())
    if quiz.randomize_questions:
        random.shuffle(questions)
    return questions


def time_remaining_ms(attempt, quiz, now):
    limit = quiz.time_limit_seconds
    if limit is None:
        return None
    remaining = limit * 1000 - int(attempt.elapsed_seconds(now) * 1000)
    return max(0, remaining)


def is_past_limit(attempt, quiz, now):
    limit = quiz.time_limit_seconds
    return limit is not None and attempt.elapsed_seconds(now) >= limit


def expire_attempt(attempt, quiz, now):
    """
    Close a stale IN_PROGRESS attempt as EXPIRED with a zero, failing grade.

    Returns True when this call performed the transition.
    """
    expired = QuizAttempt.objects.filter(
        pk=attempt.pk, status=QuizAttempt.Status.IN_PROGRESS
    ).update(
        status=QuizAttempt.Status.EXPIRED,
        submitted_at=now,
        score=0,
        percentage=0,
        is_passed=False,
        time_spent_seconds=quiz.time_limit_seconds,
        graded_at=now,
    )
    if expired:
        logger.info(
            "Attempt %s expired: user=%s quiz=%s", attempt.pk, attempt.user_id, quiz.pk
        )
        create_log(
            attempt.user, 'attempt_expired',
            {'attempt_id': attempt.pk, 'quiz_id': quiz.pk},
            course=quiz.course, lesson=quiz.lesson,
        )
    attempt.refresh_from_db()
    return bool(expired)


def expire_if_stale(attempt, now=None):
    now = now or timezone.now()
    if attempt.status == QuizAttempt.Status.IN_PROGRESS and is_past_limit(attempt, attempt.quiz, now):
        expire_attempt(attempt, attempt.quiz, now)
    return attempt


def _require_access(user, quiz):
    decision = can_attempt(user, quiz)
    if not decision.allowed:
        logger.info("Quiz access denied: user=%s quiz=%s reason=%s", user.pk, quiz.pk, decision.reason)
        raise EnrollmentRequired(decision.reason.capitalize())


# -------------------------------------------------
# Start / resume
# -------------------------------------------------
def start_attempt(user, quiz, now=None):
    """
    Resume the caller's live attempt or begin a new one.

    Raises:
        EnrollmentRequired: the access gate refuses the user
        MaxAttemptsExceeded: every allowed attempt has been used
        AttemptConflict: a concurrent start won the race
    """
    now = now or timezone.now()
    _require_access(user, quiz)

    active = QuizAttempt.objects.filter(
        user=user, quiz=quiz, status=QuizAttempt.Status.IN_PROGRESS
    ).first()
    if active is not None:
        if not is_past_limit(active, quiz, now):
            create_log(
                user, 'attempt_resumed', {'attempt_id': active.pk, 'quiz_id': quiz.pk},
                course=quiz.course, lesson=quiz.lesson,
            )
            return StartResult(
                attempt=active,
                questions=deliver_questions(quiz),
                time_remaining_ms=time_remaining_ms(active, quiz, now),
                resumed=True,
            )
        expire_attempt(active, quiz, now)

    finished = QuizAttempt.objects.filter(
        user=user, quiz=quiz, status__in=QuizAttempt.TERMINAL_STATUSES
    ).count()
    if quiz.max_attempts is not None and finished >= quiz.max_attempts:
        logger.info("Max attempts reached: user=%s quiz=%s (%s)", user.pk, quiz.pk, quiz.max_attempts)
        raise MaxAttemptsExceeded()

    try:
        with transaction.atomic():
            attempt = QuizAttempt.objects.create(
                user=user,
                quiz=quiz,
                attempt_number=finished + 1,
                started_at=now,
                answers={},
            )
    except IntegrityError:
        logger.warning("Concurrent attempt start rejected: user=%s quiz=%s", user.pk, quiz.pk)
        raise AttemptConflict()

    create_log(
        user, 'attempt_started',
        {'attempt_id': attempt.pk, 'quiz_id': quiz.pk, 'attempt_number': attempt.attempt_number},
        course=quiz.course, lesson=quiz.lesson,
    )
    return StartResult(
        attempt=attempt,
        questions=deliver_questions(quiz),
        time_remaining_ms=time_remaining_ms(attempt, quiz, now),
        resumed=False,
    )


# -------------------------------------------------
# Submit
# -------------------------------------------------
def submit_attempt(user, quiz, attempt_id, answers, now=None):
    """
    Grade and close the caller's live attempt.

    A submission after the time limit is refused rather than accepted late;
    the stale attempt is expired by the next start or read instead.

    Raises:
        AttemptNotFound: no such attempt for this user and quiz
        AlreadySubmitted: the attempt is terminal (or was closed concurrently)
        EnrollmentRequired: access was lost since the attempt started
        TimeLimitExceeded: the time limit elapsed before submission
    """
    now = now or timezone.now()

    attempt = QuizAttempt.objects.filter(pk=attempt_id, user=user, quiz=quiz).first()
    if attempt is None:
        raise AttemptNotFound()
    if attempt.is_terminal:
        raise AlreadySubmitted()

    _require_access(user, quiz)

    limit = quiz.time_limit_seconds
    elapsed = attempt.elapsed_seconds(now)
    if limit is not None and elapsed > limit:
        logger.info("Late submission refused: attempt=%s elapsed=%ss limit=%ss", attempt.pk, int(elapsed), limit)
        raise TimeLimitExceeded()

    result = grade(quiz.questions.all(), answers)
    is_passed = result.is_passed(quiz.passing_score)

    updated = QuizAttempt.objects.filter(
        pk=attempt.pk, status=QuizAttempt.Status.IN_PROGRESS
    ).update(
        status=QuizAttempt.Status.SUBMITTED,
        submitted_at=now,
        answers=answers,
        score=result.score,
        max_score=result.max_score,
        percentage=result.percentage,
        is_passed=is_passed,
        time_spent_seconds=int(elapsed),
        needs_manual_grading=result.needs_manual_grading,
        graded_at=None if result.needs_manual_grading else now,
    )
    if not updated:
        raise AlreadySubmitted()
    attempt.refresh_from_db()

    logger.info(
        "Attempt %s submitted: user=%s quiz=%s score=%s%% passed=%s",
        attempt.pk, user.pk, quiz.pk, result.percentage, is_passed,
    )
    create_log(
        user, 'attempt_submitted',
        {
            'attempt_id': attempt.pk,
            'quiz_id': quiz.pk,
            'percentage': result.percentage,
            'passed': is_passed,
            'needs_manual_grading': result.needs_manual_grading,
        },
        course=quiz.course, lesson=quiz.lesson,
    )

    completion = None
    if is_passed and not result.needs_manual_grading and quiz.lesson_id:
        completion = run_completion_cascade(user, quiz.lesson, now=now)

    return SubmitResult(attempt=attempt, grade=result, completion=completion)


# -------------------------------------------------
# Reads
# -------------------------------------------------
def get_attempt(user, quiz, attempt_id, now=None):
    attempt = QuizAttempt.objects.filter(pk=attempt_id, user=user, quiz=quiz).first()
    if attempt is None:
        raise AttemptNotFound()
    return expire_if_stale(attempt, now)


def list_attempts(user, quiz, now=None):
    attempts = list(QuizAttempt.objects.filter(user=user, quiz=quiz).order_by('-started_at', '-id'))
    for attempt in attempts:
        expire_if_stale(attempt, now)
    return attempts


# -------------------------------------------------
# Essay review
# -------------------------------------------------
def confirm_manual_grade(grader, attempt, essay_points, now=None):
    """
    Record reviewer points for every essay question, re-score the attempt
    and, if the confirmed result passes, run the completion cascade.

    ``essay_points`` maps essay question ids to awarded points
    (0..question points).
    """
    now = now or timezone.now()
    quiz = attempt.quiz

    if not can_manage_course(grader, quiz.course):
        raise PermissionDenied("You do not manage this course")
    if attempt.status != QuizAttempt.Status.SUBMITTED or not attempt.needs_manual_grading:
        raise NotAwaitingReview()

    questions = list(quiz.questions.all())
    essays = {q.id: q for q in questions if q.question_type == QuestionType.ESSAY}
    points = {}
    errors = {}
    for question_id, question in essays.items():
        value = essay_points.get(str(question_id), essay_points.get(question_id))
        if value is None:
            errors[str(question_id)] = "Points are required for this essay question."
        elif not 0 <= value <= question.points:
            errors[str(question_id)] = f"Points must be between 0 and {question.points}."
        else:
            points[str(question_id)] = value
    if errors:
        raise ValidationError({'essay_points': errors})

    result = grade(questions, attempt.answers, manual_points=points)
    is_passed = result.is_passed(quiz.passing_score)

    updated = QuizAttempt.objects.filter(
        pk=attempt.pk, needs_manual_grading=True
    ).update(
        score=result.score,
        max_score=result.max_score,
        percentage=result.percentage,
        is_passed=is_passed,
        needs_manual_grading=False,
        manual_grades=points,
        graded_at=now,
        graded_by=grader,
    )
    if not updated:
        raise NotAwaitingReview()
    attempt.refresh_from_db()

    logger.info(
        "Attempt %s reviewed by user=%s: score=%s%% passed=%s",
        attempt.pk, grader.pk, result.percentage, is_passed,
    )
    create_log(
        attempt.user, 'attempt_graded',
        {'attempt_id': attempt.pk, 'graded_by': grader.pk, 'percentage': result.percentage, 'passed': is_passed},
        course=quiz.course, lesson=quiz.lesson,
    )

    completion = None
    if is_passed and quiz.lesson_id:
        completion = run_completion_cascade(attempt.user, quiz.lesson, now=now)

    return SubmitResult(attempt=attempt, grade=result, completion=completion)
