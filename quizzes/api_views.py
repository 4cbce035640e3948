from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from courses.permissions import IsInstructorOrAdmin

from . import services
from .exceptions import AttemptNotFound, QuizNotFound
from .models import Quiz, QuizAttempt
from .serializers import (
    AttemptQuerySerializer,
    DeliveredQuestionSerializer,
    ManualGradeSerializer,
    QuizAttemptSerializer,
    SubmitAttemptSerializer,
)
from .throttles import QuizAttemptThrottle


def _get_quiz(quiz_id):
    quiz = Quiz.objects.select_related('course', 'lesson').filter(pk=quiz_id).first()
    if quiz is None:
        raise QuizNotFound()
    return quiz


def _results_payload(quiz, attempt, result):
    results = {
        "score": result.percentage,
        "points": result.score,
        "max_points": result.max_score,
        "passed": attempt.is_passed,
        "total_questions": len(result.details),
        "time_spent": attempt.time_spent_seconds,
        "needs_manual_grading": attempt.needs_manual_grading,
    }
    if quiz.show_results_immediately:
        results["correct_answers"] = result.correct_count
        results["details"] = [d.as_dict() for d in result.details]
    return results


# =====================================================
# API: QUIZ ATTEMPT (start / submit / history)
# =====================================================
@api_view(["GET", "POST", "PUT"])
@permission_classes([IsAuthenticated])
@throttle_classes([QuizAttemptThrottle])
def quiz_attempt_api(request, quiz_id):
    """
    POST starts or resumes an attempt, PUT submits it, GET returns one
    attempt (``?attempt_id=``) or the caller's attempt history.
    """
    quiz = _get_quiz(quiz_id)

    if request.method == "POST":
        started = services.start_attempt(request.user, quiz)
        return Response({
            "status": "success",
            "resumed": started.resumed,
            "attempt": QuizAttemptSerializer(started.attempt).data,
            "questions": DeliveredQuestionSerializer(started.questions, many=True).data,
            "time_remaining_ms": started.time_remaining_ms,
        }, status=200 if started.resumed else 201)

    if request.method == "PUT":
        payload = SubmitAttemptSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        submitted = services.submit_attempt(
            request.user,
            quiz,
            payload.validated_data["attempt_id"],
            payload.validated_data["answers"],
        )
        body = {
            "status": "success",
            "attempt": QuizAttemptSerializer(submitted.attempt).data,
            "results": _results_payload(quiz, submitted.attempt, submitted.grade),
        }
        if submitted.completion:
            body["completion"] = submitted.completion
        return Response(body)

    query = AttemptQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    attempt_id = query.validated_data.get("attempt_id")
    if attempt_id:
        attempt = services.get_attempt(request.user, quiz, attempt_id)
        return Response({
            "status": "success",
            "attempt": QuizAttemptSerializer(attempt).data,
        })

    attempts = services.list_attempts(request.user, quiz)
    return Response({
        "status": "success",
        "count": len(attempts),
        "attempts": QuizAttemptSerializer(attempts, many=True).data,
    })


# =====================================================
# API: ESSAY REVIEW
# =====================================================
@api_view(["POST"])
@permission_classes([IsAuthenticated, IsInstructorOrAdmin])
def grade_attempt_api(request, quiz_id, attempt_id):
    """
    Instructor confirms essay points; the confirmed grade may complete the
    learner's lesson.
    """
    quiz = _get_quiz(quiz_id)
    attempt = QuizAttempt.objects.select_related('user', 'quiz__course', 'quiz__lesson').filter(
        pk=attempt_id, quiz=quiz
    ).first()
    if attempt is None:
        raise AttemptNotFound()

    payload = ManualGradeSerializer(data=request.data)
    payload.is_valid(raise_exception=True)

    graded = services.confirm_manual_grade(request.user, attempt, payload.validated_data["essay_points"])
    body = {
        "status": "success",
        "attempt": QuizAttemptSerializer(graded.attempt).data,
        "results": _results_payload(quiz, graded.attempt, graded.grade),
    }
    if graded.completion:
        body["completion"] = graded.completion
    return Response(body)
