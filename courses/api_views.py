from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Enrollment, Lesson
from .services import mark_lesson_incomplete, recompute_course_progress, run_completion_cascade


# =====================================================
# API: ENROLLMENTS
# =====================================================
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def enrollment_api(request):
    """
    Return all enrollments for the logged-in student
    """

    enrollments = Enrollment.objects.filter(
        student=request.user
    ).select_related("course")

    data = [
        {
            "course_id": e.course.id,
            "course": e.course.title,
            "progress": e.progress,
            "enrollment_status": e.status,
            "completed_at": e.completed_at.isoformat() if e.completed_at else None,
        }
        for e in enrollments
    ]

    return Response({
        "status": "success",
        "count": len(data),
        "enrollments": data
    })


# =====================================================
# API: LESSON COMPLETION
# =====================================================
@api_view(["POST", "DELETE"])
@permission_classes([IsAuthenticated])
def lesson_complete_api(request, lesson_id):
    """
    POST marks a lesson complete and runs the completion cascade.
    DELETE marks it incomplete again and recomputes course progress.
    """
    lesson = get_object_or_404(Lesson.objects.select_related("course"), id=lesson_id)

    if not Enrollment.objects.filter(student=request.user, course=lesson.course).exists():
        raise PermissionDenied("Not enrolled in this course")

    if request.method == "DELETE":
        mark_lesson_incomplete(request.user, lesson)
        course_progress = recompute_course_progress(request.user, lesson.course)
        return Response({
            "status": "success",
            "course_progress": course_progress.progress,
            "completed_lessons": course_progress.completed_lessons,
            "total_lessons": course_progress.total_lessons,
        })

    completion = run_completion_cascade(request.user, lesson)
    return Response({
        "status": "success",
        "lesson_id": lesson.id,
        "completion": completion,
    })
