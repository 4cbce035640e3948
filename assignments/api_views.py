from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from . import services
from .exceptions import AssignmentAccessDenied, AssignmentNotFound
from .models import Assignment, AssignmentSubmission
from .serializers import (
    AssignmentSerializer,
    AssignmentSubmissionSerializer,
    SubmitAssignmentSerializer,
)


def _get_assignment(assignment_id):
    assignment = Assignment.objects.select_related('course', 'lesson').filter(pk=assignment_id).first()
    if assignment is None:
        raise AssignmentNotFound()
    return assignment


# =====================================================
# API: ASSIGNMENT DETAIL
# =====================================================
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def assignment_api(request, assignment_id):
    """
    Assignment details with the caller's submission, if any
    """
    assignment = _get_assignment(assignment_id)
    if not services.can_view(request.user, assignment):
        raise AssignmentAccessDenied()

    submission = AssignmentSubmission.objects.prefetch_related('files').filter(
        student=request.user, assignment=assignment
    ).first()

    return Response({
        "status": "success",
        "assignment": AssignmentSerializer(assignment).data,
        "submission": AssignmentSubmissionSerializer(submission).data if submission else None,
    })


# =====================================================
# API: SUBMIT / RESUBMIT
# =====================================================
@api_view(["POST", "PUT"])
@permission_classes([IsAuthenticated])
def assignment_submit_api(request, assignment_id):
    """
    POST creates the caller's submission, PUT replaces its content.
    """
    assignment = _get_assignment(assignment_id)

    payload = SubmitAssignmentSerializer(data=request.data)
    payload.is_valid(raise_exception=True)
    text_content = payload.validated_data["text_content"]
    files = payload.validated_data["files"]

    if request.method == "PUT":
        submission = services.update_submission(request.user, assignment, text_content, files)
        return Response({
            "status": "success",
            "message": "Submission updated",
            "submission": AssignmentSubmissionSerializer(submission).data,
        })

    submission = services.submit_assignment(request.user, assignment, text_content, files)
    return Response({
        "status": "success",
        "message": "Assignment submitted successfully!",
        "submission": AssignmentSubmissionSerializer(submission).data,
    }, status=201)
