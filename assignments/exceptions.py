"""
Assignment submission errors, rendered by the project exception handler.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class AssignmentError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Assignment submission error"
    default_code = 'assignment_error'


class AssignmentNotFound(AssignmentError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Assignment not found"
    default_code = 'assignment_not_found'


class SubmissionNotFound(AssignmentError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Submission not found"
    default_code = 'submission_not_found'


class AssignmentAccessDenied(AssignmentError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Enrollment required"
    default_code = 'enrollment_required'


class StudentsOnly(AssignmentError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Only students can submit assignments"
    default_code = 'students_only'


class AssignmentPastDue(AssignmentError):
    default_detail = "Assignment is past due"
    default_code = 'assignment_past_due'


class SubmissionContentRequired(AssignmentError):
    default_detail = "Submission content is required for this assignment"
    default_code = 'submission_content_required'


class InvalidSubmissionFiles(AssignmentError):
    default_detail = "Submitted files do not meet the assignment limits"
    default_code = 'invalid_submission_files'


class AssignmentAlreadySubmitted(AssignmentError):
    default_detail = "Assignment already submitted; update the existing submission instead"
    default_code = 'assignment_already_submitted'


class SubmissionGraded(AssignmentError):
    default_detail = "Cannot update a graded submission"
    default_code = 'submission_graded'
