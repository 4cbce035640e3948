"""
Assignment submission: one submission per (student, assignment), editable
until it is graded. Nothing is written once the due date has passed.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from courses.models import Profile
from courses.permissions import get_role, has_content_access
from events.utils import create_log

from .exceptions import (
    AssignmentAccessDenied,
    AssignmentAlreadySubmitted,
    AssignmentPastDue,
    InvalidSubmissionFiles,
    StudentsOnly,
    SubmissionContentRequired,
    SubmissionGraded,
    SubmissionNotFound,
)
from .models import Assignment, AssignmentSubmission, SubmissionFile

logger = logging.getLogger(__name__)

CONTENT_REQUIRED = {
    Assignment.SubmissionType.TEXT: "Text content is required for this assignment",
    Assignment.SubmissionType.FILE: "At least one file is required for this assignment",
    Assignment.SubmissionType.BOTH: "Either text content or file is required for this assignment",
}


def can_view(user, assignment):
    lesson = assignment.lesson if assignment.lesson_id else None
    return has_content_access(user, assignment.course_id, lesson)


def validate_content(assignment, text_content, files):
    """
    Check the submission against the assignment's type and file limits.

    Raises:
        SubmissionContentRequired: the required text and/or files are missing
        InvalidSubmissionFiles: too many files, a file too large, or a
            file type the assignment does not accept
    """
    has_text = bool(text_content)
    has_files = bool(files)
    kind = assignment.submission_type
    if (
        (kind == Assignment.SubmissionType.TEXT and not has_text)
        or (kind == Assignment.SubmissionType.FILE and not has_files)
        or (kind == Assignment.SubmissionType.BOTH and not (has_text or has_files))
    ):
        raise SubmissionContentRequired(CONTENT_REQUIRED[kind])

    if len(files) > assignment.max_files:
        raise InvalidSubmissionFiles(f"At most {assignment.max_files} files are allowed")
    for f in files:
        if f['file_size'] > assignment.max_file_size:
            raise InvalidSubmissionFiles(f"{f['filename']} exceeds the maximum file size")
        if assignment.allowed_file_types and f['file_type'] not in assignment.allowed_file_types:
            raise InvalidSubmissionFiles(f"{f['filename']} has a file type that is not allowed")


def _check_submitter(user, assignment):
    if get_role(user) != Profile.ROLE_STUDENT:
        raise StudentsOnly()
    if not can_view(user, assignment):
        raise AssignmentAccessDenied()


def _store_files(submission, files):
    SubmissionFile.objects.bulk_create([
        SubmissionFile(
            submission=submission,
            filename=f['filename'],
            file_url=f['file_url'],
            file_size=f['file_size'],
            file_type=f['file_type'],
        )
        for f in files
    ])


def submit_assignment(user, assignment, text_content='', files=(), now=None):
    """
    Create the caller's submission.

    All checks run before anything is written; a submission after the due
    date is refused with ``AssignmentPastDue``.
    """
    now = now or timezone.now()
    text_content = (text_content or '').strip()
    files = list(files or [])

    _check_submitter(user, assignment)
    if assignment.is_past_due(now):
        logger.info("Past-due submission refused: user=%s assignment=%s", user.pk, assignment.pk)
        raise AssignmentPastDue()
    validate_content(assignment, text_content, files)

    if AssignmentSubmission.objects.filter(student=user, assignment=assignment).exists():
        raise AssignmentAlreadySubmitted()

    try:
        with transaction.atomic():
            submission = AssignmentSubmission.objects.create(
                student=user,
                assignment=assignment,
                text_content=text_content,
                submitted_at=now,
            )
            _store_files(submission, files)
    except IntegrityError:
        raise AssignmentAlreadySubmitted()

    logger.info("Assignment %s submitted: user=%s files=%s", assignment.pk, user.pk, len(files))
    create_log(
        user, 'assignment_submitted',
        {'assignment_id': assignment.pk, 'submission_id': submission.pk, 'files': len(files)},
        course=assignment.course, lesson=assignment.lesson,
    )
    return submission


def update_submission(user, assignment, text_content='', files=(), now=None):
    """
    Replace the text and files of the caller's ungraded submission.
    """
    now = now or timezone.now()
    text_content = (text_content or '').strip()
    files = list(files or [])

    _check_submitter(user, assignment)
    submission = AssignmentSubmission.objects.filter(student=user, assignment=assignment).first()
    if submission is None:
        raise SubmissionNotFound()
    if submission.status == AssignmentSubmission.Status.GRADED:
        raise SubmissionGraded()
    if assignment.is_past_due(now):
        raise AssignmentPastDue("Assignment is past due and cannot be updated")
    validate_content(assignment, text_content, files)

    with transaction.atomic():
        updated = AssignmentSubmission.objects.filter(
            pk=submission.pk, status=AssignmentSubmission.Status.SUBMITTED
        ).update(text_content=text_content, submitted_at=now)
        if not updated:
            raise SubmissionGraded()
        submission.files.all().delete()
        _store_files(submission, files)

    submission.refresh_from_db()
    create_log(
        user, 'assignment_resubmitted',
        {'assignment_id': assignment.pk, 'submission_id': submission.pk, 'files': len(files)},
        course=assignment.course, lesson=assignment.lesson,
    )
    return submission
