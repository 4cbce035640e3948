from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase

from courses.models import Profile
from events.models import AuditLog
from quizzes.factories import enroll, make_course, make_user

from . import services
from .exceptions import (
    AssignmentAccessDenied,
    AssignmentAlreadySubmitted,
    AssignmentPastDue,
    InvalidSubmissionFiles,
    StudentsOnly,
    SubmissionContentRequired,
    SubmissionGraded,
)
from .models import Assignment, AssignmentSubmission

REPORT_PDF = {
    'filename': 'report.pdf',
    'file_url': 'https://files.example.com/report.pdf',
    'file_size': 2048,
    'file_type': 'application/pdf',
}


def make_assignment(course, lesson=None, **options):
    return Assignment.objects.create(course=course, lesson=lesson, title="Week 1 essay", **options)


class SubmitAssignmentTests(TestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, (self.lesson,) = make_course()
        enroll(self.student, self.course)
        self.now = timezone.now()

    def test_submission_before_due_date(self):
        assignment = make_assignment(self.course, due_date=self.now + timedelta(days=1))

        submission = services.submit_assignment(self.student, assignment, "  My answer  ", now=self.now)

        self.assertEqual(submission.status, AssignmentSubmission.Status.SUBMITTED)
        self.assertEqual(submission.text_content, "My answer")
        self.assertTrue(AuditLog.objects.filter(event_type='assignment_submitted').exists())

    def test_past_due_is_refused_before_any_write(self):
        assignment = make_assignment(self.course, due_date=self.now - timedelta(minutes=1))

        with self.assertRaises(AssignmentPastDue):
            services.submit_assignment(self.student, assignment, "Late answer", [REPORT_PDF], now=self.now)

        self.assertFalse(AssignmentSubmission.objects.exists())
        self.assertFalse(AuditLog.objects.filter(event_type='assignment_submitted').exists())

    def test_no_due_date_never_expires(self):
        assignment = make_assignment(self.course)

        services.submit_assignment(self.student, assignment, "Answer", now=self.now + timedelta(days=365))
        self.assertEqual(AssignmentSubmission.objects.count(), 1)

    def test_content_required_by_type(self):
        text_only = make_assignment(self.course)
        file_only = make_assignment(self.course, submission_type=Assignment.SubmissionType.FILE)
        either = make_assignment(self.course, submission_type=Assignment.SubmissionType.BOTH)

        with self.assertRaisesMessage(SubmissionContentRequired, "Text content is required"):
            services.submit_assignment(self.student, text_only, "   ")
        with self.assertRaisesMessage(SubmissionContentRequired, "At least one file is required"):
            services.submit_assignment(self.student, file_only, "Text only")
        with self.assertRaisesMessage(SubmissionContentRequired, "Either text content or file"):
            services.submit_assignment(self.student, either, "")

        submission = services.submit_assignment(self.student, either, "", [REPORT_PDF])
        self.assertEqual(submission.files.get().filename, "report.pdf")

    def test_file_limits(self):
        assignment = make_assignment(
            self.course,
            submission_type=Assignment.SubmissionType.FILE,
            allowed_file_types=['application/pdf'],
            max_file_size=4096,
            max_files=1,
        )

        with self.assertRaises(InvalidSubmissionFiles):
            services.submit_assignment(self.student, assignment, files=[REPORT_PDF, REPORT_PDF])
        with self.assertRaises(InvalidSubmissionFiles):
            services.submit_assignment(self.student, assignment, files=[dict(REPORT_PDF, file_size=8192)])
        with self.assertRaises(InvalidSubmissionFiles):
            services.submit_assignment(self.student, assignment, files=[dict(REPORT_PDF, file_type='image/png')])
        self.assertFalse(AssignmentSubmission.objects.exists())

    def test_second_submission_is_refused(self):
        assignment = make_assignment(self.course)
        services.submit_assignment(self.student, assignment, "First")

        with self.assertRaises(AssignmentAlreadySubmitted):
            services.submit_assignment(self.student, assignment, "Second")

    def test_access_and_role(self):
        assignment = make_assignment(self.course)

        with self.assertRaises(AssignmentAccessDenied):
            services.submit_assignment(make_user("outsider"), assignment, "Answer")
        with self.assertRaises(StudentsOnly):
            services.submit_assignment(make_user("teacher", role=Profile.ROLE_INSTRUCTOR), assignment, "Answer")

    def test_free_lesson_assignment_needs_no_enrollment(self):
        self.lesson.is_free = True
        self.lesson.save()
        assignment = make_assignment(self.course, lesson=self.lesson)

        submission = services.submit_assignment(make_user("visitor"), assignment, "Answer")
        self.assertEqual(submission.assignment, assignment)


class UpdateSubmissionTests(TestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, _ = make_course()
        enroll(self.student, self.course)
        self.now = timezone.now()
        self.assignment = make_assignment(
            self.course,
            submission_type=Assignment.SubmissionType.BOTH,
            due_date=self.now + timedelta(days=1),
        )
        self.submission = services.submit_assignment(
            self.student, self.assignment, "Draft", [REPORT_PDF], now=self.now
        )

    def test_update_replaces_text_and_files(self):
        updated = services.update_submission(self.student, self.assignment, "Final", [], now=self.now)

        self.assertEqual(updated.text_content, "Final")
        self.assertEqual(updated.files.count(), 0)

    def test_update_after_due_date_is_refused(self):
        with self.assertRaisesMessage(AssignmentPastDue, "past due"):
            services.update_submission(
                self.student, self.assignment, "Too late", now=self.now + timedelta(days=2)
            )

        self.submission.refresh_from_db()
        self.assertEqual(self.submission.text_content, "Draft")

    def test_graded_submission_is_locked(self):
        AssignmentSubmission.objects.filter(pk=self.submission.pk).update(
            status=AssignmentSubmission.Status.GRADED, points=90
        )

        with self.assertRaises(SubmissionGraded):
            services.update_submission(self.student, self.assignment, "Changed", now=self.now)


class AssignmentApiTests(APITestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, _ = make_course()
        enroll(self.student, self.course)
        self.assignment = make_assignment(self.course, due_date=timezone.now() + timedelta(days=1))
        self.submit_url = reverse("api_assignment_submit", args=[self.assignment.id])
        self.client.force_authenticate(user=self.student)

    def test_submit_then_read_back(self):
        response = self.client.post(self.submit_url, {"text_content": "My answer"}, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["submission"]["status"], AssignmentSubmission.Status.SUBMITTED)

        detail = self.client.get(reverse("api_assignment", args=[self.assignment.id]))
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.data["assignment"]["title"], "Week 1 essay")
        self.assertEqual(detail.data["submission"]["text_content"], "My answer")

    def test_past_due_is_400(self):
        Assignment.objects.filter(pk=self.assignment.pk).update(due_date=timezone.now() - timedelta(hours=1))

        response = self.client.post(self.submit_url, {"text_content": "My answer"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "Assignment is past due")
        self.assertEqual(response.data["code"], "assignment_past_due")
        self.assertFalse(AssignmentSubmission.objects.exists())

    def test_resubmit_with_put(self):
        self.client.post(self.submit_url, {"text_content": "Draft"}, format="json")

        response = self.client.put(self.submit_url, {"text_content": "Final"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["submission"]["text_content"], "Final")

    def test_invalid_file_payload_is_400(self):
        response = self.client.post(
            self.submit_url,
            {"text_content": "x", "files": [{"filename": "a.pdf", "file_url": "not a url", "file_size": 1, "file_type": "application/pdf"}]},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("files", response.data["errors"])

    def test_unknown_assignment_is_404(self):
        response = self.client.post(reverse("api_assignment_submit", args=[999999]), {"text_content": "x"}, format="json")
        self.assertEqual(response.status_code, 404)

    def test_outsider_cannot_view(self):
        self.client.force_authenticate(user=make_user("outsider"))

        response = self.client.get(reverse("api_assignment", args=[self.assignment.id]))
        self.assertEqual(response.status_code, 403)
