from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase

from certificates.models import Badge, Certificate, UserBadge
from events.models import AuditLog
from quizzes.factories import enroll, make_course, make_user

from . import services
from .models import Enrollment, Lesson, LessonProgress
from .services import (
    mark_lesson_completed,
    progress_percentage,
    recompute_course_progress,
    run_completion_cascade,
)


class ProgressTests(TestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, self.lessons = make_course(lesson_count=3)
        self.enrollment = enroll(self.student, self.course)

    def test_percentage_rounds_half_up(self):
        self.assertEqual(progress_percentage(1, 3), 33)
        self.assertEqual(progress_percentage(2, 3), 67)
        self.assertEqual(progress_percentage(1, 8), 13)
        self.assertEqual(progress_percentage(0, 0), 0)

    def test_progress_is_recomputed_from_completed_lessons(self):
        mark_lesson_completed(self.student, self.lessons[0])
        result = recompute_course_progress(self.student, self.course)

        self.assertEqual((result.completed_lessons, result.total_lessons, result.progress), (1, 3, 33))
        self.assertFalse(result.just_completed)
        self.enrollment.refresh_from_db()
        self.assertEqual(self.enrollment.progress, 33)
        self.assertEqual(self.enrollment.status, Enrollment.Status.ACTIVE)

    def test_unpublished_lessons_are_ignored(self):
        draft = Lesson.objects.create(course=self.course, title="Draft", order=9, is_published=False)
        mark_lesson_completed(self.student, draft)
        for lesson in self.lessons:
            mark_lesson_completed(self.student, lesson)

        result = recompute_course_progress(self.student, self.course)
        self.assertEqual(result.progress, 100)
        self.assertTrue(result.just_completed)

    def test_completed_at_is_kept_on_repeat(self):
        first_time = timezone.now() - timedelta(days=2)
        mark_lesson_completed(self.student, self.lessons[0], now=first_time)
        progress = mark_lesson_completed(self.student, self.lessons[0])

        self.assertEqual(progress.completed_at, first_time)
        self.assertEqual(LessonProgress.objects.filter(student=self.student).count(), 1)

    def test_transition_happens_once(self):
        for lesson in self.lessons:
            mark_lesson_completed(self.student, lesson)

        first = recompute_course_progress(self.student, self.course)
        second = recompute_course_progress(self.student, self.course)

        self.assertTrue(first.just_completed)
        self.assertFalse(second.just_completed)
        self.enrollment.refresh_from_db()
        self.assertEqual(self.enrollment.status, Enrollment.Status.COMPLETED)
        self.assertIsNotNone(self.enrollment.completed_at)

    def test_overlapping_recompute_does_not_store_stale_progress(self):
        course, (first, second) = make_course(title="Overlap", lesson_count=2)
        enrollment = enroll(self.student, course)
        mark_lesson_completed(self.student, first)

        store_progress = services._store_progress
        outcomes = []

        def complete_second_lesson_first(*args, **kwargs):
            # Another request finishes the course before this one writes.
            if not outcomes:
                outcomes.append(None)
                mark_lesson_completed(self.student, second)
                outcomes.append(recompute_course_progress(self.student, course))
            return store_progress(*args, **kwargs)

        with mock.patch('courses.services._store_progress', side_effect=complete_second_lesson_first):
            late = recompute_course_progress(self.student, course)

        early = outcomes[-1]
        self.assertTrue(early.just_completed)
        self.assertFalse(late.just_completed)
        self.assertEqual(late.progress, 100)
        enrollment.refresh_from_db()
        self.assertEqual(enrollment.status, Enrollment.Status.COMPLETED)
        self.assertEqual(enrollment.progress, 100)


class CompletionCascadeTests(TestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, self.lessons = make_course(lesson_count=2)
        enroll(self.student, self.course)

    def complete_all(self):
        outcomes = [run_completion_cascade(self.student, lesson) for lesson in self.lessons]
        return outcomes[-1]

    def test_last_lesson_issues_certificate_and_badge(self):
        first = run_completion_cascade(self.student, self.lessons[0])
        self.assertEqual(first, {'lesson_completed': True, 'course_progress': 50, 'course_completed': False})

        outcome = run_completion_cascade(self.student, self.lessons[1])

        self.assertTrue(outcome['course_completed'])
        certificate = Certificate.objects.get(student=self.student, course=self.course)
        self.assertEqual(outcome['certificate_number'], certificate.certificate_number)
        self.assertEqual(outcome['badge'], 'Course Completion')
        user_badge = UserBadge.objects.get(user=self.student)
        self.assertEqual(user_badge.metadata['course_id'], self.course.id)

    def test_repeated_completion_does_not_reissue(self):
        self.complete_all()
        again = run_completion_cascade(self.student, self.lessons[1])

        self.assertFalse(again['course_completed'])
        self.assertEqual(Certificate.objects.filter(student=self.student).count(), 1)
        self.assertEqual(UserBadge.objects.filter(user=self.student).count(), 1)

    def test_badge_is_awarded_once_across_courses(self):
        self.complete_all()
        other_course, (other_lesson,) = make_course(title="SQL", lesson_count=1)
        enroll(self.student, other_course)

        outcome = run_completion_cascade(self.student, other_lesson)

        self.assertTrue(outcome['course_completed'])
        self.assertEqual(Certificate.objects.filter(student=self.student).count(), 2)
        self.assertEqual(UserBadge.objects.filter(user=self.student).count(), 1)

    def test_missing_badge_catalog_skips_badge(self):
        Badge.objects.all().delete()

        outcome = self.complete_all()

        self.assertIn('certificate_number', outcome)
        self.assertNotIn('badge', outcome)

    def test_certificate_failure_does_not_block_badge(self):
        with mock.patch('certificates.services.issue_certificate', side_effect=RuntimeError("pdf service down")):
            outcome = self.complete_all()

        self.assertTrue(outcome['course_completed'])
        self.assertNotIn('certificate_number', outcome)
        self.assertEqual(outcome['badge'], 'Course Completion')
        self.assertTrue(
            AuditLog.objects.filter(event_type='cascade_failed', metadata__step='certificate').exists()
        )

    def test_badge_failure_keeps_certificate(self):
        with mock.patch('certificates.services.award_badge', side_effect=RuntimeError("boom")):
            outcome = self.complete_all()

        self.assertIn('certificate_number', outcome)
        self.assertNotIn('badge', outcome)

    def test_free_lesson_without_enrollment_only_records_progress(self):
        outsider = make_user("outsider")

        outcome = run_completion_cascade(outsider, self.lessons[0])

        self.assertTrue(outcome['lesson_completed'])
        self.assertFalse(outcome['course_completed'])
        self.assertFalse(Enrollment.objects.filter(student=outsider).exists())


class LessonCompletionApiTests(APITestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, self.lessons = make_course(lesson_count=2)
        enroll(self.student, self.course)
        self.client.force_authenticate(user=self.student)

    def url(self, lesson):
        return reverse("api_lesson_complete", args=[lesson.id])

    def test_mark_complete_and_incomplete(self):
        response = self.client.post(self.url(self.lessons[0]), format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["completion"]["course_progress"], 50)

        response = self.client.delete(self.url(self.lessons[0]), format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["course_progress"], 0)
        self.assertFalse(LessonProgress.objects.get(student=self.student, lesson=self.lessons[0]).is_completed)

    def test_not_enrolled_is_403(self):
        self.client.force_authenticate(user=make_user("outsider"))

        response = self.client.post(self.url(self.lessons[0]), format="json")
        self.assertEqual(response.status_code, 403)

    def test_unknown_lesson_is_404(self):
        response = self.client.post(reverse("api_lesson_complete", args=[999999]), format="json")
        self.assertEqual(response.status_code, 404)

    def test_enrollment_list_shows_progress(self):
        self.client.post(self.url(self.lessons[0]), format="json")

        response = self.client.get(reverse("api_enrollments"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["enrollments"][0]["progress"], 50)
        self.assertEqual(response.data["enrollments"][0]["enrollment_status"], Enrollment.Status.ACTIVE)
