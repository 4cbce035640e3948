from datetime import timedelta

from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from courses.models import Enrollment, LessonProgress, Profile
from events.models import AuditLog

from . import services
from .exceptions import (
    AlreadySubmitted,
    AttemptNotFound,
    EnrollmentRequired,
    MaxAttemptsExceeded,
    NotAwaitingReview,
    TimeLimitExceeded,
)
from .factories import correct_answers, enroll, make_course, make_quiz, make_user
from .models import QuestionType, QuizAttempt


class StartAttemptTests(TestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, (self.lesson,) = make_course(lesson_count=1)
        enroll(self.student, self.course)
        self.quiz = make_quiz(self.course, self.lesson, max_attempts=2, time_limit_minutes=10)
        self.t0 = timezone.now()

    def test_first_start_creates_attempt_one(self):
        started = services.start_attempt(self.student, self.quiz, now=self.t0)

        self.assertFalse(started.resumed)
        self.assertEqual(started.attempt.attempt_number, 1)
        self.assertEqual(started.attempt.status, QuizAttempt.Status.IN_PROGRESS)
        self.assertEqual(started.attempt.answers, {})
        self.assertEqual(started.time_remaining_ms, 10 * 60 * 1000)
        self.assertEqual(len(started.questions), 2)
        self.assertTrue(AuditLog.objects.filter(event_type='attempt_started').exists())

    def test_second_start_resumes_same_attempt(self):
        first = services.start_attempt(self.student, self.quiz, now=self.t0)
        second = services.start_attempt(self.student, self.quiz, now=self.t0 + timedelta(minutes=4))

        self.assertTrue(second.resumed)
        self.assertEqual(first.attempt.id, second.attempt.id)
        self.assertEqual(second.time_remaining_ms, 6 * 60 * 1000)
        self.assertEqual(QuizAttempt.objects.count(), 1)

    def test_resume_without_time_limit_has_no_remaining_time(self):
        quiz = make_quiz(self.course, self.lesson)
        services.start_attempt(self.student, quiz, now=self.t0)
        resumed = services.start_attempt(self.student, quiz, now=self.t0 + timedelta(days=3))

        self.assertTrue(resumed.resumed)
        self.assertIsNone(resumed.time_remaining_ms)

    def test_unenrolled_user_is_refused(self):
        outsider = make_user("outsider")

        with self.assertRaises(EnrollmentRequired):
            services.start_attempt(outsider, self.quiz, now=self.t0)
        self.assertFalse(QuizAttempt.objects.filter(user=outsider).exists())

    def test_free_lesson_quiz_needs_no_enrollment(self):
        self.lesson.is_free = True
        self.lesson.save()
        outsider = make_user("outsider")

        started = services.start_attempt(outsider, self.quiz, now=self.t0)
        self.assertEqual(started.attempt.user, outsider)

    def test_completed_enrollment_still_allows_retake(self):
        Enrollment.objects.filter(student=self.student).update(status=Enrollment.Status.COMPLETED)

        started = services.start_attempt(self.student, self.quiz, now=self.t0)
        self.assertEqual(started.attempt.attempt_number, 1)

    def test_attempt_numbers_follow_finished_attempts(self):
        first = services.start_attempt(self.student, self.quiz, now=self.t0)
        services.submit_attempt(self.student, self.quiz, first.attempt.id, {}, now=self.t0 + timedelta(minutes=1))

        second = services.start_attempt(self.student, self.quiz, now=self.t0 + timedelta(minutes=2))
        self.assertEqual(second.attempt.attempt_number, 2)

    def test_single_attempt_quiz_refuses_second_start(self):
        quiz = make_quiz(self.course, self.lesson, max_attempts=1)
        started = services.start_attempt(self.student, quiz, now=self.t0)
        services.submit_attempt(self.student, quiz, started.attempt.id, {}, now=self.t0 + timedelta(minutes=1))

        with self.assertRaises(MaxAttemptsExceeded):
            services.start_attempt(self.student, quiz, now=self.t0 + timedelta(minutes=2))

    def test_unlimited_attempts(self):
        quiz = make_quiz(self.course, self.lesson, max_attempts=None)
        for number in range(1, 5):
            started = services.start_attempt(self.student, quiz, now=self.t0)
            self.assertEqual(started.attempt.attempt_number, number)
            services.submit_attempt(self.student, quiz, started.attempt.id, {}, now=self.t0)

    def test_randomized_delivery_keeps_the_same_questions(self):
        quiz = make_quiz(self.course, self.lesson, randomize_questions=True)
        started = services.start_attempt(self.student, quiz, now=self.t0)

        self.assertEqual(
            sorted(q.id for q in started.questions),
            sorted(quiz.questions.values_list('id', flat=True)),
        )

    def test_database_allows_one_live_attempt_per_user_and_quiz(self):
        QuizAttempt.objects.create(user=self.student, quiz=self.quiz, attempt_number=1, started_at=self.t0)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                QuizAttempt.objects.create(user=self.student, quiz=self.quiz, attempt_number=2, started_at=self.t0)

    def test_database_rejects_duplicate_attempt_numbers(self):
        QuizAttempt.objects.create(
            user=self.student, quiz=self.quiz, attempt_number=1, started_at=self.t0,
            status=QuizAttempt.Status.SUBMITTED,
        )

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                QuizAttempt.objects.create(user=self.student, quiz=self.quiz, attempt_number=1, started_at=self.t0)


class TimeLimitTests(TestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, (self.lesson,) = make_course(lesson_count=1)
        enroll(self.student, self.course)
        self.quiz = make_quiz(self.course, self.lesson, max_attempts=2, time_limit_minutes=10)
        self.t0 = timezone.now()
        self.attempt = services.start_attempt(self.student, self.quiz, now=self.t0).attempt

    def test_late_submission_is_refused_without_changes(self):
        with self.assertRaises(TimeLimitExceeded):
            services.submit_attempt(
                self.student, self.quiz, self.attempt.id, correct_answers(self.quiz),
                now=self.t0 + timedelta(minutes=11),
            )

        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, QuizAttempt.Status.IN_PROGRESS)
        self.assertIsNone(self.attempt.submitted_at)

    def test_submission_at_the_limit_is_accepted(self):
        submitted = services.submit_attempt(
            self.student, self.quiz, self.attempt.id, correct_answers(self.quiz),
            now=self.t0 + timedelta(minutes=10),
        )
        self.assertEqual(submitted.attempt.time_spent_seconds, 600)

    def test_next_start_expires_stale_attempt_and_begins_another(self):
        later = self.t0 + timedelta(minutes=11)
        with self.assertRaises(TimeLimitExceeded):
            services.submit_attempt(self.student, self.quiz, self.attempt.id, {}, now=later)

        started = services.start_attempt(self.student, self.quiz, now=later)

        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, QuizAttempt.Status.EXPIRED)
        self.assertEqual(self.attempt.score, 0)
        self.assertEqual(self.attempt.percentage, 0)
        self.assertFalse(self.attempt.is_passed)
        self.assertEqual(self.attempt.submitted_at, later)
        self.assertEqual(self.attempt.time_spent_seconds, 600)

        self.assertFalse(started.resumed)
        self.assertEqual(started.attempt.attempt_number, 2)
        self.assertTrue(AuditLog.objects.filter(event_type='attempt_expired').exists())

    def test_expiry_counts_against_max_attempts(self):
        self.quiz.max_attempts = 1
        self.quiz.save()

        with self.assertRaises(MaxAttemptsExceeded):
            services.start_attempt(self.student, self.quiz, now=self.t0 + timedelta(minutes=11))

        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, QuizAttempt.Status.EXPIRED)

    def test_reading_history_expires_stale_attempt(self):
        attempts = services.list_attempts(self.student, self.quiz, now=self.t0 + timedelta(minutes=30))

        self.assertEqual(len(attempts), 1)
        self.assertEqual(attempts[0].status, QuizAttempt.Status.EXPIRED)

    def test_reading_live_attempt_leaves_it_alone(self):
        attempt = services.get_attempt(self.student, self.quiz, self.attempt.id, now=self.t0 + timedelta(minutes=5))
        self.assertEqual(attempt.status, QuizAttempt.Status.IN_PROGRESS)


class SubmitAttemptTests(TestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, self.lessons = make_course(lesson_count=2)
        enroll(self.student, self.course)
        self.quiz = make_quiz(self.course, self.lessons[0], max_attempts=3)
        self.t0 = timezone.now()
        self.attempt = services.start_attempt(self.student, self.quiz, now=self.t0).attempt

    def test_failing_submission_is_graded_and_closed(self):
        first, second = self.quiz.questions.all()
        submitted = services.submit_attempt(
            self.student, self.quiz, self.attempt.id,
            {str(first.id): 'A', str(second.id): 'C'},
            now=self.t0 + timedelta(seconds=95),
        )

        attempt = submitted.attempt
        self.assertEqual(attempt.status, QuizAttempt.Status.SUBMITTED)
        self.assertEqual(attempt.score, 5)
        self.assertEqual(attempt.max_score, 10)
        self.assertEqual(attempt.percentage, 50)
        self.assertFalse(attempt.is_passed)
        self.assertEqual(attempt.time_spent_seconds, 95)
        self.assertIsNone(submitted.completion)
        self.assertFalse(LessonProgress.objects.filter(student=self.student).exists())

    def test_passing_submission_completes_the_lesson(self):
        submitted = services.submit_attempt(
            self.student, self.quiz, self.attempt.id, correct_answers(self.quiz), now=self.t0
        )

        self.assertTrue(submitted.attempt.is_passed)
        self.assertEqual(submitted.completion['course_progress'], 50)
        self.assertFalse(submitted.completion['course_completed'])
        progress = LessonProgress.objects.get(student=self.student, lesson=self.lessons[0])
        self.assertTrue(progress.is_completed)

    def test_course_level_quiz_has_no_cascade(self):
        quiz = make_quiz(self.course, lesson=None)
        attempt = services.start_attempt(self.student, quiz, now=self.t0).attempt

        submitted = services.submit_attempt(self.student, quiz, attempt.id, correct_answers(quiz), now=self.t0)

        self.assertTrue(submitted.attempt.is_passed)
        self.assertIsNone(submitted.completion)

    def test_unknown_or_foreign_attempt_is_not_found(self):
        with self.assertRaises(AttemptNotFound):
            services.submit_attempt(self.student, self.quiz, 999999, {}, now=self.t0)

        other = make_user("other")
        enroll(other, self.course)
        with self.assertRaises(AttemptNotFound):
            services.submit_attempt(other, self.quiz, self.attempt.id, {}, now=self.t0)

    def test_second_submit_is_refused(self):
        services.submit_attempt(self.student, self.quiz, self.attempt.id, {}, now=self.t0)

        with self.assertRaises(AlreadySubmitted):
            services.submit_attempt(self.student, self.quiz, self.attempt.id, correct_answers(self.quiz), now=self.t0)

    def test_unenrolled_mid_attempt_cannot_submit(self):
        Enrollment.objects.filter(student=self.student).delete()

        with self.assertRaises(EnrollmentRequired):
            services.submit_attempt(self.student, self.quiz, self.attempt.id, {}, now=self.t0)

        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, QuizAttempt.Status.IN_PROGRESS)


class ManualGradingTests(TestCase):
    def setUp(self):
        self.instructor = make_user("teacher", role=Profile.ROLE_INSTRUCTOR)
        self.student = make_user("student")
        self.course, (self.lesson,) = make_course(lesson_count=1, instructor=self.instructor)
        enroll(self.student, self.course)
        self.quiz = make_quiz(
            self.course,
            self.lesson,
            questions=[
                (QuestionType.MULTIPLE_CHOICE, 'A', 5),
                (QuestionType.ESSAY, None, 5),
            ],
        )
        self.essay = self.quiz.questions.get(question_type=QuestionType.ESSAY)
        t0 = timezone.now()
        attempt = services.start_attempt(self.student, self.quiz, now=t0).attempt
        answers = correct_answers(self.quiz)
        answers[str(self.essay.id)] = "An essay answer"
        self.submitted = services.submit_attempt(self.student, self.quiz, attempt.id, answers, now=t0)

    def test_essay_submission_waits_for_review(self):
        attempt = self.submitted.attempt

        self.assertTrue(attempt.needs_manual_grading)
        self.assertIsNone(attempt.graded_at)
        self.assertEqual(attempt.percentage, 50)
        self.assertIsNone(self.submitted.completion)
        self.assertFalse(LessonProgress.objects.filter(student=self.student).exists())

    def test_confirmed_passing_grade_runs_cascade(self):
        graded = services.confirm_manual_grade(
            self.instructor, self.submitted.attempt, {str(self.essay.id): 4}
        )

        self.assertEqual(graded.attempt.score, 9)
        self.assertEqual(graded.attempt.percentage, 90)
        self.assertTrue(graded.attempt.is_passed)
        self.assertFalse(graded.attempt.needs_manual_grading)
        self.assertEqual(graded.attempt.graded_by, self.instructor)
        self.assertTrue(graded.completion['course_completed'])
        self.assertTrue(
            LessonProgress.objects.get(student=self.student, lesson=self.lesson).is_completed
        )

    def test_confirmed_failing_grade_has_no_cascade(self):
        graded = services.confirm_manual_grade(
            self.instructor, self.submitted.attempt, {str(self.essay.id): 0}
        )

        self.assertFalse(graded.attempt.is_passed)
        self.assertIsNone(graded.completion)

    def test_review_happens_once(self):
        services.confirm_manual_grade(self.instructor, self.submitted.attempt, {str(self.essay.id): 5})

        with self.assertRaises(NotAwaitingReview):
            services.confirm_manual_grade(self.instructor, self.submitted.attempt, {str(self.essay.id): 5})

    def test_points_required_and_bounded(self):
        with self.assertRaises(ValidationError):
            services.confirm_manual_grade(self.instructor, self.submitted.attempt, {})
        with self.assertRaises(ValidationError):
            services.confirm_manual_grade(self.instructor, self.submitted.attempt, {str(self.essay.id): 6})

    def test_instructor_of_another_course_cannot_grade(self):
        stranger = make_user("stranger", role=Profile.ROLE_INSTRUCTOR)

        with self.assertRaises(PermissionDenied):
            services.confirm_manual_grade(stranger, self.submitted.attempt, {str(self.essay.id): 5})
