from datetime import timedelta

from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APITestCase

from certificates.models import Certificate
from courses.models import Profile

from .factories import correct_answers, enroll, make_course, make_quiz, make_user
from .models import QuestionType, QuizAttempt


class QuizAttemptApiTests(APITestCase):
    def setUp(self):
        self.student = make_user("student")
        self.course, (self.lesson,) = make_course(lesson_count=1)
        enroll(self.student, self.course)
        self.quiz = make_quiz(self.course, self.lesson, max_attempts=2, time_limit_minutes=10)
        self.url = reverse("quiz_attempt", args=[self.quiz.id])
        self.client.force_authenticate(user=self.student)

    def start(self):
        return self.client.post(self.url, format="json")

    def submit(self, attempt_id, answers):
        return self.client.put(self.url, {"attempt_id": attempt_id, "answers": answers}, format="json")

    def test_unauthenticated_request_is_401(self):
        self.client.force_authenticate(user=None)

        response = self.start()
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["status"], "error")

    def test_unknown_quiz_is_404(self):
        response = self.client.post(reverse("quiz_attempt", args=[999999]), format="json")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "quiz_not_found")

    def test_unenrolled_user_is_403(self):
        self.client.force_authenticate(user=make_user("outsider"))

        response = self.start()
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["message"], "Enrollment required")

    def test_start_hides_answers_and_reports_time(self):
        response = self.start()

        self.assertEqual(response.status_code, 201)
        self.assertFalse(response.data["resumed"])
        self.assertEqual(response.data["attempt"]["attempt_number"], 1)
        self.assertEqual(response.data["time_remaining_ms"], 600000)
        self.assertEqual(len(response.data["questions"]), 2)
        for question in response.data["questions"]:
            self.assertNotIn("correct_answer", question)
            self.assertNotIn("explanation", question)

    def test_start_twice_returns_same_attempt(self):
        first = self.start()
        second = self.start()

        self.assertEqual(second.status_code, 200)
        self.assertTrue(second.data["resumed"])
        self.assertEqual(first.data["attempt"]["id"], second.data["attempt"]["id"])

    def test_submit_returns_details_when_results_are_shown(self):
        attempt_id = self.start().data["attempt"]["id"]

        response = self.submit(attempt_id, correct_answers(self.quiz))

        self.assertEqual(response.status_code, 200)
        results = response.data["results"]
        self.assertEqual(results["score"], 100)
        self.assertTrue(results["passed"])
        self.assertEqual(results["total_questions"], 2)
        self.assertEqual(results["correct_answers"], 2)
        self.assertEqual(len(results["details"]), 2)
        self.assertIn("explanation", results["details"][0])
        self.assertEqual(response.data["attempt"]["status"], QuizAttempt.Status.SUBMITTED)

    def test_submit_hides_details_when_results_are_withheld(self):
        self.quiz.show_results_immediately = False
        self.quiz.save()
        attempt_id = self.start().data["attempt"]["id"]

        response = self.submit(attempt_id, {})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["results"]["score"], 0)
        self.assertFalse(response.data["results"]["passed"])
        self.assertNotIn("details", response.data["results"])
        self.assertNotIn("correct_answers", response.data["results"])

    def test_submit_requires_attempt_id_and_answers(self):
        response = self.client.put(self.url, {"answers": {}}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("attempt_id", response.data["errors"])

        response = self.client.put(self.url, {"attempt_id": 1}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("answers", response.data["errors"])

    def test_late_submit_is_400(self):
        attempt_id = self.start().data["attempt"]["id"]
        QuizAttempt.objects.filter(pk=attempt_id).update(started_at=timezone.now() - timedelta(minutes=11))

        response = self.submit(attempt_id, correct_answers(self.quiz))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["message"], "Time limit exceeded")

    def test_double_submit_is_400(self):
        attempt_id = self.start().data["attempt"]["id"]
        self.submit(attempt_id, {})

        response = self.submit(attempt_id, {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "already_submitted")

    def test_submit_unknown_attempt_is_404(self):
        response = self.submit(999999, {})
        self.assertEqual(response.status_code, 404)

    def test_max_attempts_is_400(self):
        for _ in range(2):
            attempt_id = self.start().data["attempt"]["id"]
            self.submit(attempt_id, {})

        response = self.start()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "max_attempts_exceeded")

    def test_history_and_single_attempt(self):
        first_id = self.start().data["attempt"]["id"]
        self.submit(first_id, {})
        second_id = self.start().data["attempt"]["id"]

        history = self.client.get(self.url)
        self.assertEqual(history.status_code, 200)
        self.assertEqual(history.data["count"], 2)
        self.assertEqual([a["id"] for a in history.data["attempts"]], [second_id, first_id])

        single = self.client.get(self.url, {"attempt_id": first_id})
        self.assertEqual(single.status_code, 200)
        self.assertEqual(single.data["attempt"]["id"], first_id)

        missing = self.client.get(self.url, {"attempt_id": 999999})
        self.assertEqual(missing.status_code, 404)

    def test_history_only_shows_callers_attempts(self):
        self.start()
        other = make_user("other")
        enroll(other, self.course)
        self.client.force_authenticate(user=other)

        response = self.client.get(self.url)
        self.assertEqual(response.data["count"], 0)

    def test_passing_final_lesson_reports_completion(self):
        attempt_id = self.start().data["attempt"]["id"]

        response = self.submit(attempt_id, correct_answers(self.quiz))

        completion = response.data["completion"]
        self.assertTrue(completion["course_completed"])
        self.assertEqual(completion["course_progress"], 100)
        self.assertIn("certificate_number", completion)
        self.assertEqual(Certificate.objects.filter(student=self.student, course=self.course).count(), 1)

    def test_retaking_completed_course_does_not_reissue(self):
        attempt_id = self.start().data["attempt"]["id"]
        self.submit(attempt_id, correct_answers(self.quiz))

        attempt_id = self.start().data["attempt"]["id"]
        response = self.submit(attempt_id, correct_answers(self.quiz))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data["completion"]["course_completed"])
        self.assertNotIn("certificate_number", response.data["completion"])
        self.assertEqual(Certificate.objects.filter(student=self.student, course=self.course).count(), 1)


class ManualGradeApiTests(APITestCase):
    def setUp(self):
        self.instructor = make_user("teacher", role=Profile.ROLE_INSTRUCTOR)
        self.student = make_user("student")
        self.course, (self.lesson,) = make_course(lesson_count=1, instructor=self.instructor)
        enroll(self.student, self.course)
        self.quiz = make_quiz(
            self.course,
            self.lesson,
            questions=[(QuestionType.ESSAY, None, 10)],
            passing_score=60,
        )
        self.essay = self.quiz.questions.get()

        self.client.force_authenticate(user=self.student)
        url = reverse("quiz_attempt", args=[self.quiz.id])
        attempt_id = self.client.post(url, format="json").data["attempt"]["id"]
        response = self.client.put(
            url, {"attempt_id": attempt_id, "answers": {str(self.essay.id): "My essay"}}, format="json"
        )
        self.assertTrue(response.data["results"]["needs_manual_grading"])
        self.grade_url = reverse("quiz_attempt_grade", args=[self.quiz.id, attempt_id])

    def test_student_cannot_grade(self):
        response = self.client.post(self.grade_url, {"essay_points": {str(self.essay.id): 10}}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_instructor_confirms_grade(self):
        self.client.force_authenticate(user=self.instructor)

        response = self.client.post(self.grade_url, {"essay_points": {str(self.essay.id): 7}}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["results"]["score"], 70)
        self.assertTrue(response.data["results"]["passed"])
        self.assertFalse(response.data["attempt"]["needs_manual_grading"])
        self.assertTrue(response.data["completion"]["course_completed"])

    def test_negative_points_are_rejected(self):
        self.client.force_authenticate(user=self.instructor)

        response = self.client.post(self.grade_url, {"essay_points": {str(self.essay.id): -1}}, format="json")
        self.assertEqual(response.status_code, 400)
