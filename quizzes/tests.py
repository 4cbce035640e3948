from types import SimpleNamespace

from django.test import SimpleTestCase

from .grading import GRADERS, grade, passed, percentage_of
from .models import QuestionType


def question(qid, question_type, correct_answer, points=5, explanation=''):
    return SimpleNamespace(
        id=qid,
        question_type=question_type,
        correct_answer=correct_answer,
        points=points,
        explanation=explanation,
    )


class GradingRuleTests(SimpleTestCase):
    def test_one_of_two_five_point_questions_fails_at_seventy(self):
        questions = [
            question(1, QuestionType.MULTIPLE_CHOICE, 'A'),
            question(2, QuestionType.MULTIPLE_CHOICE, 'B'),
        ]
        result = grade(questions, {'1': 'A', '2': 'C'})

        self.assertEqual(result.score, 5)
        self.assertEqual(result.max_score, 10)
        self.assertEqual(result.percentage, 50)
        self.assertEqual(result.correct_count, 1)
        self.assertFalse(result.is_passed(70))

    def test_multiple_select_ignores_order(self):
        questions = [question(1, QuestionType.MULTIPLE_SELECT, ['A', 'C'])]

        self.assertEqual(grade(questions, {'1': ['C', 'A']}).score, 5)
        self.assertEqual(grade(questions, {'1': ['A']}).score, 0)
        self.assertEqual(grade(questions, {'1': ['A', 'B', 'C']}).score, 0)
        self.assertEqual(grade(questions, {'1': 'A'}).score, 0)

    def test_short_answer_is_trimmed_and_case_insensitive(self):
        questions = [question(1, QuestionType.SHORT_ANSWER, 'Photosynthesis')]

        self.assertTrue(grade(questions, {'1': '  photosynthesis \n'}).details[0].is_correct)
        self.assertFalse(grade(questions, {'1': 'photo synthesis'}).details[0].is_correct)
        self.assertFalse(grade(questions, {'1': None}).details[0].is_correct)

    def test_true_false_and_multiple_choice_use_exact_equality(self):
        questions = [
            question(1, QuestionType.TRUE_FALSE, False),
            question(2, QuestionType.MULTIPLE_CHOICE, 'B'),
        ]
        result = grade(questions, {'1': False, '2': 'b'})

        self.assertTrue(result.details[0].is_correct)
        self.assertFalse(result.details[1].is_correct)

    def test_unanswered_question_scores_zero(self):
        questions = [question(1, QuestionType.TRUE_FALSE, 'true')]
        result = grade(questions, {})

        self.assertEqual(result.score, 0)
        self.assertIsNone(result.details[0].user_answer)

    def test_answers_keyed_by_int_or_str(self):
        questions = [question(7, QuestionType.MULTIPLE_CHOICE, 'A')]

        self.assertEqual(grade(questions, {7: 'A'}).score, 5)
        self.assertEqual(grade(questions, {'7': 'A'}).score, 5)


class EssayGradingTests(SimpleTestCase):
    def setUp(self):
        self.questions = [
            question(1, QuestionType.MULTIPLE_CHOICE, 'A', points=5),
            question(2, QuestionType.ESSAY, None, points=5),
        ]

    def test_essay_scores_zero_and_needs_review(self):
        result = grade(self.questions, {'1': 'A', '2': 'A long answer'})

        self.assertEqual(result.score, 5)
        self.assertEqual(result.max_score, 10)
        self.assertTrue(result.needs_manual_grading)
        self.assertIsNone(result.details[1].is_correct)

    def test_reviewer_points_are_counted_and_clamped(self):
        result = grade(self.questions, {'1': 'A'}, manual_points={'2': 4})
        self.assertEqual(result.score, 9)
        self.assertFalse(result.needs_manual_grading)

        clamped = grade(self.questions, {'1': 'A'}, manual_points={2: 50})
        self.assertEqual(clamped.score, 10)
        self.assertTrue(clamped.details[1].is_correct)


class PercentageTests(SimpleTestCase):
    def test_rounds_half_up(self):
        self.assertEqual(percentage_of(1, 8), 13)
        self.assertEqual(percentage_of(1, 3), 33)
        self.assertEqual(percentage_of(2, 3), 67)
        self.assertEqual(percentage_of(10, 10), 100)

    def test_zero_max_score_is_zero_percent(self):
        self.assertEqual(percentage_of(0, 0), 0)
        self.assertEqual(grade([], {}).percentage, 0)

    def test_passing_threshold_is_inclusive(self):
        self.assertTrue(passed(70, 70))
        self.assertFalse(passed(69, 70))
        self.assertTrue(grade([question(1, QuestionType.MULTIPLE_CHOICE, 'A')], {'1': 'A'}).is_passed(100))


class GraderRegistryTests(SimpleTestCase):
    def test_every_question_type_has_a_grader(self):
        self.assertEqual(set(GRADERS), set(QuestionType.values))

    def test_unknown_type_is_an_error(self):
        with self.assertRaises(ValueError):
            grade([question(1, 'MATCHING', 'A')], {'1': 'A'})

    def test_grading_is_deterministic(self):
        questions = [
            question(1, QuestionType.MULTIPLE_SELECT, ['B', 'D'], points=3),
            question(2, QuestionType.SHORT_ANSWER, 'Paris', points=2),
            question(3, QuestionType.TRUE_FALSE, 'true', points=1),
        ]
        answers = {'1': ['D', 'B'], '2': 'paris', '3': 'false'}

        first = grade(questions, answers)
        second = grade(questions, answers)

        self.assertEqual(
            (first.score, first.percentage, first.is_passed(80)),
            (second.score, second.percentage, second.is_passed(80)),
        )
        self.assertEqual(first.score, 5)
        self.assertEqual(first.percentage, 83)
