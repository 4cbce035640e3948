"""
Automatic grading of quiz answers.

``grade`` is a pure function of the questions and the submitted answers: it
reads ``id``, ``question_type``, ``correct_answer``, ``points`` and
``explanation`` from each question and never touches the database, so the
same inputs always give the same result.

Every ``QuestionType`` has exactly one grading function in ``GRADERS``; the
registry is checked when this module is imported, and an unknown type raises
instead of silently scoring zero.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from django.core.exceptions import ImproperlyConfigured

from .models import QuestionType


@dataclass(frozen=True)
class Verdict:
    """Outcome for one question. ``is_correct`` is None while awaiting review."""
    is_correct: Optional[bool]
    awarded: int
    pending_review: bool = False


@dataclass
class QuestionResult:
    question_id: int
    question_type: str
    user_answer: Any
    correct_answer: Any
    is_correct: Optional[bool]
    points: int
    awarded: int
    explanation: str = ''

    def as_dict(self):
        return {
            "question_id": self.question_id,
            "question_type": self.question_type,
            "user_answer": self.user_answer,
            "correct_answer": self.correct_answer,
            "is_correct": self.is_correct,
            "points": self.points,
            "awarded": self.awarded,
            "explanation": self.explanation,
        }


@dataclass
class GradeResult:
    score: int
    max_score: int
    percentage: int
    correct_count: int
    needs_manual_grading: bool
    details: List[QuestionResult] = field(default_factory=list)

    def is_passed(self, passing_score: int) -> bool:
        return passed(self.percentage, passing_score)


def _all_or_nothing(is_correct: bool, points: int) -> Verdict:
    return Verdict(is_correct=is_correct, awarded=points if is_correct else 0)


def grade_exact(question, answer, manual_points=None) -> Verdict:
    return _all_or_nothing(answer is not None and answer == question.correct_answer, question.points)


def grade_multiple_select(question, answer, manual_points=None) -> Verdict:
    if not isinstance(answer, (list, tuple)):
        return _all_or_nothing(False, question.points)
    try:
        is_correct = sorted(answer) == sorted(question.correct_answer or [])
    except TypeError:
        # mixed, unorderable option values
        is_correct = False
    return _all_or_nothing(is_correct, question.points)


def grade_short_answer(question, answer, manual_points=None) -> Verdict:
    if not isinstance(answer, str) or not isinstance(question.correct_answer, str):
        return _all_or_nothing(False, question.points)
    is_correct = answer.strip().lower() == question.correct_answer.strip().lower()
    return _all_or_nothing(is_correct, question.points)


def grade_essay(question, answer, manual_points=None) -> Verdict:
    if manual_points is None:
        return Verdict(is_correct=None, awarded=0, pending_review=True)
    awarded = max(0, min(int(manual_points), question.points))
    return Verdict(is_correct=awarded == question.points, awarded=awarded)


GRADERS: Dict[str, Callable[..., Verdict]] = {
    QuestionType.MULTIPLE_CHOICE: grade_exact,
    QuestionType.TRUE_FALSE: grade_exact,
    QuestionType.MULTIPLE_SELECT: grade_multiple_select,
    QuestionType.SHORT_ANSWER: grade_short_answer,
    QuestionType.ESSAY: grade_essay,
}

_missing = set(QuestionType.values) - set(GRADERS)
if _missing:
    raise ImproperlyConfigured(f"No grader registered for question types: {sorted(_missing)}")


def percentage_of(score: int, max_score: int) -> int:
    """score / max_score * 100, rounded half up; 0 when nothing is gradable."""
    if max_score <= 0:
        return 0
    value = Decimal(score) * 100 / Decimal(max_score)
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def passed(percentage: int, passing_score: int) -> bool:
    return percentage >= passing_score


def grade(questions: Iterable, answers: Mapping, manual_points: Optional[Mapping] = None) -> GradeResult:
    """
    Score ``answers`` (question id -> submitted value) against ``questions``.

    ``manual_points`` maps essay question ids to points awarded by a
    reviewer. Keys of both mappings may be ints or strings.
    """
    answers = answers or {}
    manual_points = manual_points or {}

    score = 0
    max_score = 0
    correct_count = 0
    needs_manual_grading = False
    details = []

    for question in questions:
        grader = GRADERS.get(question.question_type)
        if grader is None:
            raise ValueError(f"Unknown question type: {question.question_type!r}")

        user_answer = _lookup(answers, question.id)
        verdict = grader(question, user_answer, _lookup(manual_points, question.id))

        max_score += question.points
        score += verdict.awarded
        if verdict.is_correct:
            correct_count += 1
        if verdict.pending_review:
            needs_manual_grading = True

        details.append(QuestionResult(
            question_id=question.id,
            question_type=question.question_type,
            user_answer=user_answer,
            correct_answer=question.correct_answer,
            is_correct=verdict.is_correct,
            points=question.points,
            awarded=verdict.awarded,
            explanation=question.explanation or '',
        ))

    return GradeResult(
        score=score,
        max_score=max_score,
        percentage=percentage_of(score, max_score),
        correct_count=correct_count,
        needs_manual_grading=needs_manual_grading,
        details=details,
    )


def _lookup(mapping, question_id):
    if question_id in mapping:
        return mapping[question_id]
    return mapping.get(str(question_id))
