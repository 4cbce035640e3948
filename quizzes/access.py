from dataclasses import dataclass
from typing import Optional

from courses.permissions import has_content_access

ENROLLMENT_REQUIRED = "enrollment required"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[str] = None


def can_attempt(user, quiz):
    """
    Whether ``user`` may start or submit ``quiz``.

    Any enrollment in the quiz's course qualifies (a learner who already
    completed the course may retake it); so does a quiz embedded in a free
    lesson. Reads only.
    """
    lesson = quiz.lesson if quiz.lesson_id else None
    if has_content_access(user, quiz.course_id, lesson):
        return AccessDecision(allowed=True)

    return AccessDecision(allowed=False, reason=ENROLLMENT_REQUIRED)
