import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.db.models import Count, ExpressionWrapper, IntegerField, Subquery, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from .models import Enrollment, Lesson, LessonProgress

logger = logging.getLogger(__name__)


@dataclass
class CourseProgress:
    completed_lessons: int
    total_lessons: int
    progress: int
    just_completed: bool = False


def progress_percentage(completed, total):
    """
    Whole-number percentage, rounded half up. A course without published
    lessons is at 0%.
    """
    if total <= 0:
        return 0
    value = (Decimal(completed) * 100 / Decimal(total)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return min(int(value), 100)


def mark_lesson_completed(user, lesson, now=None):
    """
    Upsert the (user, lesson) progress row as completed.

    An earlier ``completed_at`` is never overwritten: the timestamp is only
    written by an UPDATE whose WHERE clause requires it to be null.
    """
    now = now or timezone.now()
    progress, created = LessonProgress.objects.get_or_create(
        student=user,
        lesson=lesson,
        defaults={'is_completed': True, 'completed_at': now},
    )
    if not created:
        LessonProgress.objects.filter(pk=progress.pk, completed_at__isnull=True).update(
            is_completed=True, completed_at=now, updated_at=now
        )
        LessonProgress.objects.filter(pk=progress.pk, is_completed=False).update(
            is_completed=True, updated_at=now
        )
        progress.refresh_from_db()
    return progress


def mark_lesson_incomplete(user, lesson):
    progress, _ = LessonProgress.objects.get_or_create(student=user, lesson=lesson)
    LessonProgress.objects.filter(pk=progress.pk).update(
        is_completed=False, completed_at=None, updated_at=timezone.now()
    )
    progress.refresh_from_db()
    return progress


def _completed_lessons(user, course):
    return LessonProgress.objects.filter(
        student=user,
        lesson__course=course,
        lesson__is_published=True,
        is_completed=True,
    )


def _store_progress(enrollments, user, course, total, now):
    """
    Write ``progress`` from a count taken inside the UPDATE itself, so a
    recompute that started before another lesson was completed cannot
    store an older percentage. Integer form of round-half-up:
    (completed * 200 + total) // (2 * total).
    """
    if total <= 0:
        return enrollments.update(progress=0, last_accessed_at=now)

    completed = Coalesce(
        Subquery(
            _completed_lessons(user, course)
            .order_by()
            .values('student')
            .annotate(n=Count('pk'))
            .values('n')[:1],
            output_field=IntegerField(),
        ),
        Value(0),
    )
    return enrollments.update(
        progress=ExpressionWrapper(
            (completed * Value(200) + Value(total)) / Value(2 * total),
            output_field=IntegerField(),
        ),
        last_accessed_at=now,
    )


def recompute_course_progress(user, course, now=None):
    """
    Recount completed published lessons and store the result on the
    enrollment.

    When every published lesson is complete the enrollment moves from ACTIVE
    to COMPLETED with a conditional UPDATE; ``just_completed`` is True only
    for the call whose UPDATE performed that transition.
    """
    now = now or timezone.now()
    total = Lesson.objects.filter(course=course, is_published=True).count()

    enrollments = Enrollment.objects.filter(student=user, course=course)
    _store_progress(enrollments, user, course, total, now)

    # Counted after the write; a lesson completed in between is picked up
    # by the request that completed it.
    completed = _completed_lessons(user, course).count()
    percentage = progress_percentage(completed, total)

    just_completed = False
    if total > 0 and completed == total:
        transitioned = enrollments.filter(status=Enrollment.Status.ACTIVE).update(
            status=Enrollment.Status.COMPLETED, completed_at=now
        )
        just_completed = transitioned == 1
        if just_completed:
            logger.info("Enrollment completed: user=%s course=%s", user.pk, course.pk)

    return CourseProgress(
        completed_lessons=completed,
        total_lessons=total,
        progress=percentage,
        just_completed=just_completed,
    )


def run_completion_cascade(user, lesson, now=None):
    """
    Propagate a passed lesson quiz: lesson progress, course progress, and on
    the ACTIVE -> COMPLETED transition a certificate and completion badge.

    Every step is best-effort. A failing step is logged and left out of the
    returned summary; it never raises to the caller.
    """
    from certificates.models import Badge
    from certificates.services import award_badge, issue_certificate
    from events.utils import create_log

    now = now or timezone.now()
    course = lesson.course
    outcome = {}

    try:
        with transaction.atomic():
            mark_lesson_completed(user, lesson, now=now)
            create_log(user, 'lesson_completed', {'lesson_id': lesson.pk}, course=course, lesson=lesson)
        outcome['lesson_completed'] = True
    except Exception:
        logger.exception("Cascade: lesson progress failed user=%s lesson=%s", user.pk, lesson.pk)
        _record_failure(user, course, 'lesson_progress')
        return outcome

    try:
        with transaction.atomic():
            course_progress = recompute_course_progress(user, course, now=now)
            if course_progress.just_completed:
                create_log(user, 'course_completed', {'progress': course_progress.progress}, course=course)
    except Exception:
        logger.exception("Cascade: course progress failed user=%s course=%s", user.pk, course.pk)
        _record_failure(user, course, 'course_progress')
        return outcome

    outcome['course_progress'] = course_progress.progress
    outcome['course_completed'] = course_progress.just_completed
    if not course_progress.just_completed:
        return outcome

    try:
        with transaction.atomic():
            certificate, _ = issue_certificate(user, course, now=now)
        outcome['certificate_number'] = certificate.certificate_number
    except Exception:
        logger.exception("Cascade: certificate issuance failed user=%s course=%s", user.pk, course.pk)
        _record_failure(user, course, 'certificate')

    try:
        with transaction.atomic():
            user_badge = award_badge(
                user,
                Badge.BadgeType.COURSE_COMPLETION,
                metadata={'course_id': course.pk, 'course_name': course.title},
                now=now,
            )
        if user_badge is not None:
            outcome['badge'] = user_badge.badge.name
    except Exception:
        logger.exception("Cascade: badge award failed user=%s course=%s", user.pk, course.pk)
        _record_failure(user, course, 'badge')

    return outcome


def _record_failure(user, course, step):
    from events.utils import create_log

    try:
        with transaction.atomic():
            create_log(user, 'cascade_failed', {'step': step}, course=course)
    except Exception:
        logger.exception("Could not record cascade failure step=%s", step)
