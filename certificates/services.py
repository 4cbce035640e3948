import logging
import secrets
import string
import time

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import Badge, Certificate, UserBadge

logger = logging.getLogger(__name__)

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_certificate_number():
    """
    CERT-<epoch millis>-<9 random uppercase alphanumerics>.
    """
    suffix = ''.join(secrets.choice(_NUMBER_ALPHABET) for _ in range(9))
    return f"CERT-{int(time.time() * 1000)}-{suffix}"


def issue_certificate(user, course, now=None):
    """
    Return the (user, course) certificate, creating it on first call.

    The unique (student, course) constraint decides concurrent issuance; the
    loser of a race reads back the winner's row. A collision on the
    generated number is retried once with a fresh number.
    """
    existing = Certificate.objects.filter(student=user, course=course).first()
    if existing:
        return existing, False

    for attempt in range(2):
        try:
            with transaction.atomic():
                certificate = Certificate.objects.create(
                    student=user,
                    course=course,
                    certificate_number=generate_certificate_number(),
                    issued_at=now or timezone.now(),
                )
            break
        except IntegrityError:
            existing = Certificate.objects.filter(student=user, course=course).first()
            if existing:
                return existing, False
            if attempt:
                raise
            logger.warning("Certificate number collision for user=%s course=%s; retrying", user.pk, course.pk)

    logger.info("Certificate %s issued: user=%s course=%s", certificate.certificate_number, user.pk, course.pk)
    _log_event(user, 'certificate_issued', {'certificate_number': certificate.certificate_number}, course)

    if settings.CERTIFICATE_ANCHOR_URL:
        from .anchoring import anchor_certificate
        transaction.on_commit(lambda: anchor_certificate(certificate.pk))

    return certificate, True


def award_badge(user, badge_type, metadata=None, now=None):
    """
    Award the catalog badge of ``badge_type`` once per user.

    Returns the UserBadge, or None when the catalog has no such badge.
    """
    badge = Badge.objects.filter(badge_type=badge_type).order_by('id').first()
    if badge is None:
        logger.warning("No %s badge in the catalog; skipping award for user=%s", badge_type, user.pk)
        return None

    user_badge, created = UserBadge.objects.get_or_create(
        user=user,
        badge=badge,
        defaults={'earned_at': now or timezone.now(), 'metadata': metadata or {}},
    )
    if created:
        logger.info("Badge %r awarded: user=%s", badge.name, user.pk)
        course = None
        if metadata and metadata.get('course_id'):
            from courses.models import Course
            course = Course.objects.filter(pk=metadata['course_id']).first()
        _log_event(user, 'badge_awarded', {'badge': badge.name}, course)
    return user_badge


def _log_event(user, event_type, metadata, course):
    from events.utils import create_log

    create_log(user, event_type, metadata, course=course)
