import hashlib
import secrets
from django.conf import settings
from .models import AuditLog


def create_log(user, event_type, metadata, course=None, lesson=None):
    """
    Append an audit entry with a generated token hash.
    """
    nonce = secrets.token_hex(16)
    hash_input = f"{user.id}{course.id if course else ''}{lesson.id if lesson else ''}{event_type}{nonce}{settings.SECRET_KEY}"
    token_hash = hashlib.sha256(hash_input.encode()).hexdigest()

    return AuditLog.objects.create(
        user=user,
        course=course,
        lesson=lesson,
        event_type=event_type,
        metadata=metadata,
        token_hash=token_hash,
    )


def verify_chain(logs):
    """
    Walk entries oldest first and return the first entry whose stored hash
    does not match, or None when the chain is intact.
    """
    previous = None
    for log in logs:
        if previous is not None and log.previous_hash != previous.current_hash:
            return log
        if log.compute_hash() != log.current_hash:
            return log
        previous = log
    return None
