import hashlib
import json
from django.db import models
from django.conf import settings
from django.contrib.auth.models import User
from django.utils import timezone


class ImmutableRecordError(Exception):
    """Raised on any attempt to change or remove an audit entry."""


class AuditLog(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='audit_logs')
    # Part of the hashed content, so ids are kept when the course or lesson goes.
    course = models.ForeignKey(
        'courses.Course', on_delete=models.DO_NOTHING, db_constraint=False, null=True, blank=True, related_name='+'
    )
    lesson = models.ForeignKey(
        'courses.Lesson', on_delete=models.DO_NOTHING, db_constraint=False, null=True, blank=True, related_name='+'
    )
    event_type = models.CharField(max_length=100, db_index=True)
    metadata = models.JSONField(default=dict, blank=True)
    token_hash = models.CharField(max_length=128)
    previous_hash = models.CharField(max_length=64, blank=True)
    current_hash = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.user.username} - {self.event_type} @ {self.created_at}"

    def compute_hash(self):
        metadata = json.dumps(self.metadata, sort_keys=True, default=str)
        hash_input = (
            f"{self.user_id}{self.course_id or ''}{self.lesson_id or ''}{self.event_type}{metadata}"
            f"{self.created_at.isoformat()}{self.token_hash}{self.previous_hash}{settings.SECRET_KEY}"
        )
        return hashlib.sha256(hash_input.encode()).hexdigest()

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ImmutableRecordError("AuditLog is immutable and cannot be updated.")

        last_log = AuditLog.objects.order_by('-created_at', '-id').first()
        self.previous_hash = last_log.current_hash if last_log else "0" * 64
        self.current_hash = self.compute_hash()

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordError("AuditLog is immutable and cannot be deleted.")
