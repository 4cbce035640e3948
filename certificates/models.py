import hashlib
import uuid
from django.db import models
from django.conf import settings
from django.contrib.auth.models import User
from django.utils import timezone
from courses.models import Course


class Certificate(models.Model):
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name='certificates')
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='certificates')
    certificate_number = models.CharField(max_length=100, unique=True)
    certificate_hash = models.CharField(max_length=64, unique=True, blank=True)
    verification_code = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    issued_at = models.DateTimeField(default=timezone.now)

    # Set when the hash has been anchored with the external service
    anchor_transaction_id = models.CharField(max_length=128, blank=True)
    anchored_at = models.DateTimeField(null=True, blank=True)

    is_revoked = models.BooleanField(default=False)

    class Meta:
        unique_together = ('student', 'course')

    def compute_hash(self):
        hash_input = f"{self.student_id}{self.course_id}{self.certificate_number}{self.issued_at.isoformat()}{settings.SECRET_KEY}"
        return hashlib.sha256(hash_input.encode()).hexdigest()

    def save(self, *args, **kwargs):
        if not self.certificate_hash:
            self.certificate_hash = self.compute_hash()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.certificate_number} - {self.student.username}"


class Badge(models.Model):
    class BadgeType(models.TextChoices):
        COURSE_COMPLETION = 'COURSE_COMPLETION', 'Course completion'
        QUIZ_MASTER = 'QUIZ_MASTER', 'Quiz master'
        STREAK = 'STREAK', 'Learning streak'

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    badge_type = models.CharField(max_length=30, choices=BadgeType.choices, db_index=True)

    def __str__(self):
        return self.name


class UserBadge(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='badges')
    badge = models.ForeignKey(Badge, on_delete=models.CASCADE, related_name='awards')
    earned_at = models.DateTimeField(default=timezone.now)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        unique_together = ('user', 'badge')

    def __str__(self):
        return f"{self.user.username} - {self.badge.name}"
