from django.db import models
from django.contrib.auth.models import User
from django.core.validators import MinValueValidator
from django.utils import timezone

from courses.models import Course, Lesson


# ---------------------------------
# 1️⃣ Assignment
# ---------------------------------
class Assignment(models.Model):
    class SubmissionType(models.TextChoices):
        TEXT = 'TEXT', 'Text'
        FILE = 'FILE', 'File'
        BOTH = 'BOTH', 'Text and/or file'

    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='assignments')
    lesson = models.ForeignKey(
        Lesson, on_delete=models.CASCADE, null=True, blank=True, related_name='assignments'
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    instructions = models.TextField(blank=True)
    due_date = models.DateTimeField(null=True, blank=True)
    max_points = models.PositiveIntegerField(default=100, validators=[MinValueValidator(1)])
    submission_type = models.CharField(
        max_length=10, choices=SubmissionType.choices, default=SubmissionType.TEXT
    )
    allowed_file_types = models.JSONField(
        default=list, blank=True, help_text='MIME types; empty allows any type'
    )
    max_file_size = models.PositiveIntegerField(default=10_000_000, help_text='Bytes per file')
    max_files = models.PositiveSmallIntegerField(default=5, validators=[MinValueValidator(1)])

    def __str__(self):
        return f"{self.course.title} - {self.title}"

    def is_past_due(self, now=None):
        return self.due_date is not None and (now or timezone.now()) > self.due_date


# ---------------------------------
# 2️⃣ Submission
# ---------------------------------
class AssignmentSubmission(models.Model):
    class Status(models.TextChoices):
        SUBMITTED = 'SUBMITTED', 'Submitted'
        GRADED = 'GRADED', 'Graded'

    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name='assignment_submissions')
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name='submissions')
    text_content = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.SUBMITTED)
    submitted_at = models.DateTimeField(default=timezone.now)

    points = models.PositiveIntegerField(null=True, blank=True)
    feedback = models.TextField(blank=True)
    graded_at = models.DateTimeField(null=True, blank=True)
    graded_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='graded_submissions'
    )

    class Meta:
        unique_together = ('student', 'assignment')

    def __str__(self):
        return f"{self.student.username} - {self.assignment.title} ({self.status})"


class SubmissionFile(models.Model):
    submission = models.ForeignKey(AssignmentSubmission, on_delete=models.CASCADE, related_name='files')
    filename = models.CharField(max_length=255)
    file_url = models.URLField(max_length=500)
    file_size = models.PositiveIntegerField()
    file_type = models.CharField(max_length=100)

    def __str__(self):
        return self.filename
