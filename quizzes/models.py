from django.db import models
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db.models import Q
from courses.models import Course, Lesson


class QuestionType(models.TextChoices):
    MULTIPLE_CHOICE = 'MULTIPLE_CHOICE', 'Multiple choice'
    TRUE_FALSE = 'TRUE_FALSE', 'True / false'
    MULTIPLE_SELECT = 'MULTIPLE_SELECT', 'Multiple select'
    SHORT_ANSWER = 'SHORT_ANSWER', 'Short answer'
    ESSAY = 'ESSAY', 'Essay'


class Quiz(models.Model):
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='quizzes')
    lesson = models.ForeignKey(
        Lesson, on_delete=models.CASCADE, null=True, blank=True, related_name='quizzes',
        help_text='Set for quizzes embedded in a lesson; passing them completes the lesson'
    )
    title = models.CharField(max_length=200)
    passing_score = models.PositiveSmallIntegerField(
        default=70, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    max_attempts = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1)],
        help_text='Leave empty for unlimited attempts'
    )
    time_limit_minutes = models.PositiveIntegerField(null=True, blank=True, validators=[MinValueValidator(1)])
    randomize_questions = models.BooleanField(default=False)
    show_results_immediately = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = 'quizzes'

    def __str__(self):
        return self.title

    def clean(self):
        if self.lesson_id and self.course_id and self.lesson.course_id != self.course_id:
            raise ValidationError({'lesson': 'Lesson must belong to the quiz course.'})

    @property
    def time_limit_seconds(self):
        return self.time_limit_minutes * 60 if self.time_limit_minutes else None


class Question(models.Model):
    quiz = models.ForeignKey(Quiz, related_name='questions', on_delete=models.CASCADE)
    question_type = models.CharField(max_length=20, choices=QuestionType.choices)
    text = models.TextField()
    options = models.JSONField(default=list, blank=True)
    correct_answer = models.JSONField(null=True, blank=True)
    points = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    explanation = models.TextField(blank=True)
    order = models.IntegerField(default=0)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return self.text[:50]

    def clean(self):
        answer = self.correct_answer
        if self.question_type == QuestionType.MULTIPLE_SELECT:
            if not isinstance(answer, list) or not answer:
                raise ValidationError({'correct_answer': 'Multiple select needs a non-empty list.'})
        elif self.question_type == QuestionType.ESSAY:
            if answer not in (None, ''):
                raise ValidationError({'correct_answer': 'Essay questions are graded manually.'})
        elif answer in (None, '') or isinstance(answer, (list, dict)):
            raise ValidationError({'correct_answer': 'A single correct value is required.'})


class QuizAttempt(models.Model):
    class Status(models.TextChoices):
        IN_PROGRESS = 'IN_PROGRESS', 'In progress'
        SUBMITTED = 'SUBMITTED', 'Submitted'
        EXPIRED = 'EXPIRED', 'Expired'

    TERMINAL_STATUSES = (Status.SUBMITTED, Status.EXPIRED)

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='quiz_attempts')
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='attempts')
    attempt_number = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)
    started_at = models.DateTimeField()
    submitted_at = models.DateTimeField(null=True, blank=True)

    score = models.PositiveIntegerField(null=True, blank=True)
    max_score = models.PositiveIntegerField(null=True, blank=True)
    percentage = models.PositiveSmallIntegerField(null=True, blank=True)
    is_passed = models.BooleanField(null=True, blank=True)
    answers = models.JSONField(default=dict, blank=True)
    time_spent_seconds = models.PositiveIntegerField(null=True, blank=True)

    # Essay review
    needs_manual_grading = models.BooleanField(default=False)
    manual_grades = models.JSONField(default=dict, blank=True)
    graded_at = models.DateTimeField(null=True, blank=True)
    graded_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='graded_attempts'
    )

    class Meta:
        ordering = ['-started_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'quiz', 'attempt_number'],
                name='unique_attempt_number_per_user_quiz',
            ),
            models.UniqueConstraint(
                fields=['user', 'quiz'],
                condition=Q(status='IN_PROGRESS'),
                name='one_in_progress_attempt_per_user_quiz',
            ),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.quiz.title} #{self.attempt_number} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def elapsed_seconds(self, now):
        return (now - self.started_at).total_seconds()
