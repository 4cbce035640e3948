from django.contrib import admin
from .models import Question, Quiz, QuizAttempt


class QuestionInline(admin.StackedInline):
    model = Question
    extra = 0


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ('title', 'course', 'lesson', 'passing_score', 'max_attempts', 'time_limit_minutes')
    list_filter = ('course',)
    inlines = [QuestionInline]


@admin.register(QuizAttempt)
class QuizAttemptAdmin(admin.ModelAdmin):
    list_display = ('user', 'quiz', 'attempt_number', 'status', 'percentage', 'is_passed', 'needs_manual_grading', 'started_at')
    list_filter = ('status', 'is_passed', 'needs_manual_grading')
    readonly_fields = (
        'user', 'quiz', 'attempt_number', 'status', 'started_at', 'submitted_at',
        'score', 'max_score', 'percentage', 'is_passed', 'answers', 'time_spent_seconds',
        'manual_grades', 'graded_at', 'graded_by',
    )

    def has_add_permission(self, request):
        return False
