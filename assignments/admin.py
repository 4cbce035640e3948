from django.contrib import admin
from django.utils import timezone

from .models import Assignment, AssignmentSubmission, SubmissionFile


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ('title', 'course', 'lesson', 'submission_type', 'due_date', 'max_points')
    list_filter = ('course', 'submission_type')
    search_fields = ('title', 'course__title')


class SubmissionFileInline(admin.TabularInline):
    model = SubmissionFile
    extra = 0
    readonly_fields = ('filename', 'file_url', 'file_size', 'file_type')


@admin.register(AssignmentSubmission)
class AssignmentSubmissionAdmin(admin.ModelAdmin):
    list_display = ('student', 'assignment', 'status', 'submitted_at', 'points')
    list_filter = ('status', 'assignment__course')
    readonly_fields = ('student', 'assignment', 'text_content', 'submitted_at', 'graded_at', 'graded_by')
    fields = ('student', 'assignment', 'text_content', 'submitted_at', 'points', 'feedback', 'status', 'graded_at', 'graded_by')
    inlines = [SubmissionFileInline]

    def save_model(self, request, obj, form, change):
        if obj.points is not None and obj.status != AssignmentSubmission.Status.GRADED:
            obj.status = AssignmentSubmission.Status.GRADED
            obj.graded_at = timezone.now()
            obj.graded_by = request.user
        super().save_model(request, obj, form, change)
