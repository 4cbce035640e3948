import csv

from django.contrib import admin, messages
from django.http import HttpResponse

from .models import AuditLog
from .utils import verify_chain


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['event_type', 'user', 'course_id', 'lesson_id', 'created_at', 'short_hash']
    list_filter = ['event_type', 'course', 'created_at']
    search_fields = ['user__username', 'event_type', 'current_hash']
    date_hierarchy = 'created_at'
    readonly_fields = [f.name for f in AuditLog._meta.fields]
    actions = ['export_as_csv', 'check_chain']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description='Hash')
    def short_hash(self, obj):
        return obj.current_hash[:12]

    @admin.action(description='Check hash chain')
    def check_chain(self, request, queryset):
        broken = verify_chain(AuditLog.objects.order_by('created_at', 'id'))
        if broken is None:
            self.message_user(request, "Audit chain is intact.", messages.SUCCESS)
        else:
            self.message_user(
                request,
                f"Audit chain broken at entry {broken.pk} ({broken.event_type}, {broken.created_at:%Y-%m-%d %H:%M}).",
                messages.ERROR,
            )

    @admin.action(description='Export selected audit entries to CSV')
    def export_as_csv(self, request, queryset):
        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = 'attachment; filename="quiz_audit_log.csv"'

        writer = csv.writer(response)
        writer.writerow(['Created At', 'User', 'Event', 'Course ID', 'Lesson ID', 'Metadata', 'Hash'])
        for log in queryset.select_related('user').order_by('created_at', 'id'):
            writer.writerow([
                log.created_at.isoformat(),
                log.user.username,
                log.event_type,
                log.course_id or '',
                log.lesson_id or '',
                log.metadata,
                log.current_hash,
            ])
        return response
