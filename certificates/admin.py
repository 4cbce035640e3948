from django.contrib import admin
from .models import Badge, Certificate, UserBadge


@admin.register(Certificate)
class CertificateAdmin(admin.ModelAdmin):
    list_display = ['certificate_number', 'student', 'course', 'issued_at', 'is_revoked']
    list_filter = ['is_revoked']
    search_fields = ['certificate_number', 'student__username']
    readonly_fields = ['certificate_number', 'certificate_hash', 'verification_code', 'issued_at', 'anchor_transaction_id', 'anchored_at']


@admin.register(Badge)
class BadgeAdmin(admin.ModelAdmin):
    list_display = ['name', 'badge_type']
    list_filter = ['badge_type']


@admin.register(UserBadge)
class UserBadgeAdmin(admin.ModelAdmin):
    list_display = ['user', 'badge', 'earned_at']
    list_filter = ['badge']
