"""
Notification Admin Configuration.
"""

from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'recipient_id', 'recipient_role', 'notification_type', 'priority', 'is_read', 'created_at']
    list_filter = ['recipient_role', 'priority', 'is_read']
    search_fields = ['title', 'recipient_id', 'tenant_id']
    readonly_fields = ['uuid', 'created_at', 'read_at']
