from django.contrib import admin

from .models import MessageThread, Message


class MessageInline(admin.TabularInline):
    model = Message
    extra = 0
    readonly_fields = ['timestamp']


@admin.register(MessageThread)
class MessageThreadAdmin(admin.ModelAdmin):
    list_display = ['id', 'tenant_id', 'application', 'last_message_at', 'created_at']
    search_fields = ['tenant_id']
    raw_id_fields = ['application', 'job', 'applicant']
    inlines = [MessageInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['thread', 'sender_role', 'message_type', 'timestamp', 'is_read']
    list_filter = ['sender_role', 'message_type', 'is_read']
