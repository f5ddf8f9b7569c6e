"""
Automations Admin - Rules, idempotency ledger and dead-lettered triggers.
"""

from django.contrib import admin, messages

from .models import AutomationRule, FailedTrigger, ProcessedEvent, format_success_rate


@admin.register(AutomationRule)
class AutomationRuleAdmin(admin.ModelAdmin):
    list_display = [
        'name', 'tenant_id', 'trigger_event', 'is_active', 'is_template',
        'priority', 'execution_count', 'success_rate', 'last_executed_at'
    ]
    list_filter = ['trigger_event', 'is_active', 'is_template']
    search_fields = ['name', 'description', 'tenant_id']
    readonly_fields = [
        'id', 'executions_this_hour', 'executions_today', 'last_execution_time',
        'hour_reset_at', 'day_reset_at', 'recent_logs', 'execution_count',
        'success_count', 'failure_count', 'last_executed_at', 'last_success_at',
        'last_failure_at', 'created_at', 'updated_at'
    ]
    actions = ['activate_rules', 'deactivate_rules']

    fieldsets = (
        ('Rule', {
            'fields': ('id', 'tenant_id', 'name', 'description', 'trigger_event', 'priority',
                       'is_active', 'is_template', 'created_by')
        }),
        ('Definition', {
            'fields': ('conditions', 'actions')
        }),
        ('Limits', {
            'fields': ('max_executions_per_hour', 'max_executions_per_day', 'cooldown_minutes')
        }),
        ('Throttle State', {
            'classes': ('collapse',),
            'fields': ('executions_this_hour', 'executions_today', 'last_execution_time',
                       'hour_reset_at', 'day_reset_at')
        }),
        ('Execution History', {
            'classes': ('collapse',),
            'fields': ('execution_count', 'success_count', 'failure_count', 'last_executed_at',
                       'last_success_at', 'last_failure_at', 'recent_logs')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    def success_rate(self, obj):
        return f"{format_success_rate(obj.success_count, obj.execution_count)}%"
    success_rate.short_description = 'Success Rate'

    @admin.action(description='Activate selected rules')
    def activate_rules(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} rule(s) activated.", messages.SUCCESS)

    @admin.action(description='Deactivate selected rules')
    def deactivate_rules(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} rule(s) deactivated.", messages.SUCCESS)


@admin.register(ProcessedEvent)
class ProcessedEventAdmin(admin.ModelAdmin):
    list_display = ['event_type', 'entity_id', 'tenant_id', 'event_id', 'processed_at']
    list_filter = ['event_type']
    search_fields = ['entity_id', 'event_id', 'tenant_id']
    date_hierarchy = 'processed_at'


@admin.register(FailedTrigger)
class FailedTriggerAdmin(admin.ModelAdmin):
    list_display = ['event_type', 'event_id', 'tenant_id', 'attempts', 'status', 'created_at']
    list_filter = ['status', 'event_type']
    search_fields = ['event_id', 'tenant_id', 'error']
    readonly_fields = ['id', 'task_id', 'created_at', 'requeued_at']
    actions = ['requeue_triggers']

    @admin.action(description='Requeue selected triggers')
    def requeue_triggers(self, request, queryset):
        from .tasks import retry_failed_trigger

        count = 0
        for failed in queryset.filter(status=FailedTrigger.Status.PENDING):
            retry_failed_trigger.delay(str(failed.pk))
            count += 1
        self.message_user(request, f"{count} trigger(s) requeued.", messages.SUCCESS)
