"""
Automation Models

- AutomationRule: tenant-defined trigger, conditions and ordered actions,
  with throttle state and a bounded execution history
- ProcessedEvent: idempotency ledger entry for one (tenant, event, entity)
- FailedTrigger: dead-letter record of a trigger job that ran out of retries
"""

import uuid

from django.db import models
from django.db.models import Count, Q, Sum
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


def format_success_rate(successes, executions) -> str:
    """Percentage of successful executions with two decimals."""
    if not executions:
        return '0.00'
    return f"{(successes / executions) * 100:.2f}"


class TriggerEvent(models.TextChoices):
    APPLICATION_SUBMITTED = 'APPLICATION_SUBMITTED', _('Application submitted')
    APPLICATION_STAGE_CHANGED = 'APPLICATION_STAGE_CHANGED', _('Application stage changed')
    APPLICATION_UPDATED = 'APPLICATION_UPDATED', _('Application updated')
    INTERVIEW_SCHEDULED = 'INTERVIEW_SCHEDULED', _('Interview scheduled')
    INTERVIEW_COMPLETED = 'INTERVIEW_COMPLETED', _('Interview completed')
    INTERVIEW_CANCELLED = 'INTERVIEW_CANCELLED', _('Interview cancelled')
    MESSAGE_RECEIVED = 'MESSAGE_RECEIVED', _('Message received')
    JOB_PUBLISHED = 'JOB_PUBLISHED', _('Job published')
    JOB_DEADLINE_APPROACHING = 'JOB_DEADLINE_APPROACHING', _('Job deadline approaching')
    FEEDBACK_SUBMITTED = 'FEEDBACK_SUBMITTED', _('Feedback submitted')


class ConditionOperator(models.TextChoices):
    EQUALS = 'equals', _('Equals')
    NOT_EQUALS = 'not_equals', _('Not equals')
    CONTAINS = 'contains', _('Contains')
    NOT_CONTAINS = 'not_contains', _('Does not contain')
    GREATER_THAN = 'greater_than', _('Greater than')
    LESS_THAN = 'less_than', _('Less than')
    IN = 'in', _('In')
    NOT_IN = 'not_in', _('Not in')
    EXISTS = 'exists', _('Exists')
    NOT_EXISTS = 'not_exists', _('Does not exist')


class ActionType(models.TextChoices):
    SEND_NOTIFICATION = 'SEND_NOTIFICATION', _('Send notification')
    CREATE_THREAD = 'CREATE_THREAD', _('Create message thread')
    SEND_MESSAGE = 'SEND_MESSAGE', _('Send message')
    SEND_EMAIL = 'SEND_EMAIL', _('Send email')
    SEND_SMS = 'SEND_SMS', _('Send SMS')
    SCHEDULE_INTERVIEW = 'SCHEDULE_INTERVIEW', _('Schedule interview')
    ASSIGN_TO_STAGE = 'ASSIGN_TO_STAGE', _('Assign to stage')
    ADD_TAG = 'ADD_TAG', _('Add tag')
    UPDATE_FIELD = 'UPDATE_FIELD', _('Update field')
    WEBHOOK = 'WEBHOOK', _('Call webhook')


class AutomationRuleQuerySet(models.QuerySet):

    def for_tenant(self, tenant_id):
        return self.filter(tenant_id=str(tenant_id))

    def for_event(self, event, tenant_id):
        """Active rules for an event, highest priority first, oldest first on ties."""
        return self.filter(
            trigger_event=event,
            tenant_id=str(tenant_id),
            is_active=True,
        ).order_by('-priority', 'created_at')

    def templates(self):
        return self.filter(is_template=True, is_active=True)

    def statistics(self, tenant_id) -> dict:
        """Aggregate rule and execution counts for a tenant."""
        totals = self.for_tenant(tenant_id).aggregate(
            total_rules=Count('id'),
            active_rules=Count('id', filter=Q(is_active=True)),
            total_executions=Sum('execution_count'),
            total_successes=Sum('success_count'),
            total_failures=Sum('failure_count'),
        )
        stats = {key: value or 0 for key, value in totals.items()}
        stats['success_rate'] = format_success_rate(stats['total_successes'], stats['total_executions'])
        return stats


class AutomationRule(models.Model):
    """
    A publisher-defined automation.

    ``conditions`` is a list of ``{field, operator, value}`` objects that
    must all hold. ``actions`` is a list of ``{type, order, config,
    enabled}`` objects run in ascending ``order``. Throttle counters use
    rolling windows anchored at ``hour_reset_at`` / ``day_reset_at``.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.CharField(max_length=64, db_index=True)

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    trigger_event = models.CharField(max_length=50, choices=TriggerEvent.choices)
    conditions = models.JSONField(default=list, blank=True)
    actions = models.JSONField(default=list)

    is_active = models.BooleanField(default=True)
    is_template = models.BooleanField(default=False)
    priority = models.IntegerField(default=0)

    # Limits
    max_executions_per_hour = models.PositiveIntegerField(null=True, blank=True)
    max_executions_per_day = models.PositiveIntegerField(null=True, blank=True)
    cooldown_minutes = models.PositiveIntegerField(null=True, blank=True)

    # Throttle state
    executions_this_hour = models.PositiveIntegerField(default=0)
    executions_today = models.PositiveIntegerField(default=0)
    last_execution_time = models.DateTimeField(null=True, blank=True)
    hour_reset_at = models.DateTimeField(null=True, blank=True)
    day_reset_at = models.DateTimeField(null=True, blank=True)

    # Execution tracking
    recent_logs = models.JSONField(default=list, blank=True)
    execution_count = models.PositiveIntegerField(default=0)
    success_count = models.PositiveIntegerField(default=0)
    failure_count = models.PositiveIntegerField(default=0)
    last_executed_at = models.DateTimeField(null=True, blank=True)
    last_success_at = models.DateTimeField(null=True, blank=True)
    last_failure_at = models.DateTimeField(null=True, blank=True)

    created_by = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AutomationRuleQuerySet.as_manager()

    # Fields written by the orchestrator after each execution
    EXECUTION_STATE_FIELDS = [
        'executions_this_hour', 'executions_today', 'last_execution_time',
        'hour_reset_at', 'day_reset_at', 'recent_logs', 'execution_count',
        'success_count', 'failure_count', 'last_executed_at',
        'last_success_at', 'last_failure_at', 'updated_at',
    ]

    class Meta:
        verbose_name = _('Automation Rule')
        verbose_name_plural = _('Automation Rules')
        ordering = ['-priority', 'created_at']
        indexes = [
            models.Index(fields=['tenant_id', 'is_active'], name='auto_rule_tenant_active_idx'),
            models.Index(fields=['trigger_event', 'is_active'], name='auto_rule_event_active_idx'),
            models.Index(fields=['is_template', 'is_active'], name='auto_rule_template_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.trigger_event})"

    def sorted_actions(self):
        """Enabled actions in ascending order; ties keep their stored order."""
        actions = [a for a in (self.actions or []) if isinstance(a, dict) and a.get('enabled', True)]
        return sorted(actions, key=lambda a: a.get('order') or 0)

    def toggle(self, save=True):
        self.is_active = not self.is_active
        if save:
            self.save(update_fields=['is_active', 'updated_at'])
        return self

    def clone_for_tenant(self, tenant_id, created_by=''):
        """Copy this rule to another tenant; the copy starts inactive."""
        return AutomationRule.objects.create(
            tenant_id=str(tenant_id),
            name=self.name,
            description=self.description,
            trigger_event=self.trigger_event,
            conditions=list(self.conditions or []),
            actions=list(self.actions or []),
            is_active=False,
            is_template=False,
            priority=self.priority,
            max_executions_per_hour=self.max_executions_per_hour,
            max_executions_per_day=self.max_executions_per_day,
            cooldown_minutes=self.cooldown_minutes,
            created_by=str(created_by or ''),
        )

    def get_summary(self) -> dict:
        return {
            'id': str(self.id),
            'name': self.name,
            'description': self.description,
            'event': self.trigger_event,
            'condition_count': len(self.conditions or []),
            'action_count': len(self.actions or []),
            'is_active': self.is_active,
            'execution_count': self.execution_count,
            'success_rate': format_success_rate(self.success_count, self.execution_count),
        }


class ProcessedEvent(models.Model):
    """
    Idempotency ledger entry.

    One row per (tenant, event type, entity). Rows older than
    ``AUTOMATION_PROCESSED_EVENT_TTL_DAYS`` no longer suppress duplicates.
    """

    tenant_id = models.CharField(max_length=64)
    event_type = models.CharField(max_length=50)
    entity_id = models.CharField(max_length=255)
    event_id = models.CharField(max_length=64, blank=True)
    processed_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = _('Processed Event')
        verbose_name_plural = _('Processed Events')
        constraints = [
            models.UniqueConstraint(
                fields=['tenant_id', 'event_type', 'entity_id'],
                name='unique_processed_event',
            ),
        ]

    def __str__(self):
        return f"{self.event_type}:{self.entity_id} ({self.tenant_id})"


class FailedTrigger(models.Model):
    """Trigger job kept for inspection after its retries ran out."""

    class Status(models.TextChoices):
        PENDING = 'pending', _('Pending')
        REQUEUED = 'requeued', _('Requeued')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event_id = models.CharField(max_length=64, db_index=True)
    tenant_id = models.CharField(max_length=64, db_index=True)
    event_type = models.CharField(max_length=50)
    payload = models.JSONField(default=dict, blank=True)
    context = models.JSONField(default=dict, blank=True)
    error = models.TextField(blank=True)
    attempts = models.PositiveIntegerField(default=0)
    task_id = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    requeued_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Failed Trigger')
        verbose_name_plural = _('Failed Triggers')
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.event_type} [{self.event_id}] after {self.attempts} attempts"
