"""
Notification models.
"""

import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Notification(models.Model):
    """
    In-app notification addressed to a user id.

    Recipients are referenced by id and role rather than by foreign key
    because publishers and applicants live in different account stores.
    """

    PRIORITY_CHOICES = [
        ('low', _('Low')),
        ('normal', _('Normal')),
        ('high', _('High')),
        ('urgent', _('Urgent')),
    ]

    uuid = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    tenant_id = models.CharField(max_length=64, db_index=True, blank=True)

    recipient_id = models.CharField(max_length=64, db_index=True)
    recipient_role = models.CharField(max_length=20, default='applicant')

    notification_type = models.CharField(max_length=100, default='automation')
    title = models.CharField(max_length=255)
    message = models.TextField(blank=True)
    action_url = models.CharField(max_length=500, blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')

    related_entity_type = models.CharField(max_length=50, blank=True)
    related_entity_id = models.CharField(max_length=64, blank=True)
    job_id = models.CharField(max_length=64, blank=True)
    application_id = models.CharField(max_length=64, blank=True)
    context_data = models.JSONField(default=dict, blank=True)

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Notification')
        verbose_name_plural = _('Notifications')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient_id', 'is_read'], name='notif_recipient_read_idx'),
        ]

    def __str__(self):
        return f"{self.title} -> {self.recipient_id}"

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])
