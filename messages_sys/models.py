import uuid

from django.conf import settings
from django.db import models, transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

User = settings.AUTH_USER_MODEL


class MessageThread(models.Model):
    """
    Conversation between a publisher and an applicant about one application.

    There is at most one thread per application.
    UUID primary key for secure reference.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant_id = models.CharField(max_length=64, db_index=True)
    application = models.OneToOneField(
        'ats.Application',
        on_delete=models.CASCADE,
        related_name='message_thread'
    )
    job = models.ForeignKey(
        'ats.JobPosting',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='message_threads'
    )
    applicant = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='application_threads'
    )
    last_message_preview = models.CharField(max_length=255, blank=True)
    last_message_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']

    def __str__(self):
        return f"Thread {self.id} ({self.application_id})"

    @classmethod
    def find_or_create_for_application(cls, application_id, job_id=None, applicant_id=None, tenant_id=''):
        """Return ``(thread, created)`` for the application."""
        with transaction.atomic():
            return cls.objects.get_or_create(
                application_id=application_id,
                defaults={
                    'job_id': job_id,
                    'applicant_id': applicant_id,
                    'tenant_id': str(tenant_id or ''),
                },
            )

    def update_last_message(self, content, sent_at=None):
        self.last_message_preview = (content or '')[:255]
        self.last_message_at = sent_at or timezone.now()
        self.save(update_fields=['last_message_preview', 'last_message_at', 'updated_at'])


class Message(models.Model):
    """
    Individual message posted to a thread.

    Automation posts ``system`` messages; everything else is authored
    by a participant.
    """

    class SenderRole(models.TextChoices):
        APPLICANT = 'applicant', _('Applicant')
        PUBLISHER = 'job-publisher', _('Job Publisher')
        SYSTEM = 'system', _('System')

    class MessageType(models.TextChoices):
        TEXT = 'text', _('Text')
        SYSTEM = 'system', _('System')

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    thread = models.ForeignKey(MessageThread, on_delete=models.CASCADE, related_name='messages')
    sender_id = models.CharField(max_length=64, blank=True)
    sender_role = models.CharField(max_length=20, choices=SenderRole.choices, default=SenderRole.APPLICANT)
    message_type = models.CharField(max_length=20, choices=MessageType.choices, default=MessageType.TEXT)
    system_message_type = models.CharField(max_length=50, blank=True)
    content = models.TextField(blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)
    is_read = models.BooleanField(default=False)

    class Meta:
        ordering = ['timestamp']

    def __str__(self):
        return f"From {self.sender_id or self.sender_role} at {self.timestamp}: {self.content[:50]}"
