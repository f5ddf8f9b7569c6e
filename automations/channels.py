"""
Delivery channels used by action handlers.

``DeliveryChannels`` is the narrow contract between actions and the rest
of the platform; ``DjangoDeliveryChannels`` implements it against the
ats, messages_sys and notifications apps. Lookups of tenant data are
always scoped to the rule's tenant.
"""

from abc import ABC, abstractmethod

from django.core.exceptions import ValidationError
from django.utils import timezone

from .exceptions import ActionConfigurationError, ActionTargetNotFound


class DeliveryChannels(ABC):
    """Side-effect operations available to automation actions."""

    @abstractmethod
    def create_notification(self, **kwargs):
        """Store an in-app notification; returns its id."""

    @abstractmethod
    def send_email(self, to, subject, body):
        """Send an email."""

    @abstractmethod
    def send_sms(self, to, message):
        """Send an SMS."""

    @abstractmethod
    def find_or_create_thread(self, application_id, job_id, applicant_id, tenant_id):
        """Returns ``(thread_id, created)``."""

    @abstractmethod
    def post_message(self, thread_id, content, sender_id, sender_role='system'):
        """Post a message to a thread; returns its id."""

    @abstractmethod
    def create_interview(self, **kwargs):
        """Create an interview; returns its id."""

    @abstractmethod
    def get_application_stage(self, application_id, tenant_id):
        """Current pipeline stage of an application."""

    @abstractmethod
    def set_application_stage(self, application_id, stage, tenant_id):
        """Move an application to a stage without emitting model signals."""

    @abstractmethod
    def add_tag(self, application_id, tag, tenant_id):
        """Returns True when the tag was added, False if already present."""

    @abstractmethod
    def update_field(self, model_name, object_id, field, value, tenant_id):
        """Set one allow-listed field on an application or job posting."""


class DjangoDeliveryChannels(DeliveryChannels):
    """Channels backed by the project's Django apps."""

    # Fields automations may change through UPDATE_FIELD
    UPDATABLE_FIELDS = {
        'Application': {'notes', 'rating', 'priority', 'is_starred'},
        'JobPosting': {'is_featured', 'positions_count', 'location'},
    }

    MODEL_ALIASES = {
        'Application': 'Application',
        'JobApplication': 'Application',
        'JobPosting': 'JobPosting',
        'Job': 'JobPosting',
    }

    def __init__(self, sms_service=None, email_service=None, in_app_service=None):
        self._sms_service = sms_service
        self._email_service = email_service
        self._in_app_service = in_app_service

    # Notifications

    def create_notification(self, **kwargs):
        service = self._in_app_service
        if service is None:
            from notifications.services import in_app_service as service
        return service.send(**kwargs).notification_id

    def send_email(self, to, subject, body):
        service = self._email_service
        if service is None:
            from notifications.services import email_service as service
        return service.send(to=to, subject=subject, body=body)

    def send_sms(self, to, message):
        service = self._sms_service
        if service is None:
            from notifications.services import get_sms_service
            service = get_sms_service()
        return service.send(to=to, message=message)

    # Messaging

    def find_or_create_thread(self, application_id, job_id, applicant_id, tenant_id):
        from messages_sys.models import MessageThread

        application = self._get_application(application_id, tenant_id)
        thread, created = MessageThread.find_or_create_for_application(
            application.pk,
            job_id=application.job_id,
            applicant_id=application.applicant_id,
            tenant_id=tenant_id,
        )
        return str(thread.pk), created

    def post_message(self, thread_id, content, sender_id, sender_role='system'):
        from messages_sys.models import Message, MessageThread

        try:
            thread = MessageThread.objects.get(pk=thread_id)
        except (MessageThread.DoesNotExist, ValidationError, ValueError):
            raise ActionTargetNotFound('MessageThread', thread_id)

        message = Message.objects.create(
            thread=thread,
            sender_id=str(sender_id or ''),
            sender_role=sender_role,
            message_type=Message.MessageType.SYSTEM,
            system_message_type='automation',
            content=content,
        )
        thread.update_last_message(content, sent_at=message.timestamp)
        return str(message.pk)

    # Interviews

    def create_interview(self, application_id, tenant_id, **fields):
        from ats.models import Interview

        application = self._get_application(application_id, tenant_id)
        interview = Interview(application=application, tenant_id=str(tenant_id), **fields)
        interview._skip_automation_hooks = True
        interview.save()
        return str(interview.pk)

    # Applications

    def get_application_stage(self, application_id, tenant_id):
        return self._get_application(application_id, tenant_id).status

    def set_application_stage(self, application_id, stage, tenant_id):
        from ats.models import Application

        if stage not in Application.ApplicationStatus.values:
            raise ActionConfigurationError(f"Unknown application stage: {stage}")

        updated = Application.objects.filter(
            pk=self._coerce_pk(application_id), tenant_id=str(tenant_id)
        ).update(status=stage, updated_at=timezone.now())
        if not updated:
            raise ActionTargetNotFound('Application', application_id)

    def add_tag(self, application_id, tag, tenant_id):
        application = self._get_application(application_id, tenant_id)
        tags = list(application.tags or [])
        if tag in tags:
            return False
        tags.append(tag)
        type(application).objects.filter(pk=application.pk).update(tags=tags, updated_at=timezone.now())
        return True

    def update_field(self, model_name, object_id, field, value, tenant_id):
        from ats.models import Application, JobPosting

        canonical = self.MODEL_ALIASES.get(model_name)
        if canonical is None:
            raise ActionConfigurationError(f"Model not supported for field updates: {model_name}")
        if field not in self.UPDATABLE_FIELDS[canonical]:
            raise ActionConfigurationError(f"Field '{field}' cannot be updated on {canonical}")

        model = Application if canonical == 'Application' else JobPosting
        try:
            instance = model.objects.get(pk=self._coerce_pk(object_id), tenant_id=str(tenant_id))
        except model.DoesNotExist:
            raise ActionTargetNotFound(canonical, object_id)

        try:
            cleaned = model._meta.get_field(field).clean(value, instance)
        except ValidationError as e:
            raise ActionConfigurationError(f"Invalid value for {canonical}.{field}: {'; '.join(e.messages)}")

        model.objects.filter(pk=instance.pk).update(**{field: cleaned, 'updated_at': timezone.now()})
        return cleaned

    # Helpers

    @staticmethod
    def _coerce_pk(value):
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def _get_application(self, application_id, tenant_id):
        from ats.models import Application

        if application_id in (None, ''):
            raise ActionConfigurationError("Event payload has no applicationId")
        pk = self._coerce_pk(application_id)
        try:
            return Application.objects.get(pk=pk, tenant_id=str(tenant_id))
        except Application.DoesNotExist:
            raise ActionTargetNotFound('Application', application_id)
