"""
Notification Services for the delivery channels used by automations.

Provides services for in-app notifications, email and SMS.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils.html import strip_tags

from .models import Notification

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """Raised when a channel cannot deliver a message."""


@dataclass
class NotificationResult:
    """Result of a notification send operation."""
    success: bool
    notification_id: Optional[int] = None
    external_id: Optional[str] = None
    error_message: Optional[str] = None
    channel_type: Optional[str] = None


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    channel_type: str = None

    @abstractmethod
    def send(self, **kwargs) -> NotificationResult:
        """Send a notification. Must be implemented by subclasses."""
        pass


class InAppNotificationService(BaseNotificationService):
    """Stores notifications for display in the application."""

    channel_type = 'in_app'

    def send(
        self,
        recipient_id,
        title: str,
        message: str = '',
        recipient_role: str = 'applicant',
        notification_type: str = 'automation',
        priority: str = 'normal',
        tenant_id: str = '',
        action_url: str = '',
        related_entity_type: str = '',
        related_entity_id=None,
        job_id=None,
        application_id=None,
        context_data: dict = None,
        **kwargs
    ) -> NotificationResult:
        notification = Notification.objects.create(
            tenant_id=str(tenant_id or ''),
            recipient_id=str(recipient_id),
            recipient_role=recipient_role,
            notification_type=notification_type or 'automation',
            title=title[:255],
            message=message or '',
            action_url=action_url or '',
            priority=priority or 'normal',
            related_entity_type=related_entity_type or '',
            related_entity_id=str(related_entity_id or ''),
            job_id=str(job_id or ''),
            application_id=str(application_id or ''),
            context_data=context_data or {},
        )
        logger.debug(f"In-app notification {notification.pk} created for {recipient_id}")
        return NotificationResult(
            success=True,
            notification_id=notification.pk,
            channel_type=self.channel_type,
        )


class EmailNotificationService(BaseNotificationService):
    """Service for sending email notifications."""

    channel_type = 'email'

    def send(self, to: str, subject: str, body: str, **kwargs) -> NotificationResult:
        """Send an HTML email with a plain-text alternative."""
        if not to:
            raise DeliveryError("Recipient has no email address")

        email = EmailMultiAlternatives(
            subject=subject,
            body=strip_tags(body),
            from_email=getattr(settings, 'DEFAULT_FROM_EMAIL', None),
            to=[to],
        )
        email.attach_alternative(body, 'text/html')
        sent = email.send(fail_silently=False)
        if not sent:
            raise DeliveryError(f"Email backend did not accept message to {to}")

        logger.info(f"Email sent to {to}")
        return NotificationResult(success=True, channel_type=self.channel_type)


class SMSNotificationService(BaseNotificationService):
    """Service for sending SMS through an HTTP gateway."""

    channel_type = 'sms'

    # Gateways split longer bodies into at most ten segments
    MAX_LENGTH = 1600

    def __init__(self):
        self.gateway_url = getattr(settings, 'SMS_GATEWAY_URL', '')
        self.gateway_token = getattr(settings, 'SMS_GATEWAY_TOKEN', '')
        self.sender_id = getattr(settings, 'SMS_SENDER_ID', 'TalentFlow')
        self.timeout = getattr(settings, 'SMS_GATEWAY_TIMEOUT', 10)

    def send(self, to: str, message: str, **kwargs) -> NotificationResult:
        if not self.gateway_url:
            raise DeliveryError("SMS gateway is not configured")
        if not to:
            raise DeliveryError("Recipient has no phone number")

        headers = {'Content-Type': 'application/json'}
        if self.gateway_token:
            headers['Authorization'] = f'Bearer {self.gateway_token}'

        try:
            response = requests.post(
                self.gateway_url,
                json={'to': to, 'from': self.sender_id, 'body': message[:self.MAX_LENGTH]},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout:
            raise DeliveryError(f"SMS gateway timed out after {self.timeout}s")
        except requests.ConnectionError as e:
            raise DeliveryError(f"SMS gateway connection error: {e}")

        if not 200 <= response.status_code < 300:
            raise DeliveryError(f"SMS gateway returned HTTP {response.status_code}")

        try:
            external_id = str(response.json().get('id', ''))
        except ValueError:
            external_id = ''

        logger.info(f"SMS sent to {to}")
        return NotificationResult(success=True, external_id=external_id or None, channel_type=self.channel_type)


in_app_service = InAppNotificationService()
email_service = EmailNotificationService()


def get_sms_service() -> SMSNotificationService:
    """Build an SMS service from current settings."""
    return SMSNotificationService()
