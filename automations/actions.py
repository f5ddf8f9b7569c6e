"""
Action Executor

Runs one configured action of a rule. Every action type has a handler
class registered in ``ACTION_HANDLERS`` through ``@register_action``.
Handlers raise on failure; ``ActionExecutor.run`` turns any exception
into a failed ``ActionOutcome`` so sibling actions keep running.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

import requests
from django.conf import settings
from django.utils import timezone

from core.security.ssrf import SSRFProtector

from .exceptions import ActionConfigurationError, AutomationError, UnsafeURLError
from .models import ActionType, TriggerEvent
from .templating import prepare_variables, render, render_structure

if TYPE_CHECKING:
    from .channels import DeliveryChannels
    from .engine import TriggerContext
    from .models import AutomationRule

logger = logging.getLogger(__name__)


# ==================== OUTCOME & CONTEXT ====================

@dataclass
class ActionOutcome:
    """Result of running one action."""
    action_type: str
    success: bool
    error: Optional[str] = None
    side_effect_id: Optional[str] = None
    noop: bool = False
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ActionContext:
    """Everything a handler may use while running."""
    payload: dict
    rule: 'AutomationRule'
    trigger: 'TriggerContext'
    channels: 'DeliveryChannels'
    queue: Any = None
    http: Any = None
    ssrf: Any = None
    dry_run: bool = False

    @property
    def tenant_id(self) -> str:
        return str(self.rule.tenant_id)

    def variables(self, custom=None) -> dict:
        return prepare_variables(custom, self.payload)


# ==================== REGISTRY ====================

ACTION_HANDLERS: Dict[str, type] = {}


def register_action(action_type):
    """Class decorator adding a handler to ``ACTION_HANDLERS``."""
    def decorator(cls):
        cls.action_type = str(action_type)
        ACTION_HANDLERS[str(action_type)] = cls
        return cls
    return decorator


class ActionHandler(ABC):
    """Base class for action handlers."""

    action_type: str = None

    @abstractmethod
    def run(self, config: dict, ctx: ActionContext) -> ActionOutcome:
        """Execute the action. Raise on failure."""

    def ok(self, side_effect_id=None, noop=False, **data) -> ActionOutcome:
        return ActionOutcome(
            action_type=self.action_type,
            success=True,
            side_effect_id=str(side_effect_id) if side_effect_id is not None else None,
            noop=noop,
            data=data,
        )

    def failed(self, error, **data) -> ActionOutcome:
        return ActionOutcome(action_type=self.action_type, success=False, error=str(error), data=data)

    @staticmethod
    def require(config: dict, key: str):
        value = config.get(key)
        if value in (None, ''):
            raise ActionConfigurationError(f"Missing required config value: {key}")
        return value

    @staticmethod
    def application_id(ctx: ActionContext):
        return ctx.payload.get('applicationId')


# ==================== HANDLERS ====================

@register_action(ActionType.SEND_NOTIFICATION)
class SendNotificationAction(ActionHandler):

    def run(self, config, ctx):
        variables = ctx.variables(config.get('custom_data'))
        payload = ctx.payload

        recipient_id = (
            config.get('recipient_id')
            or payload.get('applicantId')
            or payload.get('userId')
            or ctx.tenant_id
        )
        recipient_role = payload.get('userRole') or (
            'job-publisher' if str(recipient_id) == ctx.tenant_id else 'applicant'
        )

        title = render(config.get('title'), variables) or ctx.rule.name
        notification_id = ctx.channels.create_notification(
            recipient_id=recipient_id,
            recipient_role=recipient_role,
            tenant_id=ctx.tenant_id,
            notification_type=config.get('notification_type') or 'automation',
            title=title,
            message=render(config.get('message'), variables),
            action_url=render(config.get('action_url'), variables),
            priority=config.get('priority') or 'normal',
            related_entity_type=payload.get('entityType') or 'job_application',
            related_entity_id=payload.get('applicationId') or payload.get('entityId'),
            job_id=payload.get('jobId'),
            application_id=payload.get('applicationId'),
            context_data={'rule_id': str(ctx.rule.pk), 'event_id': ctx.trigger.event_id},
        )
        return self.ok(notification_id, recipient_id=str(recipient_id))


@register_action(ActionType.CREATE_THREAD)
class CreateThreadAction(ActionHandler):

    def run(self, config, ctx):
        payload = ctx.payload
        thread_id, created = ctx.channels.find_or_create_thread(
            self.application_id(ctx),
            payload.get('jobId'),
            payload.get('applicantId'),
            ctx.tenant_id,
        )
        return self.ok(thread_id, noop=not created, thread_id=thread_id, created=created)


@register_action(ActionType.SEND_MESSAGE)
class SendMessageAction(ActionHandler):

    def run(self, config, ctx):
        template = self.require(config, 'message_template')
        payload = ctx.payload

        thread_id, _ = ctx.channels.find_or_create_thread(
            self.application_id(ctx),
            payload.get('jobId'),
            payload.get('applicantId'),
            ctx.tenant_id,
        )
        content = render(template, ctx.variables())
        message_id = ctx.channels.post_message(
            thread_id,
            content,
            sender_id=config.get('sender_id') or ctx.tenant_id,
            sender_role='system',
        )
        return self.ok(message_id, thread_id=thread_id, message_id=message_id)


@register_action(ActionType.SEND_EMAIL)
class SendEmailAction(ActionHandler):

    def run(self, config, ctx):
        recipient = config.get('recipient_email') or ctx.payload.get('applicantEmail')
        if not recipient:
            raise ActionConfigurationError("No email recipient: set recipient_email or include applicantEmail")

        variables = ctx.variables()
        ctx.channels.send_email(
            recipient,
            render(config.get('subject'), variables),
            render(config.get('body'), variables),
        )
        return self.ok(recipient=recipient)


@register_action(ActionType.SEND_SMS)
class SendSMSAction(ActionHandler):

    def run(self, config, ctx):
        recipient = config.get('recipient_phone') or ctx.payload.get('applicantPhone')
        if not recipient:
            raise ActionConfigurationError("No SMS recipient: set recipient_phone or include applicantPhone")

        result = ctx.channels.send_sms(recipient, render(config.get('message'), ctx.variables()))
        return self.ok(getattr(result, 'external_id', None), recipient=recipient)


@register_action(ActionType.SCHEDULE_INTERVIEW)
class ScheduleInterviewAction(ActionHandler):

    INTERVIEW_TYPES = ('online', 'onsite')

    def run(self, config, ctx):
        from ats.models import Interview

        interview_type = config.get('type') or 'online'
        if interview_type not in self.INTERVIEW_TYPES:
            raise ActionConfigurationError(f"Unknown interview type: {interview_type}")

        try:
            duration = int(config.get('duration') or 60)
            days = int(config.get('auto_schedule_days') or 3)
        except (TypeError, ValueError):
            raise ActionConfigurationError("duration and auto_schedule_days must be integers")

        fields = {
            'interview_type': interview_type,
            'scheduled_at': timezone.now() + timedelta(days=days),
            'duration_minutes': duration,
            'created_by': ctx.tenant_id,
        }
        if interview_type == 'online':
            base_url = getattr(settings, 'FRONTEND_URL', 'http://localhost:3000').rstrip('/')
            token = Interview.generate_meeting_token()
            fields.update({
                'meeting_token': token,
                'meeting_url': f"{base_url}/interview/{token}",
                'meeting_platform': 'internal',
            })

        interview_id = ctx.channels.create_interview(
            application_id=self.application_id(ctx),
            tenant_id=ctx.tenant_id,
            **fields
        )
        return self.ok(
            interview_id,
            interview_id=interview_id,
            scheduled_at=fields['scheduled_at'].isoformat(),
            meeting_url=fields.get('meeting_url', ''),
        )


@register_action(ActionType.ASSIGN_TO_STAGE)
class AssignToStageAction(ActionHandler):
    """
    Move the application to another stage and re-trigger the engine.

    The follow-up APPLICATION_STAGE_CHANGED event is enqueued one level
    deeper and never awaited.
    """

    def run(self, config, ctx):
        stage = self.require(config, 'stage')
        application_id = self.application_id(ctx)

        current = ctx.channels.get_application_stage(application_id, ctx.tenant_id)
        if current == stage:
            return self.ok(application_id, noop=True, stage=stage)

        ctx.channels.set_application_stage(application_id, stage, ctx.tenant_id)
        logger.info(f"Application {application_id} moved from {current} to {stage} by rule {ctx.rule.pk}")

        data = {'old_stage': current, 'stage': stage}
        if ctx.dry_run or ctx.queue is None:
            data['cascade_event_id'] = None
            return self.ok(application_id, **data)

        cascade_payload = dict(ctx.payload)
        cascade_payload.update({
            'oldStatus': current,
            'newStatus': stage,
            'status': stage,
            'entityId': f"{application_id}:{stage}",
        })
        try:
            ack = ctx.queue.enqueue(
                TriggerEvent.APPLICATION_STAGE_CHANGED,
                cascade_payload,
                ctx.tenant_id,
                context=ctx.trigger.child(),
            )
            data['cascade_event_id'] = ack.event_id
        except Exception as e:
            # The stage change itself stands; only the follow-up is lost
            logger.error(f"Could not enqueue stage-change cascade for application {application_id}: {e}")
            data['cascade_error'] = str(e)

        return self.ok(application_id, **data)


@register_action(ActionType.ADD_TAG)
class AddTagAction(ActionHandler):

    def run(self, config, ctx):
        tag = render(self.require(config, 'tag'), ctx.variables()).strip()
        if not tag:
            raise ActionConfigurationError("Tag renders to an empty string")
        added = ctx.channels.add_tag(self.application_id(ctx), tag, ctx.tenant_id)
        return self.ok(self.application_id(ctx), noop=not added, tag=tag)


@register_action(ActionType.UPDATE_FIELD)
class UpdateFieldAction(ActionHandler):

    def run(self, config, ctx):
        model_name = self.require(config, 'model')
        field_name = self.require(config, 'field')
        value = config.get('value')
        if isinstance(value, str):
            value = render(value, ctx.variables())

        if model_name in ('Job', 'JobPosting'):
            object_id = ctx.payload.get('jobId')
        else:
            object_id = self.application_id(ctx)

        ctx.channels.update_field(model_name, object_id, field_name, value, ctx.tenant_id)
        return self.ok(object_id, model=model_name, field=field_name)


@register_action(ActionType.WEBHOOK)
class WebhookAction(ActionHandler):
    """
    Call a tenant-configured URL.

    The URL passes the SSRF guard first; redirects are not followed, the
    request has a short timeout and the response body is read up to a
    fixed ceiling.
    """

    ALLOWED_METHODS = ('GET', 'POST', 'PUT', 'PATCH', 'DELETE')

    def run(self, config, ctx):
        url = self.require(config, 'url')
        method = str(config.get('method') or 'POST').upper()
        if method not in self.ALLOWED_METHODS:
            raise ActionConfigurationError(f"HTTP method not allowed: {method}")

        ssrf = ctx.ssrf or SSRFProtector()
        is_safe, reason = ssrf.validate_url(url)
        if not is_safe:
            raise UnsafeURLError(url, reason)

        variables = ctx.variables()
        headers = {'Content-Type': 'application/json', 'User-Agent': 'TalentFlow-Automations/1.0'}
        headers.update({str(k): render(v, variables) for k, v in (config.get('headers') or {}).items()})
        headers['X-Automation-Event-Id'] = ctx.trigger.event_id

        body = render_structure(config.get('body') or {}, variables)
        timeout = getattr(settings, 'AUTOMATION_WEBHOOK_TIMEOUT', 5)
        max_bytes = getattr(settings, 'AUTOMATION_WEBHOOK_MAX_RESPONSE_BYTES', 100 * 1024)
        http = ctx.http or requests
        deadline = time.monotonic() + timeout

        try:
            response = http.request(
                method,
                url,
                json=body if method != 'GET' else None,
                headers=headers,
                timeout=timeout,
                allow_redirects=False,
                stream=True,
            )
        except requests.Timeout:
            return self.failed(f"Webhook timed out after {timeout}s")
        except requests.RequestException as e:
            return self.failed(f"Webhook request failed: {e}")

        try:
            received = 0
            for chunk in response.iter_content(chunk_size=8192):
                # requests' timeout bounds each read, not the whole transfer
                if time.monotonic() > deadline:
                    return self.failed(f"Webhook timed out after {timeout}s", status_code=response.status_code)
                received += len(chunk)
                if received > max_bytes:
                    return self.failed(
                        f"Webhook response exceeded {max_bytes} bytes",
                        status_code=response.status_code,
                    )
        except requests.RequestException as e:
            return self.failed(f"Webhook response could not be read: {e}", status_code=response.status_code)
        finally:
            response.close()

        if not 200 <= response.status_code < 300:
            return self.failed(f"Webhook returned HTTP {response.status_code}", status_code=response.status_code)

        logger.info(f"Webhook {method} {url} returned {response.status_code} for rule {ctx.rule.pk}")
        return self.ok(status_code=response.status_code, response_bytes=received)


# ==================== EXECUTOR ====================

class ActionExecutor:
    """
    Dispatches action descriptors to their handlers.

    The dispatch queue is injected after construction (``bind_queue``)
    because the queue itself depends on the dispatcher that owns this
    executor.
    """

    def __init__(self, channels, queue=None, handlers=None, http=None, ssrf=None):
        self.channels = channels
        self.queue = queue
        self.http = http
        self.ssrf = ssrf
        registry = handlers if handlers is not None else ACTION_HANDLERS
        self._handlers = {action_type: cls() for action_type, cls in registry.items()}

    def bind_queue(self, queue):
        self.queue = queue

    def run(self, action: dict, payload: dict, rule, trigger, dry_run=False) -> ActionOutcome:
        """Run one action; never raises."""
        action_type = str(action.get('type', '')) if isinstance(action, dict) else ''
        handler = self._handlers.get(action_type)
        if handler is None:
            logger.warning(f"Unsupported action type '{action_type}' in rule {rule.pk}")
            return ActionOutcome(
                action_type=action_type,
                success=False,
                error=f"Unsupported action type: {action_type or '(none)'}",
            )

        ctx = ActionContext(
            payload=payload or {},
            rule=rule,
            trigger=trigger,
            channels=self.channels,
            queue=self.queue,
            http=self.http,
            ssrf=self.ssrf,
            dry_run=dry_run,
        )
        config = action.get('config') or {}

        try:
            outcome = handler.run(config, ctx)
        except AutomationError as e:
            logger.warning(f"Action {action_type} failed for rule {rule.pk}: {e}")
            return handler.failed(e)
        except Exception as e:
            logger.exception(f"Action {action_type} raised for rule {rule.pk}: {e}")
            return handler.failed(e)

        if not outcome.success:
            logger.warning(f"Action {action_type} failed for rule {rule.pk}: {outcome.error}")
        return outcome
