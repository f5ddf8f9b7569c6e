"""
Dispatch Queue

Carries trigger requests to the dispatcher.

- Durable mode hands each trigger to the ``process_trigger`` Celery task
  (at-least-once, three retries with 2s/4s/8s backoff, dead-lettered to
  ``FailedTrigger`` after that).
- When the broker cannot be reached, at startup or on enqueue, triggers
  run on an in-process thread pool instead. ``is_degraded`` reports this
  so operators know delivery is no longer durable.
"""

import json
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Optional

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import connection

from .engine import TriggerContext, json_safe

logger = logging.getLogger(__name__)


@dataclass
class EnqueueAck:
    """Receipt for an enqueued trigger."""
    event_id: str
    durable: bool
    task_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class LenientJSONEncoder(DjangoJSONEncoder):
    """Encode sets as lists and anything else unknown as its string form."""

    def default(self, o):
        if isinstance(o, (set, frozenset)):
            return list(o)
        try:
            return super().default(o)
        except TypeError:
            return str(o)


def build_message(event_type, payload, tenant_id, context: TriggerContext) -> dict:
    try:
        payload = json_safe(payload or {})
    except TypeError as e:
        logger.warning(f"Coercing non-serializable payload for {event_type} [{context.event_id}]: {e}")
        payload = json.loads(json.dumps(payload, cls=LenientJSONEncoder))
    return {
        'event_type': str(event_type),
        'payload': payload,
        'tenant_id': str(tenant_id),
        'context': context.to_dict(),
    }


class DispatchQueue:
    """
    Queue in front of a ``TriggerDispatcher``.

    Args:
        dispatcher: Object with ``dispatch(event_type, payload, tenant_id, context)``.
        mode: ``'durable'`` to use Celery, ``'inline'`` to always run in-process.
        task: Celery task receiving the trigger; defaults to
            ``automations.tasks.process_trigger``.
        executor: Pool used for inline runs; a ThreadPoolExecutor sized by
            ``AUTOMATION_INLINE_WORKERS`` is created on first use.
    """

    MODE_DURABLE = 'durable'
    MODE_INLINE = 'inline'

    # Seconds to wait before trying the broker again after a failure
    REPROBE_INTERVAL = 60

    def __init__(self, dispatcher, mode=MODE_DURABLE, task=None, executor=None):
        if mode not in (self.MODE_DURABLE, self.MODE_INLINE):
            raise ValueError(f"Unknown dispatch queue mode: {mode}")
        self.dispatcher = dispatcher
        self.mode = mode
        self._task = task
        self._executor = executor
        self._lock = threading.Lock()
        self._degraded = mode == self.MODE_INLINE
        self._last_failure = None

    # Health

    @property
    def is_degraded(self) -> bool:
        """True while triggers run in-process without durability."""
        return self._degraded

    def _mark_degraded(self, reason):
        if not self._degraded:
            logger.warning(f"Automation queue degraded to in-process execution: {reason}")
        self._degraded = True
        self._last_failure = time.monotonic()

    def _mark_healthy(self):
        if self._degraded and self.mode == self.MODE_DURABLE:
            logger.info("Automation queue broker reachable again, durable delivery restored")
        self._degraded = False
        self._last_failure = None

    def probe(self) -> bool:
        """Check broker reachability and set the health flag; returns True if durable."""
        if self.mode == self.MODE_INLINE:
            return False
        try:
            with self.task.app.connection_for_write() as conn:
                conn.ensure_connection(max_retries=1, timeout=getattr(settings, 'CELERY_BROKER_CONNECTION_TIMEOUT', 3))
        except Exception as e:
            self._mark_degraded(e)
            return False
        self._mark_healthy()
        return True

    def health(self) -> dict:
        return {
            'mode': self.mode,
            'durable': not self._degraded,
            'degraded': self._degraded,
        }

    # Enqueue

    @property
    def task(self):
        if self._task is None:
            from .tasks import process_trigger
            self._task = process_trigger
        return self._task

    def _should_try_durable(self) -> bool:
        if self.mode == self.MODE_INLINE:
            return False
        if not self._degraded:
            return True
        return self._last_failure is None or time.monotonic() - self._last_failure >= self.REPROBE_INTERVAL

    def enqueue(self, event_type, payload, tenant_id, context=None) -> EnqueueAck:
        """
        Queue a trigger; never raises.

        A missing event id is generated here so every retry and log line
        of this trigger shares one id.
        """
        try:
            context = TriggerContext.from_value(context)
            message = build_message(event_type, payload, tenant_id, context)
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"Dropping {event_type} trigger for tenant {tenant_id}, message could not be built: {e}")
            event_id = getattr(context, 'event_id', None) or str(uuid.uuid4())
            return EnqueueAck(event_id=event_id, durable=False, error=str(e))

        if self._should_try_durable():
            try:
                async_result = self.task.apply_async(kwargs=message)
            except Exception as e:
                logger.error(f"Failed to queue {event_type} [{context.event_id}], running in-process: {e}")
                self._mark_degraded(e)
            else:
                self._mark_healthy()
                logger.info(f"Event {event_type} queued (task {async_result.id}, event {context.event_id})")
                return EnqueueAck(event_id=context.event_id, durable=True, task_id=async_result.id)

        self._submit_inline(message)
        return EnqueueAck(event_id=context.event_id, durable=False)

    # Inline execution

    def _get_executor(self):
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=getattr(settings, 'AUTOMATION_INLINE_WORKERS', 4),
                    thread_name_prefix='automation-inline',
                )
            return self._executor

    def _submit_inline(self, message):
        try:
            self._get_executor().submit(self._run_inline, message)
        except RuntimeError as e:
            # Pool already shut down (interpreter exit)
            logger.error(f"In-process automation dropped for {message['event_type']}: {e}")

    def _run_inline(self, message):
        try:
            result = self.dispatcher.dispatch(
                message['event_type'],
                message['payload'],
                message['tenant_id'],
                message['context'],
            )
            if result.error and not result.recursion_limited:
                logger.error(
                    f"In-process automation for {message['event_type']} "
                    f"[{message['context']['event_id']}] failed: {result.error}"
                )
        except Exception as e:
            logger.exception(f"In-process automation failed for {message['event_type']}: {e}")
        finally:
            # Pool threads own their connection; never close one a caller is inside a transaction on
            if not connection.in_atomic_block:
                connection.close()

    def shutdown(self, wait=True):
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
