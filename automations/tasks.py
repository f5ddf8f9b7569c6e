"""
Celery Tasks for Automations App

This module contains async tasks for the automation engine:
- Durable trigger processing with backoff retries and dead-lettering
- Hourly time-based trigger scan (job deadlines)
- Idempotency ledger cleanup
- Manual requeue of dead-lettered triggers
"""

import logging

from celery import shared_task
from django.utils import timezone

from talentflow.celery_tasks_base import BackoffRetryTask, TenantContextTask

from .exceptions import TriggerDispatchError

logger = logging.getLogger(__name__)


# ==================== TRIGGER PROCESSING ====================

@shared_task(
    bind=True,
    base=TenantContextTask,
    name='automations.tasks.process_trigger',
    acks_late=True,
)
def process_trigger(self, event_type, payload, tenant_id, context=None):
    """
    Run one queued trigger through the dispatcher.

    Infrastructure failures that happen before the idempotency record is
    written are retried with 2s/4s/8s backoff. Once the retries are spent
    the message is stored as a ``FailedTrigger``.

    Returns:
        dict: The dispatch summary.
    """
    from .models import FailedTrigger
    from .runtime import get_runtime

    result = get_runtime().dispatcher.dispatch(event_type, payload, tenant_id, context)
    if not result.retryable:
        return result.to_dict()

    if self.retries_exhausted():
        attempts = (self.request.retries or 0) + 1
        failed = FailedTrigger.objects.create(
            event_id=result.event_id,
            tenant_id=str(tenant_id),
            event_type=str(event_type),
            payload=payload or {},
            context=context or {},
            error=result.error or '',
            attempts=attempts,
            task_id=self.request.id or '',
        )
        logger.error(
            f"Trigger {event_type} [{result.event_id}] dead-lettered after "
            f"{attempts} attempts as {failed.pk}: {result.error}"
        )
        return result.to_dict()

    countdown = self.backoff_delay()
    logger.warning(
        f"Trigger {event_type} [{result.event_id}] failed ({result.error}), "
        f"retrying in {countdown}s"
    )
    raise self.retry(exc=TriggerDispatchError(result.error), countdown=countdown)


@shared_task(
    bind=True,
    base=BackoffRetryTask,
    name='automations.tasks.retry_failed_trigger',
)
def retry_failed_trigger(self, failed_trigger_id):
    """
    Put a dead-lettered trigger back on the queue with its original event id.

    Returns:
        dict: The enqueue acknowledgement, or an error.
    """
    from .models import FailedTrigger
    from .runtime import get_runtime

    try:
        failed = FailedTrigger.objects.get(pk=failed_trigger_id)
    except FailedTrigger.DoesNotExist:
        logger.warning(f"Failed trigger {failed_trigger_id} not found")
        return {'status': 'error', 'error': 'not_found'}

    if failed.status == FailedTrigger.Status.REQUEUED:
        return {'status': 'skipped', 'reason': 'already_requeued'}

    context = dict(failed.context or {})
    context.setdefault('event_id', failed.event_id)
    ack = get_runtime().queue.enqueue(failed.event_type, failed.payload, failed.tenant_id, context)

    FailedTrigger.objects.filter(pk=failed.pk).update(
        status=FailedTrigger.Status.REQUEUED,
        requeued_at=timezone.now(),
    )
    logger.info(f"Requeued failed trigger {failed.pk} as event {ack.event_id}")
    return {'status': 'success', **ack.to_dict()}


# ==================== SCHEDULED TASKS ====================

@shared_task(
    bind=True,
    name='automations.tasks.check_time_based_triggers',
    max_retries=3,
    default_retry_delay=300,
)
def check_time_based_triggers(self):
    """
    Emit JOB_DEADLINE_APPROACHING for open jobs closing within the window.

    Returns:
        dict: ``checked``, ``triggered`` and ``failed`` counts.
    """
    from .runtime import get_runtime

    try:
        return get_runtime().scheduler.check_time_based_triggers()
    except Exception as e:
        logger.error(f"Time-based trigger check failed: {e}")
        raise self.retry(exc=e)


@shared_task(
    bind=True,
    name='automations.tasks.purge_processed_events',
    max_retries=3,
    default_retry_delay=600,
)
def purge_processed_events(self):
    """
    Delete idempotency records older than the ledger TTL.

    Returns:
        dict: Number of deleted records.
    """
    from .runtime import get_runtime

    try:
        deleted = get_runtime().ledger.purge_expired()
    except Exception as e:
        logger.error(f"Processed event purge failed: {e}")
        raise self.retry(exc=e)

    logger.info(f"Purged {deleted} expired processed event(s)")
    return {'status': 'success', 'deleted': deleted}
