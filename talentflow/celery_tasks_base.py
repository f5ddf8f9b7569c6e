"""
Base Task Classes for TalentFlow Celery Tasks

This module provides reusable base task classes with:
- BackoffRetryTask: Retry with a fixed exponential backoff schedule
- TenantContextTask: Binds the publisher and event ids to log records
"""

import logging

from celery import Task
from django.conf import settings

from core.logging import tenant_context


logger = logging.getLogger(__name__)


# =============================================================================
# BACKOFF RETRY TASK - Exponential Backoff Without Jitter
# =============================================================================

class BackoffRetryTask(Task):
    """
    Base task whose retries follow ``base_delay * 2 ** retries``.

    With the default base of 2 seconds the three retries wait 2s, 4s and
    8s. Tasks decide themselves when to call ``self.retry`` and pass
    ``countdown=self.backoff_delay()``.

    Usage:
        @shared_task(bind=True, base=BackoffRetryTask)
        def my_task(self, payload):
            ...
            raise self.retry(exc=exc, countdown=self.backoff_delay())
    """

    @property
    def max_retries(self):
        return getattr(settings, 'AUTOMATION_TRIGGER_MAX_RETRIES', 3)

    @property
    def base_delay(self):
        return getattr(settings, 'AUTOMATION_TRIGGER_RETRY_BASE_DELAY', 2)

    def backoff_delay(self, retry_count=None) -> int:
        """
        Delay in seconds before the next attempt.

        Args:
            retry_count: Retries already performed, defaults to the
                current request's count.
        """
        if retry_count is None:
            retry_count = self.request.retries or 0
        return int(self.base_delay * (2 ** retry_count))

    def retries_exhausted(self) -> bool:
        return (self.request.retries or 0) >= self.max_retries

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        """Called when the task raises an unhandled error."""
        logger.error(
            f"Task {self.name}[{task_id}] failed permanently: {exc}",
            exc_info=True
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        """Called when the task is retried."""
        logger.info(
            f"Task {self.name}[{task_id}] scheduled for retry: {exc}"
        )
        super().on_retry(exc, task_id, args, kwargs, einfo)


# =============================================================================
# TENANT CONTEXT TASK - Publisher-Aware Logging
# =============================================================================

class TenantContextTask(BackoffRetryTask):
    """
    Retry task that runs inside ``core.logging.tenant_context``.

    The tenant is read from the ``tenant_id`` keyword argument and the
    event id from ``context["event_id"]``.
    """

    def __call__(self, *args, **kwargs):
        context = kwargs.get('context')
        event_id = context.get('event_id') if isinstance(context, dict) else None
        with tenant_context(kwargs.get('tenant_id'), event_id):
            return super().__call__(*args, **kwargs)
