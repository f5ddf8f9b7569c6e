"""
Core Logging - Tenant-aware log context.

Every log record emitted while an automation trigger is processed carries
the publisher (tenant) id and the event id of the trigger, so one logical
trigger attempt can be followed across the queue, the dispatcher and the
action handlers.

Usage in settings.py:
    LOGGING = {
        'filters': {
            'tenant_context': {
                '()': 'core.logging.TenantContextFilter',
            },
        },
        'handlers': {
            'console': {
                'filters': ['tenant_context'],
                ...
            },
        },
    }

Usage in code:
    from core.logging import tenant_context

    with tenant_context(tenant_id, event_id):
        logger.info("Dispatching trigger")
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional


# ContextVar works for threads and asyncio alike; every ThreadPoolExecutor
# job starts from an empty context.
_tenant_id_var: ContextVar[Optional[str]] = ContextVar('tenant_id', default=None)
_event_id_var: ContextVar[Optional[str]] = ContextVar('event_id', default=None)


def get_current_tenant_id() -> Optional[str]:
    """Get the tenant id bound to the current context."""
    return _tenant_id_var.get()


def get_current_event_id() -> Optional[str]:
    """Get the trigger event id bound to the current context."""
    return _event_id_var.get()


@contextmanager
def tenant_context(tenant_id=None, event_id=None):
    """
    Bind a tenant id and event id to log records for the duration of the block.

    Nested blocks restore the outer values on exit. Passing None for either
    value keeps the currently bound one.
    """
    tenant_token = _tenant_id_var.set(
        str(tenant_id) if tenant_id is not None else _tenant_id_var.get()
    )
    event_token = _event_id_var.set(
        str(event_id) if event_id is not None else _event_id_var.get()
    )
    try:
        yield
    finally:
        _event_id_var.reset(event_token)
        _tenant_id_var.reset(tenant_token)


class TenantContextFilter(logging.Filter):
    """
    Logging filter that adds tenant context to log records.

    Adds the following attributes to log records:
    - tenant_id: Publisher id or '-'
    - event_id: Trigger event id or '-'
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Add tenant context to log record."""
        record.tenant_id = get_current_tenant_id() or '-'
        record.event_id = get_current_event_id() or '-'
        return True