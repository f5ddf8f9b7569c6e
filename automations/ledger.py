"""
Idempotency Ledger

Records (tenant, event type, entity id) triples already processed so a
duplicate of the same logical event is suppressed for the ledger TTL.
The record is written before the event is processed.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .models import ProcessedEvent

logger = logging.getLogger(__name__)


class IdempotencyLedger:
    """Database-backed ledger on top of ``ProcessedEvent``."""

    def __init__(self, ttl: timedelta = None):
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        if self._ttl is not None:
            return self._ttl
        return timedelta(days=getattr(settings, 'AUTOMATION_PROCESSED_EVENT_TTL_DAYS', 7))

    def claim(self, tenant_id, event_type, entity_id, event_id='', now=None) -> bool:
        """
        Record the event and report whether it is new.

        Returns False when an unexpired record already exists. An expired
        record is refreshed in place and the event counts as new. The
        unique constraint makes concurrent claims for the same triple
        resolve to exactly one winner.
        """
        now = now or timezone.now()
        key = {
            'tenant_id': str(tenant_id),
            'event_type': str(event_type),
            'entity_id': str(entity_id),
        }

        with transaction.atomic():
            record, created = ProcessedEvent.objects.get_or_create(
                **key,
                defaults={'event_id': str(event_id or ''), 'processed_at': now},
            )
        if created:
            return True

        refreshed = ProcessedEvent.objects.filter(
            pk=record.pk,
            processed_at__lte=now - self.ttl,
        ).update(processed_at=now, event_id=str(event_id or ''))
        if refreshed:
            logger.debug(f"Expired ledger entry refreshed for {event_type}:{entity_id}")
        return bool(refreshed)

    def purge_expired(self, now=None) -> int:
        """Delete records past the TTL; returns the number removed."""
        now = now or timezone.now()
        deleted, _ = ProcessedEvent.objects.filter(processed_at__lte=now - self.ttl).delete()
        return deleted
