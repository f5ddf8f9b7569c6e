"""
Idempotency Ledger Tests
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from automations.ledger import IdempotencyLedger
from automations.models import ProcessedEvent


@pytest.mark.django_db
class TestIdempotencyLedger:

    def test_first_claim_is_new(self):
        ledger = IdempotencyLedger()
        assert ledger.claim('t1', 'APPLICATION_SUBMITTED', '42', 'evt-1') is True
        record = ProcessedEvent.objects.get()
        assert record.entity_id == '42'
        assert record.event_id == 'evt-1'

    def test_duplicate_claim_is_rejected(self):
        ledger = IdempotencyLedger()
        ledger.claim('t1', 'APPLICATION_SUBMITTED', '42')
        assert ledger.claim('t1', 'APPLICATION_SUBMITTED', '42') is False
        assert ProcessedEvent.objects.count() == 1

    def test_key_includes_tenant_and_event_type(self):
        ledger = IdempotencyLedger()
        assert ledger.claim('t1', 'APPLICATION_SUBMITTED', '42')
        assert ledger.claim('t2', 'APPLICATION_SUBMITTED', '42')
        assert ledger.claim('t1', 'INTERVIEW_SCHEDULED', '42')

    def test_expired_record_is_refreshed(self):
        ledger = IdempotencyLedger(ttl=timedelta(days=7))
        past = timezone.now() - timedelta(days=8)
        ledger.claim('t1', 'JOB_PUBLISHED', '7', 'old', now=past)

        assert ledger.claim('t1', 'JOB_PUBLISHED', '7', 'new') is True
        record = ProcessedEvent.objects.get()
        assert record.event_id == 'new'
        assert record.processed_at > past

    def test_purge_expired(self):
        ledger = IdempotencyLedger(ttl=timedelta(days=7))
        now = timezone.now()
        ledger.claim('t1', 'JOB_PUBLISHED', 'old', now=now - timedelta(days=10))
        ledger.claim('t1', 'JOB_PUBLISHED', 'fresh', now=now)

        assert ledger.purge_expired(now=now) == 1
        assert list(ProcessedEvent.objects.values_list('entity_id', flat=True)) == ['fresh']
