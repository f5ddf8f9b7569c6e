"""
Automation Celery Task Tests

Covers:
- process_trigger retry schedule and dead-lettering
- Tenant log context inside tasks
- Requeue of dead-lettered triggers
- Scheduled scan and ledger purge tasks
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from celery.exceptions import Retry
from django.utils import timezone

from automations.engine import DispatchResult
from automations.models import FailedTrigger, ProcessedEvent
from automations.tasks import (
    check_time_based_triggers,
    process_trigger,
    purge_processed_events,
    retry_failed_trigger,
)
from core.logging import get_current_event_id, get_current_tenant_id


def stub_runtime(result=None, side_effect=None):
    runtime = MagicMock(name='runtime')
    runtime.dispatcher.dispatch.return_value = result
    if side_effect is not None:
        runtime.dispatcher.dispatch.side_effect = side_effect
    return runtime


def task_kwargs(**overrides):
    kwargs = {
        'event_type': 'APPLICATION_SUBMITTED',
        'payload': {'applicationId': '7', 'entityId': '7'},
        'tenant_id': 'publisher-1',
        'context': {'event_id': 'evt-1', 'depth': 0},
    }
    kwargs.update(overrides)
    return kwargs


# ============================================================================
# PROCESS TRIGGER
# ============================================================================

@pytest.mark.django_db
class TestProcessTrigger:

    def test_returns_dispatch_summary(self):
        result = DispatchResult(
            event_type='APPLICATION_SUBMITTED', tenant_id='publisher-1', event_id='evt-1', executed=2,
        )
        runtime = stub_runtime(result)

        with patch('automations.runtime.get_runtime', return_value=runtime):
            outcome = process_trigger.apply(kwargs=task_kwargs()).get()

        assert outcome['executed'] == 2
        assert outcome['event_id'] == 'evt-1'
        runtime.dispatcher.dispatch.assert_called_once_with(
            'APPLICATION_SUBMITTED',
            {'applicationId': '7', 'entityId': '7'},
            'publisher-1',
            {'event_id': 'evt-1', 'depth': 0},
        )

    def test_binds_tenant_log_context(self):
        seen = {}

        def dispatch(event_type, payload, tenant_id, context):
            seen['tenant'] = get_current_tenant_id()
            seen['event'] = get_current_event_id()
            return DispatchResult(event_type=event_type, tenant_id=tenant_id, event_id='evt-1')

        with patch('automations.runtime.get_runtime', return_value=stub_runtime(side_effect=dispatch)):
            process_trigger.apply(kwargs=task_kwargs())

        assert seen == {'tenant': 'publisher-1', 'event': 'evt-1'}
        assert get_current_tenant_id() is None

    def test_retryable_failure_schedules_retry(self):
        result = DispatchResult(
            event_type='APPLICATION_SUBMITTED', tenant_id='publisher-1', event_id='evt-1',
            error='database is locked', retryable=True,
        )

        with patch('automations.runtime.get_runtime', return_value=stub_runtime(result)):
            with patch.object(process_trigger, 'retry', side_effect=Retry()) as retry:
                with pytest.raises(Retry):
                    process_trigger(**task_kwargs())

        assert retry.call_count == 1
        assert retry.call_args.kwargs['countdown'] == 2
        assert str(retry.call_args.kwargs['exc']) == 'database is locked'
        assert not FailedTrigger.objects.exists()

    def test_backoff_schedule(self):
        assert [process_trigger.backoff_delay(n) for n in range(3)] == [2, 4, 8]

    def test_dead_letters_after_last_retry(self):
        result = DispatchResult(
            event_type='APPLICATION_SUBMITTED', tenant_id='publisher-1', event_id='evt-1',
            error='database is locked', retryable=True,
        )

        with patch('automations.runtime.get_runtime', return_value=stub_runtime(result)):
            outcome = process_trigger.apply(kwargs=task_kwargs(), retries=3).get()

        assert outcome['retryable'] is True
        failed = FailedTrigger.objects.get()
        assert failed.event_id == 'evt-1'
        assert failed.tenant_id == 'publisher-1'
        assert failed.event_type == 'APPLICATION_SUBMITTED'
        assert failed.payload == {'applicationId': '7', 'entityId': '7'}
        assert failed.context['event_id'] == 'evt-1'
        assert failed.error == 'database is locked'
        assert failed.attempts == 4
        assert failed.status == FailedTrigger.Status.PENDING

    def test_non_retryable_failure_is_not_dead_lettered(self):
        result = DispatchResult(
            event_type='APPLICATION_SUBMITTED', tenant_id='publisher-1', event_id='evt-1',
            error='recursion-limit', recursion_limited=True,
        )

        with patch('automations.runtime.get_runtime', return_value=stub_runtime(result)):
            outcome = process_trigger.apply(kwargs=task_kwargs(), retries=3).get()

        assert outcome['recursion_limited'] is True
        assert not FailedTrigger.objects.exists()

    def test_runs_rules_end_to_end(self, runtime, application_factory, automation_rule_factory):
        from automations.integrations import prepare_application_data

        rule = automation_rule_factory(tenant_id='publisher-1')
        application = application_factory()
        payload = prepare_application_data(application)

        outcome = process_trigger.apply(kwargs=task_kwargs(payload=payload)).get()

        assert outcome['executed'] == 1
        assert outcome['succeeded'] == 1
        rule.refresh_from_db()
        assert rule.execution_count == 1


# ============================================================================
# REQUEUE
# ============================================================================

@pytest.mark.django_db
class TestRetryFailedTrigger:

    @pytest.fixture
    def failed_trigger(self, application_factory):
        from automations.integrations import prepare_application_data

        payload = prepare_application_data(application_factory())
        return FailedTrigger.objects.create(
            event_id='evt-dead',
            tenant_id='publisher-1',
            event_type='APPLICATION_SUBMITTED',
            payload=payload,
            context={'event_id': 'evt-dead', 'depth': 0},
            error='database is locked',
            attempts=4,
        )

    def test_requeues_with_original_event_id(self, runtime, failed_trigger, automation_rule_factory):
        rule = automation_rule_factory(tenant_id='publisher-1')

        outcome = retry_failed_trigger.apply(args=[str(failed_trigger.pk)]).get()

        assert outcome['status'] == 'success'
        assert outcome['event_id'] == 'evt-dead'
        failed_trigger.refresh_from_db()
        assert failed_trigger.status == FailedTrigger.Status.REQUEUED
        assert failed_trigger.requeued_at is not None
        rule.refresh_from_db()
        assert rule.execution_count == 1
        assert rule.recent_logs[0]['event_id'] == 'evt-dead'

    def test_already_requeued_is_skipped(self, runtime, failed_trigger):
        FailedTrigger.objects.filter(pk=failed_trigger.pk).update(status=FailedTrigger.Status.REQUEUED)

        outcome = retry_failed_trigger.apply(args=[str(failed_trigger.pk)]).get()

        assert outcome == {'status': 'skipped', 'reason': 'already_requeued'}

    def test_unknown_id(self, runtime):
        outcome = retry_failed_trigger.apply(args=['00000000-0000-0000-0000-000000000000']).get()

        assert outcome == {'status': 'error', 'error': 'not_found'}


# ============================================================================
# SCHEDULED TASKS
# ============================================================================

@pytest.mark.django_db
class TestScheduledTasks:

    def test_check_time_based_triggers(self, runtime, job_posting_factory):
        job_posting_factory(application_deadline=timezone.now() + timedelta(hours=6))
        job_posting_factory(application_deadline=timezone.now() + timedelta(days=5))

        outcome = check_time_based_triggers.apply().get()

        assert outcome == {'checked': 1, 'triggered': 1, 'failed': 0}

    def test_purge_processed_events(self, runtime):
        old = timezone.now() - timedelta(days=30)
        ProcessedEvent.objects.create(
            tenant_id='publisher-1', event_type='APPLICATION_SUBMITTED', entity_id='1', processed_at=old,
        )
        ProcessedEvent.objects.create(
            tenant_id='publisher-1', event_type='APPLICATION_SUBMITTED', entity_id='2',
        )

        outcome = purge_processed_events.apply().get()

        assert outcome == {'status': 'success', 'deleted': 1}
        assert ProcessedEvent.objects.count() == 1
