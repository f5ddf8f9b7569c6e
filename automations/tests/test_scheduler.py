"""
Tests for the time-based trigger scheduler.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from ats.models import JobPosting
from automations.scheduler import AutomationScheduler


@pytest.fixture
def scheduler(recording_queue):
    return AutomationScheduler(recording_queue)


@pytest.fixture
def now():
    return timezone.now()


@pytest.mark.django_db
class TestDueJobs:

    def test_window_selection(self, scheduler, job_posting_factory, now):
        due = job_posting_factory(application_deadline=now + timedelta(hours=12))
        job_posting_factory(application_deadline=now + timedelta(hours=30))
        job_posting_factory(application_deadline=now - timedelta(hours=1))
        job_posting_factory(application_deadline=now + timedelta(hours=2), status='closed')
        job_posting_factory(application_deadline=now + timedelta(hours=2), deadline_triggered=True)

        assert list(scheduler.due_jobs(now)) == [due]

    def test_window_edge_is_inclusive(self, scheduler, job_posting_factory, now):
        edge = job_posting_factory(application_deadline=now + timedelta(hours=24))

        assert list(scheduler.due_jobs(now)) == [edge]

    def test_window_follows_setting(self, scheduler, job_posting_factory, now, settings):
        settings.AUTOMATION_DEADLINE_WINDOW_HOURS = 48
        job = job_posting_factory(application_deadline=now + timedelta(hours=40))

        assert list(scheduler.due_jobs(now)) == [job]


@pytest.mark.django_db
class TestCheckTimeBasedTriggers:

    def test_triggers_each_due_job_once(self, scheduler, recording_queue, job_posting_factory, now):
        job = job_posting_factory(application_deadline=now + timedelta(hours=6), tenant_id='publisher-9')

        first = scheduler.check_time_based_triggers(now)
        second = scheduler.check_time_based_triggers(now)

        assert first == {'checked': 1, 'triggered': 1, 'failed': 0}
        assert second == {'checked': 0, 'triggered': 0, 'failed': 0}
        assert len(recording_queue.calls) == 1

        call = recording_queue.calls[0]
        assert call['event_type'] == 'JOB_DEADLINE_APPROACHING'
        assert call['tenant_id'] == 'publisher-9'
        assert call['context'].source == 'scheduler'
        assert call['payload']['jobId'] == str(job.pk)
        assert call['payload']['entityId'] == str(job.pk)
        assert call['payload']['hoursUntilDeadline'] == 6.0

        job.refresh_from_db()
        assert job.deadline_triggered is True
        assert job.deadline_triggered_at == now

    def test_queue_failure_leaves_flag_unset(self, failing_queue, job_posting_factory, now):
        job = job_posting_factory(application_deadline=now + timedelta(hours=6))
        scheduler = AutomationScheduler(failing_queue)

        stats = scheduler.check_time_based_triggers(now)

        assert stats == {'checked': 1, 'triggered': 0, 'failed': 1}
        job.refresh_from_db()
        assert job.deadline_triggered is False

    def test_one_failing_job_does_not_stop_the_scan(self, scheduler, recording_queue, job_posting_factory, now):
        bad = job_posting_factory(application_deadline=now + timedelta(hours=2))
        good = job_posting_factory(application_deadline=now + timedelta(hours=3))
        original = recording_queue.enqueue

        def enqueue(event_type, payload, tenant_id, context=None):
            if payload['jobId'] == str(bad.pk):
                raise RuntimeError('boom')
            return original(event_type, payload, tenant_id, context)

        recording_queue.enqueue = enqueue
        stats = scheduler.check_time_based_triggers(now)

        assert stats == {'checked': 2, 'triggered': 1, 'failed': 1}
        assert JobPosting.objects.get(pk=good.pk).deadline_triggered is True
        assert JobPosting.objects.get(pk=bad.pk).deadline_triggered is False

    def test_runs_deadline_rules(self, runtime, automation_rule_factory, job_posting_factory):
        rule = automation_rule_factory(
            trigger_event='JOB_DEADLINE_APPROACHING',
            conditions=[{'field': 'hoursUntilDeadline', 'operator': 'less_than', 'value': 24}],
        )
        job_posting_factory(application_deadline=timezone.now() + timedelta(hours=5))

        stats = runtime.scheduler.check_time_based_triggers()

        assert stats['triggered'] == 1
        rule.refresh_from_db()
        assert rule.execution_count == 1


class TestIntervalFallback:

    def test_start_and_stop(self, recording_queue, settings):
        settings.AUTOMATION_SCHEDULER_STARTUP_DELAY = 3600
        scheduler = AutomationScheduler(recording_queue)

        scheduler.start_interval_fallback()
        assert scheduler.is_running

        scheduler.stop()
        assert not scheduler.is_running

    def test_tick_reschedules_after_failure(self, recording_queue, settings):
        settings.AUTOMATION_SCHEDULER_INTERVAL = 3600
        scheduler = AutomationScheduler(recording_queue)

        with patch.object(scheduler, 'check_time_based_triggers', side_effect=RuntimeError('db down')), \
                patch('automations.scheduler.close_old_connections'), \
                patch.object(scheduler, '_schedule') as schedule:
            scheduler._tick()

        schedule.assert_called_once_with(3600)

    def test_no_reschedule_once_stopped(self, recording_queue):
        scheduler = AutomationScheduler(recording_queue)
        scheduler.stop()

        scheduler._schedule(0)

        assert scheduler._timer is None
