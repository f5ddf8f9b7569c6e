"""
Time-based trigger scheduler.

Scans for jobs whose application deadline falls within the configured
window and raises JOB_DEADLINE_APPROACHING once per job. Runs hourly
from Celery beat; when the broker is down a daemon timer loop takes over.
"""

import logging
import threading
from datetime import timedelta

from django.conf import settings
from django.db import close_old_connections
from django.utils import timezone

from ats.models import JobPosting

from .models import TriggerEvent

logger = logging.getLogger(__name__)


class AutomationScheduler:
    """Producer of time-based triggers into the dispatch queue."""

    def __init__(self, queue):
        self.queue = queue
        self._timer = None
        self._stopped = threading.Event()

    @property
    def window(self) -> timedelta:
        return timedelta(hours=getattr(settings, 'AUTOMATION_DEADLINE_WINDOW_HOURS', 24))

    @property
    def interval(self) -> float:
        return getattr(settings, 'AUTOMATION_SCHEDULER_INTERVAL', 3600)

    @property
    def startup_delay(self) -> float:
        return getattr(settings, 'AUTOMATION_SCHEDULER_STARTUP_DELAY', 5)

    def due_jobs(self, now=None):
        now = now or timezone.now()
        return JobPosting.objects.filter(
            status=JobPosting.JobStatus.OPEN,
            application_deadline__gt=now,
            application_deadline__lte=now + self.window,
            deadline_triggered=False,
        )

    def check_time_based_triggers(self, now=None) -> dict:
        """
        Trigger JOB_DEADLINE_APPROACHING for every due job.

        The job's flag is set only after the trigger was accepted by the
        queue, so a crash mid-scan means the job is checked again on the
        next run rather than missed.
        """
        from .integrations import prepare_job_data

        now = now or timezone.now()
        stats = {'checked': 0, 'triggered': 0, 'failed': 0}

        for job in self.due_jobs(now).iterator():
            stats['checked'] += 1
            try:
                payload = prepare_job_data(job)
                payload['hoursUntilDeadline'] = round(
                    (job.application_deadline - now).total_seconds() / 3600, 1
                )
                ack = self.queue.enqueue(
                    TriggerEvent.JOB_DEADLINE_APPROACHING,
                    payload,
                    job.tenant_id,
                    context={'source': 'scheduler'},
                )
                JobPosting.objects.filter(pk=job.pk).update(
                    deadline_triggered=True,
                    deadline_triggered_at=now,
                )
                stats['triggered'] += 1
                logger.info(f"Deadline trigger for job {job.pk} queued as event {ack.event_id}")
            except Exception as e:
                stats['failed'] += 1
                logger.error(f"Deadline trigger failed for job {job.pk}: {e}")

        logger.info(
            f"Time-based trigger check: {stats['checked']} checked, "
            f"{stats['triggered']} triggered, {stats['failed']} failed"
        )
        return stats

    # Fallback loop

    def start_interval_fallback(self):
        """Run the scan on a daemon timer chain; first run after the startup delay."""
        self._stopped.clear()
        logger.warning(
            f"Scheduler running in-process every {self.interval}s "
            f"(first run in {self.startup_delay}s)"
        )
        self._schedule(self.startup_delay)

    def _schedule(self, delay):
        if self._stopped.is_set():
            return
        self._timer = threading.Timer(delay, self._tick)
        self._timer.daemon = True
        self._timer.start()

    def _tick(self):
        try:
            self.check_time_based_triggers()
        except Exception as e:
            logger.exception(f"Scheduled time-based trigger check failed: {e}")
        finally:
            close_old_connections()
            self._schedule(self.interval)

    @property
    def is_running(self) -> bool:
        return self._timer is not None and not self._stopped.is_set()

    def stop(self):
        self._stopped.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
