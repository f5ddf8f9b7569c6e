"""
Management command to run the time-based automation scheduler.

Use when Celery beat is not available: either a single scan (``--once``,
e.g. from cron) or the in-process interval loop.
"""

import time

from django.core.management.base import BaseCommand

from automations.runtime import get_runtime


class Command(BaseCommand):
    help = 'Check time-based automation triggers once or on an interval'

    def add_arguments(self, parser):
        parser.add_argument(
            '--once',
            action='store_true',
            help='Run a single scan and exit'
        )

    def handle(self, *args, **options):
        runtime = get_runtime()
        scheduler = runtime.scheduler

        if options['once']:
            stats = scheduler.check_time_based_triggers()
            self.stdout.write(self.style.SUCCESS(
                f"Checked {stats['checked']} job(s): "
                f"{stats['triggered']} triggered, {stats['failed']} failed"
            ))
            runtime.queue.shutdown()
            return

        scheduler.start_interval_fallback()
        self.stdout.write(self.style.SUCCESS(
            f"Scheduler running every {scheduler.interval}s, press Ctrl+C to stop"
        ))
        try:
            while scheduler.is_running:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stdout.write('Stopping scheduler...')
        finally:
            runtime.shutdown()
