"""
Celery Beat Schedule Configuration for TalentFlow

Periodic tasks driving the automation engine. The hourly deadline scan
is the durable path of the time-based trigger scheduler; when the broker
is unreachable the scheduler falls back to an in-process timer instead.
"""

from celery.schedules import crontab


CELERY_BEAT_SCHEDULE = {
    # ==========================================================================
    # AUTOMATION TRIGGERS (Hourly)
    # ==========================================================================

    'automation-time-based-triggers-hourly': {
        'task': 'automations.tasks.check_time_based_triggers',
        'schedule': crontab(minute=0),  # Every hour at :00
        'options': {'queue': 'automations'},
        'description': 'Fire JOB_DEADLINE_APPROACHING for postings closing within the window',
    },

    # ==========================================================================
    # MAINTENANCE (Daily)
    # ==========================================================================

    'automation-purge-processed-events-daily': {
        'task': 'automations.tasks.purge_processed_events',
        'schedule': crontab(hour=3, minute=15),  # Daily at 3:15 AM
        'options': {'queue': 'default'},
        'description': 'Remove idempotency records older than the retention window',
    },
}
