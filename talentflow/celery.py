"""
Celery configuration for TalentFlow project.

This module configures Celery for async task processing with:
- Auto-discovery of tasks from all registered Django apps
- A dedicated queue for automation triggers
- Serialization and acknowledgement policies
- The periodic schedule for time-based triggers
"""

import os

from celery import Celery
from kombu import Exchange, Queue

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'talentflow.settings')

app = Celery('talentflow')

# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django apps.
app.autodiscover_tasks()


# ==================== QUEUE CONFIGURATION ====================

default_exchange = Exchange('default', type='direct')
automations_exchange = Exchange('automations', type='direct')

app.conf.task_queues = (
    Queue('default', default_exchange, routing_key='default'),
    Queue('automations', automations_exchange, routing_key='automations'),
)

app.conf.task_default_queue = 'default'
app.conf.task_default_exchange = 'default'
app.conf.task_default_routing_key = 'default'


# ==================== TASK ROUTING ====================

app.conf.task_routes = {
    'automations.tasks.process_trigger': {'queue': 'automations', 'routing_key': 'automations'},
    'automations.tasks.check_time_based_triggers': {'queue': 'automations', 'routing_key': 'automations'},
    'automations.tasks.*': {'queue': 'default', 'routing_key': 'default'},
}


# ==================== SERIALIZATION ====================

app.conf.task_serializer = 'json'
app.conf.result_serializer = 'json'
app.conf.accept_content = ['json']
app.conf.timezone = 'UTC'
app.conf.enable_utc = True


# ==================== RESULT BACKEND ====================

# Results will be stored for 24 hours
app.conf.result_expires = 86400


# ==================== TASK EXECUTION ====================

# Acknowledge after completion so a crashed worker hands the trigger back
app.conf.task_acks_late = True
app.conf.task_reject_on_worker_lost = True

app.conf.worker_prefetch_multiplier = 1
app.conf.task_time_limit = 600
app.conf.task_soft_time_limit = 540


# ==================== BEAT SCHEDULE ====================

from talentflow.celery_beat_schedule import CELERY_BEAT_SCHEDULE  # noqa: E402
app.conf.beat_schedule = CELERY_BEAT_SCHEDULE
