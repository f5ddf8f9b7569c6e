"""
ATS Signals - Feed ATS events into the automation engine.

Hooks run after the surrounding transaction commits so that triggers
never observe uncommitted rows. Records written by automation actions
set ``_skip_automation_hooks`` (or are updated through querysets) so
they do not re-enter the engine at depth zero.
"""

from django.db import transaction
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from automations import integrations

from .models import JobPosting, Application, Interview


def _previous_value(sender, instance, field):
    if not instance.pk:
        return None
    return sender.objects.filter(pk=instance.pk).values_list(field, flat=True).first()


@receiver(pre_save, sender=Application)
@receiver(pre_save, sender=Interview)
@receiver(pre_save, sender=JobPosting)
def remember_previous_status(sender, instance, **kwargs):
    """Stash the stored status so post_save can detect transitions."""
    instance._previous_status = _previous_value(sender, instance, 'status')


@receiver(post_save, sender=Application)
def trigger_application_automations(sender, instance, created, **kwargs):
    """Emit APPLICATION_SUBMITTED on create and update events afterwards."""
    if getattr(instance, '_skip_automation_hooks', False):
        return

    if created:
        transaction.on_commit(lambda: integrations.on_application_submitted(instance))
        return

    old_status = getattr(instance, '_previous_status', None)
    transaction.on_commit(lambda: integrations.after_application_update(instance, old_status))


@receiver(post_save, sender=Interview)
def trigger_interview_automations(sender, instance, created, **kwargs):
    """Emit interview lifecycle events."""
    if getattr(instance, '_skip_automation_hooks', False):
        return

    if created:
        transaction.on_commit(lambda: integrations.on_interview_scheduled(instance))
        return

    old_status = getattr(instance, '_previous_status', None)
    if old_status == instance.status:
        return

    if instance.status == Interview.InterviewStatus.COMPLETED:
        transaction.on_commit(lambda: integrations.on_interview_completed(instance))
    elif instance.status == Interview.InterviewStatus.CANCELLED:
        transaction.on_commit(
            lambda: integrations.on_interview_cancelled(instance, instance.cancellation_reason)
        )


@receiver(post_save, sender=JobPosting)
def trigger_job_published(sender, instance, created, **kwargs):
    """Emit JOB_PUBLISHED when a posting becomes open."""
    if instance.status != JobPosting.JobStatus.OPEN:
        return
    if not created and getattr(instance, '_previous_status', None) == instance.status:
        return
    transaction.on_commit(lambda: integrations.on_job_published(instance))
