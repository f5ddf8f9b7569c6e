"""
Integration hooks between the ATS/messaging apps and the automation engine.

Signals in ``ats`` and ``messages_sys`` call these after commit. Every
hook builds a camelCase payload, hands it to the dispatch queue and
returns; a failing hook logs and never breaks the save that caused it.
"""

import logging
import uuid

from .models import TriggerEvent

logger = logging.getLogger(__name__)


def trigger(event, data, tenant_id, context=None):
    """
    Enqueue an automation trigger with a fresh event id.

    Returns:
        EnqueueAck or None when the queue could not be reached at all.
    """
    from .runtime import get_runtime

    context = dict(context or {})
    context.setdefault('event_id', str(uuid.uuid4()))
    context.setdefault('source', 'integration')
    try:
        return get_runtime().queue.enqueue(event, data, tenant_id, context)
    except Exception as e:
        logger.error(f"Failed to trigger {event} for tenant {tenant_id}: {e}")
        return None


# ==================== PAYLOAD BUILDERS ====================

def _iso(value):
    return value.isoformat() if value else None


def _str_or_none(value):
    return str(value) if value is not None else None


def prepare_job_data(job) -> dict:
    return {
        'jobId': str(job.pk),
        'publisherId': str(job.tenant_id),
        'jobTitle': job.title,
        'companyName': job.company_name,
        'location': job.location,
        'status': job.status,
        'applicationDeadline': _iso(job.application_deadline),
        'publishedAt': _iso(job.published_at),
        'tags': list(job.tags or []),
        'entityType': 'job',
        'entityId': str(job.pk),
    }


def prepare_application_data(application) -> dict:
    job = application.job
    return {
        'applicationId': str(application.pk),
        'jobId': str(job.pk),
        'applicantId': _str_or_none(application.applicant_id),
        'publisherId': str(application.tenant_id),
        'status': application.status,
        'applicationDate': _iso(application.created_at),
        'jobTitle': job.title,
        'companyName': job.company_name,
        'applicantName': application.applicant_name,
        'applicantEmail': application.applicant_email,
        'applicantPhone': application.applicant_phone,
        'tags': list(application.tags or []),
        'priority': application.priority,
        'rating': application.rating,
        'entityType': 'job_application',
        'entityId': str(application.pk),
    }


def prepare_interview_data(interview) -> dict:
    application = interview.application
    job = application.job
    return {
        'interviewId': str(interview.pk),
        'applicationId': str(application.pk),
        'jobId': str(job.pk),
        'applicantId': _str_or_none(application.applicant_id),
        'publisherId': str(interview.tenant_id),
        'interviewType': interview.interview_type,
        'scheduledAt': _iso(interview.scheduled_at),
        'duration': interview.duration_minutes,
        'status': interview.status,
        'jobTitle': job.title,
        'companyName': job.company_name,
        'applicantName': application.applicant_name,
        'applicantEmail': application.applicant_email,
        'applicantPhone': application.applicant_phone,
        'meetingUrl': interview.meeting_url,
        'entityType': 'interview',
        'entityId': str(interview.pk),
    }


def prepare_message_data(message) -> dict:
    thread = message.thread
    return {
        'messageId': str(message.pk),
        'threadId': str(thread.pk),
        'applicationId': str(thread.application_id),
        'jobId': _str_or_none(thread.job_id),
        'applicantId': _str_or_none(thread.applicant_id),
        'publisherId': str(thread.tenant_id),
        'senderId': message.sender_id,
        'senderRole': message.sender_role,
        'content': message.content,
        'entityType': 'message',
        'entityId': str(message.pk),
    }


# ==================== APPLICATION HOOKS ====================

def on_application_submitted(application):
    """Hook: a new application was submitted."""
    try:
        logger.info(f"New application {application.pk} submitted")
        return trigger(
            TriggerEvent.APPLICATION_SUBMITTED,
            prepare_application_data(application),
            application.tenant_id,
        )
    except Exception as e:
        logger.error(f"Error in on_application_submitted hook: {e}")


def on_application_status_changed(application, old_status, new_status):
    """
    Hook: the application moved to another pipeline stage.

    Moving to ``interview`` also opens the messaging thread.
    """
    try:
        logger.info(f"Application {application.pk} status changed from {old_status} to {new_status}")
        data = prepare_application_data(application)
        data.update({
            'oldStatus': old_status,
            'newStatus': new_status,
            'entityId': f"{application.pk}:{new_status}",
        })
        ack = trigger(TriggerEvent.APPLICATION_STAGE_CHANGED, data, application.tenant_id)

        if new_status == 'interview':
            auto_open_messaging_thread(application)
        return ack
    except Exception as e:
        logger.error(f"Error in on_application_status_changed hook: {e}")


def after_application_update(application, old_status):
    """Hook: an existing application was saved."""
    try:
        data = prepare_application_data(application)
        # Updates have no natural idempotency key
        data.pop('entityId')
        data['oldStatus'] = old_status
        trigger(TriggerEvent.APPLICATION_UPDATED, data, application.tenant_id)
    except Exception as e:
        logger.error(f"Error in after_application_update hook: {e}")

    if old_status and old_status != application.status:
        on_application_status_changed(application, old_status, application.status)


def auto_open_messaging_thread(application):
    from messages_sys.models import MessageThread

    thread, created = MessageThread.find_or_create_for_application(
        application.pk,
        job_id=application.job_id,
        applicant_id=application.applicant_id,
        tenant_id=application.tenant_id,
    )
    if created:
        logger.info(f"Messaging thread {thread.pk} opened for application {application.pk}")
    return thread


# ==================== INTERVIEW HOOKS ====================

def on_interview_scheduled(interview):
    try:
        logger.info(f"Interview {interview.pk} scheduled")
        return trigger(
            TriggerEvent.INTERVIEW_SCHEDULED,
            prepare_interview_data(interview),
            interview.tenant_id,
        )
    except Exception as e:
        logger.error(f"Error in on_interview_scheduled hook: {e}")


def on_interview_completed(interview):
    try:
        logger.info(f"Interview {interview.pk} completed")
        return trigger(
            TriggerEvent.INTERVIEW_COMPLETED,
            prepare_interview_data(interview),
            interview.tenant_id,
        )
    except Exception as e:
        logger.error(f"Error in on_interview_completed hook: {e}")


def on_interview_cancelled(interview, reason=''):
    try:
        logger.info(f"Interview {interview.pk} cancelled")
        data = prepare_interview_data(interview)
        data['cancellationReason'] = reason or ''
        return trigger(TriggerEvent.INTERVIEW_CANCELLED, data, interview.tenant_id)
    except Exception as e:
        logger.error(f"Error in on_interview_cancelled hook: {e}")


# ==================== MESSAGING & JOB HOOKS ====================

def on_message_received(message):
    try:
        data = prepare_message_data(message)
        return trigger(TriggerEvent.MESSAGE_RECEIVED, data, data['publisherId'])
    except Exception as e:
        logger.error(f"Error in on_message_received hook: {e}")


def on_job_published(job):
    try:
        logger.info(f"Job {job.pk} published")
        return trigger(TriggerEvent.JOB_PUBLISHED, prepare_job_data(job), job.tenant_id)
    except Exception as e:
        logger.error(f"Error in on_job_published hook: {e}")

