"""
ATS Models - Job postings, applications and interviews.

Only the records the automation engine reads from or writes to live
here. Every record carries the publisher id as ``tenant_id``.
"""

import secrets

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class JobPosting(models.Model):
    """
    A job published by a tenant.

    ``deadline_triggered`` is set once the deadline-approaching
    automation has fired for this posting.
    """

    class JobStatus(models.TextChoices):
        DRAFT = 'draft', _('Draft')
        OPEN = 'open', _('Open')
        PAUSED = 'paused', _('Paused')
        CLOSED = 'closed', _('Closed')
        FILLED = 'filled', _('Filled')

    tenant_id = models.CharField(max_length=64, db_index=True)
    title = models.CharField(max_length=255)
    company_name = models.CharField(max_length=255, blank=True)
    location = models.CharField(max_length=255, blank=True)
    status = models.CharField(
        max_length=20,
        choices=JobStatus.choices,
        default=JobStatus.DRAFT
    )
    application_deadline = models.DateTimeField(null=True, blank=True)
    tags = models.JSONField(default=list, blank=True)
    positions_count = models.PositiveIntegerField(default=1)
    is_featured = models.BooleanField(default=False)

    # Automation flags
    deadline_triggered = models.BooleanField(default=False)
    deadline_triggered_at = models.DateTimeField(null=True, blank=True)

    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Job Posting')
        verbose_name_plural = _('Job Postings')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant_id', 'status'], name='ats_jobpost_tenant__5f1c2e_idx'),
            models.Index(fields=['status', 'application_deadline', 'deadline_triggered'], name='ats_jobpost_status_8a3d41_idx'),
        ]

    def __str__(self):
        return self.title


class Application(models.Model):
    """
    Job application linking an applicant to a job posting.

    ``status`` is the pipeline stage the application sits in.
    """

    class ApplicationStatus(models.TextChoices):
        NEW = 'new', _('New')
        UNDER_REVIEW = 'under_review', _('Under Review')
        SHORTLISTED = 'shortlisted', _('Shortlisted')
        INTERVIEW = 'interview', _('Interview')
        INTERVIEWED = 'interviewed', _('Interviewed')
        OFFERED = 'offered', _('Offered')
        ACCEPTED = 'accepted', _('Accepted')
        HIRED = 'hired', _('Hired')
        REJECTED = 'rejected', _('Rejected')
        WITHDRAWN = 'withdrawn', _('Withdrawn')

    class Priority(models.TextChoices):
        LOW = 'low', _('Low')
        NORMAL = 'normal', _('Normal')
        HIGH = 'high', _('High')

    tenant_id = models.CharField(max_length=64, db_index=True)
    job = models.ForeignKey(
        JobPosting,
        on_delete=models.CASCADE,
        related_name='applications'
    )
    applicant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='job_applications'
    )
    applicant_name = models.CharField(max_length=255, blank=True)
    applicant_email = models.EmailField(blank=True)
    applicant_phone = models.CharField(max_length=32, blank=True)

    status = models.CharField(
        max_length=20,
        choices=ApplicationStatus.choices,
        default=ApplicationStatus.NEW
    )
    tags = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    rating = models.PositiveSmallIntegerField(null=True, blank=True)
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.NORMAL
    )
    is_starred = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Application')
        verbose_name_plural = _('Applications')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['tenant_id', 'status'], name='ats_applica_tenant__c7e9b0_idx'),
        ]

    def __str__(self):
        return f"{self.applicant_name or 'Applicant'} - {self.job}"


class Interview(models.Model):
    """Interview scheduled for an application."""

    class InterviewType(models.TextChoices):
        ONLINE = 'online', _('Online')
        ONSITE = 'onsite', _('On-site')

    class InterviewStatus(models.TextChoices):
        SCHEDULED = 'scheduled', _('Scheduled')
        RESCHEDULED = 'rescheduled', _('Rescheduled')
        COMPLETED = 'completed', _('Completed')
        CANCELLED = 'cancelled', _('Cancelled')
        NO_SHOW = 'no_show', _('No Show')

    tenant_id = models.CharField(max_length=64, db_index=True)
    application = models.ForeignKey(
        Application,
        on_delete=models.CASCADE,
        related_name='interviews'
    )
    interview_type = models.CharField(
        max_length=20,
        choices=InterviewType.choices,
        default=InterviewType.ONLINE
    )
    status = models.CharField(
        max_length=20,
        choices=InterviewStatus.choices,
        default=InterviewStatus.SCHEDULED
    )
    scheduled_at = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField(default=60)
    meeting_token = models.CharField(max_length=64, blank=True)
    meeting_url = models.URLField(blank=True)
    meeting_platform = models.CharField(max_length=32, blank=True)
    cancellation_reason = models.TextField(blank=True)
    created_by = models.CharField(max_length=64, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Interview')
        verbose_name_plural = _('Interviews')
        ordering = ['scheduled_at']

    def __str__(self):
        return f"Interview for {self.application} at {self.scheduled_at:%Y-%m-%d %H:%M}"

    @staticmethod
    def generate_meeting_token():
        return secrets.token_urlsafe(24)
