"""
ATS Admin - Admin configuration for job postings, applications and interviews.
"""

from django.contrib import admin

from .models import JobPosting, Application, Interview


@admin.register(JobPosting)
class JobPostingAdmin(admin.ModelAdmin):
    list_display = ['title', 'tenant_id', 'status', 'application_deadline', 'deadline_triggered', 'created_at']
    list_filter = ['status', 'deadline_triggered']
    search_fields = ['title', 'company_name', 'tenant_id']
    readonly_fields = ['deadline_triggered_at', 'created_at', 'updated_at']


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ['applicant_name', 'job', 'status', 'priority', 'is_starred', 'created_at']
    list_filter = ['status', 'priority', 'is_starred']
    search_fields = ['applicant_name', 'applicant_email', 'job__title']
    raw_id_fields = ['job', 'applicant']


@admin.register(Interview)
class InterviewAdmin(admin.ModelAdmin):
    list_display = ['application', 'interview_type', 'status', 'scheduled_at', 'duration_minutes']
    list_filter = ['interview_type', 'status']
    raw_id_fields = ['application']
