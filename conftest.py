"""
TalentFlow Test Configuration - pytest fixtures and factories

This module provides:
- pytest-django configuration
- factory_boy factories for the ATS, messaging and automation models
- Shared fixtures for API clients and the automation runtime

RUNNING TESTS:
# Run all tests
pytest -v

# Run by app
pytest automations/tests -v
pytest ats/tests -v
"""

import pytest
import uuid
from datetime import timedelta
from django.utils import timezone

import factory
from factory.django import DjangoModelFactory


# ============================================================================
# USER FACTORIES
# ============================================================================

class UserFactory(DjangoModelFactory):
    """Factory for the auth user model."""

    class Meta:
        model = 'auth.User'
        django_get_or_create = ('username',)

    username = factory.LazyAttribute(lambda o: f"user_{uuid.uuid4().hex[:8]}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    is_active = True

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to handle password properly."""
        password = kwargs.pop('password', 'testpass123')
        user = super()._create(model_class, *args, **kwargs)
        user.set_password(password)
        user.save()
        return user


# ============================================================================
# ATS FACTORIES
# ============================================================================

class JobPostingFactory(DjangoModelFactory):
    """Factory for open job postings."""

    class Meta:
        model = 'ats.JobPosting'

    tenant_id = 'publisher-1'
    title = factory.Faker('job')
    company_name = factory.Faker('company')
    location = factory.Faker('city')
    status = 'open'
    application_deadline = factory.LazyFunction(lambda: timezone.now() + timedelta(days=14))
    published_at = factory.LazyFunction(timezone.now)


class ApplicationFactory(DjangoModelFactory):
    """Factory for applications; the tenant follows the job."""

    class Meta:
        model = 'ats.Application'

    job = factory.SubFactory(JobPostingFactory)
    tenant_id = factory.LazyAttribute(lambda o: o.job.tenant_id)
    applicant = factory.SubFactory(UserFactory)
    applicant_name = factory.Faker('name')
    applicant_email = factory.Faker('email')
    applicant_phone = '+15550100'
    status = 'new'


class InterviewFactory(DjangoModelFactory):

    class Meta:
        model = 'ats.Interview'

    application = factory.SubFactory(ApplicationFactory)
    tenant_id = factory.LazyAttribute(lambda o: o.application.tenant_id)
    interview_type = 'online'
    status = 'scheduled'
    scheduled_at = factory.LazyFunction(lambda: timezone.now() + timedelta(days=3))
    duration_minutes = 60


# ============================================================================
# MESSAGING FACTORIES
# ============================================================================

class MessageThreadFactory(DjangoModelFactory):

    class Meta:
        model = 'messages_sys.MessageThread'

    application = factory.SubFactory(ApplicationFactory)
    job = factory.LazyAttribute(lambda o: o.application.job)
    applicant = factory.LazyAttribute(lambda o: o.application.applicant)
    tenant_id = factory.LazyAttribute(lambda o: o.application.tenant_id)


class MessageFactory(DjangoModelFactory):

    class Meta:
        model = 'messages_sys.Message'

    thread = factory.SubFactory(MessageThreadFactory)
    sender_id = factory.LazyAttribute(lambda o: str(o.thread.applicant_id or ''))
    sender_role = 'applicant'
    message_type = 'text'
    content = factory.Faker('sentence')


# ============================================================================
# AUTOMATION FACTORIES
# ============================================================================

class AutomationRuleFactory(DjangoModelFactory):
    """Factory for active rules with a single in-app notification action."""

    class Meta:
        model = 'automations.AutomationRule'

    tenant_id = 'publisher-1'
    name = factory.Sequence(lambda n: f"Rule {n}")
    description = factory.Faker('sentence')
    trigger_event = 'APPLICATION_SUBMITTED'
    conditions = factory.LazyFunction(list)
    actions = factory.LazyFunction(lambda: [{
        'type': 'SEND_NOTIFICATION',
        'order': 1,
        'config': {'title': 'New application', 'message': 'Hello {{applicantName}}'},
        'enabled': True,
    }])
    is_active = True
    priority = 0


class TemplateRuleFactory(AutomationRuleFactory):
    tenant_id = 'system'
    is_template = True


# ============================================================================
# FACTORY FIXTURES
# ============================================================================

@pytest.fixture
def user_factory(db):
    """Provide UserFactory for tests."""
    return UserFactory


@pytest.fixture
def job_posting_factory(db):
    """Provide JobPostingFactory for tests."""
    return JobPostingFactory


@pytest.fixture
def application_factory(db):
    """Provide ApplicationFactory for tests."""
    return ApplicationFactory


@pytest.fixture
def interview_factory(db):
    """Provide InterviewFactory for tests."""
    return InterviewFactory


@pytest.fixture
def message_thread_factory(db):
    return MessageThreadFactory


@pytest.fixture
def message_factory(db):
    return MessageFactory


@pytest.fixture
def automation_rule_factory(db):
    """Provide AutomationRuleFactory for tests."""
    return AutomationRuleFactory


@pytest.fixture
def template_rule_factory(db):
    return TemplateRuleFactory


# ============================================================================
# COMMON TEST FIXTURES
# ============================================================================

@pytest.fixture
def user(db):
    """Create a standard test user."""
    return UserFactory()


@pytest.fixture
def api_client(db):
    """Provide a DRF API test client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def authenticated_api_client(db, api_client, user):
    """Provide an authenticated DRF API test client."""
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture(autouse=True)
def reset_automation_runtime():
    """Never share the automation runtime between tests."""
    from automations.runtime import reset_runtime

    reset_runtime()
    yield
    reset_runtime()
