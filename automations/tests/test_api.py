"""
Automations API Tests

Tests for:
- Rule CRUD scoped to the authenticated publisher
- Rule validation (events, operators, actions, webhook targets)
- Toggle, templates and clone
- Rule dry-run endpoint
- Execution logs, statistics and queue health
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework import status

from automations.models import AutomationRule

BASE = '/api/v1/automations'


def rule_body(**overrides):
    body = {
        'name': 'Welcome applicants',
        'description': 'Thank every new applicant',
        'trigger_event': 'APPLICATION_SUBMITTED',
        'conditions': [{'field': 'status', 'operator': 'equals', 'value': 'new'}],
        'actions': [{
            'type': 'SEND_NOTIFICATION',
            'order': 1,
            'config': {'title': 'Thanks {{applicantName}}', 'message': 'We got it'},
        }],
        'max_executions_per_hour': 10,
    }
    body.update(overrides)
    return body


@pytest.fixture
def tenant_id(user):
    return str(user.pk)


@pytest.fixture
def own_rule(automation_rule_factory, tenant_id):
    return automation_rule_factory(tenant_id=tenant_id)


# ============================================================================
# RULE CRUD
# ============================================================================

@pytest.mark.django_db
class TestRuleCrud:

    def test_requires_authentication(self, api_client):
        response = api_client.get(f'{BASE}/rules/')

        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    def test_create_sets_tenant(self, authenticated_api_client, tenant_id):
        response = authenticated_api_client.post(f'{BASE}/rules/', rule_body(), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['tenant_id'] == tenant_id
        assert response.data['created_by'] == tenant_id
        rule = AutomationRule.objects.get(pk=response.data['id'])
        assert rule.actions == [{
            'type': 'SEND_NOTIFICATION',
            'order': 1,
            'config': {'title': 'Thanks {{applicantName}}', 'message': 'We got it'},
            'enabled': True,
        }]
        assert rule.conditions == [{'field': 'status', 'operator': 'equals', 'value': 'new'}]

    def test_list_only_own_rules(self, authenticated_api_client, own_rule, automation_rule_factory, template_rule_factory):
        automation_rule_factory(tenant_id='someone-else')
        template_rule_factory()

        response = authenticated_api_client.get(f'{BASE}/rules/')

        assert response.status_code == status.HTTP_200_OK
        assert [item['id'] for item in response.data['results']] == [str(own_rule.pk)]
        assert response.data['results'][0]['action_count'] == 1
        assert response.data['results'][0]['success_rate'] == '0.00'

    def test_list_filters(self, authenticated_api_client, automation_rule_factory, tenant_id):
        active = automation_rule_factory(tenant_id=tenant_id)
        automation_rule_factory(tenant_id=tenant_id, is_active=False)
        automation_rule_factory(tenant_id=tenant_id, trigger_event='JOB_PUBLISHED')

        response = authenticated_api_client.get(
            f'{BASE}/rules/', {'is_active': 'true', 'event': 'APPLICATION_SUBMITTED'}
        )

        assert [item['id'] for item in response.data['results']] == [str(active.pk)]

    def test_other_tenants_rule_is_not_found(self, authenticated_api_client, automation_rule_factory):
        foreign = automation_rule_factory(tenant_id='someone-else')

        assert authenticated_api_client.get(f'{BASE}/rules/{foreign.pk}/').status_code == status.HTTP_404_NOT_FOUND
        assert authenticated_api_client.delete(f'{BASE}/rules/{foreign.pk}/').status_code == status.HTTP_404_NOT_FOUND
        assert AutomationRule.objects.filter(pk=foreign.pk).exists()

    def test_partial_update(self, authenticated_api_client, own_rule):
        response = authenticated_api_client.patch(
            f'{BASE}/rules/{own_rule.pk}/', {'name': 'Renamed', 'priority': 5}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        own_rule.refresh_from_db()
        assert own_rule.name == 'Renamed'
        assert own_rule.priority == 5

    def test_put_is_not_allowed(self, authenticated_api_client, own_rule):
        response = authenticated_api_client.put(f'{BASE}/rules/{own_rule.pk}/', rule_body(), format='json')

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    def test_delete(self, authenticated_api_client, own_rule):
        response = authenticated_api_client.delete(f'{BASE}/rules/{own_rule.pk}/')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not AutomationRule.objects.filter(pk=own_rule.pk).exists()

    def test_toggle(self, authenticated_api_client, own_rule):
        response = authenticated_api_client.post(f'{BASE}/rules/{own_rule.pk}/toggle/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['rule']['is_active'] is False
        assert 'disabled' in response.data['message']
        own_rule.refresh_from_db()
        assert own_rule.is_active is False


# ============================================================================
# VALIDATION
# ============================================================================

@pytest.mark.django_db
class TestRuleValidation:

    def post(self, client, **overrides):
        return client.post(f'{BASE}/rules/', rule_body(**overrides), format='json')

    def test_unknown_event(self, authenticated_api_client):
        response = self.post(authenticated_api_client, trigger_event='SOMETHING_ELSE')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'trigger_event' in response.data

    def test_unknown_operator(self, authenticated_api_client):
        response = self.post(
            authenticated_api_client,
            conditions=[{'field': 'status', 'operator': 'matches', 'value': 'x'}],
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'conditions' in response.data

    def test_in_requires_list(self, authenticated_api_client):
        response = self.post(
            authenticated_api_client,
            conditions=[{'field': 'status', 'operator': 'in', 'value': 'new'}],
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_action_type(self, authenticated_api_client):
        response = self.post(authenticated_api_client, actions=[{'type': 'LAUNCH_ROCKET', 'config': {}}])

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'actions' in response.data

    def test_actions_required(self, authenticated_api_client):
        response = self.post(authenticated_api_client, actions=[])

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'actions' in response.data

    def test_webhook_to_private_address_rejected(self, authenticated_api_client):
        response = self.post(
            authenticated_api_client,
            actions=[{'type': 'WEBHOOK', 'config': {'url': 'http://127.0.0.1:8000/internal'}}],
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'Webhook URL blocked' in str(response.data)

    def test_webhook_without_url_rejected(self, authenticated_api_client):
        response = self.post(authenticated_api_client, actions=[{'type': 'WEBHOOK', 'config': {}}])

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_public_webhook_accepted(self, authenticated_api_client):
        response = self.post(
            authenticated_api_client,
            actions=[{'type': 'WEBHOOK', 'config': {'url': 'https://93.184.216.34/hooks/ats'}}],
        )

        assert response.status_code == status.HTTP_201_CREATED


# ============================================================================
# TEMPLATES
# ============================================================================

@pytest.mark.django_db
class TestTemplates:

    def test_list_templates(self, authenticated_api_client, template_rule_factory):
        template = template_rule_factory(name='Auto-reject stale applications')

        response = authenticated_api_client.get(f'{BASE}/templates/')

        assert response.status_code == status.HTTP_200_OK
        assert [item['id'] for item in response.data['results']] == [str(template.pk)]

    def test_clone_creates_inactive_copy(self, authenticated_api_client, template_rule_factory, tenant_id):
        template = template_rule_factory(name='Interview reminder')

        response = authenticated_api_client.post(f'{BASE}/templates/{template.pk}/clone/')

        assert response.status_code == status.HTTP_201_CREATED
        clone = AutomationRule.objects.get(pk=response.data['id'])
        assert clone.tenant_id == tenant_id
        assert clone.name == 'Interview reminder'
        assert clone.is_active is False
        assert clone.is_template is False
        assert clone.actions == template.actions


# ============================================================================
# ENGINE ENDPOINTS
# ============================================================================

@pytest.mark.django_db
class TestRuleTestEndpoint:

    def test_matching_sample(self, authenticated_api_client, runtime, automation_rule_factory, tenant_id):
        rule = automation_rule_factory(
            tenant_id=tenant_id,
            conditions=[{'field': 'status', 'operator': 'equals', 'value': 'new'}],
        )

        response = authenticated_api_client.post(
            f'{BASE}/test/',
            {'rule_id': str(rule.pk), 'test_data': {'status': 'new', 'applicantName': 'Ada'}},
            format='json',
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is True
        assert response.data['conditions_match'] is True
        assert response.data['execution_result']['actions_executed'] == 1
        rule.refresh_from_db()
        assert rule.execution_count == 0

    def test_non_matching_sample(self, authenticated_api_client, runtime, automation_rule_factory, tenant_id):
        rule = automation_rule_factory(
            tenant_id=tenant_id,
            conditions=[{'field': 'status', 'operator': 'equals', 'value': 'new'}],
        )

        response = authenticated_api_client.post(
            f'{BASE}/test/', {'rule_id': str(rule.pk), 'test_data': {'status': 'hired'}}, format='json'
        )

        assert response.data['success'] is False
        assert response.data['conditions_match'] is False
        assert response.data['message'] == 'Conditions do not match test data'

    def test_foreign_rule(self, authenticated_api_client, runtime, automation_rule_factory):
        rule = automation_rule_factory(tenant_id='someone-else')

        response = authenticated_api_client.post(
            f'{BASE}/test/', {'rule_id': str(rule.pk), 'test_data': {}}, format='json'
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestLogsAndStatistics:

    def log(self, executed_at, success=True):
        return {
            'executed_at': executed_at.isoformat(),
            'event_id': 'evt',
            'depth': 0,
            'triggered_by': {},
            'success': success,
            'error': None if success else 'SEND_EMAIL: smtp down',
            'actions_executed': 1,
            'execution_time_ms': 3,
            'outcomes': [],
        }

    def test_logs_are_flattened_newest_first(self, authenticated_api_client, automation_rule_factory, tenant_id):
        now = timezone.now()
        first = automation_rule_factory(tenant_id=tenant_id, name='First', recent_logs=[
            self.log(now - timedelta(minutes=1)),
            self.log(now - timedelta(minutes=10)),
        ])
        second = automation_rule_factory(tenant_id=tenant_id, name='Second', recent_logs=[
            self.log(now - timedelta(minutes=5), success=False),
        ])
        automation_rule_factory(tenant_id='someone-else', recent_logs=[self.log(now)])

        response = authenticated_api_client.get(f'{BASE}/logs/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 3
        results = response.data['results']
        assert [entry['rule_id'] for entry in results] == [str(first.pk), str(second.pk), str(first.pk)]
        assert results[1]['rule_name'] == 'Second'
        assert results[1]['success'] is False

    def test_logs_for_one_rule(self, authenticated_api_client, automation_rule_factory, tenant_id):
        now = timezone.now()
        rule = automation_rule_factory(tenant_id=tenant_id, recent_logs=[self.log(now)])
        automation_rule_factory(tenant_id=tenant_id, recent_logs=[self.log(now)])

        response = authenticated_api_client.get(f'{BASE}/logs/', {'rule_id': str(rule.pk)})

        assert response.data['count'] == 1

    def test_malformed_rule_id_is_rejected(self, authenticated_api_client):
        response = authenticated_api_client.get(f'{BASE}/logs/', {'rule_id': 'not-a-uuid'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'rule_id' in response.data

    def test_statistics(self, authenticated_api_client, automation_rule_factory, tenant_id):
        automation_rule_factory(tenant_id=tenant_id, execution_count=4, success_count=3, failure_count=1)
        automation_rule_factory(tenant_id=tenant_id, is_active=False)
        automation_rule_factory(tenant_id='someone-else', execution_count=100, success_count=100)

        response = authenticated_api_client.get(f'{BASE}/statistics/')

        assert response.data == {
            'total_rules': 2,
            'active_rules': 1,
            'total_executions': 4,
            'total_successes': 3,
            'total_failures': 1,
            'success_rate': '75.00',
        }

    def test_queue_health(self, authenticated_api_client, runtime):
        response = authenticated_api_client.get(f'{BASE}/health/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'mode': 'inline', 'durable': False, 'degraded': True, 'status': 'degraded'}
