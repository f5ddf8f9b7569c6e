"""
Automations API ViewSets - Rule management and engine REST endpoints

This module provides DRF views for:
- Rules CRUD with a toggle action
- System templates with a clone action
- Rule dry-run testing
- Flattened execution logs and tenant statistics
- Dispatch queue health

Every endpoint is scoped to the authenticated publisher: the tenant id
is the requesting user's primary key.
"""

import logging
import uuid

from django.shortcuts import get_object_or_404
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.generics import GenericAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from ..models import AutomationRule
from ..runtime import get_runtime
from ..serializers import (
    AutomationRuleCreateSerializer,
    AutomationRuleDetailSerializer,
    AutomationRuleListSerializer,
    ExecutionLogSerializer,
    RuleTestSerializer,
    StatisticsSerializer,
)

logger = logging.getLogger('automations.api')


def tenant_id_for(request) -> str:
    return str(request.user.pk)


# =============================================================================
# RULE VIEWSETS
# =============================================================================

class AutomationRuleViewSet(viewsets.ModelViewSet):
    """
    ViewSet for the publisher's automation rules.

    Query params:
    - is_active: ``true``/``false``
    - event: trigger event type

    Actions:
    - toggle: Flip the rule's active flag
    """
    permission_classes = [permissions.IsAuthenticated]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_serializer_class(self):
        if self.action == 'list':
            return AutomationRuleListSerializer
        if self.action in ['create', 'update', 'partial_update']:
            return AutomationRuleCreateSerializer
        return AutomationRuleDetailSerializer

    def get_queryset(self):
        queryset = AutomationRule.objects.for_tenant(
            tenant_id_for(self.request)
        ).filter(is_template=False)

        is_active = self.request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')

        event = self.request.query_params.get('event')
        if event:
            queryset = queryset.filter(trigger_event=event)

        return queryset.order_by('-priority', '-created_at')

    def perform_create(self, serializer):
        tenant_id = tenant_id_for(self.request)
        rule = serializer.save(tenant_id=tenant_id, created_by=tenant_id)
        logger.info(f"Automation rule {rule.pk} created by publisher {tenant_id}")

    def perform_update(self, serializer):
        rule = serializer.save()
        logger.info(f"Automation rule {rule.pk} updated by publisher {rule.tenant_id}")

    def perform_destroy(self, instance):
        logger.info(f"Automation rule {instance.pk} deleted by publisher {instance.tenant_id}")
        instance.delete()

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        """Enable or disable a rule."""
        rule = self.get_object()
        rule.toggle()
        state = 'enabled' if rule.is_active else 'disabled'
        logger.info(f"Automation rule {rule.pk} {state} by publisher {rule.tenant_id}")
        return Response({
            'message': f"Automation rule {state} successfully",
            'rule': AutomationRuleDetailSerializer(rule).data,
        })


class AutomationTemplateViewSet(viewsets.ReadOnlyModelViewSet):
    """
    System rule templates.

    Actions:
    - clone: Copy a template into the publisher's rules (inactive)
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = AutomationRuleDetailSerializer

    def get_queryset(self):
        return AutomationRule.objects.templates().order_by('-priority', 'name')

    @action(detail=True, methods=['post'])
    def clone(self, request, pk=None):
        template = self.get_object()
        tenant_id = tenant_id_for(request)
        rule = template.clone_for_tenant(tenant_id, created_by=tenant_id)
        logger.info(f"Template {template.pk} cloned for publisher {tenant_id} as {rule.pk}")
        return Response(
            AutomationRuleDetailSerializer(rule).data,
            status=status.HTTP_201_CREATED
        )


# =============================================================================
# ENGINE VIEWS
# =============================================================================

class RuleTestView(APIView):
    """Dry-run a rule against sample data."""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = RuleTestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tenant_id = tenant_id_for(request)

        rule = get_object_or_404(
            AutomationRule.objects.for_tenant(tenant_id),
            pk=serializer.validated_data['rule_id'],
        )
        result = get_runtime().dispatcher.test_rule(
            rule.pk,
            serializer.validated_data['test_data'],
            tenant_id=tenant_id,
        )
        return Response(result)


class ExecutionLogView(GenericAPIView):
    """Recent executions across the publisher's rules, newest first."""
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ExecutionLogSerializer

    def get(self, request):
        rules = AutomationRule.objects.for_tenant(tenant_id_for(request))
        rule_id = request.query_params.get('rule_id')
        if rule_id:
            try:
                rules = rules.filter(pk=uuid.UUID(rule_id))
            except ValueError:
                raise ValidationError({'rule_id': ['Must be a valid UUID.']})

        logs = []
        for rule_pk, name, recent_logs in rules.values_list('id', 'name', 'recent_logs'):
            for entry in recent_logs or []:
                logs.append({**entry, 'rule_id': str(rule_pk), 'rule_name': name})
        logs.sort(key=lambda entry: entry.get('executed_at') or '', reverse=True)

        page = self.paginate_queryset(logs)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(logs, many=True).data)


class StatisticsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        stats = AutomationRule.objects.statistics(tenant_id_for(request))
        return Response(StatisticsSerializer(stats).data)


class QueueHealthView(APIView):
    """Report whether triggers are currently delivered durably."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        health = get_runtime().queue.health()
        health['status'] = 'degraded' if health['degraded'] else 'ok'
        return Response(health)
