"""
Automations Serializers - REST API serialization for automation rules

This module provides DRF serializers for:
- Automation rules (list/detail/create variants)
- Rule test requests (dry run)
- Flattened execution log entries
- Tenant statistics
"""

import logging

from rest_framework import serializers

from core.security.ssrf import validate_outbound_url

from .models import ActionType, AutomationRule, ConditionOperator, TriggerEvent

logger = logging.getLogger(__name__)


# ==================== NESTED DEFINITIONS ====================

class ConditionSerializer(serializers.Serializer):
    field = serializers.CharField(max_length=255)
    operator = serializers.ChoiceField(choices=ConditionOperator.choices)
    value = serializers.JSONField(required=False, allow_null=True)

    def validate(self, attrs):
        operator = attrs['operator']
        value = attrs.get('value')
        if operator in (ConditionOperator.IN, ConditionOperator.NOT_IN) and not isinstance(value, (list, tuple)):
            raise serializers.ValidationError({'value': f"'{operator}' requires a list value."})
        return attrs


class ActionSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=ActionType.choices)
    order = serializers.IntegerField(required=False, default=0)
    config = serializers.DictField(required=False, default=dict)
    enabled = serializers.BooleanField(required=False, default=True)

    def validate(self, attrs):
        if attrs['type'] == ActionType.WEBHOOK:
            url = attrs['config'].get('url')
            if not url:
                raise serializers.ValidationError({'config': 'Webhook actions require a url.'})
            is_safe, reason = validate_outbound_url(url)
            if not is_safe:
                raise serializers.ValidationError({'config': f"Webhook URL blocked: {reason}"})
        return attrs


# ==================== RULE SERIALIZERS ====================

class AutomationRuleListSerializer(serializers.ModelSerializer):
    condition_count = serializers.SerializerMethodField()
    action_count = serializers.SerializerMethodField()
    success_rate = serializers.SerializerMethodField()

    class Meta:
        model = AutomationRule
        fields = [
            'id', 'name', 'description', 'trigger_event', 'is_active', 'priority',
            'condition_count', 'action_count', 'execution_count', 'success_rate',
            'last_executed_at', 'created_at',
        ]
        read_only_fields = fields

    def get_condition_count(self, obj):
        return len(obj.conditions or [])

    def get_action_count(self, obj):
        return len(obj.actions or [])

    def get_success_rate(self, obj):
        return obj.get_summary()['success_rate']


class AutomationRuleDetailSerializer(serializers.ModelSerializer):
    """Full rule including throttle state and recent executions."""

    class Meta:
        model = AutomationRule
        fields = [
            'id', 'tenant_id', 'name', 'description', 'trigger_event', 'conditions',
            'actions', 'is_active', 'is_template', 'priority',
            'max_executions_per_hour', 'max_executions_per_day', 'cooldown_minutes',
            'executions_this_hour', 'executions_today', 'last_execution_time',
            'recent_logs', 'execution_count', 'success_count', 'failure_count',
            'last_executed_at', 'last_success_at', 'last_failure_at',
            'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class AutomationRuleCreateSerializer(serializers.ModelSerializer):
    """
    Create/update serializer.

    Validates event type, condition operators, action types and webhook
    targets. Tenant and author are set by the view.
    """
    trigger_event = serializers.ChoiceField(choices=TriggerEvent.choices)
    conditions = ConditionSerializer(many=True, required=False)
    actions = ActionSerializer(many=True)

    class Meta:
        model = AutomationRule
        fields = [
            'id', 'name', 'description', 'trigger_event', 'conditions', 'actions',
            'is_active', 'priority', 'max_executions_per_hour',
            'max_executions_per_day', 'cooldown_minutes',
        ]
        read_only_fields = ['id']

    def validate_actions(self, value):
        if not value:
            raise serializers.ValidationError('At least one action is required.')
        return value

    def _plain(self, validated_data):
        # Nested serializers return OrderedDicts; store plain JSON
        for key in ('conditions', 'actions'):
            if key in validated_data:
                validated_data[key] = [dict(item) for item in validated_data[key]]
        return validated_data

    def create(self, validated_data):
        return AutomationRule.objects.create(**self._plain(validated_data))

    def update(self, instance, validated_data):
        for attr, value in self._plain(validated_data).items():
            setattr(instance, attr, value)
        instance.save()
        return instance

    def to_representation(self, instance):
        return AutomationRuleDetailSerializer(instance, context=self.context).data


# ==================== ENGINE REQUESTS ====================

class RuleTestSerializer(serializers.Serializer):
    rule_id = serializers.UUIDField()
    test_data = serializers.DictField()


class ExecutionLogSerializer(serializers.Serializer):
    rule_id = serializers.CharField()
    rule_name = serializers.CharField()
    executed_at = serializers.CharField()
    event_id = serializers.CharField(required=False, allow_blank=True)
    depth = serializers.IntegerField(required=False)
    success = serializers.BooleanField()
    error = serializers.CharField(allow_null=True, required=False)
    actions_executed = serializers.IntegerField(required=False)
    execution_time_ms = serializers.IntegerField(required=False)
    triggered_by = serializers.JSONField(required=False)
    outcomes = serializers.JSONField(required=False)


class StatisticsSerializer(serializers.Serializer):
    total_rules = serializers.IntegerField()
    active_rules = serializers.IntegerField()
    total_executions = serializers.IntegerField()
    total_successes = serializers.IntegerField()
    total_failures = serializers.IntegerField()
    success_rate = serializers.CharField()
