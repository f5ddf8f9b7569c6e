"""
Automation Engine - Rule Orchestrator and Trigger Dispatcher

    TriggerDispatcher.dispatch(event, payload, tenant, context)
        -> recursion guard -> idempotency ledger -> active rules
        -> RuleOrchestrator.execute(rule) for each rule
            -> conditions -> throttle -> ActionExecutor.run(action) per action
            -> persist counters, throttle state and execution history

Nothing in this module raises to its caller: every failure is folded
into a result object.
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, List, Optional

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from core.logging import tenant_context

from .actions import ActionOutcome
from .conditions import matches
from .exceptions import RuleNotFound
from .models import AutomationRule
from .throttling import is_throttled, record_execution

logger = logging.getLogger(__name__)

RECURSION_LIMIT = 'recursion-limit'


def json_safe(value: Any) -> Any:
    """Round-trip through JSON so dates, UUIDs and decimals become strings."""
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


# ==================== CONTEXT & RESULTS ====================

@dataclass
class TriggerContext:
    """
    Per-trigger state carried along the call chain and in queue messages.

    ``depth`` counts cascaded triggers: 0 for an event raised by the
    platform, +1 for every action that re-triggers the engine.
    """
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    depth: int = 0
    parent_event_id: Optional[str] = None
    source: str = ''

    @classmethod
    def from_value(cls, value) -> 'TriggerContext':
        """Build from None, a dict (camelCase or snake_case keys) or a context."""
        if isinstance(value, TriggerContext):
            return value
        value = value or {}
        try:
            depth = int(value.get('depth') or 0)
        except (TypeError, ValueError):
            depth = 0
        return cls(
            event_id=str(value.get('event_id') or value.get('eventId') or uuid.uuid4()),
            depth=depth,
            parent_event_id=value.get('parent_event_id') or value.get('parentEventId'),
            source=value.get('source') or '',
        )

    def child(self) -> 'TriggerContext':
        """Context for a trigger caused by an action running under this one."""
        return TriggerContext(depth=self.depth + 1, parent_event_id=self.event_id, source='cascade')

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RuleExecutionResult:
    """Outcome of evaluating one rule against one event."""
    rule_id: str
    rule_name: str = ''
    matched: bool = False
    throttled: bool = False
    actions_executed: int = 0
    outcomes: List[ActionOutcome] = field(default_factory=list)
    success: bool = False
    error: Optional[str] = None
    duration_ms: int = 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data['outcomes'] = [outcome.to_dict() for outcome in self.outcomes]
        return data


@dataclass
class DispatchResult:
    """
    Aggregate result of one trigger.

    ``retryable`` is only set for infrastructure failures that happened
    before the idempotency record was written; a retry after that point
    would be suppressed as a duplicate anyway.
    """
    event_type: str
    tenant_id: str
    event_id: str
    executed: int = 0
    results: List[RuleExecutionResult] = field(default_factory=list)
    duplicate: bool = False
    recursion_limited: bool = False
    error: Optional[str] = None
    retryable: bool = False

    @property
    def matched(self) -> int:
        return sum(1 for r in self.results if r.matched)

    @property
    def throttled(self) -> int:
        return sum(1 for r in self.results if r.throttled)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.matched and not r.throttled and r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.matched and not r.throttled and not r.success)

    def to_dict(self) -> dict:
        return {
            'event_type': self.event_type,
            'tenant_id': self.tenant_id,
            'event_id': self.event_id,
            'executed': self.executed,
            'matched': self.matched,
            'throttled': self.throttled,
            'succeeded': self.succeeded,
            'failed': self.failed,
            'duplicate': self.duplicate,
            'recursion_limited': self.recursion_limited,
            'error': self.error,
            'retryable': self.retryable,
            'results': [result.to_dict() for result in self.results],
        }


# ==================== RULE STORE ====================

class RuleStore:
    """Rule lookups used by the dispatcher."""

    def find_active_rules_for_event(self, event_type, tenant_id) -> List[AutomationRule]:
        return list(AutomationRule.objects.for_event(event_type, tenant_id))

    def find_by_id(self, rule_id, tenant_id=None) -> AutomationRule:
        queryset = AutomationRule.objects.all()
        if tenant_id is not None:
            queryset = queryset.for_tenant(tenant_id)
        try:
            return queryset.get(pk=rule_id)
        except (AutomationRule.DoesNotExist, ValidationError, ValueError):
            raise RuleNotFound(rule_id)


# ==================== RULE ORCHESTRATOR ====================

class RuleOrchestrator:
    """
    Runs one rule: conditions, throttle, ordered actions, bookkeeping.

    The throttle slot is taken under a row lock before any action runs,
    so two workers handling near-simultaneous events cannot both pass a
    cap of one. Counters and history are written under a second lock
    once the actions are done; no lock is held while actions run.
    """

    def __init__(self, executor):
        self.executor = executor

    @property
    def history_limit(self) -> int:
        return getattr(settings, 'AUTOMATION_EXECUTION_HISTORY_LIMIT', 10)

    def execute(self, rule, payload, context=None, dry_run=False) -> RuleExecutionResult:
        context = TriggerContext.from_value(context)
        started = time.monotonic()
        result = RuleExecutionResult(rule_id=str(rule.pk), rule_name=rule.name)

        if not matches(rule.conditions, payload):
            logger.debug(f"Rule {rule.pk} conditions not matched, skipping")
            return self._finish(result, started)
        result.matched = True

        if not dry_run and not self._claim_execution_slot(rule):
            logger.info(f"Rule {rule.pk} is throttled, skipping")
            result.throttled = True
            return self._finish(result, started)

        for action in rule.sorted_actions():
            outcome = self.executor.run(action, payload, rule, context, dry_run=dry_run)
            result.outcomes.append(outcome)
            result.actions_executed += 1

        result.success = all(outcome.success for outcome in result.outcomes)
        if not result.success:
            result.error = '; '.join(
                f"{o.action_type}: {o.error}" for o in result.outcomes if not o.success
            )
        self._finish(result, started)

        if not dry_run:
            self._persist(rule, payload, context, result)

        logger.info(
            f"Rule {rule.pk} executed {result.actions_executed} action(s), "
            f"success={result.success} in {result.duration_ms}ms"
        )
        return result

    @staticmethod
    def _finish(result, started):
        result.duration_ms = int((time.monotonic() - started) * 1000)
        return result

    def _claim_execution_slot(self, rule) -> bool:
        """Check the throttle and count the execution atomically."""
        now = timezone.now()
        with transaction.atomic():
            try:
                locked = AutomationRule.objects.select_for_update().get(pk=rule.pk)
            except AutomationRule.DoesNotExist:
                logger.warning(f"Rule {rule.pk} was deleted before execution")
                return False

            throttled = is_throttled(locked, now)
            if not throttled:
                record_execution(locked, now)
            locked.save(update_fields=[
                'executions_this_hour', 'executions_today', 'last_execution_time',
                'hour_reset_at', 'day_reset_at', 'updated_at',
            ])

        for name in ('executions_this_hour', 'executions_today', 'last_execution_time',
                     'hour_reset_at', 'day_reset_at'):
            setattr(rule, name, getattr(locked, name))
        return not throttled

    def _persist(self, rule, payload, context, result):
        now = timezone.now()
        entry = {
            'executed_at': now.isoformat(),
            'event_id': context.event_id,
            'depth': context.depth,
            'triggered_by': json_safe(payload),
            'success': result.success,
            'error': result.error,
            'actions_executed': result.actions_executed,
            'execution_time_ms': result.duration_ms,
            'outcomes': json_safe([outcome.to_dict() for outcome in result.outcomes]),
        }

        try:
            with transaction.atomic():
                locked = AutomationRule.objects.select_for_update().get(pk=rule.pk)
                locked.execution_count += 1
                locked.last_executed_at = now
                if result.success:
                    locked.success_count += 1
                    locked.last_success_at = now
                else:
                    locked.failure_count += 1
                    locked.last_failure_at = now
                locked.recent_logs = ([entry] + list(locked.recent_logs or []))[:self.history_limit]
                locked.save(update_fields=AutomationRule.EXECUTION_STATE_FIELDS)
        except AutomationRule.DoesNotExist:
            logger.warning(f"Rule {rule.pk} was deleted during execution; history not saved")
            return

        for name in AutomationRule.EXECUTION_STATE_FIELDS:
            setattr(rule, name, getattr(locked, name))


# ==================== TRIGGER DISPATCHER ====================

class TriggerDispatcher:
    """Public entry point of the engine for one trigger."""

    def __init__(self, orchestrator, ledger, rules=None):
        self.orchestrator = orchestrator
        self.ledger = ledger
        self.rules = rules or RuleStore()

    @property
    def max_depth(self) -> int:
        return getattr(settings, 'AUTOMATION_MAX_DEPTH', 3)

    def dispatch(self, event_type, payload, tenant_id, context=None) -> DispatchResult:
        """Run every active rule of the tenant for the event; never raises."""
        context = TriggerContext.from_value(context)
        payload = payload or {}
        result = DispatchResult(event_type=str(event_type), tenant_id=str(tenant_id), event_id=context.event_id)

        with tenant_context(tenant_id, context.event_id):
            if context.depth > self.max_depth:
                logger.warning(f"Recursion limit reached for {event_type} at depth {context.depth}")
                result.recursion_limited = True
                result.error = RECURSION_LIMIT
                return result

            ledger_written = False
            entity_id = payload.get('entityId')
            if entity_id not in (None, ''):
                try:
                    is_new = self.ledger.claim(tenant_id, event_type, entity_id, context.event_id)
                except Exception as e:
                    logger.exception(f"Idempotency ledger unavailable for {event_type}: {e}")
                    result.error = str(e)
                    result.retryable = True
                    return result
                if not is_new:
                    logger.info(f"Duplicate {event_type} for entity {entity_id}, skipping")
                    result.duplicate = True
                    return result
                ledger_written = True

            try:
                rules = self.rules.find_active_rules_for_event(event_type, tenant_id)
            except Exception as e:
                logger.exception(f"Could not load rules for {event_type}: {e}")
                result.error = str(e)
                result.retryable = not ledger_written
                return result

            if not rules:
                logger.debug(f"No active automation rules for {event_type}")
                return result

            logger.info(f"Found {len(rules)} active rule(s) for {event_type} at depth {context.depth}")
            for rule in rules:
                try:
                    rule_result = self.orchestrator.execute(rule, payload, context)
                except Exception as e:
                    logger.exception(f"Error executing rule {rule.pk}: {e}")
                    rule_result = RuleExecutionResult(
                        rule_id=str(rule.pk), rule_name=rule.name, matched=True, error=str(e),
                    )
                result.results.append(rule_result)

            result.executed = len(rules)
            logger.info(
                f"Automation complete for {event_type}: rules={result.executed}, "
                f"succeeded={result.succeeded}, failed={result.failed}, throttled={result.throttled}"
            )
            return result

    def test_rule(self, rule_id, sample_data, tenant_id=None) -> dict:
        """
        Dry-run one rule against sample data.

        Skips the ledger, the queue and the throttle; nothing is recorded
        on the rule. Actions still run.
        """
        try:
            rule = self.rules.find_by_id(rule_id, tenant_id)
        except RuleNotFound as e:
            return {'success': False, 'message': str(e), 'conditions_match': False, 'execution_result': None}

        sample_data = sample_data or {}
        context = TriggerContext(source='test')
        with tenant_context(rule.tenant_id, context.event_id):
            if not matches(rule.conditions, sample_data):
                return {
                    'success': False,
                    'message': 'Conditions do not match test data',
                    'conditions_match': False,
                    'execution_result': None,
                }

            try:
                execution = self.orchestrator.execute(rule, sample_data, context, dry_run=True)
            except Exception as e:
                logger.exception(f"Error testing rule {rule.pk}: {e}")
                return {'success': False, 'message': str(e), 'conditions_match': True, 'execution_result': None}

        return {
            'success': True,
            'message': 'Test completed successfully',
            'conditions_match': True,
            'execution_result': execution.to_dict(),
        }
