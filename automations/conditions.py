"""
Condition Evaluator

Pure functions deciding whether a rule's conditions hold for an event
payload. All conditions must hold (logical AND); an empty list always
matches.

Equality is loose on purpose so that rules written against string form
data keep working: ``"5"`` equals ``5`` and ``"true"`` equals ``True``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .models import ConditionOperator

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for a field path that does not resolve."""

    def __repr__(self):
        return 'MISSING'

    def __bool__(self):
        return False


MISSING = _Missing()


def get_field_value(payload: Any, path: str) -> Any:
    """
    Resolve a dotted path (``a.b.c``) into a payload.

    Only mapping keys and list indexes are followed, never object
    attributes. Returns ``MISSING`` when any segment does not resolve.
    """
    if not path:
        return MISSING

    value = payload
    for part in str(path).split('.'):
        if isinstance(value, Mapping):
            if part not in value:
                return MISSING
            value = value[part]
        elif isinstance(value, (list, tuple)) and part.lstrip('-').isdigit():
            index = int(part)
            if not -len(value) <= index < len(value):
                return MISSING
            value = value[index]
        else:
            return MISSING
    return value


def _as_text(value) -> str:
    if value is None or value is MISSING:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple, set)):
        return ','.join(_as_text(item) for item in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_number(value) -> float:
    """Coerce to float; raises ValueError or TypeError when not numeric."""
    if value is None or value is MISSING:
        raise TypeError('no value')
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError('empty string')
        return float(text)
    return float(value)


def loose_equals(left, right) -> bool:
    """
    Equality with numeric-string and boolean-string coercion.

    ``None`` only equals ``None``.
    """
    if left is None or right is None:
        return left is None and right is None

    if isinstance(left, bool) and isinstance(right, str):
        return right.strip().lower() == _as_text(left)
    if isinstance(right, bool) and isinstance(left, str):
        return left.strip().lower() == _as_text(right)

    numeric = (int, float)
    if isinstance(left, str) and isinstance(right, numeric) or isinstance(right, str) and isinstance(left, numeric):
        try:
            return _as_number(left) == _as_number(right)
        except (TypeError, ValueError):
            return False

    return left == right


def _is_collection(value) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


@dataclass
class Condition:
    """
    One ``(field, operator, value)`` test against a payload.

    Examples:
        - status equals "new"
        - score greater_than 80
        - status in ["new", "under_review"]
    """

    field: str
    operator: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: Mapping) -> 'Condition':
        return cls(
            field=data.get('field', ''),
            operator=data.get('operator', ''),
            value=data.get('value'),
        )

    def evaluate(self, payload: Any) -> bool:
        """Evaluate the condition against a payload."""
        actual = get_field_value(payload, self.field)
        op = self.operator

        # An unresolved path satisfies nothing but not_exists
        if actual is MISSING:
            return op == ConditionOperator.NOT_EXISTS

        if op == ConditionOperator.EXISTS:
            return actual is not None
        if op == ConditionOperator.NOT_EXISTS:
            return actual is None

        if op == ConditionOperator.EQUALS:
            return loose_equals(actual, self.value)
        if op == ConditionOperator.NOT_EQUALS:
            return not loose_equals(actual, self.value)

        if op == ConditionOperator.CONTAINS:
            return _as_text(self.value) in _as_text(actual)
        if op == ConditionOperator.NOT_CONTAINS:
            return _as_text(self.value) not in _as_text(actual)

        if op in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
            try:
                left, right = _as_number(actual), _as_number(self.value)
            except (TypeError, ValueError):
                return False
            return left > right if op == ConditionOperator.GREATER_THAN else left < right

        if op == ConditionOperator.IN:
            return _is_collection(self.value) and any(loose_equals(actual, item) for item in self.value)
        if op == ConditionOperator.NOT_IN:
            return _is_collection(self.value) and not any(loose_equals(actual, item) for item in self.value)

        logger.warning(f"Unknown condition operator '{op}' on field '{self.field}'")
        return False


def matches(conditions: Iterable, payload: Any) -> bool:
    """
    Return True when every condition holds for the payload.

    Malformed entries evaluate false.
    """
    for raw in conditions or []:
        if not isinstance(raw, Mapping) or not raw.get('field') or not raw.get('operator'):
            logger.warning(f"Malformed automation condition: {raw!r}")
            return False
        if not Condition.from_dict(raw).evaluate(payload):
            return False
    return True
