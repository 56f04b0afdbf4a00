"""Condition evaluator for conditional grants."""

import math
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

import structlog

from chordperm.application.dto.evaluation_context import EvaluationContext
from chordperm.domain.entities import PermissionCondition
from chordperm.domain.exceptions import InvalidCondition
from chordperm.domain.value_objects import ConditionOperator

logger = structlog.get_logger(__name__)


class _Missing:
    """Value of a field path that does not resolve."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def resolve_field(path: str, root: Any) -> Any:
    """Follow a dot-separated path through mappings and attributes."""
    value = root
    for part in path.split("."):
        if isinstance(value, Mapping):
            value = value.get(part, MISSING)
        elif value is None or value is MISSING or isinstance(value, (str, int, float, bool)):
            return MISSING
        elif isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
            if not part.isdigit() or int(part) >= len(value):
                return MISSING
            value = value[int(part)]
        else:
            value = getattr(value, part, MISSING)
        if value is MISSING:
            return MISSING
    return value


def _strictly_equal(left: Any, right: Any) -> bool:
    if left is MISSING or right is MISSING:
        return left is right
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return left == right


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (Sequence, set, frozenset)) and not isinstance(
        value, (str, bytes, bytearray)
    )


def _to_number(value: Any) -> float:
    """Numeric coercion; NaN when the value has no numeric reading."""
    if isinstance(value, datetime):
        return value.timestamp()
    if value is MISSING or value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


class ConditionEvaluator:
    """Evaluates AND-ed field/operator/value conditions against a context."""

    def evaluate(
        self,
        conditions: Iterable[PermissionCondition] | None,
        context: EvaluationContext,
    ) -> bool:
        """True when every condition holds. No conditions means no restriction."""
        if not conditions:
            return True

        root = context.as_mapping()
        for condition in conditions:
            try:
                if not self.evaluate_condition(condition, root):
                    return False
            except InvalidCondition as exc:
                logger.warning(
                    "invalid_condition",
                    field=condition.field,
                    operator=condition.operator,
                    error=str(exc),
                )
                return False
        return True

    def evaluate_condition(self, condition: PermissionCondition, root: Any) -> bool:
        """Evaluate one condition. Raises InvalidCondition if it is malformed."""
        if not isinstance(condition.field, str) or not condition.field.strip():
            raise InvalidCondition("Condition field must be a non-empty path")
        try:
            operator = ConditionOperator(condition.operator)
        except ValueError:
            raise InvalidCondition(f"Unknown operator: {condition.operator!r}") from None

        actual = resolve_field(condition.field, root)
        expected = condition.value

        if operator == ConditionOperator.EQ:
            return _strictly_equal(actual, expected)
        if operator == ConditionOperator.NEQ:
            return not _strictly_equal(actual, expected)
        if operator == ConditionOperator.IN:
            if not _is_sequence(expected):
                return False
            return any(_strictly_equal(actual, item) for item in expected)
        if operator == ConditionOperator.CONTAINS:
            if isinstance(actual, str) and isinstance(expected, str):
                return expected in actual
            if _is_sequence(actual):
                return any(_strictly_equal(item, expected) for item in actual)
            return False
        if operator == ConditionOperator.GT:
            return _to_number(actual) > _to_number(expected)
        if operator == ConditionOperator.LT:
            return _to_number(actual) < _to_number(expected)
        return False
