"""Operators for conditional grants."""

from enum import StrEnum


class ConditionOperator(StrEnum):
    """Comparison operators supported by the condition evaluator."""

    EQ = "eq"
    NEQ = "neq"
    IN = "in"
    CONTAINS = "contains"
    GT = "gt"
    LT = "lt"
