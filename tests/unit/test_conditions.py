"""Unit tests for the condition evaluator."""

from datetime import timedelta

import pytest

from chordperm.domain.entities import PermissionCondition
from chordperm.infrastructure.permission.conditions import (
    MISSING,
    ConditionEvaluator,
    resolve_field,
)

from tests.conftest import NOW, make_context

evaluator = ConditionEvaluator()


def _check(field, operator, value, **context_kwargs) -> bool:
    return evaluator.evaluate([PermissionCondition(field, operator, value)], make_context(**context_kwargs))


def test_no_conditions_means_unrestricted() -> None:
    """Empty and None condition lists hold."""
    assert evaluator.evaluate([], make_context()) is True
    assert evaluator.evaluate(None, make_context()) is True


def test_resolve_field_walks_mappings_and_attributes() -> None:
    """Dot paths follow dict keys and object attributes."""

    class Song:
        status = "published"

    root = {"resource": {"song": Song(), "tags": ["a"]}}
    assert resolve_field("resource.song.status", root) == "published"
    assert resolve_field("resource.tags", root) == ["a"]
    assert resolve_field("resource.missing", root) is MISSING
    assert resolve_field("resource.song.status.length", root) is MISSING


def test_resolve_field_indexes_sequences() -> None:
    """Numeric segments index into lists and tuples."""
    root = {"resource": {"tags": ["rock", "live"], "credits": ({"name": "Ana"},)}}
    assert resolve_field("resource.tags.1", root) == "live"
    assert resolve_field("resource.credits.0.name", root) == "Ana"
    assert resolve_field("resource.tags.2", root) is MISSING
    assert resolve_field("resource.tags.first", root) is MISSING
    assert _check("resource.tags.0", "eq", "rock", resource={"tags": ["rock"]})


@pytest.mark.parametrize(
    ("operator", "value", "expected"),
    [
        ("eq", "published", True),
        ("eq", "draft", False),
        ("neq", "draft", True),
        ("in", ["draft", "published"], True),
        ("in", ["draft"], False),
        ("in", "published", False),
        ("contains", "publ", True),
        ("contains", "xyz", False),
    ],
)
def test_string_operators(operator, value, expected) -> None:
    """Equality, membership and substring checks on a string field."""
    assert _check("resource.status", operator, value, resource={"status": "published"}) is expected


def test_contains_on_list() -> None:
    """contains on a list checks element membership."""
    assert _check("resource.tags", "contains", "hymn", resource={"tags": ["hymn", "easter"]})
    assert not _check("resource.tags", "contains", "rock", resource={"tags": ["hymn"]})


def test_equality_is_strict_between_bool_and_number() -> None:
    """True does not equal 1."""
    assert not _check("resource.flag", "eq", 1, resource={"flag": True})
    assert _check("resource.flag", "eq", True, resource={"flag": True})


def test_numeric_comparisons() -> None:
    """gt / lt compare numbers."""
    assert _check("resource.rating", "gt", 3, resource={"rating": 4})
    assert not _check("resource.rating", "lt", 3, resource={"rating": 4})


def test_datetime_comparisons() -> None:
    """gt / lt compare datetimes with datetimes."""
    assert _check("timestamp", "gt", NOW - timedelta(days=1))
    assert _check("timestamp", "lt", NOW + timedelta(days=1))
    assert not _check("timestamp", "gt", NOW)


def test_missing_field() -> None:
    """A missing field fails comparisons but satisfies neq."""
    assert not _check("resource.status", "eq", "published", resource={})
    assert _check("resource.status", "neq", "published", resource={})
    assert not _check("resource.rating", "gt", 0, resource=None)


def test_uncoercible_numbers_fail() -> None:
    """Non-numeric values never satisfy gt or lt."""
    assert not _check("resource.rating", "gt", 3, resource={"rating": "high"})
    assert not _check("resource.rating", "lt", 3, resource={"rating": "high"})


def test_attributes_and_subject_are_addressable() -> None:
    """Context attributes and subject id sit at the root."""
    assert _check("subject_id", "eq", "user-1")
    assert _check("plan", "eq", "pro", attributes={"plan": "pro"})


def test_unknown_operator_fails_closed() -> None:
    """An unknown operator makes the whole condition set fail."""
    assert not _check("resource.status", "regex", ".*", resource={"status": "x"})


def test_empty_field_fails_closed() -> None:
    """A blank field path is invalid and fails."""
    assert not _check("", "eq", None)


def test_conditions_are_anded() -> None:
    """Every condition has to hold."""
    context = make_context(resource={"status": "published", "rating": 5})
    both = [
        PermissionCondition("resource.status", "eq", "published"),
        PermissionCondition("resource.rating", "gt", 4),
    ]
    one_fails = [
        PermissionCondition("resource.status", "eq", "published"),
        PermissionCondition("resource.rating", "gt", 5),
    ]
    assert evaluator.evaluate(both, context)
    assert not evaluator.evaluate(one_fails, context)
