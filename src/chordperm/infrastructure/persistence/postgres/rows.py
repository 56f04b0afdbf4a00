"""Row <-> entity conversion shared by the repositories."""

from collections.abc import Iterable
from typing import Any

from psycopg.types.json import Jsonb

from chordperm.domain.entities import PermissionAssignment, PermissionCondition
from chordperm.domain.value_objects import PermissionEffect

ASSIGNMENT_COLUMNS = "permission_id, effect, conditions, resource_id, expires_at"


def conditions_to_jsonb(conditions: Iterable[PermissionCondition]) -> Jsonb:
    """Conditions as a JSONB array of {field, operator, value} objects."""
    return Jsonb(
        [{"field": c.field, "operator": c.operator, "value": c.value} for c in conditions]
    )


def conditions_from_json(raw: Any) -> tuple[PermissionCondition, ...]:
    if not raw:
        return ()
    return tuple(
        PermissionCondition(field=c["field"], operator=c["operator"], value=c.get("value"))
        for c in raw
    )


def assignment_from_row(r: tuple) -> PermissionAssignment:
    """Build assignment from a row selected with ASSIGNMENT_COLUMNS."""
    return PermissionAssignment(
        permission_id=r[0],
        effect=PermissionEffect(r[1]),
        conditions=conditions_from_json(r[2]),
        resource_id=r[3],
        expires_at=r[4],
    )
