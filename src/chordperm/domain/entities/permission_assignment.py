"""Permission assignment - a grant of a catalog permission."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from chordperm.domain.value_objects import PermissionEffect


@dataclass(frozen=True)
class PermissionCondition:
    """Predicate on the evaluation context, e.g. resource.status eq "published"."""

    field: str
    operator: str
    value: Any = None


@dataclass(frozen=True)
class PermissionAssignment:
    """Grant of a permission with effect, optional conditions, instance and expiry."""

    permission_id: UUID
    effect: PermissionEffect
    conditions: tuple[PermissionCondition, ...] = ()
    resource_id: str | None = None
    expires_at: datetime | None = None

    def is_active(self, now: datetime) -> bool:
        """Expired grants are treated as absent."""
        return self.expires_at is None or now < self.expires_at
