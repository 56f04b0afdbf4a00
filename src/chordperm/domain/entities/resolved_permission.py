"""Resolved permission - a grant tagged with its source and priority."""

from dataclasses import dataclass
from uuid import UUID

from chordperm.domain.value_objects import (
    PermissionAction,
    PermissionEffect,
    PermissionScope,
    PermissionSource,
    ResourceType,
)

GLOBAL_RESOURCE_KEY = "global"


@dataclass(frozen=True)
class ResolvedPermission:
    """Single representation for grants of every source.

    ``priority`` is injected once when the grant is collected and never
    recomputed.
    """

    resource: ResourceType
    action: PermissionAction
    effect: PermissionEffect
    scope: PermissionScope
    source: PermissionSource
    priority: int
    resource_id: str | None = None
    source_id: UUID | None = None

    @property
    def key(self) -> str:
        """Conflict key: resource:action:scope:resourceId."""
        return (
            f"{self.resource}:{self.action}:{self.scope}:"
            f"{self.resource_id or GLOBAL_RESOURCE_KEY}"
        )

    @property
    def specificity(self) -> int:
        """100 for an instance grant plus the scope weight."""
        return (100 if self.resource_id else 0) + self.scope.weight

    @property
    def is_deny(self) -> bool:
        return self.effect == PermissionEffect.DENY
