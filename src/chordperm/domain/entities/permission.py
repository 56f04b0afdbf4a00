"""Permission entity - catalog entry."""

from dataclasses import dataclass
from uuid import UUID

from chordperm.domain.value_objects import PermissionAction, PermissionScope, ResourceType


@dataclass(frozen=True)
class Permission:
    """Permission - resource type x action x scope. Read-only for the engine."""

    id: UUID
    name: str
    resource: ResourceType
    action: PermissionAction
    scope: PermissionScope
    description: str | None = None
