"""Permission group entity."""

from dataclasses import dataclass, field
from uuid import UUID


@dataclass
class PermissionGroup:
    """Group - members share the roles assigned to the group and its parents."""

    id: UUID
    name: str
    roles: list[UUID] = field(default_factory=list)
    parent_groups: list[UUID] = field(default_factory=list)
    members: list[str] = field(default_factory=list)
    is_active: bool = True
    description: str | None = None
