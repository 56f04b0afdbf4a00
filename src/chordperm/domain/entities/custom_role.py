"""Custom role entity for RBAC."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from chordperm.domain.entities.permission_assignment import PermissionAssignment


@dataclass
class CustomRole:
    """Role - ordered grants plus parent roles it inherits from."""

    id: UUID
    name: str
    permissions: list[PermissionAssignment] = field(default_factory=list)
    inherits_from: list[UUID] = field(default_factory=list)
    is_system: bool = False
    is_active: bool = True
    description: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
