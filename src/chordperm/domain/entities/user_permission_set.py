"""User permission set - snapshot of one resolution pass."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from chordperm.domain.entities.permission_assignment import PermissionAssignment
from chordperm.domain.entities.resolved_permission import ResolvedPermission


@dataclass
class UserPermissionSet:
    """Inputs and computed effective permissions of a subject."""

    subject_id: str
    evaluated_at: datetime
    role_ids: list[UUID] = field(default_factory=list)
    custom_role_ids: list[UUID] = field(default_factory=list)
    group_ids: list[UUID] = field(default_factory=list)
    direct_permissions: list[PermissionAssignment] = field(default_factory=list)
    effective_permissions: list[ResolvedPermission] = field(default_factory=list)
