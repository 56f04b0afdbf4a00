"""Domain entities."""

from chordperm.domain.entities.custom_role import CustomRole
from chordperm.domain.entities.permission import Permission
from chordperm.domain.entities.permission_assignment import (
    PermissionAssignment,
    PermissionCondition,
)
from chordperm.domain.entities.permission_group import PermissionGroup
from chordperm.domain.entities.resolved_permission import ResolvedPermission
from chordperm.domain.entities.user_permission_set import UserPermissionSet

__all__ = [
    "CustomRole",
    "Permission",
    "PermissionAssignment",
    "PermissionCondition",
    "PermissionGroup",
    "ResolvedPermission",
    "UserPermissionSet",
]
