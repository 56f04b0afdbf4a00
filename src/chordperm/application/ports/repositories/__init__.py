"""Repository ports."""

from chordperm.application.ports.repositories.assignment_repository import (
    AssignmentRepository,
)
from chordperm.application.ports.repositories.group_repository import GroupRepository
from chordperm.application.ports.repositories.permission_repository import (
    PermissionRepository,
)
from chordperm.application.ports.repositories.role_repository import RoleRepository

__all__ = [
    "AssignmentRepository",
    "GroupRepository",
    "PermissionRepository",
    "RoleRepository",
]
