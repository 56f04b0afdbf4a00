"""Permission catalog port - lookup of permission definitions."""

from typing import Protocol
from uuid import UUID

from chordperm.domain.entities import Permission
from chordperm.domain.value_objects import PermissionAction, PermissionScope, ResourceType


class PermissionCatalog(Protocol):
    """Port for the immutable registry of permissions."""

    def get(self, permission_id: UUID) -> Permission | None: ...

    def require(self, permission_id: UUID) -> Permission: ...

    def find(
        self,
        resource: ResourceType,
        action: PermissionAction,
        scope: PermissionScope | None = None,
    ) -> list[Permission]: ...

    def __contains__(self, permission_id: object) -> bool: ...
