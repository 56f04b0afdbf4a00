"""In-memory permission catalog."""

from collections.abc import Iterable
from types import MappingProxyType
from uuid import UUID

from chordperm.application.ports.repositories import PermissionRepository
from chordperm.domain.entities import Permission
from chordperm.domain.exceptions import UnknownPermission, ValidationError
from chordperm.domain.value_objects import PermissionAction, PermissionScope, ResourceType


class InMemoryPermissionCatalog:
    """Immutable registry of permission definitions, keyed by id."""

    def __init__(self, permissions: Iterable[Permission] = ()) -> None:
        by_id: dict[UUID, Permission] = {}
        for permission in permissions:
            if permission.id in by_id:
                raise ValidationError(f"Duplicate permission id {permission.id}")
            by_id[permission.id] = permission
        self._by_id = MappingProxyType(by_id)

    @classmethod
    async def load(cls, repository: PermissionRepository) -> "InMemoryPermissionCatalog":
        """Build the catalog from the persistence layer."""
        return cls(await repository.list_all())

    def get(self, permission_id: UUID) -> Permission | None:
        """Get permission by id."""
        return self._by_id.get(permission_id)

    def require(self, permission_id: UUID) -> Permission:
        """Get permission by id, raising UnknownPermission if absent."""
        permission = self._by_id.get(permission_id)
        if permission is None:
            raise UnknownPermission(f"Permission {permission_id} is not in the catalog")
        return permission

    def find(
        self,
        resource: ResourceType,
        action: PermissionAction,
        scope: PermissionScope | None = None,
    ) -> list[Permission]:
        """List permissions for resource and action, optionally one scope."""
        return [
            p
            for p in self._by_id.values()
            if p.resource == resource
            and p.action == action
            and (scope is None or p.scope == scope)
        ]

    def __contains__(self, permission_id: object) -> bool:
        return permission_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self):
        return iter(self._by_id.values())
