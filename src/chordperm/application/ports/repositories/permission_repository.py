"""Permission (catalog) repository port."""

from typing import Protocol
from uuid import UUID

from chordperm.domain.entities import Permission


class PermissionRepository(Protocol):
    """Port for reading catalog permissions."""

    async def get_by_id(self, permission_id: UUID) -> Permission | None: ...

    async def list_all(self) -> list[Permission]: ...
