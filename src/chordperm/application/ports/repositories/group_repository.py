"""Permission group repository port."""

from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from chordperm.domain.entities import PermissionGroup


class GroupRepository(Protocol):
    """Port for permission groups and their members."""

    async def list_all(self) -> list[PermissionGroup]: ...

    async def list_for_subject(self, subject_id: str) -> list[PermissionGroup]: ...

    async def list_members_for_roles(self, role_ids: Iterable[UUID]) -> set[str]: ...
