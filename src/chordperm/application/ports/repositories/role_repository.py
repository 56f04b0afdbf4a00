"""Role repository port."""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol
from uuid import UUID

from chordperm.domain.entities import CustomRole


class RoleRepository(Protocol):
    """Port for role persistence, inheritance edges and role holders."""

    async def get_by_id(self, role_id: UUID) -> CustomRole | None: ...

    async def get_by_name(self, name: str) -> CustomRole | None: ...

    async def list_all(self) -> list[CustomRole]: ...

    async def list_for_subject(self, subject_id: str, now: datetime) -> list[CustomRole]: ...

    async def next_expiry_for_subject(self, subject_id: str, now: datetime) -> datetime | None: ...

    async def list_parent_edges(self) -> dict[UUID, list[UUID]]: ...

    async def list_subjects_for_roles(self, role_ids: Iterable[UUID]) -> set[str]: ...

    async def create(self, role: CustomRole) -> CustomRole: ...

    async def update(self, role: CustomRole) -> None: ...

    async def delete(self, role_id: UUID) -> None: ...

    async def assign_to_subject(
        self,
        subject_id: str,
        role_id: UUID,
        granted_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> None: ...

    async def revoke_from_subject(self, subject_id: str, role_id: UUID) -> bool: ...
