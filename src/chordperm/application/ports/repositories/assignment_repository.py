"""Direct assignment repository port."""

from typing import Protocol
from uuid import UUID

from chordperm.domain.entities import PermissionAssignment


class AssignmentRepository(Protocol):
    """Port for permissions granted directly to subjects."""

    async def list_for_subject(self, subject_id: str) -> list[PermissionAssignment]: ...

    async def grant(
        self,
        subject_id: str,
        assignment: PermissionAssignment,
        granted_by: str | None = None,
        reason: str | None = None,
    ) -> None: ...

    async def revoke(
        self,
        subject_id: str,
        permission_id: UUID,
        resource_id: str | None = None,
    ) -> bool: ...
