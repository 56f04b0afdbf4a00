"""Permission checker port - authorizes actors of admin workflows."""

from typing import Protocol

from chordperm.domain.value_objects import PermissionAction, ResourceType


class PermissionChecker(Protocol):
    """Port for checking whether a subject may perform an action."""

    async def check(
        self,
        subject_id: str,
        resource: ResourceType,
        action: PermissionAction,
        resource_id: str | None = None,
    ) -> bool: ...
