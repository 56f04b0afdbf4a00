"""Permission checker implementation - checks against the permission engine."""

from chordperm.application.use_cases.permission.check_permission import (
    CheckPermissionUseCase,
)
from chordperm.domain.value_objects import PermissionAction, ResourceType


class EnginePermissionChecker:
    """Checks actor permissions through the resolve-and-decide pipeline."""

    def __init__(self, check_permission: CheckPermissionUseCase) -> None:
        self._check_permission = check_permission

    async def check(
        self,
        subject_id: str,
        resource: ResourceType,
        action: PermissionAction,
        resource_id: str | None = None,
    ) -> bool:
        """Check if subject may perform action on resource."""
        result = await self._check_permission.execute(
            subject_id, resource, action, resource_id=resource_id
        )
        return result.allowed
