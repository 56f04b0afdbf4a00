"""Revoke permission use case."""

from uuid import UUID

from chordperm.application.ports import PermissionCache, PermissionChecker, UnitOfWorkFactory
from chordperm.application.use_cases.cache_invalidation import invalidate_subjects
from chordperm.domain.exceptions import NotFound, PermissionDenied
from chordperm.domain.value_objects import PermissionAction, ResourceType


class RevokePermissionUseCase:
    """Remove a direct grant from a subject."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        permission_checker: PermissionChecker,
        cache: PermissionCache | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._cache = cache

    async def execute(
        self,
        actor_id: str,
        subject_id: str,
        permission_id: UUID,
        resource_id: str | None = None,
    ) -> None:
        """Revoke grant from subject. Actor must be allowed to update users."""
        allowed = await self._permission_checker.check(
            actor_id, ResourceType.USER, PermissionAction.UPDATE, resource_id=subject_id
        )
        if not allowed:
            raise PermissionDenied("User may not change permissions of other users")

        async with self._uow_factory() as uow:
            revoked = await uow.assignments.revoke(subject_id, permission_id, resource_id)
            if not revoked:
                raise NotFound("Permission assignment", f"{subject_id}/{permission_id}")

        await invalidate_subjects(self._cache, [subject_id])
