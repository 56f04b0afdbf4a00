"""Revoke role use case."""

from uuid import UUID

from chordperm.application.ports import PermissionCache, PermissionChecker, UnitOfWorkFactory
from chordperm.application.use_cases.cache_invalidation import invalidate_subjects
from chordperm.domain.exceptions import NotFound, PermissionDenied
from chordperm.domain.value_objects import PermissionAction, ResourceType


class RevokeRoleUseCase:
    """Take a role away from a subject."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        permission_checker: PermissionChecker,
        cache: PermissionCache | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._cache = cache

    async def execute(self, actor_id: str, subject_id: str, role_id: UUID) -> None:
        """Revoke role from subject. Actor must have user.revoke_role."""
        allowed = await self._permission_checker.check(
            actor_id, ResourceType.USER, PermissionAction.REVOKE_ROLE, resource_id=subject_id
        )
        if not allowed:
            raise PermissionDenied("User may not revoke roles")

        async with self._uow_factory() as uow:
            if not await uow.roles.revoke_from_subject(subject_id, role_id):
                raise NotFound("Role assignment", f"{subject_id}/{role_id}")

        await invalidate_subjects(self._cache, [subject_id])
