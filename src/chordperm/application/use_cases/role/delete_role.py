"""Delete role use case."""

from uuid import UUID

import structlog

from chordperm.application.ports import PermissionCache, PermissionChecker, UnitOfWorkFactory
from chordperm.application.use_cases.cache_invalidation import invalidate_subjects
from chordperm.application.use_cases.role.affected_subjects import subjects_affected_by_role
from chordperm.domain.exceptions import NotFound, PermissionDenied, SystemRoleImmutable
from chordperm.domain.value_objects import PermissionAction, ResourceType
from chordperm.infrastructure.permission.engine import PermissionEngine

logger = structlog.get_logger(__name__)


class DeleteRoleUseCase:
    """Delete a custom role together with its memberships and edges."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        permission_checker: PermissionChecker,
        engine: PermissionEngine,
        cache: PermissionCache | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._engine = engine
        self._cache = cache

    async def execute(self, actor_id: str, role_id: UUID) -> None:
        """Delete role. Actor must have role.delete."""
        allowed = await self._permission_checker.check(
            actor_id, ResourceType.ROLE, PermissionAction.DELETE, resource_id=str(role_id)
        )
        if not allowed:
            raise PermissionDenied("User may not delete roles")

        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id)
            if not role:
                raise NotFound("Role", str(role_id))
            if role.is_system:
                raise SystemRoleImmutable(f"System role {role.name} cannot be deleted")
            affected = await subjects_affected_by_role(uow, self._engine, role_id)
            await uow.roles.delete(role_id)

        await invalidate_subjects(self._cache, affected)
        logger.info("role_deleted", role_id=str(role_id), actor_id=actor_id, affected=len(affected))
