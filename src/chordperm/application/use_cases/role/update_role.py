"""Update role use case."""

from collections.abc import Sequence
from uuid import UUID

import structlog

from chordperm.application.ports import (
    Clock,
    PermissionCache,
    PermissionChecker,
    UnitOfWorkFactory,
    utc_now,
)
from chordperm.application.use_cases.cache_invalidation import invalidate_subjects
from chordperm.application.use_cases.permission.grant_validation import validate_assignment
from chordperm.application.use_cases.role.affected_subjects import subjects_affected_by_role
from chordperm.domain.entities import CustomRole, PermissionAssignment
from chordperm.domain.exceptions import (
    NotFound,
    PermissionDenied,
    SystemRoleImmutable,
    ValidationError,
)
from chordperm.domain.value_objects import PermissionAction, ResourceType
from chordperm.infrastructure.permission.engine import PermissionEngine

logger = structlog.get_logger(__name__)


class UpdateRoleUseCase:
    """Change a custom role's grants, parents or metadata."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        permission_checker: PermissionChecker,
        engine: PermissionEngine,
        cache: PermissionCache | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._engine = engine
        self._cache = cache
        self._clock = clock

    async def execute(
        self,
        actor_id: str,
        role_id: UUID,
        *,
        name: str | None = None,
        permissions: Sequence[PermissionAssignment] | None = None,
        inherits_from: Sequence[UUID] | None = None,
        description: str | None = None,
        is_active: bool | None = None,
    ) -> CustomRole:
        """Update role; arguments left as None are unchanged. Actor must have role.update."""
        allowed = await self._permission_checker.check(
            actor_id, ResourceType.ROLE, PermissionAction.UPDATE, resource_id=str(role_id)
        )
        if not allowed:
            raise PermissionDenied("User may not update roles")

        if permissions is not None:
            now = self._clock()
            for assignment in permissions:
                validate_assignment(self._engine.catalog, assignment, now)

        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id)
            if not role:
                raise NotFound("Role", str(role_id))
            if role.is_system:
                raise SystemRoleImmutable(f"System role {role.name} cannot be modified")

            if name is not None and name.strip() != role.name:
                name = name.strip()
                if not name:
                    raise ValidationError("Role name must not be empty")
                if await uow.roles.get_by_name(name):
                    raise ValidationError(f"Role {name} already exists")
                role.name = name
            if inherits_from is not None:
                parents = list(dict.fromkeys(inherits_from))
                for parent_id in parents:
                    if not await uow.roles.get_by_id(parent_id):
                        raise NotFound("Role", str(parent_id))
                edges = await uow.roles.list_parent_edges()
                self._engine.ensure_acyclic(role.id, parents, edges)
                role.inherits_from = parents
            if permissions is not None:
                role.permissions = list(permissions)
            if description is not None:
                role.description = description
            if is_active is not None:
                role.is_active = is_active
            role.updated_at = self._clock()

            await uow.roles.update(role)
            affected = await subjects_affected_by_role(uow, self._engine, role.id)

        await invalidate_subjects(self._cache, affected)
        logger.info("role_updated", role_id=str(role_id), actor_id=actor_id, affected=len(affected))
        return role
