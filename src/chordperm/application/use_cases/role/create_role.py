"""Create role use case."""

from collections.abc import Sequence
from uuid import UUID, uuid4

import structlog

from chordperm.application.ports import Clock, PermissionChecker, UnitOfWorkFactory, utc_now
from chordperm.application.use_cases.permission.grant_validation import validate_assignment
from chordperm.domain.entities import CustomRole, PermissionAssignment
from chordperm.domain.exceptions import NotFound, PermissionDenied, ValidationError
from chordperm.domain.value_objects import PermissionAction, ResourceType
from chordperm.infrastructure.permission.engine import PermissionEngine

logger = structlog.get_logger(__name__)


class CreateRoleUseCase:
    """Create a custom role with grants and parent roles."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        permission_checker: PermissionChecker,
        engine: PermissionEngine,
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._engine = engine
        self._clock = clock

    async def execute(
        self,
        actor_id: str,
        name: str,
        permissions: Sequence[PermissionAssignment] = (),
        inherits_from: Sequence[UUID] = (),
        description: str | None = None,
    ) -> CustomRole:
        """Create role. Actor must have role.create."""
        allowed = await self._permission_checker.check(
            actor_id, ResourceType.ROLE, PermissionAction.CREATE
        )
        if not allowed:
            raise PermissionDenied("User may not create roles")

        name = name.strip()
        if not name:
            raise ValidationError("Role name must not be empty")
        now = self._clock()
        for assignment in permissions:
            validate_assignment(self._engine.catalog, assignment, now)

        role_id = uuid4()
        parents = list(dict.fromkeys(inherits_from))
        async with self._uow_factory() as uow:
            if await uow.roles.get_by_name(name):
                raise ValidationError(f"Role {name} already exists")
            for parent_id in parents:
                if not await uow.roles.get_by_id(parent_id):
                    raise NotFound("Role", str(parent_id))
            edges = await uow.roles.list_parent_edges()
            self._engine.ensure_acyclic(role_id, parents, edges)

            role = CustomRole(
                id=role_id,
                name=name,
                permissions=list(permissions),
                inherits_from=parents,
                description=description,
                created_by=actor_id,
                created_at=now,
                updated_at=now,
            )
            await uow.roles.create(role)

        logger.info("role_created", role_id=str(role_id), name=name, actor_id=actor_id)
        return role
