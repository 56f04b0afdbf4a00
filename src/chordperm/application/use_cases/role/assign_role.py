"""Assign role use case."""

from datetime import datetime
from uuid import UUID

from chordperm.application.ports import (
    Clock,
    PermissionCache,
    PermissionChecker,
    UnitOfWorkFactory,
    utc_now,
)
from chordperm.application.use_cases.cache_invalidation import invalidate_subjects
from chordperm.domain.exceptions import NotFound, PermissionDenied, ValidationError
from chordperm.domain.value_objects import PermissionAction, ResourceType


class AssignRoleUseCase:
    """Give a subject a role, optionally until a point in time."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        permission_checker: PermissionChecker,
        cache: PermissionCache | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._cache = cache
        self._clock = clock

    async def execute(
        self,
        actor_id: str,
        subject_id: str,
        role_id: UUID,
        expires_at: datetime | None = None,
    ) -> None:
        """Assign role to subject. Actor must have user.assign_role."""
        allowed = await self._permission_checker.check(
            actor_id, ResourceType.USER, PermissionAction.ASSIGN_ROLE, resource_id=subject_id
        )
        if not allowed:
            raise PermissionDenied("User may not assign roles")
        if expires_at is not None and expires_at <= self._clock():
            raise ValidationError("Expiry must be in the future")

        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id)
            if not role:
                raise NotFound("Role", str(role_id))
            if not role.is_active:
                raise ValidationError(f"Role {role.name} is inactive")
            await uow.roles.assign_to_subject(
                subject_id, role_id, granted_by=actor_id, expires_at=expires_at
            )

        await invalidate_subjects(self._cache, [subject_id])
