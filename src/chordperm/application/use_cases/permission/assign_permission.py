"""Assign permission use case."""

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from chordperm.application.ports import (
    Clock,
    PermissionCache,
    PermissionCatalog,
    PermissionChecker,
    UnitOfWorkFactory,
    utc_now,
)
from chordperm.application.use_cases.cache_invalidation import invalidate_subjects
from chordperm.application.use_cases.permission.grant_validation import validate_assignment
from chordperm.domain.entities import PermissionAssignment, PermissionCondition
from chordperm.domain.exceptions import PermissionDenied
from chordperm.domain.value_objects import PermissionAction, PermissionEffect, ResourceType


class AssignPermissionUseCase:
    """Grant a catalog permission directly to a subject."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        permission_checker: PermissionChecker,
        catalog: PermissionCatalog,
        cache: PermissionCache | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._permission_checker = permission_checker
        self._catalog = catalog
        self._cache = cache
        self._clock = clock

    async def execute(
        self,
        actor_id: str,
        subject_id: str,
        permission_id: UUID,
        effect: PermissionEffect = PermissionEffect.ALLOW,
        resource_id: str | None = None,
        conditions: Sequence[PermissionCondition] = (),
        expires_at: datetime | None = None,
        reason: str | None = None,
    ) -> PermissionAssignment:
        """Grant permission to subject. Actor must be allowed to update users."""
        allowed = await self._permission_checker.check(
            actor_id, ResourceType.USER, PermissionAction.UPDATE, resource_id=subject_id
        )
        if not allowed:
            raise PermissionDenied("User may not change permissions of other users")

        assignment = PermissionAssignment(
            permission_id=permission_id,
            effect=effect,
            conditions=tuple(conditions),
            resource_id=resource_id,
            expires_at=expires_at,
        )
        validate_assignment(self._catalog, assignment, self._clock())

        async with self._uow_factory() as uow:
            await uow.assignments.grant(subject_id, assignment, granted_by=actor_id, reason=reason)

        await invalidate_subjects(self._cache, [subject_id])
        return assignment
