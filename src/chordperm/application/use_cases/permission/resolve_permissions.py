"""Resolve permissions use case - cache-aside over the permission engine."""

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from uuid import UUID

import structlog

from chordperm.application.dto.evaluation_context import EvaluationContext
from chordperm.application.ports import (
    Clock,
    Generation,
    PermissionCache,
    UnitOfWorkFactory,
    utc_now,
)
from chordperm.domain.entities import (
    CustomRole,
    PermissionAssignment,
    PermissionGroup,
    ResolvedPermission,
    UserPermissionSet,
)
from chordperm.domain.exceptions import CacheUnavailable
from chordperm.infrastructure.permission import inheritance
from chordperm.infrastructure.permission.engine import PermissionEngine

logger = structlog.get_logger(__name__)


class _SubjectGrants:
    """Everything loaded from storage for one resolution."""

    def __init__(
        self,
        direct: list[PermissionAssignment],
        roles: list[CustomRole],
        groups: list[PermissionGroup],
        role_index: dict[UUID, CustomRole],
        group_index: dict[UUID, PermissionGroup],
        role_expiry: datetime | None = None,
    ) -> None:
        self.direct = direct
        self.roles = roles
        self.groups = groups
        self.role_index = role_index
        self.group_index = group_index
        self.role_expiry = role_expiry

    def reachable_assignments(self) -> list[PermissionAssignment]:
        """Direct grants plus grants of every role the subject may reach."""
        group_ids: list[UUID] = []
        pending = [g.id for g in self.groups]
        while pending:
            group_id = pending.pop()
            if group_id in group_ids:
                continue
            group_ids.append(group_id)
            group = self.group_index.get(group_id)
            if group is not None:
                pending.extend(group.parent_groups)

        start = [r.id for r in self.roles]
        for group_id in group_ids:
            group = self.group_index.get(group_id)
            if group is not None:
                start.extend(group.roles)
        edges = {role.id: role.inherits_from for role in self.role_index.values()}
        for role in self.roles:
            edges.setdefault(role.id, role.inherits_from)
        role_ids = list(dict.fromkeys(start)) + inheritance.ancestors(start, edges)

        assignments = list(self.direct)
        for role_id in role_ids:
            role = self.role_index.get(role_id)
            if role is not None:
                assignments.extend(role.permissions)
        return assignments


def cacheable_ttl(
    assignments: Iterable[PermissionAssignment],
    now: datetime,
    default_ttl: timedelta,
    role_expiry: datetime | None = None,
) -> timedelta | None:
    """TTL under which a resolved set stays equal to a fresh resolution.

    None when any grant is conditional; otherwise the default TTL capped at the
    earliest upcoming expiry of a grant or of a role membership.
    """
    ttl = default_ttl
    if role_expiry is not None and role_expiry > now:
        ttl = min(ttl, role_expiry - now)
    for assignment in assignments:
        if assignment.conditions:
            return None
        if assignment.expires_at is not None and assignment.expires_at > now:
            ttl = min(ttl, assignment.expires_at - now)
    return ttl


class ResolvePermissionsUseCase:
    """Compute a subject's effective permissions, served from cache when possible."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        engine: PermissionEngine,
        cache: PermissionCache | None = None,
        cache_ttl: timedelta = timedelta(minutes=5),
        clock: Clock = utc_now,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._engine = engine
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._clock = clock

    async def execute(
        self,
        subject_id: str,
        context: EvaluationContext | None = None,
        use_cache: bool = True,
    ) -> list[ResolvedPermission]:
        """Effective permissions of subject at context.timestamp."""
        context = context or EvaluationContext(subject_id=subject_id, timestamp=self._clock())
        use_cache = use_cache and self._cache is not None

        generation: Generation | None = None
        if use_cache:
            cached = await self._cache_get(subject_id)
            if cached is not None:
                return cached
            generation = await self._cache_generation(subject_id)

        grants = await self._load(subject_id, context.timestamp)
        resolved = self._engine.resolve_permissions(
            subject_id,
            grants.direct,
            grants.roles,
            grants.groups,
            context,
            role_index=grants.role_index,
            group_index=grants.group_index,
        )

        if generation is not None:
            ttl = cacheable_ttl(
                grants.reachable_assignments(),
                context.timestamp,
                self._cache_ttl,
                role_expiry=grants.role_expiry,
            )
            if ttl is None:
                logger.debug("permission_cache_skipped_conditional", subject_id=subject_id)
            else:
                await self._cache_set(subject_id, resolved, ttl, generation)
        return resolved

    async def snapshot(
        self,
        subject_id: str,
        context: EvaluationContext | None = None,
    ) -> UserPermissionSet:
        """Fresh resolution together with the inputs that produced it."""
        context = context or EvaluationContext(subject_id=subject_id, timestamp=self._clock())
        grants = await self._load(subject_id, context.timestamp)
        return self._engine.resolve_permission_set(
            subject_id,
            grants.direct,
            grants.roles,
            grants.groups,
            context,
            role_index=grants.role_index,
            group_index=grants.group_index,
        )

    async def _load(self, subject_id: str, now: datetime) -> _SubjectGrants:
        async with self._uow_factory() as uow:
            direct = await uow.assignments.list_for_subject(subject_id)
            roles = await uow.roles.list_for_subject(subject_id, now)
            role_expiry = await uow.roles.next_expiry_for_subject(subject_id, now)
            all_roles = await uow.roles.list_all()
            groups = await uow.groups.list_for_subject(subject_id)
            all_groups = await uow.groups.list_all()
        return _SubjectGrants(
            direct=direct,
            roles=roles,
            groups=groups,
            role_index=_index(all_roles),
            group_index=_index(all_groups),
            role_expiry=role_expiry,
        )

    async def _cache_get(self, subject_id: str) -> list[ResolvedPermission] | None:
        try:
            return await self._cache.get(subject_id)
        except CacheUnavailable as exc:
            logger.warning("permission_cache_unavailable", subject_id=subject_id, error=str(exc))
            return None

    async def _cache_generation(self, subject_id: str) -> Generation | None:
        try:
            return await self._cache.generation(subject_id)
        except CacheUnavailable as exc:
            logger.warning("permission_cache_unavailable", subject_id=subject_id, error=str(exc))
            return None

    async def _cache_set(
        self,
        subject_id: str,
        resolved: Sequence[ResolvedPermission],
        ttl: timedelta,
        generation: Generation,
    ) -> None:
        try:
            await self._cache.set(subject_id, resolved, ttl, generation=generation)
        except CacheUnavailable as exc:
            logger.warning("permission_cache_unavailable", subject_id=subject_id, error=str(exc))


def _index(items: Iterable) -> dict:
    return {item.id: item for item in items}
