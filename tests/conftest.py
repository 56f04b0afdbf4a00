"""Pytest fixtures for chordperm tests."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from chordperm.application.dto.evaluation_context import EvaluationContext
from chordperm.domain.entities import (
    CustomRole,
    Permission,
    PermissionAssignment,
    PermissionGroup,
)
from chordperm.domain.value_objects import (
    PermissionAction,
    PermissionEffect,
    PermissionScope,
    ResourceType,
)
from chordperm.infrastructure.permission.catalog import InMemoryPermissionCatalog
from chordperm.infrastructure.permission.engine import PermissionEngine

NOW = datetime(2025, 1, 25, 12, 0, tzinfo=UTC)


# --- Clock ---


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


# --- Builders ---


def make_permission(
    resource: ResourceType = ResourceType.SONG,
    action: PermissionAction = PermissionAction.UPDATE,
    scope: PermissionScope = PermissionScope.TYPE,
) -> Permission:
    return Permission(
        id=uuid4(),
        name=f"{resource}.{action}.{scope}",
        resource=resource,
        action=action,
        scope=scope,
    )


def allow(permission: Permission, **kwargs) -> PermissionAssignment:
    return PermissionAssignment(permission_id=permission.id, effect=PermissionEffect.ALLOW, **kwargs)


def deny(permission: Permission, **kwargs) -> PermissionAssignment:
    return PermissionAssignment(permission_id=permission.id, effect=PermissionEffect.DENY, **kwargs)


def make_role(name: str, *assignments: PermissionAssignment, **kwargs) -> CustomRole:
    return CustomRole(id=uuid4(), name=name, permissions=list(assignments), **kwargs)


def make_context(subject_id: str = "user-1", **kwargs) -> EvaluationContext:
    kwargs.setdefault("timestamp", NOW)
    return EvaluationContext(subject_id=subject_id, **kwargs)


# --- Fake repositories ---


class FakePermissionRepository:
    """In-memory permission catalog repository."""

    def __init__(self) -> None:
        self._by_id: dict[UUID, Permission] = {}

    async def get_by_id(self, permission_id: UUID) -> Permission | None:
        return self._by_id.get(permission_id)

    async def list_all(self) -> list[Permission]:
        return list(self._by_id.values())

    def add(self, *permissions: Permission) -> None:
        """Helper to add permissions for tests."""
        for permission in permissions:
            self._by_id[permission.id] = permission


class FakeRoleRepository:
    """In-memory role repository with subject memberships."""

    def __init__(self) -> None:
        self._by_id: dict[UUID, CustomRole] = {}
        # subject -> role_id -> expires_at
        self._members: dict[str, dict[UUID, datetime | None]] = {}

    async def get_by_id(self, role_id: UUID) -> CustomRole | None:
        return self._by_id.get(role_id)

    async def get_by_name(self, name: str) -> CustomRole | None:
        for role in self._by_id.values():
            if role.name == name:
                return role
        return None

    async def list_all(self) -> list[CustomRole]:
        return list(self._by_id.values())

    async def list_for_subject(self, subject_id: str, now: datetime) -> list[CustomRole]:
        return [
            self._by_id[role_id]
            for role_id, expires_at in self._members.get(subject_id, {}).items()
            if role_id in self._by_id and (expires_at is None or expires_at > now)
        ]

    async def next_expiry_for_subject(self, subject_id: str, now: datetime) -> datetime | None:
        upcoming = [
            expires_at
            for expires_at in self._members.get(subject_id, {}).values()
            if expires_at is not None and expires_at > now
        ]
        return min(upcoming, default=None)

    async def list_parent_edges(self) -> dict[UUID, list[UUID]]:
        return {
            role.id: list(role.inherits_from)
            for role in self._by_id.values()
            if role.inherits_from
        }

    async def list_subjects_for_roles(self, role_ids: Iterable[UUID]) -> set[str]:
        wanted = set(role_ids)
        return {
            subject for subject, roles in self._members.items() if wanted & set(roles)
        }

    async def create(self, role: CustomRole) -> CustomRole:
        self._by_id[role.id] = role
        return role

    async def update(self, role: CustomRole) -> None:
        self._by_id[role.id] = role

    async def delete(self, role_id: UUID) -> None:
        self._by_id.pop(role_id, None)
        for roles in self._members.values():
            roles.pop(role_id, None)
        for role in self._by_id.values():
            if role_id in role.inherits_from:
                role.inherits_from.remove(role_id)

    async def assign_to_subject(
        self,
        subject_id: str,
        role_id: UUID,
        granted_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> None:
        self._members.setdefault(subject_id, {})[role_id] = expires_at

    async def revoke_from_subject(self, subject_id: str, role_id: UUID) -> bool:
        return self._members.get(subject_id, {}).pop(role_id, False) is not False

    def add_role(self, role: CustomRole, *subjects: str) -> None:
        """Helper to add role (and holders) for tests."""
        self._by_id[role.id] = role
        for subject in subjects:
            self._members.setdefault(subject, {})[role.id] = None


class FakeAssignmentRepository:
    """In-memory direct grant repository."""

    def __init__(self) -> None:
        self._by_subject: dict[str, list[PermissionAssignment]] = {}
        self.granted_by: dict[tuple[str, UUID], str | None] = {}

    async def list_for_subject(self, subject_id: str) -> list[PermissionAssignment]:
        return list(self._by_subject.get(subject_id, []))

    async def grant(
        self,
        subject_id: str,
        assignment: PermissionAssignment,
        granted_by: str | None = None,
        reason: str | None = None,
    ) -> None:
        await self.revoke(subject_id, assignment.permission_id, assignment.resource_id)
        self._by_subject.setdefault(subject_id, []).append(assignment)
        self.granted_by[(subject_id, assignment.permission_id)] = granted_by

    async def revoke(
        self,
        subject_id: str,
        permission_id: UUID,
        resource_id: str | None = None,
    ) -> bool:
        current = self._by_subject.get(subject_id, [])
        kept = [
            a
            for a in current
            if not (a.permission_id == permission_id and a.resource_id == resource_id)
        ]
        self._by_subject[subject_id] = kept
        return len(kept) != len(current)


class FakeGroupRepository:
    """In-memory permission group repository."""

    def __init__(self) -> None:
        self._by_id: dict[UUID, PermissionGroup] = {}

    async def list_all(self) -> list[PermissionGroup]:
        return list(self._by_id.values())

    async def list_for_subject(self, subject_id: str) -> list[PermissionGroup]:
        return [g for g in self._by_id.values() if subject_id in g.members]

    async def list_members_for_roles(self, role_ids: Iterable[UUID]) -> set[str]:
        wanted = set(role_ids)
        granting = {g.id for g in self._by_id.values() if wanted & set(g.roles)}
        changed = True
        while changed:
            changed = False
            for group in self._by_id.values():
                if group.id not in granting and granting & set(group.parent_groups):
                    granting.add(group.id)
                    changed = True
        return {m for g in self._by_id.values() if g.id in granting for m in g.members}

    def add_group(self, group: PermissionGroup) -> None:
        """Helper to add group for tests."""
        self._by_id[group.id] = group


# --- Fake UnitOfWork ---


class FakeUnitOfWork:
    """In-memory Unit of Work with fake repositories."""

    def __init__(self) -> None:
        self.permissions = FakePermissionRepository()
        self.roles = FakeRoleRepository()
        self.assignments = FakeAssignmentRepository()
        self.groups = FakeGroupRepository()
        self.commits = 0

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        pass


def make_uow_factory(uow: FakeUnitOfWork):
    """Factory yielding the same FakeUnitOfWork, so state survives between calls."""

    @asynccontextmanager
    async def factory() -> AsyncIterator[FakeUnitOfWork]:
        yield uow
        await uow.commit()

    return factory


# --- Fixtures ---


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_uow() -> FakeUnitOfWork:
    """Fresh in-memory UnitOfWork for each test."""
    return FakeUnitOfWork()


@pytest.fixture
def uow_factory(fake_uow: FakeUnitOfWork):
    """Factory returning async context manager with the test's FakeUnitOfWork."""
    return make_uow_factory(fake_uow)


@pytest.fixture
def song_update() -> Permission:
    return make_permission(ResourceType.SONG, PermissionAction.UPDATE, PermissionScope.TYPE)


@pytest.fixture
def song_update_resource() -> Permission:
    return make_permission(ResourceType.SONG, PermissionAction.UPDATE, PermissionScope.RESOURCE)


@pytest.fixture
def admin_permissions() -> list[Permission]:
    """Permissions the admin workflows check for."""
    return [
        make_permission(ResourceType.USER, action, PermissionScope.GLOBAL)
        for action in (
            PermissionAction.UPDATE,
            PermissionAction.ASSIGN_ROLE,
            PermissionAction.REVOKE_ROLE,
        )
    ] + [
        make_permission(ResourceType.ROLE, action, PermissionScope.GLOBAL)
        for action in (PermissionAction.CREATE, PermissionAction.UPDATE, PermissionAction.DELETE)
    ]


@pytest.fixture
def catalog(song_update, song_update_resource, admin_permissions) -> InMemoryPermissionCatalog:
    return InMemoryPermissionCatalog([song_update, song_update_resource, *admin_permissions])


@pytest.fixture
def engine(catalog: InMemoryPermissionCatalog) -> PermissionEngine:
    return PermissionEngine(catalog)


@pytest.fixture
def mock_permission_checker():
    """AsyncMock for PermissionChecker - returns True by default."""
    from unittest.mock import AsyncMock

    mock = AsyncMock()
    mock.check.return_value = True
    return mock
