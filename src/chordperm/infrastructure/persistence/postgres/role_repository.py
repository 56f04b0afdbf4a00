"""PostgreSQL role repository implementation."""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from psycopg import AsyncConnection

from chordperm.domain.entities import CustomRole
from chordperm.infrastructure.persistence.postgres.rows import (
    ASSIGNMENT_COLUMNS,
    assignment_from_row,
    conditions_to_jsonb,
)

_COLUMNS = (
    "r.id, r.name, r.description, r.is_system, r.is_active, "
    "r.created_by, r.created_at, r.updated_at"
)


class PostgresRoleRepository:
    """Role repository implementation. Grants and parents keep their order."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def _fetch(self, where: str = "", params: tuple = ()) -> list[CustomRole]:
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM custom_role r {where} ORDER BY r.name",
            params,
        )
        rows = await cur.fetchall()
        roles = [
            CustomRole(
                id=r[0],
                name=r[1],
                description=r[2],
                is_system=r[3],
                is_active=r[4],
                created_by=r[5],
                created_at=r[6],
                updated_at=r[7],
            )
            for r in rows
        ]
        if not roles:
            return roles

        by_id = {role.id: role for role in roles}
        ids = list(by_id)
        cur = await self._conn.execute(
            f"SELECT role_id, {ASSIGNMENT_COLUMNS} FROM role_permission "
            "WHERE role_id = ANY(%s) ORDER BY role_id, position",
            (ids,),
        )
        for r in await cur.fetchall():
            by_id[r[0]].permissions.append(assignment_from_row(r[1:]))
        cur = await self._conn.execute(
            "SELECT role_id, parent_id FROM role_inheritance "
            "WHERE role_id = ANY(%s) ORDER BY role_id, position",
            (ids,),
        )
        for r in await cur.fetchall():
            by_id[r[0]].inherits_from.append(r[1])
        return roles

    async def _write_children(self, role: CustomRole) -> None:
        await self._conn.execute("DELETE FROM role_permission WHERE role_id = %s", (role.id,))
        await self._conn.execute("DELETE FROM role_inheritance WHERE role_id = %s", (role.id,))
        for position, a in enumerate(role.permissions):
            await self._conn.execute(
                "INSERT INTO role_permission (role_id, position, permission_id, effect, "
                "conditions, resource_id, expires_at) VALUES (%s, %s, %s, %s, %s, %s, %s)",
                (
                    role.id,
                    position,
                    a.permission_id,
                    str(a.effect),
                    conditions_to_jsonb(a.conditions),
                    a.resource_id,
                    a.expires_at,
                ),
            )
        for position, parent_id in enumerate(role.inherits_from):
            await self._conn.execute(
                "INSERT INTO role_inheritance (role_id, parent_id, position) VALUES (%s, %s, %s)",
                (role.id, parent_id, position),
            )

    async def get_by_id(self, role_id: UUID) -> CustomRole | None:
        """Get role by id."""
        roles = await self._fetch("WHERE r.id = %s", (role_id,))
        return roles[0] if roles else None

    async def get_by_name(self, name: str) -> CustomRole | None:
        """Get role by name."""
        roles = await self._fetch("WHERE r.name = %s", (name,))
        return roles[0] if roles else None

    async def list_all(self) -> list[CustomRole]:
        """List all roles."""
        return await self._fetch()

    async def list_for_subject(self, subject_id: str, now: datetime) -> list[CustomRole]:
        """Roles held by subject whose membership has not expired at now."""
        return await self._fetch(
            "JOIN user_role ur ON ur.role_id = r.id "
            "WHERE ur.subject = %s AND (ur.expires_at IS NULL OR ur.expires_at > %s)",
            (subject_id, now),
        )

    async def next_expiry_for_subject(self, subject_id: str, now: datetime) -> datetime | None:
        """Earliest upcoming expiry among subject's role memberships."""
        cur = await self._conn.execute(
            "SELECT min(expires_at) FROM user_role WHERE subject = %s AND expires_at > %s",
            (subject_id, now),
        )
        r = await cur.fetchone()
        return r[0] if r else None

    async def list_parent_edges(self) -> dict[UUID, list[UUID]]:
        """Role id -> parent role ids, for every role with parents."""
        cur = await self._conn.execute(
            "SELECT role_id, parent_id FROM role_inheritance ORDER BY role_id, position"
        )
        edges: dict[UUID, list[UUID]] = {}
        for r in await cur.fetchall():
            edges.setdefault(r[0], []).append(r[1])
        return edges

    async def list_subjects_for_roles(self, role_ids: Iterable[UUID]) -> set[str]:
        """Subjects holding any of the roles, expired memberships included."""
        cur = await self._conn.execute(
            "SELECT DISTINCT subject FROM user_role WHERE role_id = ANY(%s)",
            (list(role_ids),),
        )
        return {r[0] for r in await cur.fetchall()}

    async def create(self, role: CustomRole) -> CustomRole:
        """Create role."""
        await self._conn.execute(
            "INSERT INTO custom_role (id, name, description, is_system, is_active, "
            "created_by, created_at, updated_at) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)",
            (
                role.id,
                role.name,
                role.description,
                role.is_system,
                role.is_active,
                role.created_by,
                role.created_at,
                role.updated_at,
            ),
        )
        await self._write_children(role)
        return role

    async def update(self, role: CustomRole) -> None:
        """Update role, replacing its grants and parents."""
        await self._conn.execute(
            "UPDATE custom_role SET name=%s, description=%s, is_active=%s, updated_at=%s "
            "WHERE id=%s",
            (role.name, role.description, role.is_active, role.updated_at, role.id),
        )
        await self._write_children(role)

    async def delete(self, role_id: UUID) -> None:
        """Delete role. Grants, edges and memberships cascade."""
        await self._conn.execute("DELETE FROM custom_role WHERE id = %s", (role_id,))

    async def assign_to_subject(
        self,
        subject_id: str,
        role_id: UUID,
        granted_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> None:
        """Give subject the role; reassigning refreshes grantor and expiry."""
        await self._conn.execute(
            "INSERT INTO user_role (subject, role_id, granted_by, expires_at) "
            "VALUES (%s, %s, %s, %s) "
            "ON CONFLICT (subject, role_id) DO UPDATE SET "
            "granted_by = EXCLUDED.granted_by, expires_at = EXCLUDED.expires_at, "
            "granted_at = now()",
            (subject_id, role_id, granted_by, expires_at),
        )

    async def revoke_from_subject(self, subject_id: str, role_id: UUID) -> bool:
        """Remove role from subject. False if subject did not hold it."""
        cur = await self._conn.execute(
            "DELETE FROM user_role WHERE subject = %s AND role_id = %s",
            (subject_id, role_id),
        )
        return cur.rowcount > 0
