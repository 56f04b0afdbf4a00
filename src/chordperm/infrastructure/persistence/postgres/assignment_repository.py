"""PostgreSQL direct assignment repository implementation."""

from uuid import UUID

from psycopg import AsyncConnection

from chordperm.domain.entities import PermissionAssignment
from chordperm.infrastructure.persistence.postgres.rows import (
    ASSIGNMENT_COLUMNS,
    assignment_from_row,
    conditions_to_jsonb,
)


class PostgresAssignmentRepository:
    """Direct (user) permission repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def list_for_subject(self, subject_id: str) -> list[PermissionAssignment]:
        """List grants of subject in the order they were made."""
        cur = await self._conn.execute(
            f"SELECT {ASSIGNMENT_COLUMNS} FROM user_permission "
            "WHERE subject = %s ORDER BY granted_at, id",
            (subject_id,),
        )
        rows = await cur.fetchall()
        return [assignment_from_row(r) for r in rows]

    async def grant(
        self,
        subject_id: str,
        assignment: PermissionAssignment,
        granted_by: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Create grant, replacing one for the same permission and resource."""
        await self._conn.execute(
            "DELETE FROM user_permission WHERE subject = %s AND permission_id = %s "
            "AND resource_id IS NOT DISTINCT FROM %s",
            (subject_id, assignment.permission_id, assignment.resource_id),
        )
        await self._conn.execute(
            "INSERT INTO user_permission (id, subject, permission_id, effect, conditions, "
            "resource_id, expires_at, granted_by, reason) "
            "VALUES (gen_random_uuid(), %s, %s, %s, %s, %s, %s, %s, %s)",
            (
                subject_id,
                assignment.permission_id,
                str(assignment.effect),
                conditions_to_jsonb(assignment.conditions),
                assignment.resource_id,
                assignment.expires_at,
                granted_by,
                reason,
            ),
        )

    async def revoke(
        self,
        subject_id: str,
        permission_id: UUID,
        resource_id: str | None = None,
    ) -> bool:
        """Delete grant. False if there was none."""
        cur = await self._conn.execute(
            "DELETE FROM user_permission WHERE subject = %s AND permission_id = %s "
            "AND resource_id IS NOT DISTINCT FROM %s",
            (subject_id, permission_id, resource_id),
        )
        return cur.rowcount > 0
