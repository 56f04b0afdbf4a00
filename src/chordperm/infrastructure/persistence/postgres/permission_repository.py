"""PostgreSQL permission (catalog) repository implementation."""

from uuid import UUID

from psycopg import AsyncConnection

from chordperm.domain.entities import Permission
from chordperm.domain.value_objects import PermissionAction, PermissionScope, ResourceType

_COLUMNS = "id, name, resource, action, scope, description"


def _to_permission(r: tuple) -> Permission:
    return Permission(
        id=r[0],
        name=r[1],
        resource=ResourceType(r[2]),
        action=PermissionAction(r[3]),
        scope=PermissionScope(r[4]),
        description=r[5],
    )


class PostgresPermissionRepository:
    """Permission repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get_by_id(self, permission_id: UUID) -> Permission | None:
        """Get permission by id."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM permission WHERE id = %s",
            (permission_id,),
        )
        r = await cur.fetchone()
        if not r:
            return None
        return _to_permission(r)

    async def list_all(self) -> list[Permission]:
        """List all permissions."""
        cur = await self._conn.execute(f"SELECT {_COLUMNS} FROM permission ORDER BY name")
        rows = await cur.fetchall()
        return [_to_permission(r) for r in rows]
