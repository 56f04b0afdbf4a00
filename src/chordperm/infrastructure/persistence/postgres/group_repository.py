"""PostgreSQL permission group repository implementation."""

from collections.abc import Iterable
from uuid import UUID

from psycopg import AsyncConnection

from chordperm.domain.entities import PermissionGroup


class PostgresGroupRepository:
    """Permission group repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def _fetch(self, where: str = "", params: tuple = ()) -> list[PermissionGroup]:
        cur = await self._conn.execute(
            "SELECT g.id, g.name, g.description, g.is_active FROM permission_group g "
            f"{where} ORDER BY g.name",
            params,
        )
        groups = [
            PermissionGroup(id=r[0], name=r[1], description=r[2], is_active=r[3])
            for r in await cur.fetchall()
        ]
        if not groups:
            return groups

        by_id = {group.id: group for group in groups}
        ids = list(by_id)
        cur = await self._conn.execute(
            "SELECT group_id, role_id FROM group_role WHERE group_id = ANY(%s) "
            "ORDER BY group_id, position",
            (ids,),
        )
        for r in await cur.fetchall():
            by_id[r[0]].roles.append(r[1])
        cur = await self._conn.execute(
            "SELECT group_id, parent_id FROM group_inheritance WHERE group_id = ANY(%s) "
            "ORDER BY group_id, position",
            (ids,),
        )
        for r in await cur.fetchall():
            by_id[r[0]].parent_groups.append(r[1])
        cur = await self._conn.execute(
            "SELECT group_id, subject FROM group_member WHERE group_id = ANY(%s) "
            "ORDER BY group_id, subject",
            (ids,),
        )
        for r in await cur.fetchall():
            by_id[r[0]].members.append(r[1])
        return groups

    async def list_all(self) -> list[PermissionGroup]:
        """List all groups."""
        return await self._fetch()

    async def list_for_subject(self, subject_id: str) -> list[PermissionGroup]:
        """Groups subject is a direct member of."""
        return await self._fetch(
            "WHERE EXISTS (SELECT 1 FROM group_member m WHERE m.group_id = g.id "
            "AND m.subject = %s)",
            (subject_id,),
        )

    async def list_members_for_roles(self, role_ids: Iterable[UUID]) -> set[str]:
        """Members of groups granting any of the roles, directly or via a parent group."""
        cur = await self._conn.execute(
            "WITH RECURSIVE granting(id) AS ("
            "  SELECT group_id FROM group_role WHERE role_id = ANY(%s)"
            "  UNION"
            "  SELECT gi.group_id FROM group_inheritance gi"
            "  JOIN granting g ON gi.parent_id = g.id"
            ") "
            "SELECT DISTINCT m.subject FROM group_member m JOIN granting g ON m.group_id = g.id",
            (list(role_ids),),
        )
        return {r[0] for r in await cur.fetchall()}
