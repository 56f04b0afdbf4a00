"""Subjects whose permissions depend on a role."""

from uuid import UUID

from chordperm.application.ports import UnitOfWork
from chordperm.infrastructure.permission.engine import PermissionEngine


async def subjects_affected_by_role(
    uow: UnitOfWork,
    engine: PermissionEngine,
    role_id: UUID,
) -> set[str]:
    """Holders of the role or of any role inheriting from it, plus members of
    groups that grant one of those roles."""
    edges = await uow.roles.list_parent_edges()
    role_ids = {role_id} | engine.descendants(role_id, edges)
    subjects = await uow.roles.list_subjects_for_roles(role_ids)
    subjects |= await uow.groups.list_members_for_roles(role_ids)
    return subjects
