"""Assignment collector - gathers candidate grants from every source."""

from collections.abc import Iterable, Mapping, Sequence
from uuid import UUID

import structlog

from chordperm.application.dto.evaluation_context import EvaluationContext
from chordperm.application.ports import PermissionCatalog
from chordperm.domain.entities import (
    CustomRole,
    PermissionAssignment,
    PermissionGroup,
    ResolvedPermission,
)
from chordperm.domain.value_objects import PermissionSource
from chordperm.infrastructure.permission.conditions import ConditionEvaluator
from chordperm.infrastructure.permission.inheritance import ancestors

logger = structlog.get_logger(__name__)


class AssignmentCollector:
    """Turns direct, role, group and inherited assignments into ResolvedPermissions.

    Each surviving assignment is tagged with its source and the fixed source
    priority. Expired assignments, failing conditions, inactive roles/groups
    and permission ids missing from the catalog contribute nothing.
    """

    def __init__(
        self,
        catalog: PermissionCatalog,
        evaluator: ConditionEvaluator | None = None,
    ) -> None:
        self._catalog = catalog
        self._evaluator = evaluator or ConditionEvaluator()

    def collect(
        self,
        subject_id: str,
        direct_assignments: Iterable[PermissionAssignment],
        roles: Sequence[CustomRole],
        groups: Sequence[PermissionGroup],
        context: EvaluationContext,
        *,
        role_index: Mapping[UUID, CustomRole] | None = None,
        group_index: Mapping[UUID, PermissionGroup] | None = None,
    ) -> list[ResolvedPermission]:
        """Collect candidate grants for a subject.

        ``role_index`` resolves parent roles and roles assigned to groups;
        ``group_index`` resolves parent groups. Both default to what was
        passed in ``roles`` / ``groups``.
        """
        if role_index is None:
            role_index = {role.id: role for role in roles}
        if group_index is None:
            group_index = {group.id: group for group in groups}

        candidates: list[ResolvedPermission] = []
        candidates.extend(
            self._convert(direct_assignments, PermissionSource.DIRECT, context, source_id=None)
        )

        active_roles = [role for role in roles if role.is_active]
        for role in active_roles:
            candidates.extend(
                self._convert(role.permissions, PermissionSource.ROLE, context, source_id=role.id)
            )

        group_role_ids: list[UUID] = []
        for group in self._expand_groups(groups, group_index):
            for role_id in group.roles:
                role = role_index.get(role_id)
                if role is None or not role.is_active:
                    logger.debug("group_role_skipped", group_id=str(group.id), role_id=str(role_id))
                    continue
                group_role_ids.append(role_id)
                candidates.extend(
                    self._convert(
                        role.permissions, PermissionSource.GROUP, context, source_id=group.id
                    )
                )

        start_ids = [role.id for role in active_roles] + group_role_ids
        active_edges = {
            role.id: role.inherits_from for role in role_index.values() if role.is_active
        }
        for role in active_roles:
            active_edges.setdefault(role.id, role.inherits_from)
        for ancestor_id in ancestors(list(dict.fromkeys(start_ids)), active_edges):
            ancestor = role_index.get(ancestor_id)
            if ancestor is None or not ancestor.is_active:
                logger.debug("ancestor_role_skipped", role_id=str(ancestor_id))
                continue
            candidates.extend(
                self._convert(
                    ancestor.permissions,
                    PermissionSource.INHERITED,
                    context,
                    source_id=ancestor.id,
                )
            )

        logger.debug("grants_collected", subject_id=subject_id, candidates=len(candidates))
        return candidates

    def _expand_groups(
        self,
        groups: Sequence[PermissionGroup],
        group_index: Mapping[UUID, PermissionGroup],
    ) -> list[PermissionGroup]:
        """Active groups plus their active ancestor groups, each once."""
        expanded: list[PermissionGroup] = []
        seen: set[UUID] = set()
        stack = [group for group in reversed(groups)]
        while stack:
            group = stack.pop()
            if group.id in seen or not group.is_active:
                continue
            seen.add(group.id)
            expanded.append(group)
            for parent_id in reversed(group.parent_groups):
                parent = group_index.get(parent_id)
                if parent is not None:
                    stack.append(parent)
        return expanded

    def _convert(
        self,
        assignments: Iterable[PermissionAssignment],
        source: PermissionSource,
        context: EvaluationContext,
        source_id: UUID | None,
    ) -> list[ResolvedPermission]:
        resolved: list[ResolvedPermission] = []
        for assignment in assignments:
            if not assignment.is_active(context.timestamp):
                continue
            if not self._evaluator.evaluate(assignment.conditions, context):
                continue
            permission = self._catalog.get(assignment.permission_id)
            if permission is None:
                logger.warning(
                    "unknown_permission_skipped",
                    permission_id=str(assignment.permission_id),
                    source=str(source),
                )
                continue
            resolved.append(
                ResolvedPermission(
                    resource=permission.resource,
                    action=permission.action,
                    effect=assignment.effect,
                    scope=permission.scope,
                    source=source,
                    priority=source.priority,
                    resource_id=assignment.resource_id,
                    source_id=source_id,
                )
            )
        return resolved
