"""Permission engine - the functional surface embedded by the application.

Wires catalog, condition evaluator, assignment collector, conflict resolver
and decision engine into one pure pipeline::

    raw grants -> collect (expiry + conditions) -> resolve -> check

Nothing here holds mutable state; one instance may serve any number of
concurrent callers.
"""

from collections.abc import Iterable, Mapping, Sequence
from uuid import UUID

import structlog

from chordperm.application.dto.decision_result import DecisionResult
from chordperm.application.dto.evaluation_context import EvaluationContext
from chordperm.application.ports import PermissionCatalog
from chordperm.domain.entities import (
    CustomRole,
    PermissionAssignment,
    PermissionGroup,
    ResolvedPermission,
    UserPermissionSet,
)
from chordperm.domain.exceptions import ChordPermError
from chordperm.domain.value_objects import PermissionAction, PermissionScope, ResourceType
from chordperm.infrastructure.permission import inheritance
from chordperm.infrastructure.permission.collector import AssignmentCollector
from chordperm.infrastructure.permission.conditions import ConditionEvaluator
from chordperm.infrastructure.permission.decision_engine import DecisionEngine
from chordperm.infrastructure.permission.resolver import ConflictResolver

logger = structlog.get_logger(__name__)


class PermissionEngine:
    """Resolve, check and validate - no I/O, no shared state."""

    def __init__(
        self,
        catalog: PermissionCatalog,
        *,
        evaluator: ConditionEvaluator | None = None,
        resolver: ConflictResolver | None = None,
        decision_engine: DecisionEngine | None = None,
    ) -> None:
        self._catalog = catalog
        self._collector = AssignmentCollector(catalog, evaluator or ConditionEvaluator())
        self._resolver = resolver or ConflictResolver()
        self._decision_engine = decision_engine or DecisionEngine()

    @property
    def catalog(self) -> PermissionCatalog:
        return self._catalog

    def resolve_permissions(
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
        """Effective permissions of a subject: one grant per key."""
        candidates = self._collector.collect(
            subject_id,
            direct_assignments,
            roles,
            groups,
            context,
            role_index=role_index,
            group_index=group_index,
        )
        return self._resolver.resolve(candidates)

    def resolve_permission_set(
        self,
        subject_id: str,
        direct_assignments: Sequence[PermissionAssignment],
        roles: Sequence[CustomRole],
        groups: Sequence[PermissionGroup],
        context: EvaluationContext,
        *,
        role_index: Mapping[UUID, CustomRole] | None = None,
        group_index: Mapping[UUID, PermissionGroup] | None = None,
    ) -> UserPermissionSet:
        """Resolve and keep the inputs alongside the result."""
        effective = self.resolve_permissions(
            subject_id,
            direct_assignments,
            roles,
            groups,
            context,
            role_index=role_index,
            group_index=group_index,
        )
        return UserPermissionSet(
            subject_id=subject_id,
            evaluated_at=context.timestamp,
            role_ids=[role.id for role in roles if role.is_system],
            custom_role_ids=[role.id for role in roles if not role.is_system],
            group_ids=[group.id for group in groups],
            direct_permissions=list(direct_assignments),
            effective_permissions=effective,
        )

    def check_permission(
        self,
        resolved: Iterable[ResolvedPermission],
        resource: ResourceType,
        action: PermissionAction,
        context: EvaluationContext,
        resource_id: str | None = None,
        scope: PermissionScope | None = None,
    ) -> DecisionResult:
        """Allow/deny verdict. Any engine error resolves to a denial."""
        try:
            return self._decision_engine.check(
                resolved, resource, action, context, resource_id=resource_id, scope=scope
            )
        except ChordPermError as exc:
            logger.warning(
                "permission_check_failed",
                subject_id=context.subject_id,
                resource=str(resource),
                action=str(action),
                error=str(exc),
            )
            return DecisionResult.deny(f"permission check failed: {exc}")

    def validate_inheritance(
        self,
        role_id: UUID,
        proposed_parents: Sequence[UUID],
        all_role_parents: Mapping[UUID, Sequence[UUID]],
    ) -> bool:
        """True when the role may take these parents without creating a cycle."""
        return inheritance.validate_inheritance(role_id, proposed_parents, all_role_parents)

    def ensure_acyclic(
        self,
        role_id: UUID,
        proposed_parents: Sequence[UUID],
        all_role_parents: Mapping[UUID, Sequence[UUID]],
    ) -> None:
        """Raise CircularInheritance when the parents would create a cycle."""
        inheritance.ensure_acyclic(role_id, proposed_parents, all_role_parents)

    def descendants(
        self,
        role_id: UUID,
        all_role_parents: Mapping[UUID, Sequence[UUID]],
    ) -> set[UUID]:
        """Roles that inherit from role_id, directly or transitively."""
        return inheritance.descendants(role_id, all_role_parents)
