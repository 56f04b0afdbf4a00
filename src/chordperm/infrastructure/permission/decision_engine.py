"""Decision engine - point-in-time allow/deny checks over resolved grants."""

from collections.abc import Iterable

import structlog

from chordperm.application.dto.decision_result import DecisionResult
from chordperm.application.dto.evaluation_context import EvaluationContext
from chordperm.domain.entities import ResolvedPermission
from chordperm.domain.value_objects import PermissionAction, PermissionScope, ResourceType

logger = structlog.get_logger(__name__)

# Resource snapshot fields that identify the owner/creator.
OWNERSHIP_FIELDS = ("created_by", "owner_id", "user_id")


def is_owner(context: EvaluationContext) -> bool:
    """True when the context's resource snapshot belongs to the subject."""
    if not context.subject_id or not context.resource:
        return False
    return any(context.resource.get(field) == context.subject_id for field in OWNERSHIP_FIELDS)


def matches_scope(
    permission: ResolvedPermission,
    context: EvaluationContext,
    resource_id: str | None,
) -> bool:
    """Whether a grant's scope applies to the requested resource."""
    if permission.scope in (PermissionScope.GLOBAL, PermissionScope.TYPE):
        return True
    if permission.scope == PermissionScope.RESOURCE:
        return resource_id is not None and permission.resource_id == resource_id
    if permission.scope == PermissionScope.OWN:
        return is_owner(context)
    return False


class DecisionEngine:
    """Answers "may the subject do action on resource" from a resolved set."""

    def check(
        self,
        resolved: Iterable[ResolvedPermission],
        resource: ResourceType,
        action: PermissionAction,
        context: EvaluationContext,
        resource_id: str | None = None,
        scope: PermissionScope | None = None,
    ) -> DecisionResult:
        """Most specific matching grant decides; priority breaks ties.

        An allow also reports the most specific conflicting deny for audit.
        """
        candidates = [
            p
            for p in resolved
            if p.resource == resource
            and p.action == action
            and (scope is None or p.scope == scope)
            and matches_scope(p, context, resource_id)
        ]
        if not candidates:
            result = DecisionResult.deny(f"no matching permission for {resource}.{action}")
            logger.debug(
                "permission_checked",
                subject_id=context.subject_id,
                resource=str(resource),
                action=str(action),
                allowed=False,
            )
            return result

        ranked = sorted(candidates, key=lambda p: (-p.specificity, -p.priority))
        matched = ranked[0]
        if matched.is_deny:
            result = DecisionResult.deny(
                f"explicitly denied by {matched.source} grant", denied_by=matched
            )
        else:
            result = DecisionResult(
                allowed=True,
                reason=f"allowed by {matched.source} grant",
                matched_permission=matched,
                denied_by=next((p for p in ranked if p.is_deny), None),
            )
        logger.debug(
            "permission_checked",
            subject_id=context.subject_id,
            resource=str(resource),
            action=str(action),
            resource_id=resource_id,
            allowed=result.allowed,
            source=str(matched.source),
        )
        return result
