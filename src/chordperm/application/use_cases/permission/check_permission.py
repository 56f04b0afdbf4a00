"""Check permission use case."""

from collections.abc import Mapping
from typing import Any

import structlog

from chordperm.application.dto.decision_result import DecisionResult
from chordperm.application.dto.evaluation_context import EvaluationContext
from chordperm.application.ports import Clock, utc_now
from chordperm.application.use_cases.permission.resolve_permissions import (
    ResolvePermissionsUseCase,
)
from chordperm.domain.exceptions import ChordPermError
from chordperm.domain.value_objects import PermissionAction, PermissionScope, ResourceType
from chordperm.infrastructure.permission.engine import PermissionEngine

logger = structlog.get_logger(__name__)


class CheckPermissionUseCase:
    """Decide whether a subject may perform an action on a resource."""

    def __init__(
        self,
        resolve_permissions: ResolvePermissionsUseCase,
        engine: PermissionEngine,
        clock: Clock = utc_now,
    ) -> None:
        self._resolve_permissions = resolve_permissions
        self._engine = engine
        self._clock = clock

    async def execute(
        self,
        subject_id: str,
        resource: ResourceType,
        action: PermissionAction,
        resource_id: str | None = None,
        scope: PermissionScope | None = None,
        resource_snapshot: Mapping[str, Any] | None = None,
        attributes: Mapping[str, Any] | None = None,
    ) -> DecisionResult:
        """Resolve the subject's permissions and decide. Errors deny."""
        context = EvaluationContext(
            subject_id=subject_id,
            timestamp=self._clock(),
            resource=resource_snapshot,
            attributes=attributes or {},
        )
        try:
            resolved = await self._resolve_permissions.execute(subject_id, context)
        except ChordPermError as exc:
            logger.warning(
                "permission_resolution_failed",
                subject_id=subject_id,
                resource=str(resource),
                action=str(action),
                error=str(exc),
            )
            return DecisionResult.deny(f"permission check failed: {exc}")
        return self._engine.check_permission(
            resolved, resource, action, context, resource_id=resource_id, scope=scope
        )
