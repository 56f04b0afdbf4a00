"""Validation of permission grants before they are stored."""

from datetime import datetime

from chordperm.application.ports import PermissionCatalog
from chordperm.domain.entities import Permission, PermissionAssignment
from chordperm.domain.exceptions import ValidationError
from chordperm.domain.value_objects import ConditionOperator, PermissionScope


def validate_assignment(
    catalog: PermissionCatalog,
    assignment: PermissionAssignment,
    now: datetime,
) -> Permission:
    """Check a grant against the catalog and return its permission.

    Only resource-scoped permissions may be bound to a resource id, and they
    must be. Raises UnknownPermission or ValidationError.
    """
    permission = catalog.require(assignment.permission_id)
    if permission.scope == PermissionScope.RESOURCE and assignment.resource_id is None:
        raise ValidationError(f"Permission {permission.name} requires a resource id")
    if permission.scope != PermissionScope.RESOURCE and assignment.resource_id is not None:
        raise ValidationError(
            f"Permission {permission.name} has {permission.scope} scope and cannot be "
            "bound to a resource id"
        )
    for condition in assignment.conditions:
        if condition.operator not in set(ConditionOperator):
            raise ValidationError(f"Unknown condition operator: {condition.operator}")
    if assignment.expires_at is not None and assignment.expires_at <= now:
        raise ValidationError("Expiry must be in the future")
    return permission
