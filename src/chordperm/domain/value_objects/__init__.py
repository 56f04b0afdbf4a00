"""Domain value objects."""

from chordperm.domain.value_objects.condition_operator import ConditionOperator
from chordperm.domain.value_objects.permission_action import PermissionAction
from chordperm.domain.value_objects.permission_effect import PermissionEffect
from chordperm.domain.value_objects.permission_scope import PermissionScope
from chordperm.domain.value_objects.permission_source import PermissionSource
from chordperm.domain.value_objects.resource_type import ResourceType

__all__ = [
    "ConditionOperator",
    "PermissionAction",
    "PermissionEffect",
    "PermissionScope",
    "PermissionSource",
    "ResourceType",
]
