"""Breadth of a grant."""

from enum import StrEnum


class PermissionScope(StrEnum):
    """Scope of a permission, from broadest to narrowest."""

    GLOBAL = "global"
    TYPE = "type"
    RESOURCE = "resource"
    OWN = "own"

    @property
    def weight(self) -> int:
        """Specificity contribution of the scope."""
        return _SCOPE_WEIGHTS[self]


_SCOPE_WEIGHTS = {
    PermissionScope.RESOURCE: 30,
    PermissionScope.OWN: 20,
    PermissionScope.TYPE: 10,
    PermissionScope.GLOBAL: 0,
}
