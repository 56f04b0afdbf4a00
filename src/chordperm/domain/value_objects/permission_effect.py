"""Grant effect."""

from enum import StrEnum


class PermissionEffect(StrEnum):
    """Outcome carried by a grant."""

    ALLOW = "allow"
    DENY = "deny"
