"""Origin of a resolved grant."""

from enum import StrEnum


class PermissionSource(StrEnum):
    """Where a grant came from. Ordered by priority."""

    DIRECT = "direct"
    ROLE = "role"
    GROUP = "group"
    INHERITED = "inherited"

    @property
    def priority(self) -> int:
        """Fixed tie-break weight: direct > role > group > inherited."""
        return _SOURCE_PRIORITIES[self]


_SOURCE_PRIORITIES = {
    PermissionSource.DIRECT: 1000,
    PermissionSource.ROLE: 800,
    PermissionSource.GROUP: 600,
    PermissionSource.INHERITED: 400,
}
