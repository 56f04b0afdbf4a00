"""Domain exceptions."""

from collections.abc import Sequence
from uuid import UUID


class ChordPermError(Exception):
    """Base exception for chordperm."""

    pass


class PermissionDenied(ChordPermError):
    """Actor does not have permission for the requested action."""

    pass


class NotFound(ChordPermError):
    """Requested entity was not found."""

    pass


class ValidationError(ChordPermError):
    """Validation failed for input data."""

    pass


class UnknownPermission(ChordPermError):
    """Permission id is not present in the catalog."""

    pass


class SystemRoleImmutable(ChordPermError):
    """System roles cannot be modified or deleted."""

    pass


class CircularInheritance(ChordPermError):
    """Role mutation would make a role (transitively) inherit from itself."""

    def __init__(self, role_id: UUID, parent_ids: Sequence[UUID]) -> None:
        self.role_id = role_id
        self.parent_ids = tuple(parent_ids)
        super().__init__(f"Role {role_id} cannot inherit from {list(map(str, parent_ids))}: cycle")


class InvalidCondition(ChordPermError):
    """Condition has an unknown operator or an unusable field path."""

    pass


class CacheUnavailable(ChordPermError):
    """Cache backend cannot be reached."""

    pass


class StaleCacheVersion(ChordPermError):
    """Cache entry was written under another schema version."""

    def __init__(self, subject_id: str, found: int, expected: int) -> None:
        self.subject_id = subject_id
        self.found = found
        self.expected = expected
        super().__init__(
            f"Cache entry for {subject_id} has version {found}, expected {expected}"
        )
