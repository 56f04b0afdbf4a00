"""Decision result DTO."""

from dataclasses import dataclass

from chordperm.domain.entities import ResolvedPermission


@dataclass(frozen=True)
class DecisionResult:
    """Allow/deny verdict with the grants that justify it."""

    allowed: bool
    reason: str | None = None
    matched_permission: ResolvedPermission | None = None
    denied_by: ResolvedPermission | None = None

    @classmethod
    def deny(cls, reason: str, denied_by: ResolvedPermission | None = None) -> "DecisionResult":
        return cls(allowed=False, reason=reason, denied_by=denied_by)
