"""Conflict resolver - one authoritative grant per permission key."""

from collections.abc import Iterable

from chordperm.domain.entities import ResolvedPermission


def _rank(permission: ResolvedPermission) -> tuple[int, int, int]:
    """Sort key: priority desc, deny before allow, specificity desc."""
    return (-permission.priority, 0 if permission.is_deny else 1, -permission.specificity)


class ConflictResolver:
    """Merges candidate grants sharing resource:action:scope:resourceId."""

    def resolve(self, candidates: Iterable[ResolvedPermission]) -> list[ResolvedPermission]:
        """Pick one winner per key, returned by descending priority.

        Within a key: highest priority wins, then deny beats allow, then the
        more specific grant. Exact ties keep the first candidate seen.
        """
        groups: dict[str, list[ResolvedPermission]] = {}
        for candidate in candidates:
            groups.setdefault(candidate.key, []).append(candidate)

        winners = [min(group, key=_rank) for group in groups.values()]
        return sorted(winners, key=lambda p: -p.priority)
