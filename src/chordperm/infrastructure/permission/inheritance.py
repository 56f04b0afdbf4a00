"""Role inheritance graph validation.

The inheritance relation is a directed graph child -> parents and must stay
acyclic. Every function here is pure: edge snapshots go in, answers come out.
"""

from collections.abc import Iterable, Mapping, Sequence
from uuid import UUID

from chordperm.domain.exceptions import CircularInheritance

Edges = Mapping[UUID, Sequence[UUID]]


def would_create_cycle(
    candidate_role_id: UUID,
    proposed_parent_ids: Sequence[UUID],
    all_edges: Edges,
) -> bool:
    """Return True if giving the candidate these parents closes a cycle.

    The candidate's current edges in ``all_edges`` are replaced by the
    proposed ones. A traversal from each proposed parent that reaches the
    candidate means the candidate would inherit from itself.
    """
    if candidate_role_id in proposed_parent_ids:
        return True

    visited: set[UUID] = set()
    stack = list(proposed_parent_ids)
    while stack:
        current = stack.pop()
        if current == candidate_role_id:
            return True
        if current in visited:
            continue
        visited.add(current)
        stack.extend(all_edges.get(current, ()))
    return False


def validate_inheritance(
    role_id: UUID,
    proposed_parent_ids: Sequence[UUID],
    all_role_parents: Edges,
) -> bool:
    """True when the proposed parent list keeps the role graph acyclic."""
    return not would_create_cycle(role_id, proposed_parent_ids, all_role_parents)


def ensure_acyclic(
    role_id: UUID,
    proposed_parent_ids: Sequence[UUID],
    all_role_parents: Edges,
) -> None:
    """Raise CircularInheritance if the proposed parents would close a cycle."""
    if would_create_cycle(role_id, proposed_parent_ids, all_role_parents):
        raise CircularInheritance(role_id, proposed_parent_ids)


def ancestors(role_ids: Iterable[UUID], edges: Edges) -> list[UUID]:
    """Transitive parents of the given roles, in discovery order.

    The starting roles themselves are never returned. Tolerates cycles in
    the snapshot.
    """
    starts = list(role_ids)
    start_set = set(starts)
    seen: set[UUID] = set()
    ordered: list[UUID] = []
    stack = [parent for role_id in reversed(starts) for parent in reversed(edges.get(role_id, ()))]
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        if current not in start_set:
            ordered.append(current)
        stack.extend(reversed(edges.get(current, ())))
    return ordered


def descendants(role_id: UUID, edges: Edges) -> set[UUID]:
    """Roles that (transitively) inherit from ``role_id``."""
    children: dict[UUID, list[UUID]] = {}
    for child, parents in edges.items():
        for parent in parents:
            children.setdefault(parent, []).append(child)

    found: set[UUID] = set()
    stack = list(children.get(role_id, ()))
    while stack:
        current = stack.pop()
        if current in found or current == role_id:
            continue
        found.add(current)
        stack.extend(children.get(current, ()))
    return found
