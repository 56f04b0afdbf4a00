"""Unit tests for the conflict resolver."""

import random

from chordperm.domain.entities import ResolvedPermission
from chordperm.domain.value_objects import (
    PermissionAction,
    PermissionEffect,
    PermissionScope,
    PermissionSource,
    ResourceType,
)
from chordperm.infrastructure.permission.resolver import ConflictResolver

resolver = ConflictResolver()


def _grant(
    effect: PermissionEffect,
    source: PermissionSource,
    scope: PermissionScope = PermissionScope.TYPE,
    resource_id: str | None = None,
    action: PermissionAction = PermissionAction.UPDATE,
) -> ResolvedPermission:
    return ResolvedPermission(
        resource=ResourceType.SONG,
        action=action,
        effect=effect,
        scope=scope,
        source=source,
        priority=source.priority,
        resource_id=resource_id,
    )


def test_key_and_specificity() -> None:
    """Key joins resource, action, scope and resource id; specificity adds up."""
    g = _grant(PermissionEffect.ALLOW, PermissionSource.ROLE)
    r = _grant(PermissionEffect.ALLOW, PermissionSource.ROLE, PermissionScope.RESOURCE, "s1")
    assert g.key == "song:update:type:global"
    assert r.key == "song:update:resource:s1"
    assert g.specificity == 10
    assert r.specificity == 130


def test_higher_priority_wins() -> None:
    """A direct allow beats a role deny on the same key."""
    winner = _grant(PermissionEffect.ALLOW, PermissionSource.DIRECT)
    result = resolver.resolve([_grant(PermissionEffect.DENY, PermissionSource.ROLE), winner])
    assert result == [winner]


def test_deny_wins_priority_tie() -> None:
    """On equal priority deny beats allow, whatever the order."""
    a = _grant(PermissionEffect.ALLOW, PermissionSource.ROLE)
    d = _grant(PermissionEffect.DENY, PermissionSource.ROLE)
    assert resolver.resolve([a, d]) == [d]
    assert resolver.resolve([d, a]) == [d]


def test_one_winner_per_key_sorted_by_priority() -> None:
    """Distinct keys survive independently, highest priority first."""
    inherited = _grant(PermissionEffect.ALLOW, PermissionSource.INHERITED, action=PermissionAction.READ)
    direct = _grant(PermissionEffect.ALLOW, PermissionSource.DIRECT, PermissionScope.RESOURCE, "s1")
    group = _grant(PermissionEffect.DENY, PermissionSource.GROUP)
    result = resolver.resolve([inherited, group, direct])
    assert result == [direct, group, inherited]
    assert len({p.key for p in result}) == len(result)


def test_resolution_is_order_independent() -> None:
    """Shuffling candidates does not change the outcome."""
    candidates = [
        _grant(effect, source, scope, "s1" if scope == PermissionScope.RESOURCE else None)
        for effect in PermissionEffect
        for source in PermissionSource
        for scope in (PermissionScope.TYPE, PermissionScope.RESOURCE)
    ]
    expected = set(resolver.resolve(candidates))
    rng = random.Random(7)
    for _ in range(10):
        shuffled = candidates[:]
        rng.shuffle(shuffled)
        assert set(resolver.resolve(shuffled)) == expected
    assert {(p.scope, p.source, p.effect) for p in expected} == {
        (PermissionScope.TYPE, PermissionSource.DIRECT, PermissionEffect.DENY),
        (PermissionScope.RESOURCE, PermissionSource.DIRECT, PermissionEffect.DENY),
    }


def test_empty_input() -> None:
    assert resolver.resolve([]) == []
