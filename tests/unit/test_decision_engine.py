"""Unit tests for the decision engine."""

from chordperm.domain.entities import ResolvedPermission
from chordperm.domain.value_objects import (
    PermissionAction,
    PermissionEffect,
    PermissionScope,
    PermissionSource,
    ResourceType,
)
from chordperm.infrastructure.permission.decision_engine import DecisionEngine, is_owner

from tests.conftest import make_context

engine = DecisionEngine()
SONG, UPDATE = ResourceType.SONG, PermissionAction.UPDATE


def _grant(
    effect: PermissionEffect,
    scope: PermissionScope,
    source: PermissionSource = PermissionSource.ROLE,
    resource_id: str | None = None,
) -> ResolvedPermission:
    return ResolvedPermission(
        resource=SONG,
        action=UPDATE,
        effect=effect,
        scope=scope,
        source=source,
        priority=source.priority,
        resource_id=resource_id,
    )


def test_no_matching_grant_denies_with_reason() -> None:
    """Nothing applicable means deny."""
    result = engine.check([], SONG, UPDATE, make_context())
    assert not result.allowed
    assert result.reason == "no matching permission for song.update"
    assert result.matched_permission is None


def test_other_resource_or_action_does_not_match() -> None:
    """Grants for other resources or actions are ignored."""
    other = ResolvedPermission(
        resource=ResourceType.SETLIST,
        action=UPDATE,
        effect=PermissionEffect.ALLOW,
        scope=PermissionScope.TYPE,
        source=PermissionSource.ROLE,
        priority=800,
    )
    assert not engine.check([other], SONG, UPDATE, make_context()).allowed
    assert not engine.check([other], ResourceType.SETLIST, PermissionAction.DELETE, make_context()).allowed


def test_specificity_beats_priority() -> None:
    """An inherited resource grant beats a direct type-wide deny."""
    specific = _grant(PermissionEffect.ALLOW, PermissionScope.RESOURCE, PermissionSource.INHERITED, "s1")
    broad = _grant(PermissionEffect.DENY, PermissionScope.TYPE, PermissionSource.DIRECT)
    result = engine.check([broad, specific], SONG, UPDATE, make_context(), resource_id="s1")
    assert result.allowed
    assert result.matched_permission == specific
    assert result.denied_by == broad


def test_priority_breaks_specificity_tie() -> None:
    """Same specificity: higher priority decides."""
    role_allow = _grant(PermissionEffect.ALLOW, PermissionScope.TYPE, PermissionSource.ROLE)
    direct_deny = _grant(PermissionEffect.DENY, PermissionScope.TYPE, PermissionSource.DIRECT)
    result = engine.check([role_allow, direct_deny], SONG, UPDATE, make_context())
    assert not result.allowed
    assert result.denied_by == direct_deny


def test_resource_scope_requires_matching_id() -> None:
    """Resource grants apply only to their resource, never to an unnamed one."""
    grant = _grant(PermissionEffect.ALLOW, PermissionScope.RESOURCE, resource_id="s1")
    assert engine.check([grant], SONG, UPDATE, make_context(), resource_id="s1").allowed
    assert not engine.check([grant], SONG, UPDATE, make_context(), resource_id="s2").allowed
    assert not engine.check([grant], SONG, UPDATE, make_context()).allowed


def test_own_scope_uses_ownership_fields() -> None:
    """Own grants apply when the resource snapshot belongs to the subject."""
    grant = _grant(PermissionEffect.ALLOW, PermissionScope.OWN)
    mine = make_context(resource={"created_by": "user-1"})
    theirs = make_context(resource={"owner_id": "user-2"})
    assert engine.check([grant], SONG, UPDATE, mine).allowed
    assert not engine.check([grant], SONG, UPDATE, theirs).allowed
    assert not engine.check([grant], SONG, UPDATE, make_context()).allowed


def test_is_owner_checks_each_field() -> None:
    for field in ("created_by", "owner_id", "user_id"):
        assert is_owner(make_context(resource={field: "user-1"}))
    assert not is_owner(make_context(resource={"author": "user-1"}))


def test_scope_filter() -> None:
    """Passing scope restricts candidates to that scope."""
    grant = _grant(PermissionEffect.ALLOW, PermissionScope.TYPE)
    assert engine.check([grant], SONG, UPDATE, make_context(), scope=PermissionScope.TYPE).allowed
    assert not engine.check([grant], SONG, UPDATE, make_context(), scope=PermissionScope.GLOBAL).allowed


def test_decisions_are_idempotent() -> None:
    """Repeated checks over the same input agree."""
    grants = [
        _grant(PermissionEffect.ALLOW, PermissionScope.TYPE),
        _grant(PermissionEffect.DENY, PermissionScope.RESOURCE, resource_id="s1"),
    ]
    first = engine.check(grants, SONG, UPDATE, make_context(), resource_id="s1")
    for _ in range(5):
        assert engine.check(grants, SONG, UPDATE, make_context(), resource_id="s1") == first
    assert not first.allowed
