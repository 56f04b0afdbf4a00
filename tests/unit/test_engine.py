"""Unit tests for the permission engine facade."""

from unittest.mock import MagicMock
from uuid import uuid4

from chordperm.domain.entities import PermissionGroup
from chordperm.domain.exceptions import InvalidCondition
from chordperm.domain.value_objects import PermissionAction, PermissionSource, ResourceType
from chordperm.infrastructure.permission.catalog import InMemoryPermissionCatalog
from chordperm.infrastructure.permission.engine import PermissionEngine

from tests.conftest import allow, deny, make_context, make_role

SONG, UPDATE = ResourceType.SONG, PermissionAction.UPDATE


def test_editor_viewer_direct_scenario(engine, song_update, song_update_resource) -> None:
    """Role allow and role deny on song.update plus a direct allow on S1.

    The roles tie and deny wins for songs in general; the direct resource
    grant is more specific and wins for S1 only.
    """
    editor = make_role("Editor", allow(song_update))
    viewer = make_role("Viewer", deny(song_update))
    direct = [allow(song_update_resource, resource_id="S1")]
    context = make_context()

    resolved = engine.resolve_permissions("user-1", direct, [editor, viewer], [], context)

    assert engine.check_permission(resolved, SONG, UPDATE, context, resource_id="S1").allowed
    s2 = engine.check_permission(resolved, SONG, UPDATE, context, resource_id="S2")
    assert not s2.allowed
    assert s2.denied_by.source == PermissionSource.ROLE


def test_mutual_inheritance_rejected(engine) -> None:
    """A inherits B; B inherits A is rejected."""
    a, b = uuid4(), uuid4()
    assert engine.validate_inheritance(a, [b], {})
    assert not engine.validate_inheritance(b, [a], {a: [b]})


def test_resolution_is_deterministic(engine, song_update, song_update_resource) -> None:
    """Same inputs, same resolved set and decisions."""
    roles = [make_role("r1", allow(song_update)), make_role("r2", deny(song_update_resource, resource_id="x"))]
    context = make_context()
    first = engine.resolve_permissions("user-1", [], roles, [], context)
    second = engine.resolve_permissions("user-1", [], roles, [], context)
    assert first == second


def test_resolve_permission_set_keeps_inputs(engine, song_update) -> None:
    """The snapshot splits system and custom roles and keeps direct grants."""
    system = make_role("viewer", allow(song_update), is_system=True)
    custom = make_role("arranger", allow(song_update))
    group = PermissionGroup(id=uuid4(), name="band", members=["user-1"])
    direct = [deny(song_update, resource_id="s9")]
    context = make_context()

    snapshot = engine.resolve_permission_set("user-1", direct, [system, custom], [group], context)

    assert snapshot.subject_id == "user-1"
    assert snapshot.evaluated_at == context.timestamp
    assert snapshot.role_ids == [system.id]
    assert snapshot.custom_role_ids == [custom.id]
    assert snapshot.group_ids == [group.id]
    assert snapshot.direct_permissions == direct
    assert len(snapshot.effective_permissions) == 2


def test_check_permission_fails_closed() -> None:
    """Errors raised while deciding become a denial."""
    decision_engine = MagicMock()
    decision_engine.check.side_effect = InvalidCondition("broken")
    engine = PermissionEngine(InMemoryPermissionCatalog(), decision_engine=decision_engine)

    result = engine.check_permission([], SONG, UPDATE, make_context())

    assert not result.allowed
    assert "broken" in result.reason
