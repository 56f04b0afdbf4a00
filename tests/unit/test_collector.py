"""Unit tests for the assignment collector."""

from datetime import timedelta
from uuid import uuid4

from chordperm.domain.entities import PermissionCondition, PermissionGroup
from chordperm.domain.value_objects import PermissionSource
from chordperm.infrastructure.permission.catalog import InMemoryPermissionCatalog
from chordperm.infrastructure.permission.collector import AssignmentCollector

from tests.conftest import NOW, allow, deny, make_context, make_permission, make_role


def _collector(*permissions) -> AssignmentCollector:
    return AssignmentCollector(InMemoryPermissionCatalog(permissions))


def test_sources_get_fixed_priorities() -> None:
    """Direct, role, group and inherited grants carry 1000/800/600/400."""
    p = make_permission()
    parent = make_role("parent", allow(p))
    held = make_role("held", allow(p), inherits_from=[parent.id])
    via_group = make_role("via-group", allow(p))
    group = PermissionGroup(id=uuid4(), name="team", roles=[via_group.id], members=["user-1"])
    index = {r.id: r for r in (parent, held, via_group)}

    collected = _collector(p).collect(
        "user-1", [allow(p)], [held], [group], make_context(), role_index=index
    )

    by_source = {c.source: c for c in collected}
    assert by_source[PermissionSource.DIRECT].priority == 1000
    assert by_source[PermissionSource.ROLE].priority == 800
    assert by_source[PermissionSource.GROUP].priority == 600
    assert by_source[PermissionSource.GROUP].source_id == group.id
    assert by_source[PermissionSource.INHERITED].priority == 400
    assert by_source[PermissionSource.INHERITED].source_id == parent.id


def test_expired_assignments_are_dropped() -> None:
    """A grant expiring at or before the context timestamp contributes nothing."""
    p = make_permission()
    collected = _collector(p).collect(
        "user-1",
        [allow(p, expires_at=NOW), allow(p, expires_at=NOW + timedelta(seconds=1), resource_id="s1")],
        [],
        [],
        make_context(),
    )
    assert [c.resource_id for c in collected] == ["s1"]


def test_failing_conditions_drop_grant() -> None:
    """Conditions are evaluated against the context."""
    p = make_permission()
    conditional = allow(p, conditions=(PermissionCondition("resource.status", "eq", "draft"),))
    collector = _collector(p)

    assert collector.collect("user-1", [conditional], [], [], make_context(resource={"status": "draft"}))
    assert not collector.collect(
        "user-1", [conditional], [], [], make_context(resource={"status": "published"})
    )


def test_unknown_permission_ids_are_skipped() -> None:
    """Grants referencing ids outside the catalog are ignored."""
    p = make_permission()
    stray = make_permission()
    collected = _collector(p).collect("user-1", [allow(p), allow(stray)], [], [], make_context())
    assert len(collected) == 1


def test_inactive_roles_contribute_nothing() -> None:
    """Inactive held roles and their parents are skipped."""
    p = make_permission()
    parent = make_role("parent", allow(p))
    held = make_role("held", allow(p), inherits_from=[parent.id], is_active=False)

    collected = _collector(p).collect(
        "user-1", [], [held], [], make_context(), role_index={r.id: r for r in (parent, held)}
    )

    assert collected == []


def test_inheritance_stops_at_inactive_role() -> None:
    """An inactive ancestor hides everything above it."""
    p = make_permission()
    top = make_role("top", deny(p))
    middle = make_role("middle", allow(p), inherits_from=[top.id], is_active=False)
    held = make_role("held", inherits_from=[middle.id])
    index = {r.id: r for r in (top, middle, held)}

    collected = _collector(p).collect("user-1", [], [held], [], make_context(), role_index=index)

    assert collected == []


def test_transitive_inheritance_each_ancestor_once() -> None:
    """Diamond inheritance yields each ancestor's grants once."""
    p = make_permission()
    top = make_role("top", allow(p))
    left = make_role("left", inherits_from=[top.id])
    right = make_role("right", inherits_from=[top.id])
    held = make_role("held", inherits_from=[left.id, right.id])
    index = {r.id: r for r in (top, left, right, held)}

    collected = _collector(p).collect("user-1", [], [held], [], make_context(), role_index=index)

    assert [(c.source, c.source_id) for c in collected] == [(PermissionSource.INHERITED, top.id)]


def test_parent_groups_are_expanded() -> None:
    """Members of a child group get roles of its parent groups."""
    p = make_permission()
    role = make_role("r", allow(p))
    parent = PermissionGroup(id=uuid4(), name="parent", roles=[role.id])
    child = PermissionGroup(id=uuid4(), name="child", parent_groups=[parent.id], members=["user-1"])
    inactive = PermissionGroup(
        id=uuid4(), name="off", roles=[role.id], members=["user-1"], is_active=False
    )

    collected = _collector(p).collect(
        "user-1",
        [],
        [],
        [child, inactive],
        make_context(),
        role_index={role.id: role},
        group_index={g.id: g for g in (parent, child, inactive)},
    )

    assert [(c.source, c.source_id) for c in collected] == [(PermissionSource.GROUP, parent.id)]
