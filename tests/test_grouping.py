"""Tests for grouping, ungrouping and containment."""

import pytest

from mosaicflow.grouping import GroupingEngine
from mosaicflow.models import Position, Size


@pytest.fixture
def engine(graph):
    return GroupingEngine(graph)


def test_group_wraps_members_with_padding_and_header(graph, engine):
    a = graph.create_node("note", Position(x=10, y=10))
    b = graph.create_node("note", Position(x=200, y=10))

    group = engine.group_selected_nodes([a.id, b.id])

    assert group.type == "group"
    assert group.position == Position(x=-30, y=-60)
    assert group.size == Size(width=550, height=310)
    assert group.data["childNodeIds"] == [a.id, b.id]

    first = graph.get_node(a.id)
    second = graph.get_node(b.id)
    assert first.parent_id == group.id
    assert first.position == Position(x=40, y=70)
    assert second.position == Position(x=230, y=70)
    assert first.extent == "parent"

    # On-screen positions are unchanged
    assert graph.absolute_position(a.id) == Position(x=10, y=10)
    assert graph.absolute_position(b.id) == Position(x=200, y=10)
    assert graph.selected_node_ids == (group.id,)


def test_group_without_containment(graph, engine):
    a = graph.create_node("note", Position())
    b = graph.create_node("note", Position(x=400))

    engine.group_selected_nodes([a.id, b.id], contain=False)

    assert graph.get_node(a.id).extent is None


def test_group_needs_two_known_nodes(graph, engine):
    a = graph.create_node("note", Position())
    version = graph.version

    assert engine.group_selected_nodes([a.id]) is None
    assert engine.group_selected_nodes([a.id, "missing"]) is None
    assert graph.version == version


def test_ungroup_restores_original_layout(graph, engine):
    a = graph.create_node("note", Position(x=10, y=10))
    b = graph.create_node("note", Position(x=200, y=10))
    group = engine.group_selected_nodes([a.id, b.id])

    children = engine.ungroup_node(group.id)

    assert children == [a.id, b.id]
    assert graph.get_node(group.id) is None
    for node_id, expected in ((a.id, Position(x=10, y=10)), (b.id, Position(x=200, y=10))):
        node = graph.get_node(node_id)
        assert node.parent_id is None
        assert node.extent is None
        assert node.position == expected
    assert graph.selected_node_ids == (a.id, b.id)


def test_ungroup_non_group_is_noop(graph, engine):
    note = graph.create_node("note", Position())
    assert engine.ungroup_node(note.id) == []
    assert engine.ungroup_node("missing") == []
    assert graph.get_node(note.id) is not None


def test_grouping_inside_a_group_uses_common_parent(graph, engine):
    outer = graph.create_node("group", Position(x=100, y=100))
    a = graph.create_node("note", Position(x=0, y=0), parent_id=outer.id)
    b = graph.create_node("note", Position(x=300, y=0), parent_id=outer.id)

    group = engine.group_selected_nodes([a.id, b.id])

    assert group.parent_id == outer.id
    assert group.position == Position(x=-40, y=-70)
    assert graph.get_node(a.id).position == Position(x=40, y=70)

    engine.ungroup_node(group.id)

    assert graph.get_node(a.id).parent_id == outer.id
    assert graph.get_node(a.id).position == Position(x=0, y=0)
    assert graph.get_node(b.id).position == Position(x=300, y=0)


def test_selected_descendants_move_with_their_ancestor(graph, engine):
    outer = graph.create_node("group", Position(x=0, y=0))
    inner = graph.create_node("note", Position(x=20, y=50), parent_id=outer.id)
    loose = graph.create_node("note", Position(x=800, y=0))

    group = engine.group_selected_nodes([outer.id, inner.id, loose.id])

    assert graph.get_node(outer.id).parent_id == group.id
    assert graph.get_node(loose.id).parent_id == group.id
    assert graph.get_node(inner.id).parent_id == outer.id
    assert graph.absolute_position(inner.id) == Position(x=20, y=50)


def test_set_node_contained_toggles_extent(graph, engine):
    group = graph.create_node("group", Position())
    child = graph.create_node("note", Position(), parent_id=group.id)
    loose = graph.create_node("note", Position(x=900))

    assert engine.set_node_contained(child.id, True).extent == "parent"
    assert engine.set_node_contained(child.id, False).extent is None
    assert engine.set_node_contained(loose.id, True) is None


def test_move_into_and_out_of_group_keeps_screen_position(graph, engine):
    group = graph.create_node("group", Position(x=100, y=100))
    note = graph.create_node("note", Position(x=500, y=500))

    moved = engine.move_into_group(note.id, group.id)
    assert moved.parent_id == group.id
    assert moved.position == Position(x=400, y=400)
    assert moved.extent == "parent"

    freed = engine.remove_from_group(note.id)
    assert freed.parent_id is None
    assert freed.position == Position(x=500, y=500)
    assert freed.extent is None


def test_move_into_non_group_is_rejected(graph, engine):
    a = graph.create_node("note", Position())
    b = graph.create_node("note", Position(x=500))
    assert engine.move_into_group(a.id, b.id) is None
