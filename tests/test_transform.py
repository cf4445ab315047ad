"""Tests for parent-relative / absolute coordinate conversion."""

from mosaicflow.models import CanvasNode, Position, Size
from mosaicflow.transform import ancestors, fit_viewport, is_ancestor, to_absolute, to_relative


def make_node(node_id, x, y, parent_id=None, node_type="note"):
    return CanvasNode(
        id=node_id,
        type=node_type,
        position=Position(x=x, y=y),
        size=Size(width=100, height=100),
        parent_id=parent_id,
    )


def nested_map():
    nodes = [
        make_node("g1", 100, 100, node_type="group"),
        make_node("g2", 10, 20, parent_id="g1", node_type="group"),
        make_node("n", 5, 5, parent_id="g2"),
    ]
    return {n.id: n for n in nodes}


def test_absolute_position_adds_every_ancestor():
    node_map = nested_map()
    assert to_absolute(node_map["n"], node_map) == Position(x=115, y=125)


def test_relative_undoes_absolute():
    node_map = nested_map()
    assert to_relative(Position(x=115, y=125), "g2", node_map) == Position(x=5, y=5)
    assert to_relative(Position(x=115, y=125), None, node_map) == Position(x=115, y=125)


def test_ancestors_nearest_first():
    node_map = nested_map()
    assert [a.id for a in ancestors(node_map["n"], node_map)] == ["g2", "g1"]
    assert is_ancestor("g1", "n", node_map)
    assert not is_ancestor("n", "g1", node_map)


def test_missing_parent_is_treated_as_top_level():
    node = make_node("orphan", 7, 8, parent_id="gone")
    assert to_absolute(node, {"orphan": node}) == Position(x=7, y=8)


def test_parent_cycle_does_not_hang():
    a = make_node("a", 1, 1, parent_id="b", node_type="group")
    b = make_node("b", 10, 10, parent_id="a", node_type="group")
    node_map = {"a": a, "b": b}

    assert to_absolute(a, node_map) == Position(x=11, y=11)
    assert [n.id for n in ancestors(a, node_map)] == ["b"]


def test_fit_viewport_centres_content():
    node = make_node("a", 0, 0)
    viewport = fit_viewport([node], {"a": node}, 1000, 1000)

    assert viewport.zoom == 1.0
    assert viewport.x == 450
    assert viewport.y == 450


def test_fit_viewport_zooms_out_for_large_content():
    node = CanvasNode(id="big", position=Position(x=0, y=0), size=Size(width=3900, height=100))
    viewport = fit_viewport([node], {"big": node}, 1000, 1000)

    assert viewport.zoom == 0.25


def test_fit_viewport_empty_canvas():
    viewport = fit_viewport([], {}, 800, 600)
    assert (viewport.x, viewport.y, viewport.zoom) == (0, 0, 1)
