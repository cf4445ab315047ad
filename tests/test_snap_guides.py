"""Tests for alignment guide calculation."""

from mosaicflow.models import CanvasNode, Position, Size
from mosaicflow.snap_guides import (
    calculate_selection_snap_guides,
    calculate_snap_guides,
    get_selection_bounds,
)


def make_node(node_id, x, y, w=100, h=100, parent_id=None):
    return CanvasNode(
        id=node_id,
        position=Position(x=x, y=y),
        size=Size(width=w, height=h),
        parent_id=parent_id,
    )


def vertical(guides):
    return {g.position: g for g in guides if g.type == "vertical"}


def horizontal(guides):
    return {g.position: g for g in guides if g.type == "horizontal"}


def test_scenario_c_left_edges_align():
    dragged = make_node("a", 100, 0)
    other = make_node("b", 104, 300)

    guides = calculate_snap_guides(dragged, [dragged, other], threshold=8)

    found = vertical(guides)
    assert 104 in found
    assert found[104].align_type == "edge"
    assert found[104].start == -20
    assert found[104].end == 420
    assert found[154].align_type == "center"
    assert horizontal(guides) == {}


def test_threshold_is_inclusive():
    dragged = make_node("a", 100, 0)

    at_threshold = calculate_snap_guides(dragged, [make_node("b", 105, 300)], threshold=5)
    beyond = calculate_snap_guides(dragged, [make_node("b", 105.5, 300)], threshold=5)

    assert 105 in vertical(at_threshold)
    assert beyond == []


def test_vertical_and_horizontal_guides_together():
    dragged = make_node("a", 100, 100)
    below = make_node("b", 100, 400)
    beside = make_node("c", 400, 102)

    guides = calculate_snap_guides(dragged, [below, beside])

    assert 100 in vertical(guides)
    assert 102 in horizontal(guides)


def test_guides_merge_when_positions_coincide():
    dragged = make_node("a", 100, 0)
    others = [make_node("b", 104, 300), make_node("c", 104, 600)]

    guides = calculate_snap_guides(dragged, others, threshold=8)

    at_104 = [g for g in guides if g.type == "vertical" and g.position == 104]
    assert len(at_104) == 1
    assert at_104[0].start == -20
    assert at_104[0].end == 720


def test_self_and_other_scopes_are_ignored():
    dragged = make_node("a", 100, 0)
    foreign = make_node("b", 100, 300, parent_id="g")

    assert calculate_snap_guides(dragged, [dragged, foreign]) == []


def test_selection_uses_union_bounds():
    first = make_node("a", 0, 0)
    second = make_node("b", 200, 0)
    other = make_node("c", 298, 500)

    assert get_selection_bounds([first, second]).width == 300

    guides = calculate_selection_snap_guides([first, second], [first, second, other])

    assert [(g.type, g.position) for g in guides] == [("vertical", 298)]


def test_empty_selection_has_no_guides():
    assert calculate_selection_snap_guides([], [make_node("a", 0, 0)]) == []
