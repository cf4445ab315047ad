"""Tests for non-overlapping placement."""

from mosaicflow.geometry import Rect
from mosaicflow.models import CanvasNode, Position, Size
from mosaicflow.placement import find_non_overlapping_position, iter_candidates


def make_node(node_id, x, y, w, h, parent_id=None, node_type="note"):
    return CanvasNode(
        id=node_id,
        type=node_type,
        position=Position(x=x, y=y),
        size=Size(width=w, height=h),
        parent_id=parent_id,
    )


def test_free_space_returns_desired_point():
    result = find_non_overlapping_position(Position(x=5, y=5), Size(width=100, height=100), [])
    assert result == Position(x=5, y=5)


def test_scenario_b_finds_nearest_free_point():
    existing = [make_node("a", 0, 0, 200, 100)]

    result = find_non_overlapping_position(
        Position(x=0, y=0), Size(width=200, height=100), existing, margin=20,
    )

    placed = Rect(result.x, result.y, 200, 100)
    assert not placed.intersects(Rect(-20, -20, 240, 140))
    assert result == Position(x=0, y=120)


def test_same_input_gives_same_output():
    existing = [make_node("a", 0, 0, 200, 100), make_node("b", 0, 150, 200, 100)]
    args = (Position(x=10, y=10), Size(width=150, height=80), existing, 20)

    assert find_non_overlapping_position(*args) == find_non_overlapping_position(*args)


def test_missing_size_uses_type_defaults():
    existing = [make_node("a", 0, 0, 200, 100)]

    result = find_non_overlapping_position(Position(x=0, y=0), Size(), existing, margin=20)

    placed = Rect(result.x, result.y, 280, 200)
    assert not placed.intersects(Rect(-20, -20, 240, 140))


def test_other_scopes_and_groups_are_not_obstacles():
    existing = [
        make_node("inner", 0, 0, 200, 100, parent_id="g"),
        make_node("g", 0, 0, 400, 300, node_type="group"),
    ]

    result = find_non_overlapping_position(
        Position(x=0, y=0), Size(width=100, height=100), existing,
    )

    assert result == Position(x=0, y=0)


def test_scope_is_respected_inside_a_group():
    existing = [make_node("inner", 0, 0, 200, 100, parent_id="g")]

    result = find_non_overlapping_position(
        Position(x=0, y=0), Size(width=200, height=100), existing, margin=20, parent_id="g",
    )

    assert result != Position(x=0, y=0)


def test_exhausted_search_returns_last_candidate():
    existing = [make_node("wall", -1000, -1000, 5000, 5000)]

    result = find_non_overlapping_position(
        Position(x=0, y=0), Size(width=100, height=100), existing, max_rings=2,
    )

    assert result == Position(x=40, y=-40)


def test_candidates_spiral_outward_nearest_first():
    candidates = list(iter_candidates(Position(x=0, y=0), step=10, max_rings=1))

    assert candidates[0] == Position(x=0, y=0)
    assert candidates[1] == Position(x=10, y=0)
    assert candidates[2] == Position(x=0, y=10)
    assert len(candidates) == 9
