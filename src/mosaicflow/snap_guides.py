"""
Alignment guides shown while dragging cards.

For the dragged card (or the bounding box of a dragged selection) the
calculator compares its left / centre / right x and top / middle / bottom y
against the same coordinates of every sibling card.  Each comparable pair
within ``threshold`` produces a guide at the sibling's coordinate, spanning
both shapes along the other axis plus a small overhang.

Guides are advisory: nothing here moves a card.  The drag handler renders
them and may, if it wants, snap to ``guide.position``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Sequence

from .geometry import Rect, bounds_of, node_rect
from .models import CanvasNode, Position, Size, SnapGuide

DEFAULT_THRESHOLD = 5
GUIDE_OVERHANG = 20

# Guides closer together than this are merged into one
_MERGE_DISTANCE = 1

SELECTION_ID = "__selection__"

Anchor = Literal["start", "center", "end"]


@dataclass
class _Alignment:
    position: float
    anchor: Anchor
    bounds: Rect


def _vertical_anchors(rect: Rect) -> list[tuple[float, Anchor]]:
    return [(rect.left, "start"), (rect.center_x, "center"), (rect.right, "end")]


def _horizontal_anchors(rect: Rect) -> list[tuple[float, Anchor]]:
    return [(rect.top, "start"), (rect.center_y, "center"), (rect.bottom, "end")]


def _add_guide(
    guides: list[SnapGuide],
    kind: Literal["vertical", "horizontal"],
    alignment: _Alignment,
    start: float,
    end: float,
) -> None:
    for guide in guides:
        if guide.type == kind and abs(guide.position - alignment.position) < _MERGE_DISTANCE:
            guide.start = min(guide.start, start)
            guide.end = max(guide.end, end)
            return
    guides.append(SnapGuide(
        type=kind,
        position=alignment.position,
        start=start,
        end=end,
        align_type="center" if alignment.anchor == "center" else "edge",
    ))


def _guides_for_rect(
    drag: Rect,
    others: Iterable[Rect],
    threshold: float,
    overhang: float,
) -> list[SnapGuide]:
    vertical: list[_Alignment] = []
    horizontal: list[_Alignment] = []
    for bounds in others:
        vertical.extend(_Alignment(p, a, bounds) for p, a in _vertical_anchors(bounds))
        horizontal.extend(_Alignment(p, a, bounds) for p, a in _horizontal_anchors(bounds))

    guides: list[SnapGuide] = []

    for drag_pos, _ in _vertical_anchors(drag):
        for alignment in vertical:
            if abs(drag_pos - alignment.position) > threshold:
                continue
            start = min(drag.top, alignment.bounds.top) - overhang
            end = max(drag.bottom, alignment.bounds.bottom) + overhang
            _add_guide(guides, "vertical", alignment, start, end)

    for drag_pos, _ in _horizontal_anchors(drag):
        for alignment in horizontal:
            if abs(drag_pos - alignment.position) > threshold:
                continue
            start = min(drag.left, alignment.bounds.left) - overhang
            end = max(drag.right, alignment.bounds.right) + overhang
            _add_guide(guides, "horizontal", alignment, start, end)

    return guides


def calculate_snap_guides(
    dragged: CanvasNode,
    all_nodes: Iterable[CanvasNode],
    threshold: float = DEFAULT_THRESHOLD,
    overhang: float = GUIDE_OVERHANG,
) -> list[SnapGuide]:
    """Alignment guides for one dragged card against its siblings.

    Args:
        dragged:   The card being dragged, at its current drag position.
        all_nodes: Cards on the canvas; only those in the dragged card's
                   containment scope (and not the card itself) are used.
        threshold: Max distance (inclusive) for a guide to appear.
        overhang:  How far guides extend past the aligned shapes.
    """
    others = [
        node_rect(node) for node in all_nodes
        if node.id != dragged.id and node.parent_id == dragged.parent_id
    ]
    return _guides_for_rect(node_rect(dragged), others, threshold, overhang)


def get_selection_bounds(nodes: Sequence[CanvasNode]) -> Optional[Rect]:
    """Union bounding box of a selection, in its own coordinate space."""
    return bounds_of(node_rect(node) for node in nodes)


def calculate_selection_snap_guides(
    dragged_nodes: Sequence[CanvasNode],
    all_nodes: Iterable[CanvasNode],
    threshold: float = DEFAULT_THRESHOLD,
    overhang: float = GUIDE_OVERHANG,
) -> list[SnapGuide]:
    """Alignment guides for a dragged multi-card selection.

    The selection is replaced by its union bounding box.  The scope is that
    of the first dragged card; dragged cards from other scopes are ignored,
    since their coordinates are not comparable.
    """
    if not dragged_nodes:
        return []

    scope = dragged_nodes[0].parent_id
    in_scope = [n for n in dragged_nodes if n.parent_id == scope]
    bounds = get_selection_bounds(in_scope)
    if bounds is None:
        return []

    dragged_ids = {n.id for n in dragged_nodes}
    others = [n for n in all_nodes if n.id not in dragged_ids]

    virtual = CanvasNode(
        id=SELECTION_ID,
        type="selection",
        position=Position(x=bounds.x, y=bounds.y),
        size=Size(width=bounds.width, height=bounds.height),
        parent_id=scope,
    )
    return calculate_snap_guides(virtual, others, threshold, overhang)
