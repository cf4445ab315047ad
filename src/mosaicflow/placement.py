"""
Non-overlapping placement for newly created cards.

Given a desired drop point and a card size, the finder walks outward from the
drop point in square rings of candidate points and returns the first one where
the card would not intersect any existing card's margin-expanded rectangle.

Candidate order is fixed: ring by ring, and inside a ring nearest point first,
ties broken clockwise starting from the positive x axis.  Identical inputs
always give identical output.

The search is bounded by ``max_rings``.  When it runs out, the last candidate
tested is returned so a drop never blocks.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Iterator, Optional

from .geometry import Rect, node_rect
from .models import CanvasNode, Position, Size
from .registry import get_node_dimensions

logger = logging.getLogger(__name__)

DEFAULT_MARGIN = 20
DEFAULT_STEP = 20
DEFAULT_MAX_RINGS = 50


def _ring_offsets(ring: int) -> list[tuple[int, int]]:
    """Grid offsets on the square ring at Chebyshev distance ``ring``.

    Sorted nearest first, then clockwise (screen coordinates, y down) from
    the positive x axis.
    """
    if ring == 0:
        return [(0, 0)]

    offsets = []
    for i in range(-ring, ring + 1):
        for j in range(-ring, ring + 1):
            if max(abs(i), abs(j)) == ring:
                offsets.append((i, j))

    def order(offset: tuple[int, int]) -> tuple[int, float]:
        i, j = offset
        angle = math.atan2(j, i) % (2 * math.pi)
        return (i * i + j * j, angle)

    offsets.sort(key=order)
    return offsets


def iter_candidates(
    origin: Position,
    step: float = DEFAULT_STEP,
    max_rings: int = DEFAULT_MAX_RINGS,
) -> Iterator[Position]:
    """Yield candidate points spiralling outward from ``origin``."""
    for ring in range(max_rings + 1):
        for i, j in _ring_offsets(ring):
            yield Position(x=origin.x + i * step, y=origin.y + j * step)


def _obstacles(
    existing_nodes: Iterable[CanvasNode],
    margin: float,
    parent_id: Optional[str],
) -> list[Rect]:
    rects = []
    for node in existing_nodes:
        # Groups enclose other cards; they are not obstacles
        if node.is_group:
            continue
        if node.parent_id != parent_id:
            continue
        rects.append(node_rect(node).expand(margin))
    return rects


def find_non_overlapping_position(
    desired: Position,
    size: Size,
    existing_nodes: Iterable[CanvasNode],
    margin: float = DEFAULT_MARGIN,
    *,
    parent_id: Optional[str] = None,
    node_type: str = "note",
    step: float = DEFAULT_STEP,
    max_rings: int = DEFAULT_MAX_RINGS,
) -> Position:
    """Find the free position nearest to ``desired`` for a card of ``size``.

    Only existing cards in the same containment scope (same ``parent_id``)
    are considered, and group cards are ignored.  Missing size values fall
    back to the defaults for ``node_type``.

    Args:
        desired:        The drop point, in the scope's coordinate space.
        size:           Size of the card being placed.
        existing_nodes: Cards already on the canvas.
        margin:         Clearance kept around every existing card.
        parent_id:      The containment scope to search in.
        node_type:      Used only to default a missing width/height.
        step:           Distance between neighbouring candidate points.
        max_rings:      Rings searched before giving up.

    Returns:
        The first free candidate, or the last candidate tested when the
        search is exhausted.
    """
    dims = get_node_dimensions(node_type)
    width = size.width or dims.default_width
    height = size.height or dims.default_height

    obstacles = _obstacles(existing_nodes, margin, parent_id)
    if not obstacles:
        return desired

    candidate = desired
    for candidate in iter_candidates(desired, step=step, max_rings=max_rings):
        rect = Rect(x=candidate.x, y=candidate.y, width=width, height=height)
        if not any(rect.intersects(obstacle) for obstacle in obstacles):
            return candidate

    logger.warning(
        "Placement search exhausted after %d rings; using (%.1f, %.1f)",
        max_rings, candidate.x, candidate.y,
    )
    return candidate
