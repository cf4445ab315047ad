"""
Coordinate transforms between parent-relative and absolute canvas space.

A node's ``position`` is relative to its parent group's origin.  These helpers
walk the ``parent_id`` chain to convert in both directions, so a node that
changes parent can keep its on-screen position.

Parent cycles are rejected when the graph is mutated; the walks here still
stop at the first repeated id (and after ``max_depth`` steps) so a corrupted
graph can never hang the caller.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from .geometry import Rect, bounds_of, node_size
from .models import CanvasNode, Position, Viewport

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


def ancestors(
    node: CanvasNode,
    node_map: Mapping[str, CanvasNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[CanvasNode]:
    """Return the node's ancestors, nearest first.

    Missing parents end the chain (the node is then treated as top-level).
    """
    chain: list[CanvasNode] = []
    seen = {node.id}
    parent_id = node.parent_id

    while parent_id is not None and len(chain) < max_depth:
        if parent_id in seen:
            logger.warning("Parent cycle detected at node %s", parent_id)
            break
        parent = node_map.get(parent_id)
        if parent is None:
            break
        chain.append(parent)
        seen.add(parent_id)
        parent_id = parent.parent_id

    return chain


def is_ancestor(
    candidate_id: str,
    node_id: str,
    node_map: Mapping[str, CanvasNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> bool:
    """True if ``candidate_id`` appears in the parent chain of ``node_id``."""
    node = node_map.get(node_id)
    if node is None:
        return False
    return any(a.id == candidate_id for a in ancestors(node, node_map, max_depth))


def to_absolute(
    node: CanvasNode,
    node_map: Mapping[str, CanvasNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Position:
    """Absolute canvas position of a node: its position plus every ancestor's."""
    x = node.position.x
    y = node.position.y
    for parent in ancestors(node, node_map, max_depth):
        x += parent.position.x
        y += parent.position.y
    return Position(x=x, y=y)


def to_relative(
    point: Position,
    new_parent_id: Optional[str],
    node_map: Mapping[str, CanvasNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Position:
    """Express an absolute point relative to ``new_parent_id``'s origin.

    With no parent (or an unknown one) the point is already in canvas space.
    """
    if new_parent_id is None:
        return point
    parent = node_map.get(new_parent_id)
    if parent is None:
        return point
    origin = to_absolute(parent, node_map, max_depth)
    return Position(x=point.x - origin.x, y=point.y - origin.y)


def absolute_rect(
    node: CanvasNode,
    node_map: Mapping[str, CanvasNode],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Rect:
    """The node's AABB in absolute canvas coordinates."""
    origin = to_absolute(node, node_map, max_depth)
    width, height = node_size(node)
    return Rect(x=origin.x, y=origin.y, width=width, height=height)


def fit_viewport(
    nodes: Iterable[CanvasNode],
    node_map: Mapping[str, CanvasNode],
    canvas_width: float,
    canvas_height: float,
    padding: float = 50,
) -> Viewport:
    """Compute a viewport that centres every node on a canvas of the given size.

    Zoom never exceeds 1 (no magnification) and never drops below 0.1.
    """
    bounds = bounds_of(absolute_rect(n, node_map) for n in nodes)
    if bounds is None:
        return Viewport()

    padded = bounds.expand(padding)
    zoom_x = canvas_width / padded.width if padded.width > 0 else 1.0
    zoom_y = canvas_height / padded.height if padded.height > 0 else 1.0
    zoom = min(zoom_x, zoom_y, 1.0)

    x = canvas_width / 2 - padded.center_x * zoom
    y = canvas_height / 2 - padded.center_y * zoom
    return Viewport(x=x, y=y, zoom=max(zoom, 0.1))
