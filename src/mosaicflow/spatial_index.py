"""
Quadtree spatial index over card rectangles.

Used to answer "which cards intersect this region?" without scanning every
card, e.g. to cull cards outside the viewport on very large canvases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .geometry import Rect, bounds_of

MAX_ITEMS_PER_QUAD = 10
MAX_DEPTH = 8
REBUILD_PADDING = 1000

DEFAULT_BOUNDS = Rect(x=-10000, y=-10000, width=20000, height=20000)


@dataclass
class _Quad:
    bounds: Rect
    depth: int
    items: list[tuple[str, Rect]] = field(default_factory=list)
    children: Optional[list[_Quad]] = None


def _touches(a: Rect, b: Rect) -> bool:
    """Closed-interval intersection: shared edges count."""
    return not (
        a.right < b.left
        or b.right < a.left
        or a.bottom < b.top
        or b.bottom < a.top
    )


class SpatialIndex:
    """A region quadtree storing ``(id, rect)`` items.

    Items that straddle a split line stay in the parent quad.
    """

    def __init__(self, bounds: Rect = DEFAULT_BOUNDS):
        self._root = _Quad(bounds=bounds, depth=0)

    def insert(self, item_id: str, rect: Rect) -> None:
        self._insert(self._root, item_id, rect)

    def _insert(self, quad: _Quad, item_id: str, rect: Rect) -> None:
        if quad.children:
            child = self._child_for(quad, rect)
            if child is not None:
                self._insert(child, item_id, rect)
                return

        quad.items.append((item_id, rect))

        if (
            len(quad.items) > MAX_ITEMS_PER_QUAD
            and quad.depth < MAX_DEPTH
            and not quad.children
        ):
            self._split(quad)

    def _split(self, quad: _Quad) -> None:
        b = quad.bounds
        half_w = b.width / 2
        half_h = b.height / 2
        depth = quad.depth + 1
        quad.children = [
            _Quad(Rect(b.x, b.y, half_w, half_h), depth),
            _Quad(Rect(b.x + half_w, b.y, half_w, half_h), depth),
            _Quad(Rect(b.x, b.y + half_h, half_w, half_h), depth),
            _Quad(Rect(b.x + half_w, b.y + half_h, half_w, half_h), depth),
        ]

        pending = quad.items
        quad.items = []
        for item_id, rect in pending:
            child = self._child_for(quad, rect)
            if child is not None:
                self._insert(child, item_id, rect)
            else:
                quad.items.append((item_id, rect))

    @staticmethod
    def _child_for(quad: _Quad, rect: Rect) -> Optional[_Quad]:
        for child in quad.children or []:
            if child.bounds.contains(rect):
                return child
        return None

    def query(self, region: Rect) -> list[str]:
        """Ids of every item whose rect intersects ``region``."""
        result: list[str] = []
        self._query(self._root, region, result)
        return result

    def _query(self, quad: _Quad, region: Rect, result: list[str]) -> None:
        if not _touches(quad.bounds, region):
            return
        for item_id, rect in quad.items:
            if _touches(rect, region):
                result.append(item_id)
        for child in quad.children or []:
            self._query(child, region, result)

    def rebuild(self, items: Iterable[tuple[str, Rect]]) -> None:
        """Clear the index and re-insert ``items`` under bounds fitted to them."""
        items = list(items)
        bounds = bounds_of(rect for _, rect in items)
        root_bounds = bounds.expand(REBUILD_PADDING) if bounds else DEFAULT_BOUNDS
        self._root = _Quad(bounds=root_bounds, depth=0)
        for item_id, rect in items:
            self.insert(item_id, rect)

    def stats(self) -> dict[str, int]:
        """Item count, deepest level and number of quads."""
        total = 0
        max_depth = 0
        quads = 0
        stack = [self._root]
        while stack:
            quad = stack.pop()
            quads += 1
            max_depth = max(max_depth, quad.depth)
            total += len(quad.items)
            stack.extend(quad.children or [])
        return {"total_items": total, "max_depth": max_depth, "quad_count": quads}
