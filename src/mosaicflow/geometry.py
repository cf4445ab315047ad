"""Axis-aligned rectangles and node bounds."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from .models import CanvasNode
from .registry import get_node_dimensions


@dataclass(frozen=True)
class Rect:
    """An axis-aligned bounding box (AABB)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def expand(self, amount: float) -> Rect:
        """Grow (or shrink, for negative amounts) the rect on all four sides."""
        return Rect(
            x=self.x - amount,
            y=self.y - amount,
            width=self.width + amount * 2,
            height=self.height + amount * 2,
        )

    def intersects(self, other: Rect) -> bool:
        """True when the interiors overlap.  Touching edges do not count."""
        return (
            self.left < other.right
            and other.left < self.right
            and self.top < other.bottom
            and other.top < self.bottom
        )

    def overlap_area(self, other: Rect) -> float:
        overlap_w = min(self.right, other.right) - max(self.left, other.left)
        overlap_h = min(self.bottom, other.bottom) - max(self.top, other.top)
        if overlap_w <= 0 or overlap_h <= 0:
            return 0.0
        return overlap_w * overlap_h

    def overlap_fraction(self, other: Rect) -> float:
        """Overlap area divided by the area of the smaller rectangle."""
        smaller = min(self.area, other.area)
        if smaller <= 0:
            return 0.0
        return self.overlap_area(other) / smaller

    def contains(self, other: Rect) -> bool:
        return (
            other.left >= self.left
            and other.top >= self.top
            and other.right <= self.right
            and other.bottom <= self.bottom
        )


def node_size(node: CanvasNode) -> tuple[float, float]:
    """Effective (width, height) of a node, defaulting from its type."""
    dims = get_node_dimensions(node.type)
    width = node.size.width if node.size.width else dims.default_width
    height = node.size.height if node.size.height else dims.default_height
    return width, height


def node_rect(node: CanvasNode) -> Rect:
    """The node's AABB in its own coordinate space (parent-relative or absolute)."""
    width, height = node_size(node)
    return Rect(x=node.position.x, y=node.position.y, width=width, height=height)


def bounds_of(rects: Iterable[Rect]) -> Optional[Rect]:
    """Union bounding box of a set of rects.

    Returns None if there are no rects or no finite coordinates.
    """
    min_x = float("inf")
    min_y = float("inf")
    max_x = float("-inf")
    max_y = float("-inf")

    for rect in rects:
        if not math.isfinite(rect.x) or not math.isfinite(rect.y):
            continue
        min_x = min(min_x, rect.left)
        min_y = min(min_y, rect.top)
        max_x = max(max_x, rect.right)
        max_y = max(max_y, rect.bottom)

    if not math.isfinite(min_x):
        return None

    return Rect(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)
