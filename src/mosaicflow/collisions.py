"""
Collision resolution for overlapping cards.

Cards are compared pairwise inside their containment scope (cards that share
a ``parent_id``; top-level cards form one scope).  A pair collides when the
overlap area exceeds ``overlap_threshold`` of the smaller card's area.  Each
colliding pair is pushed apart along the axis that needs the least movement,
each card moving half the required distance plus half the margin, so after
the push the two cards are ``margin`` apart on that axis.

Passes repeat until a pass moves nothing or ``max_iterations`` passes have
run.  The loop is always bounded.

Group cards are skipped: they enclose other cards by design and are never
pushed around by them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .geometry import Rect, node_size
from .models import CanvasNode, Position

logger = logging.getLogger(__name__)

DEFAULT_MARGIN = 15
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_OVERLAP_THRESHOLD = 0.5

# Needed displacements closer than this are treated as equal
_AXIS_TIE_EPSILON = 1e-9


@dataclass
class CollisionOptions:
    """Tunables for collision resolution."""
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    overlap_threshold: float = DEFAULT_OVERLAP_THRESHOLD
    margin: float = DEFAULT_MARGIN


@dataclass
class CollisionResult:
    """Outcome of a resolution run."""
    nodes: list[CanvasNode]
    iterations: int
    converged: bool
    moved_ids: set[str] = field(default_factory=set)


@dataclass
class _Box:
    """Mutable working copy of a card's bounds."""
    id: str
    x: float
    y: float
    width: float
    height: float

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


def _group_by_scope(nodes: Sequence[CanvasNode]) -> dict[Optional[str], list[str]]:
    """Card ids per containment scope, in input order."""
    scopes: dict[Optional[str], list[str]] = {}
    for node in nodes:
        if node.is_group:
            continue
        scopes.setdefault(node.parent_id, []).append(node.id)
    return scopes


def _has_collision(
    scopes: dict[Optional[str], list[str]],
    boxes: dict[str, _Box],
    threshold: float,
) -> bool:
    for ids in scopes.values():
        for i in range(len(ids)):
            for j in range(i + 1, len(ids)):
                if boxes[ids[i]].rect().overlap_fraction(boxes[ids[j]].rect()) > threshold:
                    return True
    return False


def _separate(a: _Box, b: _Box, margin: float) -> None:
    """Push a pair apart along the axis needing the least displacement.

    When the centres coincide, the earlier card (``a``) moves towards
    negative coordinates.
    """
    need_x = (a.width + b.width) / 2 - abs(a.center_x - b.center_x)
    need_y = (a.height + b.height) / 2 - abs(a.center_y - b.center_y)

    if need_x <= need_y + _AXIS_TIE_EPSILON:
        shift = (need_x + margin) / 2
        if a.center_x <= b.center_x:
            a.x -= shift
            b.x += shift
        else:
            a.x += shift
            b.x -= shift
    else:
        shift = (need_y + margin) / 2
        if a.center_y <= b.center_y:
            a.y -= shift
            b.y += shift
        else:
            a.y += shift
            b.y -= shift


def resolve_collisions_report(
    nodes: Sequence[CanvasNode],
    options: Optional[CollisionOptions] = None,
) -> CollisionResult:
    """Resolve overlaps and report how the run went.

    See ``resolve_collisions`` for the algorithm.  Cards that did not move
    are returned as the same objects; moved cards are copies with a new
    ``position`` and every other field unchanged.
    """
    opts = options or CollisionOptions()
    if len(nodes) < 2:
        return CollisionResult(nodes=list(nodes), iterations=0, converged=True)

    boxes: dict[str, _Box] = {}
    for node in nodes:
        width, height = node_size(node)
        boxes[node.id] = _Box(node.id, node.position.x, node.position.y, width, height)

    scopes = _group_by_scope(nodes)
    moved_ids: set[str] = set()
    iterations = 0
    converged = False

    while iterations < opts.max_iterations:
        iterations += 1
        moved_this_pass = False

        for ids in scopes.values():
            for i in range(len(ids)):
                for j in range(i + 1, len(ids)):
                    a = boxes[ids[i]]
                    b = boxes[ids[j]]
                    if a.rect().overlap_fraction(b.rect()) <= opts.overlap_threshold:
                        continue
                    _separate(a, b, opts.margin)
                    moved_ids.add(a.id)
                    moved_ids.add(b.id)
                    moved_this_pass = True

        if not moved_this_pass:
            converged = True
            break

    if not converged:
        # The final pass may have separated the last pair
        converged = not _has_collision(scopes, boxes, opts.overlap_threshold)

    if not converged:
        logger.warning(
            "Collision resolution stopped after %d iterations with overlaps remaining",
            iterations,
        )

    if not moved_ids:
        return CollisionResult(
            nodes=list(nodes), iterations=iterations, converged=converged,
        )

    result = []
    for node in nodes:
        if node.id not in moved_ids:
            result.append(node)
            continue
        box = boxes[node.id]
        result.append(node.model_copy(update={"position": Position(x=box.x, y=box.y)}))

    return CollisionResult(
        nodes=result, iterations=iterations, converged=converged, moved_ids=moved_ids,
    )


def resolve_collisions(
    nodes: Sequence[CanvasNode],
    options: Optional[CollisionOptions] = None,
) -> list[CanvasNode]:
    """Iteratively separate overlapping sibling cards.

    Returns a new list with updated positions.  Re-running on the output
    moves nothing (unless the iteration cap was hit on the first run).
    """
    return resolve_collisions_report(nodes, options).nodes
