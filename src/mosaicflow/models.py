"""
Data models for MosaicFlow — the canvas graph.

A canvas is a flat set of typed cards ("nodes") joined by edges.  Nesting is
expressed through ``parent_id``: a node whose ``parent_id`` names a group node
is positioned relative to that group's origin instead of the canvas origin.

    Canvas
    ├── Node (type=note)         position is absolute
    └── Node (type=group)        position is absolute
        └── Node (type=person)   position is relative to the group

Nodes and edges are immutable.  Every mutation of the graph builds new model
instances with ``model_copy(update=...)`` and replaces the node/edge tuples
wholesale, so the rendering layer can detect change by identity.

The ``data`` payload of nodes and edges is opaque to the engine.  It must be
plain data (strings, numbers, lists, dicts) so a document round-trips through
YAML or JSON unchanged.
"""

from __future__ import annotations
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


GROUP_TYPE = "group"


# ---------------------------------------------------------------------------
# Geometry primitives
# ---------------------------------------------------------------------------

class Position(BaseModel):
    """A point on the canvas (or inside a parent group)."""
    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0


class Size(BaseModel):
    """Node dimensions.  Missing values fall back to the type defaults."""
    model_config = ConfigDict(frozen=True)

    width: Optional[float] = None
    height: Optional[float] = None


class NodeDimensions(BaseModel):
    """Size constraints for a node type."""
    model_config = ConfigDict(frozen=True)

    min_width: float
    min_height: float
    default_width: float
    default_height: float


# ---------------------------------------------------------------------------
# Node and edge
# ---------------------------------------------------------------------------

class CanvasNode(BaseModel):
    """A card on the canvas.

    Coordinates
    -----------
    ``position`` is relative to the parent group's origin when ``parent_id``
    is set, otherwise it is an absolute canvas coordinate.  The two are
    never mixed.

    Containment
    -----------
    ``extent="parent"`` asks the rendering layer to keep the node's motion
    clipped to its parent's bounds.  The engine only keeps the flag; it does
    not enforce it.

    Selection
    ---------
    ``selected`` is transient UI state and is excluded from persistence.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    type: str = "note"
    position: Position = Field(default_factory=Position)
    size: Size = Field(default_factory=Size)
    parent_id: Optional[str] = None
    extent: Optional[Literal["parent"]] = None
    selected: bool = Field(default=False, exclude=True)
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_group(self) -> bool:
        return self.type == GROUP_TYPE


class CanvasEdge(BaseModel):
    """A connection between two nodes.

    Parallel edges between the same pair are allowed: several relations
    between the same two cards are meaningful.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    label: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Snap guides
# ---------------------------------------------------------------------------

class SnapGuide(BaseModel):
    """An alignment line shown while dragging.

    Attributes:
        type:       "vertical" (constant x) or "horizontal" (constant y).
        position:   The x (vertical) or y (horizontal) of the line.
        start:      Where the line begins along the perpendicular axis.
        end:        Where the line ends along the perpendicular axis.
        align_type: "edge" or "center", for separate visual styling.
    """
    type: Literal["vertical", "horizontal"]
    position: float
    start: float
    end: float
    align_type: Literal["edge", "center"]


# ---------------------------------------------------------------------------
# Document (persistence boundary)
# ---------------------------------------------------------------------------

class Viewport(BaseModel):
    """Pan/zoom state of the canvas view."""
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0


class WorkspaceSettings(BaseModel):
    """Per-workspace preferences persisted alongside the graph."""
    auto_save: bool = True
    auto_save_interval: int = 1000
    theme: str = "dark"
    grid_size: int = 20
    snap_to_grid: bool = False
    show_minimap: bool = True
    default_node_color: str = "#1e1e1e"
    default_edge_color: str = "#555555"


class CanvasDocument(BaseModel):
    """Everything the persistence layer stores for one canvas."""
    version: str = "1.0"
    name: str = "Untitled Workspace"
    description: str = ""
    nodes: list[CanvasNode] = Field(default_factory=list)
    edges: list[CanvasEdge] = Field(default_factory=list)
    viewport: Viewport = Field(default_factory=Viewport)
    settings: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
