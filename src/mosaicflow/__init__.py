"""MosaicFlow — spatial layout engine for a freeform card canvas."""

from .collisions import CollisionOptions, resolve_collisions
from .graph import GraphModel, GraphSnapshot
from .grouping import GroupingEngine
from .models import CanvasDocument, CanvasEdge, CanvasNode, Position, Size, SnapGuide
from .placement import find_non_overlapping_position
from .settings import EngineSettings, load_settings
from .snap_guides import calculate_selection_snap_guides, calculate_snap_guides
from .transform import to_absolute, to_relative

__all__ = [
    "CanvasDocument",
    "CanvasEdge",
    "CanvasNode",
    "CollisionOptions",
    "EngineSettings",
    "GraphModel",
    "GraphSnapshot",
    "GroupingEngine",
    "Position",
    "Size",
    "SnapGuide",
    "calculate_selection_snap_guides",
    "calculate_snap_guides",
    "find_non_overlapping_position",
    "load_settings",
    "resolve_collisions",
    "to_absolute",
    "to_relative",
]
