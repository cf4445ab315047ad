"""
Node type registry — default sizes and default data per card type.

The engine only reads the dimensions (for placement, collisions and node
creation).  Default data is merged into new nodes so the per-type UI finds
the fields it expects; the engine never interprets it.
"""

from __future__ import annotations
from typing import Any

from .models import GROUP_TYPE, NodeDimensions


def _dims(min_w: float, min_h: float, w: float, h: float) -> NodeDimensions:
    return NodeDimensions(
        min_width=min_w, min_height=min_h, default_width=w, default_height=h,
    )


# Size constraints per node type
NODE_DIMENSIONS: dict[str, NodeDimensions] = {
    # Content
    "note":         _dims(120, 60, 280, 200),
    "simpleText":   _dims(120, 60, 200, 100),
    "image":        _dims(150, 150, 300, 250),
    "link":         _dims(200, 100, 250, 140),
    "code":         _dims(300, 200, 400, 300),
    "iframe":       _dims(300, 250, 500, 400),
    # Entities
    "person":       _dims(220, 180, 280, 220),
    "organization": _dims(220, 150, 280, 180),
    "timestamp":    _dims(180, 100, 220, 130),
    # OSINT
    "domain":       _dims(240, 180, 300, 220),
    "hash":         _dims(240, 150, 300, 180),
    "credential":   _dims(220, 150, 260, 180),
    "socialPost":   _dims(250, 180, 320, 250),
    "router":       _dims(200, 150, 260, 180),
    "snapshot":     _dims(250, 200, 350, 280),
    # Utility
    GROUP_TYPE:     _dims(200, 150, 400, 300),
    "map":          _dims(280, 200, 560, 470),
    "linkList":     _dims(220, 150, 280, 200),
    "action":       _dims(200, 120, 260, 150),
    "annotation":   _dims(120, 60, 180, 80),
}

FALLBACK_DIMENSIONS = _dims(150, 80, 200, 120)


_DEFAULT_TITLES: dict[str, str] = {
    "note": "New Note",
    "simpleText": "Text",
    "image": "Image",
    "link": "Link",
    "code": "Code Snippet",
    "iframe": "Embed",
    "person": "Person",
    "organization": "Organization",
    "timestamp": "Timestamp",
    "domain": "Domain",
    "hash": "Hash",
    "credential": "Credential",
    "socialPost": "Social Post",
    "router": "Router",
    "snapshot": "Snapshot",
    GROUP_TYPE: "Group",
    "map": "Location",
    "linkList": "Link List",
    "action": "Action",
    "annotation": "Annotation",
}

_DEFAULT_FIELDS: dict[str, dict[str, Any]] = {
    "note": {"content": ""},
    "simpleText": {"content": ""},
    "image": {"caption": ""},
    "link": {"url": "", "description": ""},
    "code": {"code": "", "language": "javascript"},
    "iframe": {"url": ""},
    "person": {"name": "", "aliases": []},
    "organization": {"name": ""},
    "timestamp": {"format": "datetime"},
    "domain": {"domain": ""},
    "hash": {"hash": "", "algorithm": "sha256", "threatLevel": "unknown"},
    "credential": {"breached": False},
    "socialPost": {"platform": "", "content": ""},
    "router": {"name": ""},
    "snapshot": {"url": ""},
    GROUP_TYPE: {"label": "Group", "childNodeIds": []},
    "map": {"latitude": 0, "longitude": 0, "zoom": 10},
    "linkList": {"links": []},
    "action": {"action": "", "status": "pending", "priority": "medium"},
    "annotation": {"label": "Annotation", "fontSize": 24, "fontWeight": "normal"},
}


def get_node_dimensions(node_type: str) -> NodeDimensions:
    """Get the size constraints for a node type (fallback for unknown types)."""
    return NODE_DIMENSIONS.get(node_type, FALLBACK_DIMENSIONS)


def get_default_title(node_type: str) -> str:
    return _DEFAULT_TITLES.get(node_type, "Node")


def get_default_data(node_type: str, color: str = "#1e1e1e") -> dict[str, Any]:
    """Build a fresh default ``data`` payload for a new node of this type.

    Every call returns new containers, so callers may mutate the result.
    """
    data: dict[str, Any] = {"title": get_default_title(node_type), "color": color}
    for key, value in _DEFAULT_FIELDS.get(node_type, {}).items():
        data[key] = list(value) if isinstance(value, list) else value
    return data
