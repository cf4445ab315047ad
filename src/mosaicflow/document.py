"""YAML document reader/writer for MosaicFlow canvases.

Supports two layouts:
1. Full document (a top-level ``workspace`` mapping with nodes, edges,
   viewport and settings)
2. Bare graph (top-level ``nodes`` and ``edges`` lists only)
"""

from __future__ import annotations
from pathlib import Path

import yaml

from .models import CanvasDocument


def parse_yaml(yaml_str: str) -> CanvasDocument:
    """Parse a YAML string into a CanvasDocument.

    Raises ValueError for empty or non-mapping input, and pydantic
    ValidationError for malformed nodes or edges.
    """
    data = yaml.safe_load(yaml_str)
    if not data:
        raise ValueError("Empty YAML input")
    if not isinstance(data, dict):
        raise ValueError("Canvas document must be a mapping")

    if "workspace" in data:
        data = data["workspace"] or {}
        if not isinstance(data, dict):
            raise ValueError("'workspace' must be a mapping")

    return CanvasDocument.model_validate(data)


def parse_file(path: str | Path) -> CanvasDocument:
    """Parse a YAML file into a CanvasDocument."""
    content = Path(path).read_text(encoding="utf-8")
    return parse_yaml(content)


def document_to_yaml(document: CanvasDocument) -> str:
    """Serialize a CanvasDocument to YAML.

    Unset optional node/edge fields are omitted; transient selection state
    is never written.
    """
    body = {
        "version": document.version,
        "name": document.name,
        "description": document.description,
        "viewport": document.viewport.model_dump(),
        "settings": document.settings.model_dump(),
        "nodes": [],
        "edges": [],
    }

    for node in document.nodes:
        node_data = {
            "id": node.id,
            "type": node.type,
            "position": node.position.model_dump(),
        }
        size = {k: v for k, v in node.size.model_dump().items() if v is not None}
        if size:
            node_data["size"] = size
        if node.parent_id:
            node_data["parent_id"] = node.parent_id
        if node.extent:
            node_data["extent"] = node.extent
        if node.data:
            node_data["data"] = node.data
        body["nodes"].append(node_data)

    for edge in document.edges:
        edge_data = {
            "id": edge.id,
            "source": edge.source,
            "target": edge.target,
        }
        if edge.source_handle:
            edge_data["source_handle"] = edge.source_handle
        if edge.target_handle:
            edge_data["target_handle"] = edge.target_handle
        if edge.label:
            edge_data["label"] = edge.label
        if edge.data:
            edge_data["data"] = edge.data
        body["edges"].append(edge_data)

    return yaml.safe_dump({"workspace": body}, default_flow_style=False, sort_keys=False)


def save_file(document: CanvasDocument, path: str | Path) -> Path:
    """Write a document as YAML, creating parent directories. Returns the path."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(document_to_yaml(document), encoding="utf-8")
    return target
