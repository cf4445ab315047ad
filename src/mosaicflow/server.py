"""MosaicFlow MCP server — layout-engine tools over a single canvas graph."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from .collisions import CollisionOptions, resolve_collisions_report
from .document import parse_file, save_file
from .graph import GraphModel
from .grouping import GroupingEngine
from .models import CanvasNode, Position, Size
from .placement import find_non_overlapping_position
from .settings import load_settings
from .snap_guides import calculate_selection_snap_guides, calculate_snap_guides

logger = logging.getLogger(__name__)


# --- Constants ---
DOCUMENTS_DIR = Path(os.environ.get("MOSAICFLOW_DOCUMENTS_DIR", Path.home() / ".mosaicflow" / "canvases"))


_POINT_SCHEMA = {
    "type": "object",
    "properties": {"x": {"type": "number"}, "y": {"type": "number"}},
    "required": ["x", "y"],
}

_SIZE_SCHEMA = {
    "type": "object",
    "properties": {"width": {"type": "number"}, "height": {"type": "number"}},
}


# --- Tool definitions ---

TOOLS: list[Tool] = [
    Tool(
        name="create_node",
        description=(
            "Create a card on the canvas. The card gets its type's default size "
            "and data. With avoid_overlap (default true) it is moved to the "
            "nearest free spot around the requested position."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "type": {"type": "string", "description": "Card type, e.g. note, person, group"},
                "position": _POINT_SCHEMA,
                "data": {"type": "object", "description": "Overrides for the default data"},
                "parent_id": {"type": "string", "description": "Group to create the card in"},
                "avoid_overlap": {"type": "boolean", "default": True},
            },
            "required": ["type", "position"],
        },
    ),
    Tool(
        name="update_node",
        description="Shallow-merge fields (position, size, data, parent_id, extent) into a card.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "changes": {"type": "object"},
            },
            "required": ["id", "changes"],
        },
    ),
    Tool(
        name="delete_node",
        description="Delete a card and its edges. Deleting a group follows the configured child policy.",
        inputSchema={
            "type": "object",
            "properties": {"id": {"type": "string"}},
            "required": ["id"],
        },
    ),
    Tool(
        name="create_edge",
        description="Connect two cards. Self-loops are ignored; parallel edges are allowed.",
        inputSchema={
            "type": "object",
            "properties": {
                "source": {"type": "string"},
                "target": {"type": "string"},
                "label": {"type": "string"},
                "source_handle": {"type": "string"},
                "target_handle": {"type": "string"},
            },
            "required": ["source", "target"],
        },
    ),
    Tool(
        name="delete_edge",
        description="Delete an edge by id.",
        inputSchema={
            "type": "object",
            "properties": {"id": {"type": "string"}},
            "required": ["id"],
        },
    ),
    Tool(
        name="group_nodes",
        description="Wrap two or more cards in a new group card sized to fit them.",
        inputSchema={
            "type": "object",
            "properties": {
                "node_ids": {"type": "array", "items": {"type": "string"}},
                "contain": {"type": "boolean", "description": "Clip children to the group"},
                "label": {"type": "string", "default": "Group"},
            },
            "required": ["node_ids"],
        },
    ),
    Tool(
        name="ungroup_node",
        description="Dissolve a group; its children stay where they are on screen.",
        inputSchema={
            "type": "object",
            "properties": {"id": {"type": "string"}},
            "required": ["id"],
        },
    ),
    Tool(
        name="set_node_contained",
        description="Toggle whether a grouped card is clipped to its group's bounds.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "contained": {"type": "boolean"},
            },
            "required": ["id", "contained"],
        },
    ),
    Tool(
        name="resolve_collisions",
        description="Push overlapping sibling cards apart and store the result.",
        inputSchema={
            "type": "object",
            "properties": {
                "max_iterations": {"type": "integer"},
                "overlap_threshold": {"type": "number"},
                "margin": {"type": "number"},
            },
        },
    ),
    Tool(
        name="find_position",
        description="Find the nearest free position for a card of the given size.",
        inputSchema={
            "type": "object",
            "properties": {
                "position": _POINT_SCHEMA,
                "size": _SIZE_SCHEMA,
                "type": {"type": "string", "default": "note"},
                "parent_id": {"type": "string"},
                "margin": {"type": "number"},
            },
            "required": ["position"],
        },
    ),
    Tool(
        name="snap_guides",
        description=(
            "Compute alignment guides for cards being dragged to the given "
            "positions (one id: single card, several ids: selection)."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "node_ids": {"type": "array", "items": {"type": "string"}},
                "offset": _POINT_SCHEMA,
                "threshold": {"type": "number"},
            },
            "required": ["node_ids"],
        },
    ),
    Tool(
        name="load_document",
        description="Replace the canvas with a YAML document from disk.",
        inputSchema={
            "type": "object",
            "properties": {"path": {"type": "string"}},
            "required": ["path"],
        },
    ),
    Tool(
        name="save_document",
        description="Save the canvas as YAML. Relative names go to the documents directory.",
        inputSchema={
            "type": "object",
            "properties": {"path": {"type": "string"}},
            "required": ["path"],
        },
    ),
    Tool(
        name="get_graph",
        description="Return every card and edge as JSON.",
        inputSchema={"type": "object", "properties": {}},
    ),
]


def _text(payload: dict[str, Any]) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload))]


def _node_json(node: Optional[CanvasNode]) -> Optional[dict[str, Any]]:
    return node.model_dump() if node is not None else None


# --- Tool handlers ---

async def call_tool(graph: GraphModel, name: str, arguments: dict) -> list[TextContent]:
    """Run one tool against ``graph`` and return a JSON text result."""
    handler = _HANDLERS.get(name)
    if handler is None:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]
    try:
        return handler(graph, arguments)
    except (KeyError, ValidationError) as e:
        logger.info("Tool %s rejected arguments: %s", name, e)
        return [TextContent(type="text", text=f"Invalid arguments for {name}: {e}")]


def _create_node(graph: GraphModel, args: dict) -> list[TextContent]:
    node_type = args["type"]
    position = Position.model_validate(args["position"])
    parent_id = args.get("parent_id")
    if parent_id is not None:
        parent = graph.get_node(parent_id)
        if parent is None or not parent.is_group:
            parent_id = None

    if args.get("avoid_overlap", True):
        position = find_non_overlapping_position(
            position,
            Size(),
            graph.nodes,
            graph.settings.placement_margin,
            parent_id=parent_id,
            node_type=node_type,
            step=graph.settings.placement_step,
            max_rings=graph.settings.placement_max_rings,
        )

    node = graph.create_node(node_type, position, args.get("data"), parent_id=parent_id)
    return _text({"status": "success", "node": _node_json(node)})


def _update_node(graph: GraphModel, args: dict) -> list[TextContent]:
    node = graph.update_node(args["id"], args["changes"])
    return _text({"status": "success" if node else "unchanged", "node": _node_json(node)})


def _delete_node(graph: GraphModel, args: dict) -> list[TextContent]:
    deleted = graph.delete_node(args["id"])
    return _text({"status": "success" if deleted else "unchanged"})


def _create_edge(graph: GraphModel, args: dict) -> list[TextContent]:
    edge = graph.create_edge(
        args["source"],
        args["target"],
        label=args.get("label"),
        source_handle=args.get("source_handle"),
        target_handle=args.get("target_handle"),
    )
    return _text({
        "status": "success" if edge else "unchanged",
        "edge": edge.model_dump() if edge else None,
    })


def _delete_edge(graph: GraphModel, args: dict) -> list[TextContent]:
    deleted = graph.delete_edge(args["id"])
    return _text({"status": "success" if deleted else "unchanged"})


def _group_nodes(graph: GraphModel, args: dict) -> list[TextContent]:
    group = GroupingEngine(graph).group_selected_nodes(
        args["node_ids"],
        contain=args.get("contain"),
        label=args.get("label", "Group"),
    )
    return _text({"status": "success" if group else "unchanged", "group": _node_json(group)})


def _ungroup_node(graph: GraphModel, args: dict) -> list[TextContent]:
    group = graph.get_node(args["id"])
    child_ids = GroupingEngine(graph).ungroup_node(args["id"])
    ungrouped = group is not None and group.is_group
    return _text({"status": "success" if ungrouped else "unchanged", "children": child_ids})


def _set_node_contained(graph: GraphModel, args: dict) -> list[TextContent]:
    node = GroupingEngine(graph).set_node_contained(args["id"], bool(args["contained"]))
    return _text({"status": "success" if node else "unchanged", "node": _node_json(node)})


def _resolve_collisions(graph: GraphModel, args: dict) -> list[TextContent]:
    settings = graph.settings
    options = CollisionOptions(
        max_iterations=args.get("max_iterations", settings.collision_max_iterations),
        overlap_threshold=args.get("overlap_threshold", settings.collision_overlap_threshold),
        margin=args.get("margin", settings.collision_margin),
    )
    result = resolve_collisions_report(graph.nodes, options)
    if result.moved_ids:
        graph.set_nodes(result.nodes)
    return _text({
        "status": "success",
        "moved": sorted(result.moved_ids),
        "iterations": result.iterations,
        "converged": result.converged,
    })


def _find_position(graph: GraphModel, args: dict) -> list[TextContent]:
    position = find_non_overlapping_position(
        Position.model_validate(args["position"]),
        Size.model_validate(args.get("size") or {}),
        graph.nodes,
        args.get("margin", graph.settings.placement_margin),
        parent_id=args.get("parent_id"),
        node_type=args.get("type", "note"),
        step=graph.settings.placement_step,
        max_rings=graph.settings.placement_max_rings,
    )
    return _text({"status": "success", "position": position.model_dump()})


def _snap_guides(graph: GraphModel, args: dict) -> list[TextContent]:
    offset = Position.model_validate(args.get("offset") or {})
    threshold = args.get("threshold", graph.settings.snap_threshold)
    overhang = graph.settings.guide_overhang

    dragged = []
    for node_id in args["node_ids"]:
        node = graph.get_node(node_id)
        if node is None:
            continue
        moved = Position(x=node.position.x + offset.x, y=node.position.y + offset.y)
        dragged.append(node.model_copy(update={"position": moved}))

    if not dragged:
        guides = []
    elif len(dragged) == 1:
        guides = calculate_snap_guides(dragged[0], graph.nodes, threshold, overhang)
    else:
        guides = calculate_selection_snap_guides(dragged, graph.nodes, threshold, overhang)

    return _text({"status": "success", "guides": [g.model_dump() for g in guides]})


def _resolve_path(path: str) -> Path:
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return DOCUMENTS_DIR / candidate


def _load_document(graph: GraphModel, args: dict) -> list[TextContent]:
    path = _resolve_path(args["path"])
    try:
        document = parse_file(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        return [TextContent(type="text", text=f"Failed to load document: {e}")]

    graph.load_document(document)
    return _text({
        "status": "success",
        "path": str(path),
        "nodes": len(graph.nodes),
        "edges": len(graph.edges),
    })


def _save_document(graph: GraphModel, args: dict) -> list[TextContent]:
    path = _resolve_path(args["path"])
    if not path.suffix:
        path = path.with_suffix(".yaml")
    try:
        save_file(graph.to_document(), path)
    except OSError as e:
        return [TextContent(type="text", text=f"Failed to save document: {e}")]
    return _text({"status": "success", "path": str(path)})


def _get_graph(graph: GraphModel, args: dict) -> list[TextContent]:
    return _text({
        "version": graph.version,
        "nodes": [n.model_dump() for n in graph.nodes],
        "edges": [e.model_dump() for e in graph.edges],
        "selected": list(graph.selected_node_ids),
    })


_HANDLERS = {
    "create_node": _create_node,
    "update_node": _update_node,
    "delete_node": _delete_node,
    "create_edge": _create_edge,
    "delete_edge": _delete_edge,
    "group_nodes": _group_nodes,
    "ungroup_node": _ungroup_node,
    "set_node_contained": _set_node_contained,
    "resolve_collisions": _resolve_collisions,
    "find_position": _find_position,
    "snap_guides": _snap_guides,
    "load_document": _load_document,
    "save_document": _save_document,
    "get_graph": _get_graph,
}


def create_server(graph: GraphModel) -> Server:
    """Build an MCP server bound to one canvas graph."""
    server = Server("mosaicflow")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return TOOLS

    @server.call_tool()
    async def handle_call_tool(name: str, arguments: dict) -> list[TextContent]:
        return await call_tool(graph, name, arguments or {})

    return server


def main():
    """Entry point for the MCP server."""
    import asyncio

    logging.basicConfig(
        level=os.environ.get("MOSAICFLOW_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(_run())


async def _run():
    graph = GraphModel(settings=load_settings())
    server = create_server(graph)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
