"""Tests for the MCP tool handlers."""

import asyncio
import json

from mosaicflow.server import TOOLS, call_tool


def run(graph, name, **arguments):
    result = asyncio.run(call_tool(graph, name, arguments))
    return json.loads(result[0].text)


def test_every_tool_has_a_handler(graph):
    for tool in TOOLS:
        result = asyncio.run(call_tool(graph, tool.name, {}))
        assert not result[0].text.startswith("Unknown tool")


def test_unknown_tool(graph):
    result = asyncio.run(call_tool(graph, "explode", {}))
    assert result[0].text == "Unknown tool: explode"


def test_missing_arguments_are_reported(graph):
    result = asyncio.run(call_tool(graph, "create_node", {"type": "note"}))
    assert result[0].text.startswith("Invalid arguments for create_node")


def test_create_node_avoids_overlap(graph):
    first = run(graph, "create_node", type="note", position={"x": 0, "y": 0})
    second = run(graph, "create_node", type="note", position={"x": 0, "y": 0})

    assert first["status"] == "success"
    assert first["node"]["position"] == {"x": 0, "y": 0}
    assert second["node"]["position"] == {"x": 0, "y": 220}


def test_group_and_ungroup(graph):
    a = run(graph, "create_node", type="note", position={"x": 0, "y": 0})["node"]["id"]
    b = run(graph, "create_node", type="note", position={"x": 400, "y": 0})["node"]["id"]

    grouped = run(graph, "group_nodes", node_ids=[a, b], label="Pair")
    group_id = grouped["group"]["id"]
    assert grouped["group"]["data"]["label"] == "Pair"

    ungrouped = run(graph, "ungroup_node", id=group_id)
    assert ungrouped == {"status": "success", "children": [a, b]}
    assert run(graph, "ungroup_node", id=group_id)["status"] == "unchanged"


def test_resolve_collisions_stores_result(graph):
    a = run(graph, "create_node", type="note", position={"x": 0, "y": 0}, avoid_overlap=False)
    b = run(graph, "create_node", type="note", position={"x": 0, "y": 0}, avoid_overlap=False)

    result = run(graph, "resolve_collisions")

    assert result["converged"]
    assert result["moved"] == sorted([a["node"]["id"], b["node"]["id"]])
    # Cards are wider than tall, so they separate vertically
    positions = [n["position"] for n in run(graph, "get_graph")["nodes"]]
    assert positions[0] == {"x": 0, "y": -107.5}
    assert positions[1] == {"x": 0, "y": 107.5}


def test_snap_guides_with_offset(graph):
    run(graph, "create_node", type="note", position={"x": 0, "y": 0})
    moving = run(graph, "create_node", type="note", position={"x": 0, "y": 600})["node"]["id"]

    result = run(graph, "snap_guides", node_ids=[moving], offset={"x": 3, "y": 0})

    assert {"type": "vertical", "position": 0.0} in [
        {"type": g["type"], "position": g["position"]} for g in result["guides"]
    ]


def test_save_and_load_document(graph, tmp_path):
    a = run(graph, "create_node", type="note", position={"x": 0, "y": 0})["node"]["id"]
    b = run(graph, "create_node", type="note", position={"x": 500, "y": 0})["node"]["id"]
    run(graph, "create_edge", source=a, target=b)

    saved = run(graph, "save_document", path=str(tmp_path / "canvas"))
    assert saved["path"].endswith("canvas.yaml")

    run(graph, "delete_node", id=a)
    loaded = run(graph, "load_document", path=saved["path"])

    assert loaded["nodes"] == 2
    assert loaded["edges"] == 1


def test_load_missing_document(graph, tmp_path):
    result = asyncio.run(call_tool(graph, "load_document", {"path": str(tmp_path / "nope.yaml")}))
    assert result[0].text.startswith("Failed to load document")


def test_create_node_with_invalid_parent_places_at_top_level(graph):
    run(graph, "create_node", type="note", position={"x": 0, "y": 0})

    created = run(graph, "create_node", type="note", position={"x": 0, "y": 0}, parent_id="missing")

    assert created["node"]["parent_id"] is None
    assert created["node"]["position"] == {"x": 0, "y": 220}
