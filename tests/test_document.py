"""Tests for YAML persistence."""

import pytest

from mosaicflow.document import document_to_yaml, parse_file, parse_yaml, save_file
from mosaicflow.graph import GraphModel
from mosaicflow.grouping import GroupingEngine
from mosaicflow.models import Position


def build_graph(graph):
    a = graph.create_node("person", Position(x=10, y=10), {"name": "Ada"})
    b = graph.create_node("note", Position(x=400, y=10))
    graph.create_edge(a.id, b.id, label="wrote")
    GroupingEngine(graph).group_selected_nodes([a.id, b.id], label="Team")
    return graph


def test_round_trip_preserves_graph(graph):
    document = build_graph(graph).to_document()

    restored = parse_yaml(document_to_yaml(document))

    assert restored.model_dump() == document.model_dump()


def test_selection_is_not_persisted(graph):
    build_graph(graph)
    assert graph.selected_node_ids

    text = document_to_yaml(graph.to_document())

    assert "selected" not in text
    restored = parse_yaml(text)
    assert not any(node.selected for node in restored.nodes)


def test_load_into_graph(graph):
    document = build_graph(graph).to_document()

    loaded = GraphModel.from_document(parse_yaml(document_to_yaml(document)))

    assert [n.id for n in loaded.nodes] == [n.id for n in graph.nodes]
    assert len(loaded.edges) == 1
    assert loaded.selected_node_ids == ()


def test_bare_graph_layout():
    document = parse_yaml(
        """
nodes:
  - id: a
    type: note
    position: {x: 1, y: 2}
edges: []
"""
    )
    assert document.nodes[0].position == Position(x=1, y=2)
    assert document.name == "Untitled Workspace"


@pytest.mark.parametrize("text", ["", "   \n", "- just\n- a list\n"])
def test_rejects_empty_or_non_mapping(text):
    with pytest.raises(ValueError):
        parse_yaml(text)


def test_save_and_parse_file(tmp_path, graph):
    document = build_graph(graph).to_document()

    path = save_file(document, tmp_path / "nested" / "canvas.yaml")

    assert path.exists()
    assert parse_file(path).model_dump() == document.model_dump()
