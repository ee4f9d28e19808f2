import json
import os

import networkx as nx

from familycanvas.export import export_tree, sanitize_graph_for_graphml
from familycanvas.graph import build_graph
from familycanvas.layout import layout
from familycanvas.registry import MemberRegistry
from familycanvas.schemas import Member


def registry():
    return MemberRegistry(
        [
            Member(id="me", first_name="You", surname="Doe", birth_year="1990", gender="male", parents=("dad",)),
            Member(id="dad", first_name="Bob", surname="Doe", birth_year="1960", gender="male", children=("me",)),
        ]
    )


def test_export_creates_files(tmp_path):
    graph = build_graph(registry())
    nodes = layout(graph.nodes, graph.edges)
    paths = export_tree(graph, nodes, str(tmp_path))
    for key in ("nodes", "edges", "graphml", "legend"):
        assert (tmp_path / os.path.basename(paths[key])).exists()
    data = json.loads((tmp_path / "nodes.json").read_text())
    assert data[0]["data"]["name"] == "You Doe"
    assert set(data[0]["position"]) == {"x", "y"}
    loaded = nx.read_graphml(paths["graphml"])
    assert loaded.number_of_nodes() == 2
    assert "x" in loaded.nodes["dad"]


def test_graphml_sanitization_serializes_structures(tmp_path):
    graph = nx.MultiDiGraph()
    graph.add_node("a", tags=["x", "y"], label="A", note=None)
    graph.add_node("b", label="B")
    graph.add_edge("a", "b", key="e1", style={"stroke": "#fff"})
    sanitized = sanitize_graph_for_graphml(graph)
    assert sanitized.nodes["a"]["tags"] == '["x", "y"]'
    assert "note" not in sanitized.nodes["a"]
    nx.write_graphml(sanitized, tmp_path / "graph.graphml")
