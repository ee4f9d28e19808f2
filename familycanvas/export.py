"""Diagram export utilities."""

from __future__ import annotations

import json
import os
from typing import Dict, Sequence

import networkx as nx

from . import graph as graph_styles
from .graph import FamilyGraph
from .schemas import GraphNode
from .utils import console

EDGE_STYLES = {
    "father": {"color": graph_styles.FATHER_COLOR, "style": "solid"},
    "mother": {"color": graph_styles.MOTHER_COLOR, "style": "solid"},
    "highlight": {"color": graph_styles.PATH_COLOR, "style": "solid"},
    "brothers": {"color": graph_styles.BROTHERS_COLOR, "style": "dashed"},
    "sisters": {"color": graph_styles.SISTERS_COLOR, "style": "dashed"},
    "siblings": {"color": graph_styles.MIXED_SIBLINGS_COLOR, "style": "dashed"},
    "married": {"color": graph_styles.COUPLE_COLOR, "style": "solid"},
    "partners": {"color": graph_styles.PARTNERS_COLOR, "style": "solid"},
}

LEGEND = {"edges": EDGE_STYLES}


def _is_scalar(value: object) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def sanitize_graph_for_graphml(graph: nx.MultiDiGraph) -> nx.MultiDiGraph:
    """Return a copy whose attributes are all GraphML-safe scalars.

    Lists and dicts are serialized to JSON strings; ``None`` values are
    dropped because the GraphML writer cannot type them.
    """

    def _sanitize(data: Dict[str, object]) -> Dict[str, object]:
        clean: Dict[str, object] = {}
        for key, value in data.items():
            if value is None:
                continue
            if _is_scalar(value):
                clean[key] = value
            else:
                clean[key] = json.dumps(value, ensure_ascii=False, default=str)
        return clean

    safe = graph.__class__()
    for node, data in graph.nodes(data=True):
        safe.add_node(node, **_sanitize(data))
    for u, v, key, data in graph.edges(keys=True, data=True):
        safe.add_edge(u, v, key=key, **_sanitize(data))
    return safe


def _positioned_graph(graph: FamilyGraph, nodes: Sequence[GraphNode]) -> nx.MultiDiGraph:
    nx_graph = graph.to_networkx()
    for node in nodes:
        if node.id in nx_graph and node.position is not None:
            nx_graph.nodes[node.id]["x"] = node.position["x"]
            nx_graph.nodes[node.id]["y"] = node.position["y"]
    return nx_graph


def export_tree(graph: FamilyGraph, nodes: Sequence[GraphNode], out_dir: str) -> Dict[str, str]:
    """Write JSON, GraphML, DOT and legend files for a laid-out diagram."""
    os.makedirs(out_dir, exist_ok=True)
    nodes_path = os.path.join(out_dir, "nodes.json")
    edges_path = os.path.join(out_dir, "edges.json")
    graphml_path = os.path.join(out_dir, "graph.graphml")
    dot_path = os.path.join(out_dir, "graph.dot")
    legend_path = os.path.join(out_dir, "legend.json")

    with open(nodes_path, "w", encoding="utf-8") as fh:
        json.dump([node.dict() for node in nodes], fh, indent=2)
    with open(edges_path, "w", encoding="utf-8") as fh:
        json.dump([edge.dict() for edge in graph.edges], fh, indent=2)

    positioned = sanitize_graph_for_graphml(_positioned_graph(graph, nodes))
    nx.write_graphml(positioned, graphml_path)
    paths = {
        "nodes": nodes_path,
        "edges": edges_path,
        "graphml": graphml_path,
        "legend": legend_path,
    }
    try:
        from networkx.drawing.nx_pydot import write_dot

        write_dot(positioned, dot_path)
        paths["dot"] = dot_path
        console.log("DOT export ready", dot_path)
    except Exception as exc:  # pragma: no cover - depends on pydot/graphviz install
        console.log("[yellow]DOT export via pydot failed[/yellow]", exc)

    with open(legend_path, "w", encoding="utf-8") as fh:
        json.dump(LEGEND, fh, indent=2)
    return paths


__all__ = ["export_tree", "sanitize_graph_for_graphml", "LEGEND", "EDGE_STYLES"]
