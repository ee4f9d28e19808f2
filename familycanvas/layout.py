"""Layered layout with sticky positions for incremental edits."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import networkx as nx

from .schemas import GraphEdge, GraphNode, NewNodeContext, Relation
from .utils import logger

PEER_KINDS = {"spouse", "sibling"}

Position = Dict[str, float]


@dataclass(frozen=True)
class LayoutSettings:
    node_width: float = 200
    node_height: float = 100
    rank_sep: float = 120
    node_sep: float = 100
    margin: float = 50
    spouse_rise: float = 30
    sweeps: int = 4

    @property
    def column(self) -> float:
        return self.node_width + self.node_sep

    @property
    def row(self) -> float:
        return self.node_height + self.rank_sep


def _peer_groups(node_ids: Sequence[str], edges: Iterable[GraphEdge]) -> Dict[str, int]:
    """Map every node to the index of its spouse/sibling component."""
    peers = nx.Graph()
    peers.add_nodes_from(node_ids)
    peers.add_edges_from(
        (edge.source, edge.target)
        for edge in edges
        if edge.kind in PEER_KINDS and edge.source in peers and edge.target in peers
    )
    group_of: Dict[str, int] = {}
    for idx, component in enumerate(nx.connected_components(peers)):
        for node_id in component:
            group_of[node_id] = idx
    return group_of


def _bfs_levels(node_ids: Sequence[str], parent_edges: List[Tuple[str, str]], group_of: Dict[str, int]) -> Dict[str, int]:
    children: Dict[str, List[str]] = {node: [] for node in node_ids}
    incoming: Dict[str, int] = {node: 0 for node in node_ids}
    for parent, child in parent_edges:
        children[parent].append(child)
        incoming[child] += 1
    members: Dict[int, List[str]] = {}
    for node in node_ids:
        members.setdefault(group_of[node], []).append(node)

    frontier = [node for node in node_ids if incoming[node] == 0] or list(node_ids)
    levels: Dict[str, int] = {}
    queue: deque[Tuple[str, int]] = deque((node, 0) for node in frontier)
    while queue:
        node, level = queue.popleft()
        if node in levels:
            continue
        levels[node] = level
        for child in children[node]:
            queue.append((child, level + 1))
        for peer in members[group_of[node]]:
            queue.append((peer, level))
    for node in node_ids:
        levels.setdefault(node, 0)
    return levels


def rank_nodes(node_ids: Sequence[str], edges: Sequence[GraphEdge]) -> Dict[str, int]:
    """Assign a generation rank to every node.

    Spouses and siblings share a rank; parent edges push children one rank
    down. Ranks are longest paths over the condensed parent DAG; if the
    condensation has a cycle we fall back to breadth-first levels.
    """

    present = set(node_ids)
    group_of = _peer_groups(node_ids, edges)
    parent_edges = [
        (edge.source, edge.target)
        for edge in edges
        if edge.kind == "parent" and edge.source in present and edge.target in present
    ]

    condensed = nx.DiGraph()
    condensed.add_nodes_from(group_of[node] for node in node_ids)
    for parent, child in parent_edges:
        if group_of[parent] != group_of[child]:
            condensed.add_edge(group_of[parent], group_of[child])

    if not nx.is_directed_acyclic_graph(condensed):
        logger.debug("Parent edges form a cycle across peer groups; using breadth-first levels")
        levels = _bfs_levels(node_ids, parent_edges, group_of)
    else:
        group_rank: Dict[int, int] = {}
        for group in nx.topological_sort(condensed):
            group_rank[group] = max((group_rank[pred] + 1 for pred in condensed.predecessors(group)), default=0)
        levels = {node: group_rank[group_of[node]] for node in node_ids}

    lowest = min(levels.values(), default=0)
    return {node: level - lowest for node, level in levels.items()}


def order_ranks(
    node_ids: Sequence[str], edges: Sequence[GraphEdge], ranks: Mapping[str, int], sweeps: int = 4
) -> Dict[int, List[str]]:
    """Order nodes inside each rank with barycenter sweeps.

    Peer groups move as one block so spouses and sibling chains stay
    adjacent. Blocks without neighbours in the reference rank keep their
    current place.
    """

    group_of = _peer_groups(node_ids, edges)
    neighbours = nx.Graph()
    neighbours.add_nodes_from(node_ids)
    neighbours.add_edges_from(
        (edge.source, edge.target)
        for edge in edges
        if edge.kind == "parent" and edge.source in neighbours and edge.target in neighbours
    )

    layers: Dict[int, List[str]] = {}
    for node in node_ids:
        layers.setdefault(ranks[node], []).append(node)
    if not layers:
        return layers

    def reorder(rank: int, reference: int) -> None:
        if reference not in layers:
            return
        ref_index = {node: idx for idx, node in enumerate(layers[reference])}
        blocks: Dict[int, List[str]] = {}
        for node in layers[rank]:
            blocks.setdefault(group_of[node], []).append(node)

        def block_key(item: Tuple[int, List[str]]) -> Tuple[float, int]:
            _, block = item
            start = layers[rank].index(block[0])
            hits = [ref_index[other] for node in block for other in neighbours[node] if other in ref_index]
            if not hits:
                return (float(start), start)
            return (sum(hits) / len(hits), start)

        ordered = sorted(blocks.items(), key=block_key)
        layers[rank] = [node for _, block in ordered for node in block]

    lowest, highest = min(layers), max(layers)
    for _ in range(sweeps):
        for rank in range(lowest + 1, highest + 1):
            reorder(rank, rank - 1)
        for rank in range(highest - 1, lowest - 1, -1):
            reorder(rank, rank + 1)
    return layers


def layered_positions(
    nodes: Sequence[GraphNode], edges: Sequence[GraphEdge], settings: LayoutSettings
) -> Dict[str, Tuple[float, float]]:
    """Provisional node centres from the layered pass."""
    node_ids = [node.id for node in nodes]
    ranks = rank_nodes(node_ids, edges)
    layers = order_ranks(node_ids, edges, ranks, settings.sweeps)
    if not layers:
        return {}

    widest = max(len(layer) for layer in layers.values())
    full_width = widest * settings.column - settings.node_sep
    centres: Dict[str, Tuple[float, float]] = {}
    for rank, layer in layers.items():
        width = len(layer) * settings.column - settings.node_sep
        offset = (full_width - width) / 2
        y = settings.margin + rank * settings.row + settings.node_height / 2
        for idx, node_id in enumerate(layer):
            x = settings.margin + offset + idx * settings.column + settings.node_width / 2
            centres[node_id] = (x, y)
    return centres


def positions_of(nodes: Iterable[GraphNode]) -> Dict[str, Position]:
    return {node.id: dict(node.position) for node in nodes if node.position is not None}


def _anchored_offset(
    node: GraphNode,
    context: NewNodeContext,
    nodes_by_id: Mapping[str, GraphNode],
    previous: Mapping[str, Position],
    centres: Mapping[str, Tuple[float, float]],
    settings: LayoutSettings,
) -> Tuple[float, float]:
    relation = context.relation.value if isinstance(context.relation, Relation) else str(context.relation)
    if relation == Relation.PARENT.value:
        return 0.0, -settings.row
    if relation == Relation.SPOUSE.value:
        return settings.column, -settings.spouse_rise
    if relation == Relation.CHILD.value:
        related = nodes_by_id.get(context.related_id)
        siblings = related.data.get("children", []) if related else []
        placed = sum(1 for child_id in siblings if child_id in previous)
        return placed * settings.column, settings.row
    if node.id in centres and context.related_id in centres:
        (x, y), (rx, ry) = centres[node.id], centres[context.related_id]
        return x - rx, y - ry
    return 0.0, 0.0


def layout(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    previous_nodes: Optional[Iterable[GraphNode]] = None,
    new_node_context: Optional[NewNodeContext] = None,
    settings: Optional[LayoutSettings] = None,
) -> List[GraphNode]:
    """Return copies of ``nodes`` with ``position`` set (top-left corner).

    Nodes that already had a position in ``previous_nodes`` keep it exactly.
    A new node is placed next to ``new_node_context.related_id`` when that
    member had a position: above it for a parent, to its right for a spouse,
    below it (shifted past already placed siblings) for a child. Everything
    else takes the layered coordinate.
    """

    settings = settings or LayoutSettings()
    previous = positions_of(previous_nodes or ())
    centres = layered_positions(nodes, edges, settings)
    nodes_by_id = {node.id: node for node in nodes}

    positioned: List[GraphNode] = []
    for node in nodes:
        if node.id in previous:
            position = dict(previous[node.id])
        elif new_node_context is not None and new_node_context.related_id in previous:
            anchor = previous[new_node_context.related_id]
            dx, dy = _anchored_offset(node, new_node_context, nodes_by_id, previous, centres, settings)
            position = {"x": anchor["x"] + dx, "y": anchor["y"] + dy}
            logger.debug("Placed %s relative to %s (%+.0f, %+.0f)", node.id, new_node_context.related_id, dx, dy)
        else:
            x, y = centres[node.id]
            position = {"x": x - settings.node_width / 2, "y": y - settings.node_height / 2}
        positioned.append(replace(node, position=position))
    return positioned


__all__ = [
    "LayoutSettings",
    "layout",
    "layered_positions",
    "order_ranks",
    "positions_of",
    "rank_nodes",
]
