"""Derive a renderable node/edge graph from a registry snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

import networkx as nx

from .registry import MemberRegistry
from .schemas import Gender, GraphEdge, GraphNode, Member
from .utils import parse_year

FATHER_COLOR = "#3b82f6"
MOTHER_COLOR = "#ec4899"
PATH_COLOR = "#7c3aed"
BROTHERS_COLOR = "#60a5fa"
SISTERS_COLOR = "#f9a8d4"
MIXED_SIBLINGS_COLOR = "#a78bfa"
COUPLE_COLOR = "#f472b6"
PARTNERS_COLOR = "#a855f7"


@dataclass
class FamilyGraph:
    """Nodes and edges of the diagram plus the highlighted route, if any."""

    nodes: List[GraphNode]
    edges: List[GraphEdge]
    highlight_path: List[str] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[GraphNode]:
        return next((node for node in self.nodes if node.id == node_id), None)

    def to_networkx(self) -> nx.MultiDiGraph:
        graph = nx.MultiDiGraph()
        for node in self.nodes:
            graph.add_node(node.id, label=node.data.get("name", node.id), highlighted=node.highlighted)
        for edge in self.edges:
            graph.add_edge(
                edge.source,
                edge.target,
                key=edge.id,
                kind=edge.kind,
                label=edge.label,
                highlighted=edge.highlighted,
            )
        return graph


@dataclass
class EdgeDetails:
    source: Member
    target: Member
    relationship: str
    children: List[Member] = field(default_factory=list)


def find_highlight_path(registry: MemberRegistry, target_id: str, root_id: str) -> List[str]:
    """Depth-first search from ``target_id`` along children towards ``root_id``.

    Only descendants are explored, so a path exists only when the target is
    an ancestor of the root (or the root itself). Returns the ids from the
    target down to the root, or an empty list.
    """

    if registry.get(target_id) is None:
        return []
    came_from: Dict[str, Optional[str]] = {target_id: None}
    stack = [target_id]
    visited: Set[str] = set()
    while stack:
        current = stack.pop()
        if current == root_id:
            path = [current]
            while came_from[path[-1]] is not None:
                path.append(came_from[path[-1]])
            return list(reversed(path))
        if current in visited:
            continue
        visited.add(current)
        person = registry.get(current)
        if person is None:
            continue
        for child_id in reversed(person.children):
            if child_id not in visited:
                came_from.setdefault(child_id, current)
                stack.append(child_id)
    return []


def _parent_edge(parent: Member, child_id: str, in_path: bool, label: Optional[str] = None) -> GraphEdge:
    is_father = parent.gender == Gender.MALE.value
    color = FATHER_COLOR if is_father else MOTHER_COLOR
    return GraphEdge(
        id=f"e-{parent.id}-{child_id}",
        source=parent.id,
        target=child_id,
        kind="parent",
        label=None if in_path else label,
        highlighted=in_path,
        animated=in_path,
        style={
            "type": "smoothstep",
            "stroke": PATH_COLOR if in_path else color,
            "strokeWidth": 3 if in_path else (2.5 if is_father else 2),
            "opacity": 1 if in_path else 0.3,
        },
    )


def _sibling_edge(current: Member, following: Member) -> GraphEdge:
    genders = {current.gender, following.gender}
    if genders == {Gender.MALE.value}:
        color = BROTHERS_COLOR
    elif genders == {Gender.FEMALE.value}:
        color = SISTERS_COLOR
    else:
        color = MIXED_SIBLINGS_COLOR
    married = bool(current.spouses or following.spouses)
    return GraphEdge(
        id=f"e-sibling-{current.id}-{following.id}",
        source=current.id,
        target=following.id,
        kind="sibling",
        style={
            "type": "step",
            "stroke": color,
            "strokeWidth": 1 if married else 1.5,
            "opacity": 0.25,
            "strokeDasharray": "5,5" if married else "3,3",
        },
    )


def _spouse_edge(member: Member, spouse: Optional[Member], spouse_id: str, dimmed: bool) -> GraphEdge:
    genders = {member.gender, spouse.gender if spouse else None}
    color = COUPLE_COLOR if genders == {Gender.MALE.value, Gender.FEMALE.value} else PARTNERS_COLOR
    return GraphEdge(
        id=f"e-spouse-{member.id}-{spouse_id}",
        source=member.id,
        target=spouse_id,
        kind="spouse",
        label="Married",
        style={
            "type": "smoothstep",
            "stroke": color,
            "strokeWidth": 3,
            "opacity": 0.25 if dimmed else 0.5,
        },
    )


def build_graph(
    registry: MemberRegistry,
    highlight_target_id: Optional[str] = None,
    root_id: Optional[str] = None,
) -> FamilyGraph:
    """Project the registry into diagram nodes and edges.

    A parent with one child gets a direct edge. Several children are chained
    with faint sibling edges and the parent links only to the middle child
    (index ``count // 2``). Each spouse pair yields one edge, emitted from
    the smaller id. ``root_id`` defaults to the registry root.
    """

    if root_id is None:
        root = registry.root()
        root_id = root.id if root else None
    path: List[str] = []
    if highlight_target_id and root_id:
        path = find_highlight_path(registry, highlight_target_id, root_id)
    on_path = set(path)
    path_steps: Set[Tuple[str, str]] = set(zip(path, path[1:]))

    nodes = [
        GraphNode(id=member.id, data=member.to_record(), highlighted=member.id in on_path)
        for member in registry
    ]

    edges: List[GraphEdge] = []
    seen: Set[str] = set()

    def emit(edge: GraphEdge) -> None:
        if edge.id not in seen:
            seen.add(edge.id)
            edges.append(edge)

    for member in registry:
        children = [child_id for child_id in member.children if child_id in registry]
        if len(children) == 1:
            child_id = children[0]
            emit(_parent_edge(member, child_id, (member.id, child_id) in path_steps))
        elif len(children) > 1:
            for current_id, next_id in zip(children, children[1:]):
                emit(_sibling_edge(registry.get(current_id), registry.get(next_id)))
            middle_child = children[len(children) // 2]
            label = "Father" if member.gender == Gender.MALE.value else "Mother"
            emit(_parent_edge(member, middle_child, (member.id, middle_child) in path_steps, label))

        for spouse_id in member.spouses:
            spouse = registry.get(spouse_id)
            if spouse is not None and member.id < spouse_id:
                emit(_spouse_edge(member, spouse, spouse_id, bool(highlight_target_id)))

    return FamilyGraph(nodes=nodes, edges=edges, highlight_path=path)


def _by_birth_year(members: List[Member]) -> List[Member]:
    return sorted(members, key=lambda m: parse_year(m.birth_year) or 0)


def describe_edge(registry: MemberRegistry, edge: GraphEdge) -> Optional[EdgeDetails]:
    """Summarize the relationship an edge stands for.

    Parent edges always come back with the parent as ``source`` and all of
    that parent's children ordered by birth year.
    """

    source = registry.get(edge.source)
    target = registry.get(edge.target)
    if source is None or target is None:
        return None
    if edge.kind == "spouse":
        return EdgeDetails(source, target, "Married")
    if edge.kind == "sibling":
        return EdgeDetails(source, target, "Siblings")
    if target.id in source.children:
        parent, child = source, target
    elif source.id in target.children:
        parent, child = target, source
    else:
        return EdgeDetails(source, target, "Connected")
    relationship = "Father - Children" if parent.gender == Gender.MALE.value else "Mother - Children"
    children = [registry.get(child_id) for child_id in parent.children]
    return EdgeDetails(parent, child, relationship, _by_birth_year([c for c in children if c is not None]))


__all__ = ["FamilyGraph", "EdgeDetails", "build_graph", "describe_edge", "find_highlight_path"]
