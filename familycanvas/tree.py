"""Host-facing facade: mutations followed by the graph/layout pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from .errors import FamilyTreeError, StorageError, ValidationError
from .graph import FamilyGraph, build_graph
from .layout import LayoutSettings, layout, positions_of
from .mutator import FamilyContext, RelationshipMutator, parse_relation
from .registry import MemberRegistry
from .schemas import Gender, GraphEdge, GraphNode, Member, MemberDraft, NewNodeContext, Relation
from .storage import (
    LAYOUT_KEY,
    STORAGE_KEY,
    load_members,
    load_positions,
    save_members,
    save_positions,
)
from .utils import current_year, logger, new_member_id
from .validation import check_registry


@dataclass
class MutationResult:
    """Outcome of a mutation: the new view, or the error and the old view."""

    members: List[Member]
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    member_id: Optional[str] = None
    error: Optional[FamilyTreeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FamilyTree:
    """One family tree plus its current diagram.

    Every successful mutation swaps in the new registry, persists it when a
    store is configured and reruns graph building and layout. Storage
    failures are logged and never undo an in-memory change.
    """

    def __init__(
        self,
        *,
        id_factory: Callable[[], str] = new_member_id,
        year_provider: Callable[[], int] = current_year,
        store: Any = None,
        storage_key: str = STORAGE_KEY,
        layout_key: str = LAYOUT_KEY,
        layout_settings: Optional[LayoutSettings] = None,
        members: Iterable[Member] = (),
    ) -> None:
        self.mutator = RelationshipMutator(id_factory=id_factory, year_provider=year_provider)
        self.store = store
        self.storage_key = storage_key
        self.layout_key = layout_key
        self.layout_settings = layout_settings or LayoutSettings()
        self.registry = MemberRegistry(members)
        self.context: Optional[FamilyContext] = FamilyContext.from_registry(self.registry)
        self.selected_id: Optional[str] = None
        self.nodes: List[GraphNode] = []
        self.edges: List[GraphEdge] = []
        if len(self.registry):
            self.refresh()

    @classmethod
    def load(cls, store: Any, storage_key: str = STORAGE_KEY, layout_key: str = LAYOUT_KEY, **kwargs: Any) -> "FamilyTree":
        members = load_members(store, storage_key)
        try:
            registry = MemberRegistry(members)
        except ValueError as exc:
            logger.warning("Could not load family snapshot, starting empty: %s", exc)
            registry = MemberRegistry()
        for warning in check_registry(registry):
            logger.warning(warning)
        tree = cls(store=store, storage_key=storage_key, layout_key=layout_key, **kwargs)
        tree.registry = registry
        tree.context = FamilyContext.from_registry(registry)
        tree.restore_positions(load_positions(store, layout_key))
        if len(registry):
            tree.refresh()
        logger.info("Loaded %d family members", len(registry))
        return tree

    # Queries -----------------------------------------------------------

    def snapshot(self) -> List[Member]:
        return self.registry.all()

    def get(self, member_id: str) -> Optional[Member]:
        return self.registry.get(member_id)

    def has_father(self, member_id: str) -> bool:
        member = self.registry.require(member_id)
        return any(
            parent is not None and parent.gender == Gender.MALE.value
            for parent in (self.registry.get(parent_id) for parent_id in member.parents)
        )

    def available_relations(self, target_id: str) -> List[Relation]:
        """Relations a caller may offer for ``target_id``.

        ``parent`` is withheld once the target has a father; the mutator
        itself would wire a second one.
        """
        relations = [Relation.CHILD, Relation.SPOUSE]
        if not self.has_father(target_id):
            relations.insert(0, Relation.PARENT)
        return relations

    # Mutations ---------------------------------------------------------

    def add_root(self, draft: MemberDraft) -> MutationResult:
        def operation() -> Tuple[MemberRegistry, Member]:
            registry, member, context = self.mutator.add_root(self.registry, draft)
            self.context = context
            return registry, member

        return self._apply(operation, None)

    def add_related(self, draft: MemberDraft, relation: Relation | str, target_id: Optional[str]) -> MutationResult:
        try:
            relation = parse_relation(relation)
        except ValidationError as exc:
            return self._failure(exc)
        if relation is Relation.ROOT:
            if target_id is None:
                return self.add_root(draft)
            return self._apply(lambda: self.mutator.add(self.registry, draft, relation, target_id, self.context), None)
        context = NewNodeContext(related_id=target_id, relation=relation.value) if target_id else None
        return self._apply(lambda: self.mutator.add(self.registry, draft, relation, target_id, self.context), context)

    def edit_fields(self, member_id: str, fields: Mapping[str, Any]) -> MutationResult:
        return self._apply(lambda: self.mutator.edit(self.registry, member_id, fields), None)

    def _apply(
        self,
        operation: Callable[[], Tuple[MemberRegistry, Member]],
        context: Optional[NewNodeContext],
    ) -> MutationResult:
        try:
            registry, member = operation()
        except FamilyTreeError as exc:
            return self._failure(exc)
        self.registry = registry
        if self.context is None:
            self.context = FamilyContext.from_registry(registry)
        nodes, edges = self.refresh(context)
        self._persist()
        return MutationResult(members=self.snapshot(), nodes=nodes, edges=edges, member_id=member.id)

    def _failure(self, error: FamilyTreeError) -> MutationResult:
        return MutationResult(
            members=self.snapshot(),
            nodes=list(self.nodes),
            edges=list(self.edges),
            error=error,
        )

    def _persist(self) -> None:
        if self.store is None:
            return
        try:
            save_members(self.store, self.snapshot(), self.storage_key)
            save_positions(self.store, self.positions(), self.layout_key)
        except StorageError as exc:
            logger.warning("Could not save family snapshot: %s", exc)

    # Pipeline ----------------------------------------------------------

    def build_graph(self, highlight_target_id: Optional[str] = None) -> FamilyGraph:
        root_id = self.context.root_id if self.context else None
        return build_graph(self.registry, highlight_target_id, root_id=root_id)

    def layout(
        self,
        graph: FamilyGraph,
        previous_nodes: Optional[Iterable[GraphNode]] = None,
        new_node_context: Optional[NewNodeContext] = None,
    ) -> List[GraphNode]:
        return layout(graph.nodes, graph.edges, previous_nodes, new_node_context, self.layout_settings)

    def refresh(self, new_node_context: Optional[NewNodeContext] = None) -> Tuple[List[GraphNode], List[GraphEdge]]:
        """Rebuild the graph and lay it out, keeping earlier positions."""
        graph = self.build_graph(self.selected_id)
        self.nodes = self.layout(graph, self.nodes, new_node_context)
        self.edges = graph.edges
        return self.nodes, self.edges

    def select(self, member_id: Optional[str]) -> Tuple[List[GraphNode], List[GraphEdge]]:
        """Highlight the route from ``member_id`` towards the root (``None`` clears)."""
        if member_id is not None:
            self.registry.require(member_id)
        self.selected_id = member_id
        return self.refresh()

    def positions(self):
        return positions_of(self.nodes)

    def restore_positions(self, positions: Mapping[str, Mapping[str, float]]) -> None:
        """Seed sticky positions, e.g. from a previous session."""
        self.nodes = [
            GraphNode(id=node_id, data={}, position={"x": position["x"], "y": position["y"]})
            for node_id, position in positions.items()
        ]


__all__ = ["FamilyTree", "MutationResult"]
