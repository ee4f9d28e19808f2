import pytest

from conftest import YEAR, assert_symmetric, counter_ids
from familycanvas.errors import RelationshipLookupError, StorageError, ValidationError
from familycanvas.schemas import MemberDraft, Relation
from familycanvas.storage import MemoryStore
from familycanvas.tree import FamilyTree


def test_end_to_end_scenario(tree):
    result = tree.add_root(MemberDraft(first_name="Alex", surname="Doe", birth_year="1990"))
    assert result.ok
    alex_id = result.member_id
    assert len(result.members) == 1
    assert result.edges == []
    assert len(result.nodes) == 1

    result = tree.add_related(MemberDraft(birth_year="1960"), "parent", alex_id)
    assert result.ok
    father_id = result.member_id
    father = tree.get(father_id)
    assert father.surname == "Doe"
    assert tree.get(alex_id).parents == (father_id,)
    parent_edges = [e for e in result.edges if e.kind == "parent"]
    assert [(e.source, e.target) for e in parent_edges] == [(father_id, alex_id)]

    result = tree.add_related(MemberDraft(birth_year="1985"), "spouse", father_id)
    assert not result.ok
    assert isinstance(result.error, ValidationError)
    assert result.error.rule == "spouse_child_age_gap"
    assert "(born 1990)" in result.error.message
    assert len(tree.snapshot()) == 2
    assert tree.get(father_id).spouses == ()

    result = tree.add_related(MemberDraft(birth_year="1965"), "spouse", father_id)
    assert result.ok
    assert tree.get(alex_id).parents == (father_id, result.member_id)


def test_failed_mutation_returns_previous_view(tree):
    tree.add_root(MemberDraft(surname="Doe", birth_year="1990"))
    before = tree.positions()
    result = tree.add_related(MemberDraft(birth_year="1999"), "child", tree.context.root_id)
    assert result.error.rule == "child_age_gap"
    assert [n.id for n in result.nodes] == list(before)
    assert tree.positions() == before


def test_unknown_target_surfaces_lookup_error(tree):
    tree.add_root(MemberDraft(surname="Doe", birth_year="1990"))
    result = tree.add_related(MemberDraft(birth_year="1960"), "parent", "ghost")
    assert isinstance(result.error, RelationshipLookupError)
    with pytest.raises(RelationshipLookupError):
        tree.select("ghost")


def test_incremental_adds_are_sticky_and_anchored(tree):
    root_id = tree.add_root(MemberDraft(surname="Doe", birth_year="1990")).member_id
    assert tree.positions()[root_id] == {"x": 50, "y": 50}

    father_id = tree.add_related(MemberDraft(first_name="Bob", birth_year="1960"), "parent", root_id).member_id
    mother_id = tree.add_related(MemberDraft(first_name="Ann", birth_year="1962"), "spouse", father_id).member_id
    sister_id = tree.add_related(MemberDraft(first_name="Sue", birth_year="1992"), Relation.CHILD, father_id).member_id

    positions = tree.positions()
    assert positions[root_id] == {"x": 50, "y": 50}
    assert positions[father_id] == {"x": 50, "y": -170}
    assert positions[mother_id] == {"x": 350, "y": -200}
    assert positions[sister_id] == {"x": 350, "y": 50}
    assert_symmetric(tree.registry)

    before = tree.positions()
    tree.refresh()
    assert tree.positions() == before


def test_available_relations_hide_parent_once_father_exists(tree):
    root_id = tree.add_root(MemberDraft(surname="Doe", birth_year="1990")).member_id
    assert tree.available_relations(root_id) == [Relation.PARENT, Relation.CHILD, Relation.SPOUSE]
    tree.add_related(MemberDraft(first_name="Bob", birth_year="1960"), "parent", root_id)
    assert Relation.PARENT not in tree.available_relations(root_id)


def test_edit_fields_reruns_pipeline(tree):
    root_id = tree.add_root(MemberDraft(surname="Doe", birth_year="1990")).member_id
    result = tree.edit_fields(root_id, {"surname": "Roe", "bio": "hi"})
    assert result.ok
    node = next(n for n in result.nodes if n.id == root_id)
    assert node.data["name"] == "You Roe"
    assert tree.edit_fields(root_id, {"parents": []}).error.rule == "immutable_field"


def test_select_highlights_route_to_root(tree):
    root_id = tree.add_root(MemberDraft(surname="Doe", birth_year="1990")).member_id
    father_id = tree.add_related(MemberDraft(birth_year="1960"), "parent", root_id).member_id
    nodes, edges = tree.select(father_id)
    assert {n.id for n in nodes if n.highlighted} == {root_id, father_id}
    assert all(e.highlighted for e in edges if e.kind == "parent")
    nodes, _ = tree.select(None)
    assert not any(n.highlighted for n in nodes)


def test_snapshot_and_positions_survive_reload():
    store = MemoryStore()
    tree = FamilyTree(id_factory=counter_ids(), year_provider=lambda: YEAR, store=store)
    root_id = tree.add_root(MemberDraft(surname="Doe", birth_year="1990")).member_id
    tree.add_related(MemberDraft(first_name="Bob", birth_year="1960"), "parent", root_id)

    reloaded = FamilyTree.load(store, id_factory=counter_ids("n"), year_provider=lambda: YEAR)
    assert reloaded.snapshot() == tree.snapshot()
    assert reloaded.context.root_id == root_id
    assert reloaded.positions() == tree.positions()


def test_storage_failure_does_not_undo_mutation():
    class BrokenStore(MemoryStore):
        def set(self, key, value):
            raise StorageError("disk full")

    tree = FamilyTree(id_factory=counter_ids(), year_provider=lambda: YEAR, store=BrokenStore())
    result = tree.add_root(MemberDraft(surname="Doe", birth_year="1990"))
    assert result.ok
    assert len(tree.snapshot()) == 1


def test_load_with_corrupt_snapshot_starts_empty():
    store = MemoryStore()
    store.set("family-canvas-data", "[{]")
    tree = FamilyTree.load(store)
    assert tree.snapshot() == []
    assert tree.nodes == []


def test_unknown_relation_returns_error_result(tree):
    root_id = tree.add_root(MemberDraft(surname="Doe", birth_year="1990")).member_id
    before = tree.positions()
    result = tree.add_related(MemberDraft(birth_year="1960"), "sibling", root_id)
    assert not result.ok
    assert isinstance(result.error, ValidationError)
    assert result.error.rule == "relation"
    assert [m.id for m in result.members] == [root_id]
    assert tree.positions() == before


def test_family_surname_fills_blank_male_spouse(tree):
    root_id = tree.add_root(MemberDraft(surname="Doe", birth_year="1990", gender="female")).member_id
    result = tree.add_related(MemberDraft(first_name="Tom", birth_year="1988"), "spouse", root_id)
    assert result.ok
    assert tree.get(result.member_id).full_name == "Tom Doe"
