import itertools

import pytest

from familycanvas.mutator import RelationshipMutator
from familycanvas.registry import MemberRegistry
from familycanvas.tree import FamilyTree

YEAR = 2024


def counter_ids(prefix="m"):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


def assert_symmetric(registry: MemberRegistry) -> None:
    for member in registry:
        assert member.id not in member.parents + member.spouses + member.children
        for parent_id in member.parents:
            assert member.id in registry.get(parent_id).children
        for child_id in member.children:
            assert member.id in registry.get(child_id).parents
        for spouse_id in member.spouses:
            assert member.id in registry.get(spouse_id).spouses


@pytest.fixture
def mutator():
    return RelationshipMutator(id_factory=counter_ids(), year_provider=lambda: YEAR)


@pytest.fixture
def tree():
    return FamilyTree(id_factory=counter_ids(), year_provider=lambda: YEAR)
