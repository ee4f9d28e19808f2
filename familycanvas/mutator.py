"""Apply add/edit operations to a registry while keeping links symmetric."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional, Tuple

from .errors import RelationshipLookupError, ValidationError
from .registry import MemberRegistry
from .schemas import Gender, Member, MemberDraft, Relation, normalize_gender
from .utils import append_unique, current_year, logger, new_member_id
from .validation import opposite_gender, validate

SELF_LABEL = "You"

TEXT_FIELDS = ("first_name", "surname", "bio")

EDITABLE_FIELDS = {
    "first_name",
    "surname",
    "birth_year",
    "death_year",
    "gender",
    "bio",
    "photo_url",
}


@dataclass(frozen=True)
class FamilyContext:
    """Family-wide state established when the root member is created."""

    root_id: str
    surname: str

    @classmethod
    def from_registry(cls, registry: MemberRegistry) -> Optional["FamilyContext"]:
        root = registry.root()
        if root is None:
            return None
        return cls(root_id=root.id, surname=root.surname)


def parse_relation(value: Relation | str) -> Relation:
    try:
        return Relation(value)
    except ValueError:
        choices = ", ".join(r.value for r in Relation)
        raise ValidationError(
            "relation", f"Unknown relation '{value}'; expected one of {choices}", field="relation"
        ) from None


class RelationshipMutator:
    """Produces new registry states for add and edit requests.

    The incoming registry is never modified. Each operation validates the
    request, applies it to a copy and returns that copy, or raises
    :class:`ValidationError` / :class:`RelationshipLookupError`.

    Whether a target may receive a second parent is left to the caller.
    """

    def __init__(
        self,
        id_factory: Callable[[], str] = new_member_id,
        year_provider: Callable[[], int] = current_year,
    ) -> None:
        self.id_factory = id_factory
        self.year_provider = year_provider

    def _new_id(self, registry: MemberRegistry) -> str:
        member_id = self.id_factory()
        if member_id in registry:
            raise ValueError(f"Id factory produced a duplicate id '{member_id}'")
        return member_id

    def _check(
        self,
        draft: MemberDraft,
        relation: Optional[Relation],
        target: Optional[Member],
        registry: MemberRegistry,
        editing_id: Optional[str] = None,
    ) -> None:
        error = validate(draft, relation, target, registry, self.year_provider(), editing_id=editing_id)
        if error is not None:
            logger.info("Rejected %s: %s", relation.value if relation else "edit", error.message)
            raise error

    def add_root(
        self, registry: MemberRegistry, draft: MemberDraft
    ) -> Tuple[MemberRegistry, Member, FamilyContext]:
        if len(registry):
            raise ValidationError("root", "The tree already has a root member", field="relation")
        draft = replace(draft, first_name=SELF_LABEL)
        self._check(draft, Relation.ROOT, None, registry)
        member = Member.from_draft(self._new_id(registry), draft)
        updated = registry.copy()
        updated.insert(member)
        logger.info("Created root member %s (%s)", member.full_name, member.id)
        return updated, member, FamilyContext(root_id=member.id, surname=member.surname)

    def add(
        self,
        registry: MemberRegistry,
        draft: MemberDraft,
        relation: Relation | str,
        target_id: Optional[str] = None,
        context: Optional[FamilyContext] = None,
    ) -> Tuple[MemberRegistry, Member]:
        relation = parse_relation(relation)
        if relation is Relation.ROOT:
            if target_id is not None:
                raise ValidationError("root", "The root member cannot be related to a target", field="relation")
            updated, member, _ = self.add_root(registry, draft)
            return updated, member

        target = registry.require(target_id)
        if relation in (Relation.PARENT, Relation.CHILD):
            draft = replace(draft, surname=target.surname)
        elif relation is Relation.SPOUSE:
            draft = replace(draft, gender=opposite_gender(target.gender))
        context = context or FamilyContext.from_registry(registry)
        if context is not None and not draft.surname and normalize_gender(draft.gender) == Gender.MALE.value:
            draft = replace(draft, surname=context.surname)
        self._check(draft, relation, target, registry)

        updated = registry.copy()
        member_id = self._new_id(registry)
        if relation is Relation.PARENT:
            member = Member.from_draft(member_id, draft, children=(target.id,))
            updated.replace(target.id, replace(target, parents=append_unique(target.parents, member_id)))
        elif relation is Relation.CHILD:
            parents = (target.id,)
            co_parent = registry.get(target.spouses[0]) if target.spouses else None
            if co_parent is not None:
                parents = parents + (co_parent.id,)
                updated.replace(co_parent.id, replace(co_parent, children=append_unique(co_parent.children, member_id)))
            member = Member.from_draft(member_id, draft, parents=parents)
            updated.replace(target.id, replace(target, children=append_unique(target.children, member_id)))
        else:
            member = Member.from_draft(member_id, draft, spouses=(target.id,), children=target.children)
            for child_id in target.children:
                child = updated.require(child_id)
                updated.replace(child_id, replace(child, parents=append_unique(child.parents, member_id)))
            updated.replace(target.id, replace(target, spouses=append_unique(target.spouses, member_id)))

        updated.insert(member)
        logger.info("Added %s %s (%s) to %s", relation.value, member.full_name, member.id, target.full_name)
        return updated, member

    def edit(
        self, registry: MemberRegistry, member_id: str, fields: Mapping[str, Any]
    ) -> Tuple[MemberRegistry, Member]:
        """Patch non-relation fields of ``member_id``; relations stay as they are."""
        current = registry.require(member_id)
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                "immutable_field",
                f"Cannot edit {', '.join(sorted(unknown))}; only descriptive fields may change",
                member_id=member_id,
                field=sorted(unknown)[0],
            )
        patch = dict(fields)
        for key in TEXT_FIELDS:
            if key in patch and patch[key] is None:
                patch[key] = ""
        if "gender" in patch:
            patch["gender"] = normalize_gender(patch["gender"])
        for key in ("death_year", "photo_url"):
            if key in patch and not patch[key]:
                patch[key] = None
        for key in ("birth_year", "death_year"):
            if patch.get(key) is not None:
                patch[key] = str(patch[key])

        draft = replace(current.as_draft(), **patch)
        self._check(draft, None, None, registry, editing_id=member_id)
        member = replace(current, **patch)
        updated = registry.copy()
        updated.replace(member_id, member)
        logger.info("Edited %s (%s): %s", member.full_name, member_id, ", ".join(sorted(patch)))
        return updated, member


__all__ = ["RelationshipMutator", "FamilyContext", "parse_relation", "SELF_LABEL", "EDITABLE_FIELDS"]
