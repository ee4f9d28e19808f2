"""Age and relationship rules for proposed members."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .errors import ValidationError
from .registry import MemberRegistry
from .schemas import Gender, Member, MemberDraft, Relation
from .utils import parse_year

MIN_PARENT_AGE_GAP = 10
MIN_SPOUSE_AGE = 12


def opposite_gender(gender: str) -> str:
    return Gender.FEMALE.value if gender == Gender.MALE.value else Gender.MALE.value


def _gap_error(rule: str, message: str, relative: Member) -> ValidationError:
    return ValidationError(
        rule,
        f"{message} {relative.full_name} (born {relative.birth})",
        member_id=relative.id,
    )


def _children_of(registry: MemberRegistry, member: Member) -> Iterable[Member]:
    for child_id in member.children:
        child = registry.get(child_id)
        if child is not None and child.birth is not None:
            yield child


def _check_format(draft: MemberDraft) -> Optional[ValidationError]:
    if parse_year(draft.birth_year) is None:
        return ValidationError("birth_year_format", "Birth year is required and must be a 4-digit year")
    if draft.death_year and parse_year(draft.death_year) is None:
        return ValidationError(
            "death_year_format",
            "Death year must be a 4-digit year",
            field="death_year",
        )
    return None


def _check_lifespan(draft: MemberDraft, current_year: int) -> Optional[ValidationError]:
    death = draft.death
    if death is None:
        return None
    if death < draft.birth:
        return ValidationError(
            "lifespan",
            f"Death year {death} cannot be before birth year {draft.birth}",
            field="death_year",
        )
    if death > current_year:
        return ValidationError(
            "future_death",
            f"Death year cannot be in the future. Current year is {current_year}",
            field="death_year",
        )
    return None


def _check_edit(draft: MemberDraft, editing: Member, registry: MemberRegistry) -> Optional[ValidationError]:
    birth = draft.birth
    for child in _children_of(registry, editing):
        if child.birth - birth < MIN_PARENT_AGE_GAP:
            return _gap_error(
                "edit_child_age_gap",
                "Parent must be at least 10 years older than child",
                child,
            )
    for parent_id in editing.parents:
        parent = registry.get(parent_id)
        if parent is None or parent.birth is None:
            continue
        if birth - parent.birth < MIN_PARENT_AGE_GAP:
            return _gap_error(
                "edit_parent_age_gap",
                "Child must be at least 10 years younger than parent",
                parent,
            )
    for spouse_id in editing.spouses:
        spouse = registry.get(spouse_id)
        if spouse is None:
            continue
        for child in _children_of(registry, spouse):
            if child.birth - birth < MIN_PARENT_AGE_GAP:
                return _gap_error(
                    "edit_spouse_child_age_gap",
                    "Parent must be at least 10 years older than child",
                    child,
                )
    return None


def validate(
    draft: MemberDraft,
    relation: Relation | str | None,
    target: Optional[Member],
    registry: MemberRegistry,
    current_year: int,
    editing_id: Optional[str] = None,
) -> Optional[ValidationError]:
    """Return the first rule ``draft`` breaks, or ``None`` when it is valid.

    Rules run in a fixed order: year format, future birth, lifespan, then the
    relation-specific age gaps against ``target``, and finally (when
    ``editing_id`` is given) the gaps against the member's stored relatives.
    Nothing is mutated.
    """

    error = _check_format(draft)
    if error:
        return error
    birth = draft.birth
    if birth > current_year:
        return ValidationError(
            "future_birth",
            f"Birth year cannot be in the future. Current year is {current_year}",
        )
    error = _check_lifespan(draft, current_year)
    if error:
        return error

    relation = Relation(relation) if relation else None
    if target is not None and target.birth is not None:
        if relation is Relation.PARENT and target.birth - birth < MIN_PARENT_AGE_GAP:
            return _gap_error(
                "parent_age_gap",
                "Parent must be at least 10 years older than",
                target,
            )
        if relation is Relation.CHILD:
            if birth - target.birth < MIN_PARENT_AGE_GAP:
                return _gap_error(
                    "child_age_gap",
                    "Child must be at least 10 years younger than",
                    target,
                )
    if relation is Relation.CHILD and target is not None and target.spouses:
        co_parent = registry.get(target.spouses[0])
        if co_parent is not None and co_parent.birth is not None:
            if birth - co_parent.birth < MIN_PARENT_AGE_GAP:
                return _gap_error(
                    "co_parent_age_gap",
                    "Child must be at least 10 years younger than",
                    co_parent,
                )
    if relation is Relation.SPOUSE:
        min_birth_year = current_year - MIN_SPOUSE_AGE
        if birth > min_birth_year:
            return ValidationError(
                "spouse_min_age",
                f"Spouse must be at least {MIN_SPOUSE_AGE} years old. "
                f"Birth year must be {min_birth_year} or earlier",
            )
        if target is not None:
            role = "Wife/Mother" if opposite_gender(target.gender) == Gender.FEMALE.value else "Husband/Father"
            for child in _children_of(registry, target):
                if child.birth - birth < MIN_PARENT_AGE_GAP:
                    return _gap_error(
                        "spouse_child_age_gap",
                        f"{role} must be at least 10 years older than",
                        child,
                    )

    if editing_id is not None:
        editing = registry.get(editing_id)
        if editing is not None:
            return _check_edit(draft, editing, registry)
    return None


def check_registry(registry: MemberRegistry) -> List[str]:
    """
    Audit a whole registry for:
    - Asymmetric parent/child or spouse links
    - Self-relations and links to unknown ids
    - Impossible ages (parent less than 10 years older than child)
    - Death before birth

    Returns a list of warning messages.
    """
    warnings: List[str] = []

    for member in registry:
        name = member.full_name or member.id
        for kind in ("parents", "spouses", "children"):
            for other_id in getattr(member, kind):
                if other_id == member.id:
                    warnings.append(f"Self-relation: {name} lists itself in {kind}")
                elif other_id not in registry:
                    warnings.append(f"Dangling link: {name} {kind} references unknown id '{other_id}'")

        for parent_id in member.parents:
            parent = registry.get(parent_id)
            if parent is None:
                continue
            if member.id not in parent.children:
                warnings.append(f"Asymmetric: {parent.full_name} does not list child {name}")
            if parent.birth is not None and member.birth is not None:
                if member.birth - parent.birth < MIN_PARENT_AGE_GAP:
                    warnings.append(
                        f"Suspicious: {parent.full_name} was less than {MIN_PARENT_AGE_GAP} years "
                        f"old when {name} was born"
                    )
        for child_id in member.children:
            child = registry.get(child_id)
            if child is not None and member.id not in child.parents:
                warnings.append(f"Asymmetric: {child.full_name} does not list parent {name}")
        for spouse_id in member.spouses:
            spouse = registry.get(spouse_id)
            if spouse is not None and member.id not in spouse.spouses:
                warnings.append(f"Asymmetric: {spouse.full_name} does not list spouse {name}")

        if member.birth is not None and member.death is not None and member.death < member.birth:
            warnings.append(f"Impossible: {name} died before being born")

    return warnings


__all__ = ["validate", "check_registry", "opposite_gender", "MIN_PARENT_AGE_GAP", "MIN_SPOUSE_AGE"]
