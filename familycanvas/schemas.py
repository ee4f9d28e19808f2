"""Dataclasses for members, drafts and the derived diagram."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .utils import parse_year


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Relation(str, Enum):
    PARENT = "parent"
    CHILD = "child"
    SPOUSE = "spouse"
    ROOT = "root"


def normalize_gender(value: Any) -> str:
    try:
        return Gender(str(value).lower()).value
    except ValueError:
        return Gender.OTHER.value


def compose_name(first_name: str, surname: str) -> str:
    return f"{first_name} {surname}".strip()


@dataclass(frozen=True)
class MemberDraft:
    """User-supplied fields of a member before it has an id or relations."""

    first_name: str = ""
    surname: str = ""
    birth_year: str = ""
    death_year: Optional[str] = None
    gender: str = Gender.MALE.value
    bio: str = ""
    photo_url: Optional[str] = None

    @property
    def birth(self) -> int | None:
        return parse_year(self.birth_year)

    @property
    def death(self) -> int | None:
        return parse_year(self.death_year)

    @property
    def full_name(self) -> str:
        return compose_name(self.first_name, self.surname)


@dataclass(frozen=True)
class Member:
    id: str
    first_name: str
    surname: str
    birth_year: str
    death_year: Optional[str] = None
    gender: str = Gender.OTHER.value
    bio: str = ""
    photo_url: Optional[str] = None
    parents: Tuple[str, ...] = ()
    spouses: Tuple[str, ...] = ()
    children: Tuple[str, ...] = ()

    @property
    def full_name(self) -> str:
        return compose_name(self.first_name, self.surname)

    @property
    def birth(self) -> int | None:
        return parse_year(self.birth_year)

    @property
    def death(self) -> int | None:
        return parse_year(self.death_year)

    @classmethod
    def from_draft(cls, member_id: str, draft: MemberDraft, **relations: Tuple[str, ...]) -> "Member":
        return cls(
            id=member_id,
            first_name=draft.first_name,
            surname=draft.surname,
            birth_year=str(draft.birth_year),
            death_year=str(draft.death_year) if draft.death_year else None,
            gender=normalize_gender(draft.gender),
            bio=draft.bio,
            photo_url=draft.photo_url or None,
            **relations,
        )

    def as_draft(self) -> MemberDraft:
        return MemberDraft(
            first_name=self.first_name,
            surname=self.surname,
            birth_year=self.birth_year,
            death_year=self.death_year,
            gender=self.gender,
            bio=self.bio,
            photo_url=self.photo_url,
        )

    def to_record(self) -> Dict[str, Any]:
        """Persisted form, field-for-field with the stored data model."""
        return {
            "id": self.id,
            "name": self.full_name,
            "firstName": self.first_name,
            "surname": self.surname,
            "birthYear": self.birth_year,
            "deathYear": self.death_year,
            "gender": self.gender,
            "bio": self.bio,
            "photoUrl": self.photo_url,
            "parents": list(self.parents),
            "spouses": list(self.spouses),
            "children": list(self.children),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Member":
        """Inverse of :meth:`to_record`; ``name`` is ignored and recomputed."""
        if "id" not in record:
            raise KeyError("id")
        return cls(
            id=str(record["id"]),
            first_name=str(record.get("firstName") or ""),
            surname=str(record.get("surname") or ""),
            birth_year=str(record.get("birthYear") or ""),
            death_year=str(record["deathYear"]) if record.get("deathYear") else None,
            gender=normalize_gender(record.get("gender", Gender.OTHER.value)),
            bio=str(record.get("bio") or ""),
            photo_url=record.get("photoUrl") or None,
            parents=tuple(dict.fromkeys(record.get("parents") or ())),
            spouses=tuple(dict.fromkeys(record.get("spouses") or ())),
            children=tuple(dict.fromkeys(record.get("children") or ())),
        )


@dataclass(frozen=True)
class NewNodeContext:
    """Which existing member a freshly added node relates to, and how."""

    related_id: str
    relation: str


@dataclass
class GraphNode:
    id: str
    data: Dict[str, Any]
    type: str = "family"
    highlighted: bool = False
    position: Optional[Dict[str, float]] = None

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GraphEdge:
    id: str
    source: str
    target: str
    kind: str
    label: Optional[str] = None
    highlighted: bool = False
    animated: bool = False
    style: Dict[str, Any] = field(default_factory=dict)

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "Gender",
    "Relation",
    "MemberDraft",
    "Member",
    "NewNodeContext",
    "GraphNode",
    "GraphEdge",
    "compose_name",
    "normalize_gender",
]
