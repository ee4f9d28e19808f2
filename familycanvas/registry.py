"""In-memory member registry."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .errors import RelationshipLookupError
from .schemas import Member


class MemberRegistry:
    """Insertion-ordered table of members keyed by id.

    Members are immutable, so :meth:`copy` only duplicates the mapping. The
    mutator works on a copy and hands it back whole, which keeps every
    mutation all-or-nothing from the caller's point of view.
    """

    def __init__(self, members: Iterable[Member] = ()) -> None:
        self._members: Dict[str, Member] = {}
        for member in members:
            self.insert(member)

    def all(self) -> List[Member]:
        return list(self._members.values())

    def get(self, member_id: Optional[str]) -> Optional[Member]:
        if member_id is None:
            return None
        return self._members.get(member_id)

    def require(self, member_id: Optional[str]) -> Member:
        member = self.get(member_id)
        if member is None:
            raise RelationshipLookupError(member_id)
        return member

    def insert(self, member: Member) -> None:
        if member.id in self._members:
            raise ValueError(f"Member '{member.id}' already exists")
        self._members[member.id] = member

    def replace(self, member_id: str, member: Member) -> None:
        if member_id not in self._members:
            raise RelationshipLookupError(member_id)
        if member.id != member_id:
            raise ValueError("Member ids are immutable")
        self._members[member_id] = member

    def root(self) -> Optional[Member]:
        """The first member ever inserted, i.e. the tree's "self"."""
        return next(iter(self._members.values()), None)

    def copy(self) -> "MemberRegistry":
        clone = MemberRegistry()
        clone._members = dict(self._members)
        return clone

    def to_records(self) -> List[Dict[str, Any]]:
        return [member.to_record() for member in self._members.values()]

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "MemberRegistry":
        return cls(Member.from_record(record) for record in records)

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, member_id: object) -> bool:
        return member_id in self._members

    def __iter__(self) -> Iterator[Member]:
        return iter(list(self._members.values()))


__all__ = ["MemberRegistry"]
