"""Error taxonomy for family tree operations."""

from __future__ import annotations

from typing import Optional


class FamilyTreeError(Exception):
    """Base class for every failure surfaced by the core."""


class ValidationError(FamilyTreeError):
    """A proposed member violates an age or relationship rule.

    ``rule`` is a short machine-readable code (``child_age_gap``,
    ``future_birth``...) and ``member_id`` names the conflicting relative
    when there is one.
    """

    def __init__(
        self,
        rule: str,
        message: str,
        *,
        member_id: Optional[str] = None,
        field: str = "birth_year",
    ) -> None:
        super().__init__(message)
        self.rule = rule
        self.message = message
        self.member_id = member_id
        self.field = field

    def __repr__(self) -> str:
        return f"ValidationError(rule={self.rule!r}, message={self.message!r})"


class RelationshipLookupError(FamilyTreeError):
    def __init__(self, member_id: Optional[str]) -> None:
        if member_id is None:
            message = "A target member is required for this relation"
        else:
            message = f"No family member with id '{member_id}'"
        super().__init__(message)
        self.member_id = member_id


class StorageError(FamilyTreeError):
    """Persisted snapshot could not be read or written."""


__all__ = [
    "FamilyTreeError",
    "ValidationError",
    "RelationshipLookupError",
    "StorageError",
]
