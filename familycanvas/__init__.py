"""familycanvas package initialization."""

from importlib.metadata import version, PackageNotFoundError

from .errors import FamilyTreeError, RelationshipLookupError, StorageError, ValidationError
from .graph import build_graph
from .layout import layout
from .schemas import Member, MemberDraft, Relation
from .tree import FamilyTree, MutationResult

__all__ = [
    "__version__",
    "FamilyTree",
    "MutationResult",
    "Member",
    "MemberDraft",
    "Relation",
    "build_graph",
    "layout",
    "FamilyTreeError",
    "ValidationError",
    "RelationshipLookupError",
    "StorageError",
]

try:
    __version__ = version("familycanvas")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"
