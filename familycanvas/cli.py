"""Command line interface for familycanvas."""

from __future__ import annotations

import argparse
from typing import Any, Dict, Sequence

from rich.table import Table

from .config import Settings
from .errors import RelationshipLookupError, StorageError
from .export import export_tree
from .schemas import Gender, MemberDraft, Relation
from .storage import SQLiteStore
from .tree import FamilyTree, MutationResult
from .utils import console, set_log_level
from .validation import check_registry

FIELD_FLAGS = {
    "first_name": "--first-name",
    "surname": "--surname",
    "birth_year": "--birth-year",
    "death_year": "--death-year",
    "gender": "--gender",
    "bio": "--bio",
    "photo_url": "--photo-url",
}


def _add_member_fields(parser: argparse.ArgumentParser, *, require_year: bool) -> None:
    parser.add_argument("--first-name", default=None)
    parser.add_argument("--surname", default=None)
    parser.add_argument("--birth-year", required=require_year, default=None)
    parser.add_argument("--death-year", default=None)
    parser.add_argument("--gender", choices=[g.value for g in Gender], default=None)
    parser.add_argument("--bio", default=None)
    parser.add_argument("--photo-url", default=None)


def build_parser() -> argparse.ArgumentParser:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(prog="familycanvas", description="Incremental family tree builder")
    parser.add_argument("--db", default=settings.db_path, help="SQLite snapshot file")
    parser.add_argument("--storage-key", default=settings.storage_key)
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Python logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init", help="Create the tree with yourself as root")
    _add_member_fields(init, require_year=True)

    add = sub.add_parser("add", help="Add a relative of an existing member")
    add.add_argument("relation", choices=[r.value for r in Relation if r is not Relation.ROOT])
    add.add_argument("target", help="Id of the existing member")
    _add_member_fields(add, require_year=True)

    edit = sub.add_parser("edit", help="Edit descriptive fields of a member")
    edit.add_argument("member_id")
    _add_member_fields(edit, require_year=False)

    sub.add_parser("list", help="List members")
    sub.add_parser("check", help="Audit the stored tree for inconsistencies")

    layout = sub.add_parser("layout", help="Lay out the tree and export the diagram")
    layout.add_argument("--out", required=True, help="Output directory")
    layout.add_argument("--highlight", help="Highlight the route from this member to you")

    return parser


def _given_fields(args: argparse.Namespace) -> Dict[str, Any]:
    return {name: getattr(args, name) for name in FIELD_FLAGS if getattr(args, name) is not None}


def _draft(args: argparse.Namespace) -> MemberDraft:
    return MemberDraft(**_given_fields(args))


def _open_tree(args: argparse.Namespace) -> FamilyTree:
    try:
        store = SQLiteStore(args.db)
    except StorageError as exc:
        raise SystemExit(str(exc)) from exc
    return FamilyTree.load(store, storage_key=args.storage_key)


def _report(result: MutationResult, verb: str) -> None:
    if not result.ok:
        raise SystemExit(str(result.error))
    member = next(m for m in result.members if m.id == result.member_id)
    console.log(f"{verb} {member.full_name} ({member.id})")


def run_list(tree: FamilyTree) -> None:
    table = Table(title="Family members")
    for column in ("id", "name", "born", "died", "gender", "parents", "spouses", "children"):
        table.add_column(column)
    for member in tree.snapshot():
        table.add_row(
            member.id,
            member.full_name,
            member.birth_year,
            member.death_year or "",
            member.gender,
            ", ".join(member.parents),
            ", ".join(member.spouses),
            ", ".join(member.children),
        )
    console.print(table)


def run_check(tree: FamilyTree) -> None:
    warnings = check_registry(tree.registry)
    console.log(f"Members: {len(tree.registry)}")
    for warning in warnings:
        console.log(f"[yellow]{warning}[/yellow]")
    if warnings:
        raise SystemExit(f"{len(warnings)} problem(s) found")
    console.log("Validation OK")


def run_layout(tree: FamilyTree, out_dir: str, highlight: str | None = None) -> Dict[str, str]:
    if highlight:
        try:
            tree.select(highlight)
        except RelationshipLookupError as exc:
            raise SystemExit(str(exc)) from exc
    graph = tree.build_graph(tree.selected_id)
    paths = export_tree(graph, tree.nodes, out_dir)
    console.log(f"Exported {len(tree.nodes)} nodes and {len(graph.edges)} edges")
    if highlight and not graph.highlight_path:
        console.log("[yellow]No route from the selected member to you[/yellow]")
    return paths


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    set_log_level(args.log_level)
    tree = _open_tree(args)
    if args.command == "init":
        _report(tree.add_root(_draft(args)), "Created")
    elif args.command == "add":
        _report(tree.add_related(_draft(args), args.relation, args.target), "Added")
    elif args.command == "edit":
        _report(tree.edit_fields(args.member_id, _given_fields(args)), "Updated")
    elif args.command == "list":
        run_list(tree)
    elif args.command == "check":
        run_check(tree)
    elif args.command == "layout":
        run_layout(tree, args.out, args.highlight)
    else:  # pragma: no cover
        parser.print_help()


if __name__ == "__main__":  # pragma: no cover
    main()
