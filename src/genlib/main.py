"""Command-line entry point: import GEDCOM files, show and plot family trees, validate data."""

from pathlib import Path
import argparse
import logging
import sys

from .config import MAX_GENERATIONS, MIN_GENERATIONS, DirNameFormat, ImportConfig
from .database import count_persons, count_relationships, create_database
from .errors import GenlibError
from .graph import build_graph
from .importer import import_file
from .tree import build_tree
from .validation import validate_graph


DEFAULT_DB = Path("family_tree.db")
MAX_WARNINGS_SHOWN = 10


def print_warnings(warnings: list[str]):
    if warnings:
        print(f"  Found {len(warnings)} validation warnings:")
        for w in warnings[:MAX_WARNINGS_SHOWN]:
            print(f"    - {w}")
        if len(warnings) > MAX_WARNINGS_SHOWN:
            print(f"    ... and {len(warnings) - MAX_WARNINGS_SHOWN} more")
    else:
        print("  No validation issues found")


def cmd_import(args) -> int:
    config = ImportConfig(dir_name_format=args.dir_format, link_siblings=args.link_siblings,
                          include_birth_date=args.include_birth_date, default_encoding=args.encoding)

    if not args.gedcom.is_file():
        print(f"Error: GEDCOM file not found: {args.gedcom}", file=sys.stderr)
        return 1

    print(f"Importing GEDCOM file: {args.gedcom}")
    conn = create_database(args.db)
    try:
        report = import_file(conn, args.gedcom, config)
        print(f"  {report.summary()}")
        for ref in report.unresolved:
            print(f"  Unresolved reference: {ref}")

        print(f"Database {args.db} now holds {count_persons(conn)} persons "
              f"and {count_relationships(conn)} relationships")

        print("Validating graph...")
        print_warnings(validate_graph(build_graph(conn)))
    finally:
        conn.close()
    return 0


def cmd_tree(args) -> int:
    conn = create_database(args.db)
    try:
        tree = build_tree(conn, args.person_id, args.generations)
    finally:
        conn.close()

    for generation, nodes in tree.generations().items():
        print(f"Generation {generation:+d}:")
        for node in nodes:
            person = node.person
            born = person.birth_date.display() if person.birth_date else ""
            print(f"  [{node.role.value}] {person.full_name()} (#{person.id}) {born}".rstrip())
    if tree.cycles:
        print(f"Warning: relationship cycle involving persons {tree.cycles}")

    if args.plot:
        # Imported here so the other commands don't pay for matplotlib
        from .plotting import plot_tree

        print(f"Plotting tree to: {args.plot}")
        plot_tree(tree, args.plot)
    return 0


def cmd_validate(args) -> int:
    conn = create_database(args.db)
    try:
        print("Building NetworkX graph...")
        G = build_graph(conn)
        print(f"  Graph has {G.number_of_nodes()} nodes and {G.number_of_edges()} edges")
    finally:
        conn.close()

    print("Validating graph...")
    warnings = validate_graph(G)
    print_warnings(warnings)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="genlib", description=__doc__)
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="more logging (-v info, -vv debug)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_import = subparsers.add_parser("import", help="import a GEDCOM file")
    p_import.add_argument("gedcom", type=Path)
    p_import.add_argument("--db", type=Path, default=DEFAULT_DB)
    p_import.add_argument("--dir-format", default=DirNameFormat.FIRSTNAME_FIRST.value,
                          choices=[f.value for f in DirNameFormat])
    p_import.add_argument("--include-birth-date", action="store_true",
                          help="append the birth date to directory names")
    p_import.add_argument("--link-siblings", action="store_true",
                          help="store sibling relationships between children of a family")
    p_import.add_argument("--encoding", default="utf-8",
                          help="fallback encoding for files without a usable CHAR declaration")
    p_import.set_defaults(func=cmd_import)

    p_tree = subparsers.add_parser("tree", help="show the family tree around a person")
    p_tree.add_argument("person_id", type=int)
    p_tree.add_argument("--db", type=Path, default=DEFAULT_DB)
    p_tree.add_argument("-g", "--generations", type=int, default=3,
                        help=f"generations up and down ({MIN_GENERATIONS}-{MAX_GENERATIONS})")
    p_tree.add_argument("--plot", type=Path, help="save a chart of the tree to this file")
    p_tree.set_defaults(func=cmd_tree)

    p_validate = subparsers.add_parser("validate", help="check the stored data for inconsistencies")
    p_validate.add_argument("--db", type=Path, default=DEFAULT_DB)
    p_validate.set_defaults(func=cmd_validate)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    try:
        return args.func(args)
    except GenlibError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
