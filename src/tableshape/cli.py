"""Command-line interface for tableshape."""

import argparse
import logging
import sys
from pathlib import Path

from tableshape.exceptions import ConfigError
from tableshape.mysql.utils import (
    build_config_and_validate,
    describe_table,
    load_entity,
    reconcile_all,
)
from tableshape.schema.loader import load_declared_tables
from tableshape.schema.table import TableDefinition


def _add_connection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--host", help="MySQL host (default: MYSQL_HOST or ~/.my.cnf)")
    parser.add_argument("--user", help="MySQL user (default: MYSQL_USER or ~/.my.cnf)")
    parser.add_argument(
        "--database", help="Database name (default: MYSQL_DATABASE or ~/.my.cnf)"
    )
    parser.add_argument("--profile", help="Option group to read from ~/.my.cnf")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="tableshape",
        description="Declarative MySQL table reconciliation",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log every executed statement"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate", help="Validate table declaration files"
    )
    validate_parser.add_argument("--schema-path", type=Path, default=Path("schema"))

    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Converge live tables to their declarations"
    )
    reconcile_parser.add_argument("--schema-path", type=Path, default=None)
    reconcile_parser.add_argument(
        "--entity",
        action="append",
        default=[],
        metavar="MODULE:CLASS",
        help="Python entity implementing the schema capability (repeatable)",
    )
    reconcile_parser.add_argument(
        "--table",
        action="append",
        default=[],
        help="Only reconcile the named table (repeatable)",
    )
    _add_connection_args(reconcile_parser)

    show_parser = subparsers.add_parser("show", help="Show live columns of a table")
    show_parser.add_argument("table", help="Table name")
    _add_connection_args(show_parser)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s"
    )

    if args.command == "validate":
        return cmd_validate(args)
    elif args.command == "reconcile":
        return cmd_reconcile(args)
    elif args.command == "show":
        return cmd_show(args)
    else:
        print(f"Command '{args.command}' not yet implemented", file=sys.stderr)
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate declaration files."""
    try:
        tables = load_declared_tables(args.schema_path)
        print(f"Validated {len(tables)} tables:")
        for table in tables:
            definition = TableDefinition()
            table.populate(definition)
            print(f"  - {table.table_name()} ({len(definition.columns)} columns)")
        return 0
    except Exception as e:
        print(f"Validation error: {e}", file=sys.stderr)
        return 1


def cmd_reconcile(args: argparse.Namespace) -> int:
    """Reconcile declared tables and Python entities against the database."""
    reports: dict[str, list[str]] = {}
    try:
        config = build_config_and_validate(
            host=args.host,
            user=args.user,
            database=args.database,
            profile=args.profile,
        )

        capabilities = []
        schema_path = args.schema_path
        if schema_path is None and not args.entity:
            schema_path = Path(config.schema_dir)
        if schema_path is not None:
            capabilities.extend(load_declared_tables(schema_path))
        capabilities.extend(load_entity(ref) for ref in args.entity)

        if args.table:
            selected = set(args.table)
            capabilities = [c for c in capabilities if c.table_name() in selected]
            missing = selected - {c.table_name() for c in capabilities}
            if missing:
                print(
                    f"Error: unknown table(s): {', '.join(sorted(missing))}",
                    file=sys.stderr,
                )
                return 1

        if not capabilities:
            print("No tables declared")
            return 0

        reconcile_all(config, capabilities, reports)
        _print_reports(reports)
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        _print_reports(reports)
        print(f"Reconcile error: {e}", file=sys.stderr)
        return 1


def cmd_show(args: argparse.Namespace) -> int:
    """Print the live column list of a table."""
    try:
        config = build_config_and_validate(
            host=args.host,
            user=args.user,
            database=args.database,
            profile=args.profile,
        )
        columns = describe_table(config, args.table)
        if columns is None:
            print(f"Table '{args.table}' does not exist", file=sys.stderr)
            return 1

        print(f"{args.table}:")
        for column in columns:
            null = "NULL" if column.nullable else "NOT NULL"
            line = f"  {column.name} {column.type} {null}"
            if column.default is not None:
                line += f" DEFAULT {column.default}"
            if column.extra:
                line += f" {column.extra}"
            print(line)
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Show error: {e}", file=sys.stderr)
        return 1


def _print_reports(reports: dict[str, list[str]]) -> None:
    for table, actions in reports.items():
        if not actions:
            print(f"No changes for {table}")
            continue
        print(f"{table}:")
        for action in actions:
            print(f"  - {action}")


if __name__ == "__main__":
    sys.exit(main())
