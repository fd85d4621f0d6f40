"""Command line interface: add, import, export and show cards."""
from __future__ import annotations

import argparse
import json
import sys
from typing import Sequence

from .application.bootstrap import AppServices, initialize_app_services
from .config import EXPORT_FORMATS, AppConfig, load_config
from .domain.records import RecordRejected
from .domain.schema import ConfigurationError
from .logging_config import setup_logging
from .storage.card_repository import StorageError
from .storage.card_sql import ConflictPolicy


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ankikaji",
        description="AnkiKaji: simple Japanese card manager.",
    )
    parser.add_argument("--template", help="Card template YAML (default: $ANKIKAJI_TEMPLATE).")
    parser.add_argument("--db", help="SQLite database file (default: $ANKIKAJI_DB).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add_parser = subparsers.add_parser("add", help="Add or update one card.")
    add_parser.add_argument("key", help="Value of the template's key field.")
    add_parser.add_argument(
        "--field",
        "-f",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Additional field value; repeat for more fields.",
    )
    add_parser.add_argument(
        "--merge",
        action="store_true",
        help="Keep stored values for fields that are blank in this card.",
    )

    import_parser = subparsers.add_parser("import", help="Import cards from YAML or CSV.")
    import_parser.add_argument("--file", help="Records file (default: $ANKIKAJI_CARDS).")
    import_parser.add_argument(
        "--merge",
        action="store_true",
        help="Keep stored values for fields that are blank in the input.",
    )

    export_parser = subparsers.add_parser("export", help="Export cards not yet exported.")
    export_parser.add_argument("--file", help="Output file (default: $ANKIKAJI_EXPORT_FILE).")
    export_parser.add_argument(
        "--format",
        choices=EXPORT_FORMATS,
        help="csv (comma) or txt (tab); default $ANKIKAJI_EXPORT_FORMAT.",
    )

    show_parser = subparsers.add_parser("show", help="Print one stored card as JSON.")
    show_parser.add_argument("key", help="Value of the template's key field.")
    return parser


def _parse_field_assignments(assignments: Sequence[str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for item in assignments:
        name, separator, value = item.partition("=")
        if not separator or not name.strip():
            raise ValueError(f"Expected NAME=VALUE, got {item!r}")
        values[name.strip()] = value
    return values


def _policy(args: argparse.Namespace) -> ConflictPolicy:
    return ConflictPolicy.COALESCE if getattr(args, "merge", False) else ConflictPolicy.OVERWRITE


def _run_command(args: argparse.Namespace, config: AppConfig, services: AppServices) -> int:
    service = services.card_service
    if args.command == "add":
        values = _parse_field_assignments(args.field)
        values[services.metadata.key_field.name] = args.key
        card = service.add_card(values, policy=_policy(args))
        print(json.dumps(card, ensure_ascii=False, indent=2))
        return 0

    if args.command == "import":
        path = args.file or config.cards_path
        summary = service.import_file(path, policy=_policy(args))
        for rejected in summary.skipped:
            print(f"Skipped invalid record ({rejected.reason}): {rejected.record}", file=sys.stderr)
        print(f"Total upserted: {summary.upserted} (skipped: {len(summary.skipped)})")
        return 0

    if args.command == "export":
        path = args.file or config.export_path
        summary = service.export_cards(path, file_format=args.format or config.export_format)
        if not summary.exported:
            print("No new cards to export.")
        else:
            print(f"Exported {summary.exported} cards to '{summary.path}'")
        return 0

    if args.command == "show":
        card = service.get_card(args.key)
        if card is None:
            print(f"No card found for {args.key!r}", file=sys.stderr)
            return 1
        print(json.dumps(card, ensure_ascii=False, indent=2))
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    config = load_config(args.command)
    logger = setup_logging(config)
    logger.debug("Running %s: argv=%r log_file=%s", args.command, argv, config.log_file)

    try:
        services = initialize_app_services(
            config=config,
            logger=logger,
            template_path=args.template,
            db_path=args.db,
        )
        return _run_command(args, config, services)
    except ConfigurationError as exc:
        print(f"Invalid card template: {exc}", file=sys.stderr)
        return 1
    except RecordRejected as exc:
        print(f"Card rejected: {exc.reason}", file=sys.stderr)
        return 1
    except StorageError as exc:
        logger.error("Storage failure: %s", exc)
        print(f"Database error: {exc}", file=sys.stderr)
        return 1
    except (ValueError, OSError) as exc:
        logger.error("Command failed: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
