#!/usr/bin/env python3
"""
purchase-ledger -- operator CLI for the purchase ledger.

Usage:
    purchase-ledger init-db
    purchase-ledger finalize QUOTE_ID --scope KEY
    purchase-ledger summarize --scope KEY [--from DATE] [--to DATE]
    purchase-ledger entries --scope KEY [--page N] [--page-size N]
                            [--vendor NAME] [--category NAME] [--unmapped]

Settings come from ledger_config.get_active_settings(); ``--config`` names
an alternative YAML file and ``--database-url`` overrides the URL.
Results are printed to stdout as JSON.  Errors are printed to stderr as
JSON with the exception's code, and the exit status is 1.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import date
from uuid import UUID

import yaml

from ledger_config import LedgerSettings, get_active_settings
from purchase_ledger.db.engine import LedgerDatabase
from purchase_ledger.db.immutability import register_immutability_listeners
from purchase_ledger.domain.clock import SystemClock
from purchase_ledger.exceptions import PurchaseLedgerError
from purchase_ledger.logging_config import LogContext, configure_logging, get_logger
from purchase_ledger.selectors.ledger_selector import LedgerEntrySelector
from purchase_ledger.selectors.spend_selector import SpendSummarySelector
from purchase_ledger.services.activity_sink import DatabaseActivitySink
from purchase_ledger.services.finalization_service import FinalizationService
from purchase_ledger.services.retry import RetryPolicy, finalize_with_retry

logger = get_logger("cli")

EXIT_OK = 0
EXIT_ERROR = 1


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="purchase-ledger",
        description="Finalize quotes into the purchase ledger and report spend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", default=None, help="Settings YAML file")
    parser.add_argument("--database-url", default=None, help="Override database_url")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Structured log level on stderr (default: WARNING)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the ledger tables")

    finalize = sub.add_parser("finalize", help="Finalize a quote into ledger entries")
    finalize.add_argument("quote_id", type=UUID, help="Quote id")
    finalize.add_argument("--scope", required=True, help="Scope key")
    finalize.add_argument(
        "--no-retry",
        action="store_true",
        help="Fail on the first transient error instead of retrying",
    )

    summarize = sub.add_parser("summarize", help="Spend summary for a date range")
    summarize.add_argument("--scope", required=True, help="Scope key")
    summarize.add_argument(
        "--from", dest="date_from", type=date.fromisoformat, default=None,
        help="First day, YYYY-MM-DD (default: start of current month)",
    )
    summarize.add_argument(
        "--to", dest="date_to", type=date.fromisoformat, default=None,
        help="Last day, YYYY-MM-DD (default: end of current month)",
    )

    entries = sub.add_parser("entries", help="List ledger entries, newest first")
    entries.add_argument("--scope", required=True, help="Scope key")
    entries.add_argument("--from", dest="date_from", type=date.fromisoformat, default=None)
    entries.add_argument("--to", dest="date_to", type=date.fromisoformat, default=None)
    entries.add_argument("--vendor", default=None, help="Exact vendor name")
    entries.add_argument("--category", default=None, help="Category or 'Uncategorized'")
    entries.add_argument("--page", type=int, default=1)
    entries.add_argument("--page-size", type=int, default=20)
    entries.add_argument(
        "--unmapped", action="store_true", help="Only entries without a product reference"
    )

    return parser.parse_args(argv)


def _load_settings(args: argparse.Namespace) -> LedgerSettings:
    settings = get_active_settings(args.config)
    if args.database_url:
        settings = replace(settings, database_url=args.database_url)
    return settings


def _emit(payload: dict) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _cmd_init_db(db: LedgerDatabase, settings: LedgerSettings, args) -> dict:
    db.create_tables()
    return {"status": "ok", "dialect": db.dialect_name}


def _cmd_finalize(db: LedgerDatabase, settings: LedgerSettings, args) -> dict:
    service = FinalizationService.from_settings(
        db,
        settings,
        clock=SystemClock(),
        activity_sink=DatabaseActivitySink(db),
    )
    if args.no_retry:
        result = service.finalize(args.quote_id, args.scope)
    else:
        result = finalize_with_retry(
            service,
            args.quote_id,
            args.scope,
            RetryPolicy.from_settings(settings),
        )
    return result.to_dict()


def _cmd_summarize(db: LedgerDatabase, settings: LedgerSettings, args) -> dict:
    with db.read_scope("summarize") as session:
        selector = SpendSummarySelector(session, SystemClock(), top_n=settings.top_n)
        summary = selector.summarize(args.scope, args.date_from, args.date_to)
    return summary.to_dict()


def _cmd_entries(db: LedgerDatabase, settings: LedgerSettings, args) -> dict:
    with db.read_scope("list_entries") as session:
        page = LedgerEntrySelector(session).list_entries(
            args.scope,
            args.date_from,
            args.date_to,
            vendor_name=args.vendor,
            category=args.category,
            page=args.page,
            page_size=args.page_size,
            unmapped_only=args.unmapped,
        )
    return page.to_dict()


_COMMANDS = {
    "init-db": _cmd_init_db,
    "finalize": _cmd_finalize,
    "summarize": _cmd_summarize,
    "entries": _cmd_entries,
}


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level=getattr(logging, args.log_level))

    try:
        settings = _load_settings(args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(json.dumps({"error": "CONFIG_ERROR", "message": str(e)}), file=sys.stderr)
        return EXIT_ERROR

    db = LedgerDatabase.from_settings(settings)
    register_immutability_listeners()
    try:
        with LogContext.bind(scope_key=getattr(args, "scope", None)):
            payload = _COMMANDS[args.command](db, settings, args)
    except PurchaseLedgerError as e:
        logger.warning("cli_command_failed", extra={"command": args.command, "error_code": e.code})
        print(json.dumps({"error": e.code, "message": str(e)}), file=sys.stderr)
        return EXIT_ERROR
    except ValueError as e:
        print(json.dumps({"error": "INVALID_ARGUMENT", "message": str(e)}), file=sys.stderr)
        return EXIT_ERROR
    finally:
        db.dispose()

    _emit(payload)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
