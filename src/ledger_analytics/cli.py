"""Command-line interface for the ledger analytics runs.

Provides subcommands: `ingest`, `report`, and `all`. Each command is
implemented as a `cmd_*` function that accepts an argparse namespace.
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ledger_analytics.config import Settings, get_settings
from ledger_analytics.logging_config import configure_logging
from ledger_analytics.db import get_client, get_db

# INGEST
from ledger_analytics.ingest.read_csv import read_transactions_csv, to_records
from ledger_analytics.ingest.load_records import load_records_to_mongo

# STORE + REPORT
from ledger_analytics.store import InMemoryRecordStore, MongoRecordStore
from ledger_analytics.report.build_report import build_report
from ledger_analytics.report.load_report import load_report

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _settings_with_overrides(args: argparse.Namespace) -> Settings:
    """Return settings from the environment with CLI threshold overrides applied."""
    s = get_settings()
    overrides = {}
    for name in ("margin_floor", "margin_percentile"):
        value = getattr(args, name, None)
        if value is not None and not value.is_finite():
            raise SystemExit(f"--{name.replace('_', '-')} must be a finite number")
    if getattr(args, "margin_floor", None) is not None:
        overrides["margin_floor"] = args.margin_floor
    if getattr(args, "margin_percentile", None) is not None:
        if not Decimal(0) <= args.margin_percentile <= Decimal(1):
            raise SystemExit("--margin-percentile must lie between 0 and 1")
        overrides["margin_percentile"] = args.margin_percentile
    return dataclasses.replace(s, **overrides)


def _open_db(s: Settings) -> Any:
    client = get_client(s.mongo_uri, tls=s.mongo_tls)
    return get_db(client, s.mongo_db)


# --------------------------------------------------
# INGEST
# --------------------------------------------------
def cmd_ingest(args: argparse.Namespace) -> None:
    """Validate a transaction CSV and load it into the transactions collection.

    Args:
        args: argparse namespace with `csv`, `replace` and optionally
            `dry_run`, which validates the CSV without writing.
    """
    s = get_settings()
    records = to_records(read_transactions_csv(args.csv))

    if getattr(args, "dry_run", False):
        log.info("Dry run: %d records validated, nothing written.", len(records))
        return

    db = _open_db(s)
    load_records_to_mongo(records, db[s.transactions_collection], replace=args.replace)
    log.info("Ingest completed.")


# --------------------------------------------------
# REPORT
# --------------------------------------------------
def cmd_report(args: argparse.Namespace) -> None:
    """Build every report section and upsert them into MongoDB.

    Reads from a CSV when `--csv` is given, otherwise from the transactions
    collection. `--dry-run` computes without writing.
    """
    s = _settings_with_overrides(args)

    if args.csv is not None:
        store = InMemoryRecordStore(to_records(read_transactions_csv(args.csv)))
        db = None if args.dry_run else _open_db(s)
        if len(store) == 0:
            raise RuntimeError(f"{args.csv} holds no transactions.")
    else:
        db = _open_db(s)
        mongo_store = MongoRecordStore(db[s.transactions_collection])
        if mongo_store.count() == 0:
            raise RuntimeError(f"{s.transactions_collection} is empty. Run ingest first.")
        store = InMemoryRecordStore(mongo_store.scan())

    report = build_report(store.scan(), s)

    if args.dry_run:
        log.info("Dry run: %d sections computed, nothing written.", len(report))
        return

    load_report(report, db)
    log.info("Report successfully generated.")


# --------------------------------------------------
# ALL
# --------------------------------------------------
def cmd_all(args: argparse.Namespace) -> None:
    """Convenience: run ingest → report from the stored snapshot.

    Under `--dry-run` nothing is stored, so the report is built straight
    from the CSV.
    """
    cmd_ingest(args)
    if not args.dry_run:
        args.csv = None
    cmd_report(args)


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    The returned parser has subcommands `ingest`, `report`, and `all`.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="ledger_analytics")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ingest = sub.add_parser("ingest")
    p_ingest.add_argument("--csv", type=Path, required=True)
    p_ingest.add_argument("--replace", action="store_true")

    p_report = sub.add_parser("report")
    p_report.add_argument("--csv", type=Path, default=None)
    p_report.add_argument("--dry-run", action="store_true")
    p_report.add_argument("--margin-floor", type=Decimal, default=None)
    p_report.add_argument("--margin-percentile", type=Decimal, default=None)

    p_all = sub.add_parser("all")
    p_all.add_argument("--csv", type=Path, required=True)
    p_all.add_argument("--replace", action="store_true")
    p_all.add_argument("--dry-run", action="store_true")
    p_all.add_argument("--margin-floor", type=Decimal, default=None)
    p_all.add_argument("--margin-percentile", type=Decimal, default=None)

    return p


def main() -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    configure_logging(Path("logs/ledger_analytics.log"))

    args = build_parser().parse_args()

    if args.cmd == "ingest":
        cmd_ingest(args)
    elif args.cmd == "report":
        cmd_report(args)
    elif args.cmd == "all":
        cmd_all(args)
    else:
        raise SystemExit(2)


if __name__ == "__main__":
    main()
