# scripts/payout_run.py
from __future__ import annotations

import argparse
import json
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from app.payouts.stages import STAGES
from app.reconciliation.codec import csv_stream, write_xlsx
from app.reconciliation.importer import import_report
from deps.stores import Ledger, memory_ledger
from services.payouts import export_batch, export_filename, mark_exported, stats_for_stage
from settings import settings


logger = logging.getLogger("payout_run")


@contextmanager
def _ledger() -> Iterator[Ledger]:
    if settings.PAYOUT_STORE == "memory":
        yield memory_ledger()
        return

    from app.payouts.repository import PostgresBeneficiaryDirectory, PostgresPayoutStore
    from db import get_conn

    with get_conn() as conn:
        yield Ledger(store=PostgresPayoutStore(conn), directory=PostgresBeneficiaryDirectory(conn))


def _write_export(out: Path, batch, fmt: str, method) -> None:
    if fmt == "xlsx":
        out.write_bytes(write_xlsx(batch.rows))
        return
    with out.open("w", newline="", encoding="utf-8") as fh:
        for chunk in csv_stream(batch.rows, method=method):
            fh.write(chunk)


def _cmd_export(args: argparse.Namespace) -> int:
    fmt = args.format
    with _ledger() as ledger:
        batch = export_batch(
            ledger.store,
            ledger.directory,
            args.stage,
            month=args.month,
            year=args.year,
            method=args.method,
        )
        out = Path(args.out or export_filename(batch.stage, month=args.month, year=args.year, method=args.method, ext=fmt))
        # rows only move to processing once the file is on disk
        _write_export(out, batch, fmt, args.method)
        if args.mark_processing:
            mark_exported(ledger.store, batch)

    print("export:", out, f"rows={len(batch.rows)}")
    if batch.marked is not None:
        print(
            "marked processing:",
            f"succeeded={len(batch.marked.succeeded)}",
            f"failed={len(batch.marked.failed)}",
        )
    return 0


def _cmd_import(args: argparse.Namespace) -> int:
    path = Path(args.file)
    content = path.read_bytes()
    with _ledger() as ledger:
        result = import_report(
            ledger.store,
            ledger.directory,
            content,
            filename=path.name,
            max_rows=settings.IMPORT_MAX_ROWS,
        )

    print(
        "import:",
        f"applied={result.applied}",
        f"warnings={len(result.warnings)}",
        f"unmatched={len(result.unmatched)}",
    )
    for w in result.warnings:
        print("  warning:", w)
    return 1 if result.unmatched and args.strict else 0


def _cmd_stats(args: argparse.Namespace) -> int:
    with _ledger() as ledger:
        summary = stats_for_stage(ledger.store, args.stage, month=args.month, year=args.year)
    payload = summary.as_dict()
    payload["stage"] = args.stage
    payload["currency"] = settings.PAYOUT_CURRENCY
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Operate the monthly payout run.")
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Write a stage to a CSV or XLSX file.")
    export.add_argument("--stage", choices=STAGES, default="approved")
    export.add_argument("--month", type=int)
    export.add_argument("--year", type=int)
    export.add_argument("--method", choices=["bank", "paypal", "mobile_money", "unresolved"])
    export.add_argument("--format", choices=["csv", "xlsx"], default="csv")
    export.add_argument("--out")
    export.add_argument(
        "--no-mark-processing",
        dest="mark_processing",
        action="store_false",
        default=settings.EXPORT_MARK_PROCESSING,
    )
    export.set_defaults(func=_cmd_export)

    imp = sub.add_parser("import", help="Apply a provider report (CSV or XLSX).")
    imp.add_argument("file")
    imp.add_argument("--strict", action="store_true", help="Exit non-zero if any row is unmatched.")
    imp.set_defaults(func=_cmd_import)

    stats = sub.add_parser("stats", help="Print stage statistics as JSON.")
    stats.add_argument("--stage", choices=STAGES, default="review")
    stats.add_argument("--month", type=int)
    stats.add_argument("--year", type=int)
    stats.set_defaults(func=_cmd_stats)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except Exception:
        logger.exception("payout run %s failed", args.command)
        raise


if __name__ == "__main__":
    sys.exit(main())
