from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import UUID

from app.payouts import state_machine
from app.payouts.base import BeneficiaryDirectory, PayoutStore
from app.payouts.errors import ImportRowMismatch, MalformedImportFile, PayoutError
from app.payouts.model import APPROVED, FAILED, PAID, PAYMENT_METHOD_NOT_FOUND, PROCESSING
from app.payouts.payment_methods import resolve
from app.reconciliation.codec import ReportRow, read_report
from services.metrics import increment_import_row

logger = logging.getLogger("payouts.reconcile")

OUTCOME_ALIASES: dict[str, str] = {
    "paid": PAID,
    "success": PAID,
    "succeeded": PAID,
    "completed": PAID,
    "failed": FAILED,
    "error": FAILED,
    "declined": FAILED,
    "payment_method_not_found": PAYMENT_METHOD_NOT_FOUND,
    "no_payment_method": PAYMENT_METHOD_NOT_FOUND,
}


@dataclass
class ImportResult:
    applied: int = 0
    warnings: list[str] = field(default_factory=list)
    unmatched: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "applied": self.applied,
            "warnings": list(self.warnings),
            "unmatched": list(self.unmatched),
        }


def _parse_outcome(raw: str) -> Optional[str]:
    key = (raw or "").strip().lower().replace(" ", "_").replace("-", "_")
    return OUTCOME_ALIASES.get(key)


def _match_request(store: PayoutStore, row: ReportRow, index: int):
    raw_id = (row.values.get("request_id") or "").strip()
    try:
        payout_id = UUID(raw_id)
    except ValueError:
        raise ImportRowMismatch(
            f"{row.location}: request_id {raw_id!r} is not a valid id",
            row_number=index,
            row=row.values,
        )
    req = store.get(payout_id)
    if req is None:
        raise ImportRowMismatch(
            f"{row.location}: unknown request_id {raw_id}",
            row_number=index,
            row=row.values,
        )
    return req


def apply_report_rows(
    store: PayoutStore,
    directory: Optional[BeneficiaryDirectory],
    rows: list[ReportRow],
) -> ImportResult:
    """
    Apply provider-reported outcomes. A bad row is recorded and skipped; the rest
    of the report is always processed.
    """
    result = ImportResult()

    for index, row in enumerate(rows, start=1):
        try:
            req = _match_request(store, row, index)
        except ImportRowMismatch as exc:
            logger.warning("import: %s", exc)
            increment_import_row("unmatched")
            result.warnings.append(str(exc))
            result.unmatched.append({"location": row.location, "row": dict(row.values)})
            continue

        target = _parse_outcome(row.values.get("outcome", ""))
        if target is None:
            msg = f"{row.location}: unrecognised outcome {row.values.get('outcome', '')!r} for {req.id}; skipped"
            logger.warning("import: %s", msg)
            increment_import_row("skipped")
            result.warnings.append(msg)
            continue

        no_destination = target == PAID and not resolve(req, directory).resolved
        if no_destination:
            target = PAYMENT_METHOD_NOT_FOUND

        try:
            if target == PAID and req.status == APPROVED:
                state_machine.transition(store, req.id, PROCESSING, via_import=True)
            state_machine.transition(store, req.id, target, via_import=True)
        except PayoutError as exc:
            msg = f"{row.location}: {req.id} not updated: {exc}"
            logger.warning("import: %s", msg)
            increment_import_row("rejected")
            result.warnings.append(msg)
            continue

        if no_destination:
            result.warnings.append(
                f"{row.location}: no payment method on file for {req.id}; marked {PAYMENT_METHOD_NOT_FOUND}"
            )

        increment_import_row(target)
        result.applied += 1

    logger.info(
        "import finished: rows=%s applied=%s warnings=%s unmatched=%s",
        len(rows),
        result.applied,
        len(result.warnings),
        len(result.unmatched),
    )
    return result


def import_report(
    store: PayoutStore,
    directory: Optional[BeneficiaryDirectory],
    content: bytes,
    *,
    filename: Optional[str] = None,
    max_rows: Optional[int] = None,
) -> ImportResult:
    rows = read_report(content, filename)
    if max_rows is not None and len(rows) > max_rows:
        raise MalformedImportFile(f"report has {len(rows)} rows; limit is {max_rows}")
    return apply_report_rows(store, directory, rows)
