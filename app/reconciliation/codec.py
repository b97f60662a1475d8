

# app/reconciliation/codec.py
from __future__ import annotations

import csv
import io
import zipfile
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from app.payouts.base import BeneficiaryDirectory
from app.payouts.errors import MalformedImportFile
from app.payouts.model import PayoutRequest
from app.payouts.payment_methods import (
    DESTINATION_TYPES,
    METHOD_UNRESOLVED,
    METHODS,
    resolve,
)

COMMON_COLUMNS = [
    "request_id",
    "beneficiary_id",
    "beneficiary_email",
    "beneficiary_username",
    "method",
    "month",
    "year",
    "total_amount",
    "solo_amount",
    "collab_amount",
    "outcome",
]

REQUIRED_IMPORT_COLUMNS = ("request_id", "outcome")

_CENTS = Decimal("0.01")


def columns_for(method: Optional[str] = None) -> list[str]:
    """
    Column layout for one method type. Without a method the union layout is
    used, always in the same order, so operator templates never drift.
    """
    if method is None:
        cols = list(COMMON_COLUMNS)
        for m in METHODS:
            dest_type = DESTINATION_TYPES.get(m)
            if dest_type is not None:
                cols.extend(dest_type.COLUMNS)
        return cols
    if method not in METHODS:
        raise ValueError(f"Unknown payment method: {method!r}")
    dest_type = DESTINATION_TYPES.get(method)
    return list(COMMON_COLUMNS) + (list(dest_type.COLUMNS) if dest_type is not None else [])


def _money(value: Decimal) -> str:
    return str(Decimal(value).quantize(_CENTS))


@dataclass(frozen=True)
class ExportRow:
    method: str
    values: dict[str, str]

    def as_list(self, columns: list[str]) -> list[str]:
        return [self.values.get(c, "") for c in columns]


def build_export_rows(
    requests: Iterable[PayoutRequest],
    directory: Optional[BeneficiaryDirectory],
    *,
    method: Optional[str] = None,
) -> list[ExportRow]:
    rows: list[ExportRow] = []
    identities: dict = {}

    for req in requests:
        resolved = resolve(req, directory)
        if method is not None and resolved.method != method:
            continue

        beneficiary = None
        if directory is not None and req.beneficiary_id is not None:
            if req.beneficiary_id not in identities:
                identities[req.beneficiary_id] = directory.get_beneficiary(req.beneficiary_id)
            beneficiary = identities[req.beneficiary_id]

        values = {
            "request_id": str(req.id),
            "beneficiary_id": str(req.beneficiary_id) if req.beneficiary_id else "",
            "beneficiary_email": (beneficiary.email or "") if beneficiary else "",
            "beneficiary_username": (beneficiary.username or "") if beneficiary else "",
            "method": resolved.method,
            "month": str(req.month),
            "year": str(req.year),
            "total_amount": _money(req.total_amount),
            "solo_amount": _money(req.solo_amount),
            "collab_amount": _money(req.collab_amount),
            "outcome": "",
        }
        if resolved.destination is not None:
            values.update(resolved.destination.export_fields())
        rows.append(ExportRow(method=resolved.method, values=values))

    return rows


# ==========================================================
# Writers
# ==========================================================

def csv_stream(rows: Iterable[ExportRow], *, method: Optional[str] = None) -> Iterable[str]:
    columns = columns_for(method)
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(columns)
    yield buffer.getvalue()
    buffer.seek(0)
    buffer.truncate(0)

    for row in rows:
        writer.writerow(row.as_list(columns))
        yield buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)


def write_xlsx(rows: Iterable[ExportRow]) -> bytes:
    """One worksheet per method type, each with that method's fixed layout."""
    by_method: dict[str, list[ExportRow]] = {}
    for row in rows:
        by_method.setdefault(row.method, []).append(row)

    wb = openpyxl.Workbook()
    wb.remove(wb.active)

    sheet_methods = [m for m in METHODS if m in by_method] or [METHOD_UNRESOLVED]
    for m in sheet_methods:
        columns = columns_for(m)
        ws = wb.create_sheet(title=m)
        ws.append(columns)
        for row in by_method.get(m, []):
            ws.append(row.as_list(columns))

    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


# ==========================================================
# Readers
# ==========================================================

@dataclass(frozen=True)
class ReportRow:
    location: str
    values: dict[str, str]


def _norm_header(value) -> str:
    return str(value or "").strip().lower().replace(" ", "_")


def _cell(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _check_headers(headers: list[str], where: str) -> None:
    missing = [c for c in REQUIRED_IMPORT_COLUMNS if c not in headers]
    if missing:
        raise MalformedImportFile(f"{where}: missing required column(s): {', '.join(missing)}")


def _read_csv(content: bytes) -> list[ReportRow]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedImportFile(f"report is not UTF-8 text: {exc}") from exc

    try:
        reader = csv.reader(io.StringIO(text))
        all_rows = list(reader)
    except csv.Error as exc:
        raise MalformedImportFile(f"unreadable CSV: {exc}") from exc

    if not all_rows:
        raise MalformedImportFile("report is empty")

    headers = [_norm_header(h) for h in all_rows[0]]
    _check_headers(headers, "csv")

    out: list[ReportRow] = []
    for line_no, raw in enumerate(all_rows[1:], start=2):
        if not any(_cell(v) for v in raw):
            continue
        values = {h: _cell(raw[i]) if i < len(raw) else "" for i, h in enumerate(headers)}
        out.append(ReportRow(location=f"line {line_no}", values=values))
    return out


def _read_xlsx(content: bytes) -> list[ReportRow]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
        raise MalformedImportFile(f"unreadable workbook: {exc}") from exc

    out: list[ReportRow] = []
    try:
        for ws in wb.worksheets:
            rows_iter = ws.iter_rows(values_only=True)
            header_row = next(rows_iter, None)
            if header_row is None or not any(_cell(v) for v in header_row):
                continue
            headers = [_norm_header(h) for h in header_row]
            _check_headers(headers, f"sheet {ws.title!r}")
            for row_no, raw in enumerate(rows_iter, start=2):
                if not raw or not any(_cell(v) for v in raw):
                    continue
                values = {h: _cell(raw[i]) if i < len(raw) else "" for i, h in enumerate(headers) if h}
                out.append(ReportRow(location=f"{ws.title}!{row_no}", values=values))
    finally:
        wb.close()

    return out


def is_xlsx(content: bytes, filename: Optional[str] = None) -> bool:
    name = (filename or "").lower()
    if name.endswith(".xlsx"):
        return True
    if name.endswith(".csv"):
        return False
    # xlsx is a zip container
    return content[:4] == b"PK\x03\x04"


def read_report(content: bytes, filename: Optional[str] = None) -> list[ReportRow]:
    if not content:
        raise MalformedImportFile("report is empty")
    if is_xlsx(content, filename):
        return _read_xlsx(content)
    return _read_csv(content)
