# routes/admin_exports.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response, StreamingResponse

from app.reconciliation.codec import csv_stream, write_xlsx
from app.reconciliation.importer import import_report
from deps.stores import Ledger, get_ledger
from schemas import ImportResponse, MethodName, StageName
from services.payouts import ExportBatch, export_batch, export_filename
from settings import settings

router = APIRouter(prefix="/v1/admin/payouts", tags=["admin-exports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _batch(
    ledger: Ledger,
    stage: str,
    month: Optional[int],
    year: Optional[int],
    method: Optional[str],
    mark_processing: Optional[bool],
) -> ExportBatch:
    mark = settings.EXPORT_MARK_PROCESSING if mark_processing is None else mark_processing
    return export_batch(
        ledger.store,
        ledger.directory,
        stage,
        month=month,
        year=year,
        method=method,
        mark_processing=mark,
    )


def _export_headers(batch: ExportBatch, filename: str) -> dict[str, str]:
    headers = {"Content-Disposition": f"attachment; filename={filename}"}
    if batch.marked is not None:
        headers["X-Marked-Processing"] = str(len(batch.marked.succeeded))
        headers["X-Mark-Failed"] = str(len(batch.marked.failed))
    return headers


@router.get("/export.csv")
def export_payouts_csv(
    stage: StageName = Query("approved"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    method: Optional[MethodName] = Query(None),
    mark_processing: Optional[bool] = Query(None),
    ledger: Ledger = Depends(get_ledger),
):
    batch = _batch(ledger, stage, month, year, method, mark_processing)
    filename = export_filename(batch.stage, month=month, year=year, method=method, ext="csv")

    response = StreamingResponse(csv_stream(batch.rows, method=method), media_type="text/csv")
    response.headers.update(_export_headers(batch, filename))
    return response


@router.get("/export.xlsx")
def export_payouts_xlsx(
    stage: StageName = Query("approved"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    method: Optional[MethodName] = Query(None),
    mark_processing: Optional[bool] = Query(None),
    ledger: Ledger = Depends(get_ledger),
):
    batch = _batch(ledger, stage, month, year, method, mark_processing)
    filename = export_filename(batch.stage, month=month, year=year, method=method, ext="xlsx")
    return Response(
        content=write_xlsx(batch.rows),
        media_type=XLSX_MEDIA_TYPE,
        headers=_export_headers(batch, filename),
    )


@router.post("/import", response_model=ImportResponse)
def import_payout_report(
    file: UploadFile = File(...),
    ledger: Ledger = Depends(get_ledger),
):
    content = file.file.read()
    result = import_report(
        ledger.store,
        ledger.directory,
        content,
        filename=file.filename,
        max_rows=settings.IMPORT_MAX_ROWS,
    )
    return result.as_dict()
