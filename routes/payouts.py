

# routes/payouts.py
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from app.payouts import state_machine
from app.payouts.bulk import bulk_transition, bulk_unit_action, target_for_action
from app.payouts.model import Beneficiary, PayoutRequest
from app.payouts.payment_methods import ResolvedPaymentMethod
from deps.stores import Ledger, get_ledger
from schemas import (
    BulkUpdateRequest,
    BulkUpdateResponse,
    MethodName,
    PayoutItem,
    StageListResponse,
    StageName,
    StatsResponse,
    StatusUpdateRequest,
    UnitBulkUpdateRequest,
)
from services import payouts as payout_service
from settings import settings

router = APIRouter(prefix="/v1/admin/payouts", tags=["admin-payouts"])


def _serialize_beneficiary(b: Optional[Beneficiary]) -> Optional[dict[str, Any]]:
    if b is None:
        return None
    return {"beneficiary_id": b.id, "email": b.email, "username": b.username}


def _serialize_payout(
    req: PayoutRequest,
    resolved: ResolvedPaymentMethod,
    beneficiary: Optional[Beneficiary] = None,
) -> dict[str, Any]:
    return {
        "id": req.id,
        "beneficiary_id": req.beneficiary_id,
        "beneficiary": _serialize_beneficiary(beneficiary),
        "total_amount": req.total_amount,
        "solo_amount": req.solo_amount,
        "collab_amount": req.collab_amount,
        "status": req.status,
        "month": req.month,
        "year": req.year,
        "payment_method": resolved.as_dict(),
        "created_at": req.created_at,
        "updated_at": req.updated_at,
    }


def _serialize_unit(item: payout_service.AnnotatedUnit) -> dict[str, Any]:
    unit = item.unit
    return {
        "beneficiary_id": unit.beneficiary_id,
        "beneficiary": _serialize_beneficiary(item.beneficiary),
        "total_amount": unit.total_amount,
        "solo_amount": unit.solo_amount,
        "collab_amount": unit.collab_amount,
        "periods": [{"month": m, "year": y} for m, y in unit.periods],
        "member_request_ids": list(unit.member_request_ids),
        "payment_method": item.payment_method.as_dict(),
    }


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


@router.get("", response_model=StageListResponse)
def list_payouts(
    stage: StageName = Query("review"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    method: Optional[MethodName] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    ledger: Ledger = Depends(get_ledger),
):
    try:
        listing = payout_service.list_stage(
            ledger.store,
            ledger.directory,
            stage,
            month=month,
            year=year,
            method=method,
            search=search,
        )
    except ValueError as exc:
        raise _bad_request(exc) from exc

    payouts = [_serialize_payout(p.request, p.payment_method, p.beneficiary) for p in listing.payouts]
    units = [_serialize_unit(u) for u in listing.units]
    orphans = [_serialize_payout(p.request, p.payment_method) for p in listing.orphans]
    return {
        "stage": listing.stage,
        "count": len(payouts) + len(units) + len(orphans),
        "payouts": payouts,
        "units": units,
        "orphans": orphans,
    }


@router.get("/stats", response_model=StatsResponse)
def payout_stats(
    stage: StageName = Query("review"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    ledger: Ledger = Depends(get_ledger),
):
    summary = payout_service.stats_for_stage(ledger.store, stage, month=month, year=year)
    return {
        "stage": stage,
        "counts": summary.counts,
        "count": summary.count,
        "total_amount": summary.total_amount,
        "average_payout": summary.average_payout,
        "monthly_growth": summary.monthly_growth,
        "currency": settings.PAYOUT_CURRENCY,
    }


@router.post("/bulk-update", response_model=BulkUpdateResponse)
def bulk_update_payouts(body: BulkUpdateRequest, ledger: Ledger = Depends(get_ledger)):
    target = target_for_action(body.action)
    result = bulk_transition(ledger.store, body.ids, target)
    return {"target": target, **result.as_dict()}


@router.post("/units/bulk-update", response_model=BulkUpdateResponse)
def bulk_update_units(body: UnitBulkUpdateRequest, ledger: Ledger = Depends(get_ledger)):
    selections: dict[UUID, list[UUID]] = {}
    for unit in body.units:
        selections.setdefault(unit.beneficiary_id, []).extend(unit.member_request_ids)
    result = bulk_unit_action(ledger.store, ledger.directory, selections, body.action)
    return {"target": target_for_action(body.action), **result.as_dict()}


@router.get("/{payout_id}", response_model=PayoutItem)
def get_payout(payout_id: UUID, ledger: Ledger = Depends(get_ledger)):
    item = payout_service.get_payout(ledger.store, ledger.directory, payout_id)
    return _serialize_payout(item.request, item.payment_method, item.beneficiary)


@router.patch("/{payout_id}/status", response_model=PayoutItem)
def update_payout_status(
    payout_id: UUID,
    body: StatusUpdateRequest,
    ledger: Ledger = Depends(get_ledger),
):
    state_machine.transition(ledger.store, payout_id, body.status)
    item = payout_service.get_payout(ledger.store, ledger.directory, payout_id)
    return _serialize_payout(item.request, item.payment_method, item.beneficiary)


@router.post("/{payout_id}/revert", response_model=PayoutItem)
def revert_payout(payout_id: UUID, ledger: Ledger = Depends(get_ledger)):
    state_machine.revert(ledger.store, payout_id)
    item = payout_service.get_payout(ledger.store, ledger.directory, payout_id)
    return _serialize_payout(item.request, item.payment_method, item.beneficiary)
