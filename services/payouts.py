from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from app.payouts.aggregation import aggregate_pending
from app.payouts.base import BeneficiaryDirectory, PayoutStore
from app.payouts.bulk import bulk_transition
from app.payouts.errors import NotFound
from app.payouts.model import (
    PAID,
    PROCESSING,
    AggregatedPayoutUnit,
    Beneficiary,
    BulkResult,
    PayoutRequest,
    StageFilter,
)
from app.payouts.payment_methods import METHODS, UNRESOLVED, ResolvedPaymentMethod, resolve
from app.payouts.stages import STAGE_APPROVED, is_review, stage_filter
from app.payouts.stats import StatsSummary, compute_stats
from app.reconciliation.codec import ExportRow, build_export_rows

logger = logging.getLogger("payouts.service")


@dataclass(frozen=True)
class AnnotatedPayout:
    request: PayoutRequest
    payment_method: ResolvedPaymentMethod
    beneficiary: Optional[Beneficiary] = None


@dataclass(frozen=True)
class AnnotatedUnit:
    unit: AggregatedPayoutUnit
    payment_method: ResolvedPaymentMethod
    beneficiary: Optional[Beneficiary] = None


@dataclass
class StageListing:
    stage: str
    payouts: list[AnnotatedPayout] = field(default_factory=list)
    units: list[AnnotatedUnit] = field(default_factory=list)
    orphans: list[AnnotatedPayout] = field(default_factory=list)


@dataclass
class ExportBatch:
    stage: str
    method: Optional[str]
    rows: list[ExportRow]
    marked: Optional[BulkResult] = None


class _BeneficiaryCache:
    def __init__(self, directory: Optional[BeneficiaryDirectory]):
        self.directory = directory
        self._items: dict[UUID, Optional[Beneficiary]] = {}

    def get(self, beneficiary_id: Optional[UUID]) -> Optional[Beneficiary]:
        if beneficiary_id is None or self.directory is None:
            return None
        if beneficiary_id not in self._items:
            self._items[beneficiary_id] = self.directory.get_beneficiary(beneficiary_id)
        return self._items[beneficiary_id]

    def known(self, beneficiary_id: UUID) -> bool:
        return self.get(beneficiary_id) is not None


def _check_method(method: Optional[str]) -> Optional[str]:
    if method is None:
        return None
    m = method.strip().lower()
    if m not in METHODS:
        raise ValueError(f"Unknown payment method: {method!r} (expected one of {', '.join(METHODS)})")
    return m


def _matches(beneficiary: Optional[Beneficiary], resolved: ResolvedPaymentMethod, method: Optional[str], search: Optional[str]) -> bool:
    if method is not None and resolved.method != method:
        return False
    if search:
        needle = search.strip().lower()
        if not beneficiary:
            return False
        hay = f"{beneficiary.email or ''} {beneficiary.username or ''}".lower()
        if needle not in hay:
            return False
    return True


def _resolve_unit(unit: AggregatedPayoutUnit, members: dict[UUID, PayoutRequest], directory) -> ResolvedPaymentMethod:
    # The most recently created member carries the freshest payout_details snapshot.
    for member_id in reversed(unit.member_request_ids):
        resolved = resolve(members[member_id], directory)
        if resolved.resolved:
            return resolved
    return UNRESOLVED


def get_payout(store: PayoutStore, directory: Optional[BeneficiaryDirectory], payout_id: UUID) -> AnnotatedPayout:
    req = store.get(payout_id)
    if req is None:
        raise NotFound(f"Payout request not found: {payout_id}")
    beneficiary = directory.get_beneficiary(req.beneficiary_id) if directory and req.beneficiary_id else None
    return AnnotatedPayout(request=req, payment_method=resolve(req, directory), beneficiary=beneficiary)


def list_stage(
    store: PayoutStore,
    directory: Optional[BeneficiaryDirectory],
    stage: str,
    *,
    month: Optional[int] = None,
    year: Optional[int] = None,
    method: Optional[str] = None,
    search: Optional[str] = None,
) -> StageListing:
    """
    Review returns aggregated units (plus orphaned requests, left out of searches); every other stage
    returns individual requests. Period filters only reach the store for history.
    """
    sf = stage_filter(stage)
    method = _check_method(method)
    requests = store.find(sf, month=month, year=year)
    cache = _BeneficiaryCache(directory)
    listing = StageListing(stage=stage.strip().lower())

    if is_review(stage):
        aggregation = aggregate_pending(requests, is_known=cache.known if directory is not None else None)
        by_id = {r.id: r for r in requests}
        for unit in aggregation.units:
            beneficiary = cache.get(unit.beneficiary_id)
            resolved = _resolve_unit(unit, by_id, directory)
            if _matches(beneficiary, resolved, method, search):
                listing.units.append(AnnotatedUnit(unit=unit, payment_method=resolved, beneficiary=beneficiary))
        # orphans have no beneficiary to search on
        orphans = aggregation.orphans if not search else []
        for orphan in orphans:
            resolved = resolve(orphan, directory)
            if method is None or resolved.method == method:
                listing.orphans.append(AnnotatedPayout(request=orphan, payment_method=resolved))
        if listing.orphans:
            logger.warning("review stage has %s orphaned pending request(s)", len(listing.orphans))
        return listing

    for req in requests:
        beneficiary = cache.get(req.beneficiary_id)
        resolved = resolve(req, directory)
        if _matches(beneficiary, resolved, method, search):
            listing.payouts.append(AnnotatedPayout(request=req, payment_method=resolved, beneficiary=beneficiary))
    return listing


def _previous_period(month: int, year: int) -> tuple[int, int]:
    if month == 1:
        return 12, year - 1
    return month - 1, year


def stats_for_stage(
    store: PayoutStore,
    stage: str,
    *,
    month: Optional[int] = None,
    year: Optional[int] = None,
    now: Optional[datetime] = None,
) -> StatsSummary:
    requests = store.find(stage_filter(stage), month=month, year=year)

    ref = now or datetime.now(timezone.utc)
    ref_month = month if month is not None else ref.month
    ref_year = year if year is not None else ref.year
    prev_month, prev_year = _previous_period(ref_month, ref_year)
    previous = store.find(StageFilter(status=PAID, include_period=True), month=prev_month, year=prev_year)

    return compute_stats(requests, previous=previous)


def export_batch(
    store: PayoutStore,
    directory: Optional[BeneficiaryDirectory],
    stage: str,
    *,
    month: Optional[int] = None,
    year: Optional[int] = None,
    method: Optional[str] = None,
    mark_processing: bool = False,
) -> ExportBatch:
    """
    Build the spreadsheet rows for a stage. When exporting the approved stage with
    mark_processing, every exported request is moved to processing afterwards
    (per-item, best effort).
    """
    method = _check_method(method)
    requests = store.find(stage_filter(stage), month=month, year=year)
    rows = build_export_rows(requests, directory, method=method)
    batch = ExportBatch(stage=stage.strip().lower(), method=method, rows=rows)

    if mark_processing:
        mark_exported(store, batch)

    logger.info("export %s: rows=%s method=%s", batch.stage, len(rows), method or "all")
    return batch


def mark_exported(store: PayoutStore, batch: ExportBatch) -> Optional[BulkResult]:
    """Move the rows of an approved-stage export to processing. Other stages are left as they are."""
    if batch.stage != STAGE_APPROVED or not batch.rows:
        return None
    ids = [UUID(r.values["request_id"]) for r in batch.rows]
    batch.marked = bulk_transition(store, ids, PROCESSING)
    return batch.marked


def export_filename(stage: str, *, month: Optional[int], year: Optional[int], method: Optional[str], ext: str) -> str:
    month_label = str(month) if month is not None else "all"
    year_label = str(year) if year is not None else "all"
    return f"payouts_{stage}_{month_label}_{year_label}_{method or 'all'}.{ext}"
