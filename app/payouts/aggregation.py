from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, Optional
from uuid import UUID

from app.payouts.model import PENDING, ZERO, AggregatedPayoutUnit, PayoutRequest


@dataclass(frozen=True)
class AggregationResult:
    units: tuple[AggregatedPayoutUnit, ...]
    # Pending requests that could not be attributed to a known beneficiary.
    orphans: tuple[PayoutRequest, ...]


def aggregate_pending(
    requests: Iterable[PayoutRequest],
    *,
    is_known: Optional[Callable[[UUID], bool]] = None,
) -> AggregationResult:
    """
    Merge pending requests into one payable unit per beneficiary.

    Pure projection: the input records are never modified and the result only
    depends on the input order, so the same ledger read always yields the same
    units in the same order (ordered by each beneficiary's first request).
    Non-pending requests are ignored. Requests with no beneficiary, or one that
    `is_known` rejects, are returned as orphans instead of being dropped.
    """
    order: list[UUID] = []
    members: dict[UUID, list[PayoutRequest]] = {}
    orphans: list[PayoutRequest] = []
    known_cache: dict[UUID, bool] = {}

    for req in requests:
        if req.status != PENDING:
            continue
        bid = req.beneficiary_id
        if bid is None:
            orphans.append(req)
            continue
        if is_known is not None:
            if bid not in known_cache:
                known_cache[bid] = bool(is_known(bid))
            if not known_cache[bid]:
                orphans.append(req)
                continue
        if bid not in members:
            order.append(bid)
            members[bid] = []
        members[bid].append(req)

    units = tuple(_build_unit(bid, members[bid]) for bid in order)
    return AggregationResult(units=units, orphans=tuple(orphans))


def _build_unit(beneficiary_id: UUID, group: list[PayoutRequest]) -> AggregatedPayoutUnit:
    total: Decimal = ZERO
    solo: Decimal = ZERO
    collab: Decimal = ZERO
    periods: list[tuple[int, int]] = []
    seen_ids: set[UUID] = set()
    member_ids: list[UUID] = []

    for req in group:
        if req.id in seen_ids:
            continue
        seen_ids.add(req.id)
        member_ids.append(req.id)
        total += req.total_amount
        solo += req.solo_amount
        collab += req.collab_amount
        if req.period not in periods:
            periods.append(req.period)

    return AggregatedPayoutUnit(
        beneficiary_id=beneficiary_id,
        total_amount=total,
        solo_amount=solo,
        collab_amount=collab,
        periods=tuple(periods),
        member_request_ids=tuple(member_ids),
    )
