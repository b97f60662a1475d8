from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from app.payouts.model import STATUSES, ZERO, PayoutRequest

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class StatsSummary:
    counts: dict[str, int]
    count: int
    total_amount: Decimal
    average_payout: Decimal
    monthly_growth: Decimal

    def as_dict(self) -> dict[str, Any]:
        return {
            "counts": dict(self.counts),
            "count": self.count,
            "total_amount": str(self.total_amount),
            "average_payout": str(self.average_payout),
            "monthly_growth": str(self.monthly_growth),
        }


def _total(requests: Iterable[PayoutRequest]) -> Decimal:
    total = ZERO
    for r in requests:
        total += r.total_amount
    return total


def growth_percent(current_total: Decimal, previous_total: Decimal) -> Decimal:
    if previous_total <= 0:
        return ZERO
    pct = (current_total - previous_total) / previous_total * 100
    return pct.quantize(_CENTS, rounding=ROUND_HALF_UP)


def compute_stats(
    requests: Iterable[PayoutRequest],
    *,
    previous: Optional[Iterable[PayoutRequest]] = None,
) -> StatsSummary:
    """
    Fold over exactly the requests passed in. `previous` is the comparison set
    for monthly growth and is also supplied by the caller.
    """
    items = list(requests)
    counts = {s: 0 for s in STATUSES}
    for r in items:
        counts[r.status] = counts.get(r.status, 0) + 1

    total = _total(items)
    average = (total / len(items)).quantize(_CENTS, rounding=ROUND_HALF_UP) if items else ZERO
    growth = growth_percent(total, _total(previous)) if previous is not None else ZERO

    return StatsSummary(
        counts=counts,
        count=len(items),
        total_amount=total.quantize(_CENTS, rounding=ROUND_HALF_UP),
        average_payout=average,
        monthly_growth=growth,
    )
