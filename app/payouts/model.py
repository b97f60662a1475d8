

# app/payouts/model.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

PENDING = "pending"
APPROVED = "approved"
PROCESSING = "processing"
PAID = "paid"
FAILED = "failed"
REJECTED = "rejected"
PAYMENT_METHOD_NOT_FOUND = "payment_method_not_found"

STATUSES = (
    PENDING,
    APPROVED,
    PROCESSING,
    PAID,
    FAILED,
    REJECTED,
    PAYMENT_METHOD_NOT_FOUND,
)

TERMINAL_STATUSES = frozenset({PAID, REJECTED, FAILED})

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class PayoutRequest:
    id: UUID
    beneficiary_id: Optional[UUID]
    total_amount: Decimal
    solo_amount: Decimal
    collab_amount: Decimal
    status: str
    month: int
    year: int
    created_at: datetime
    updated_at: datetime
    payout_details: Optional[dict[str, Any]] = None

    @property
    def period(self) -> tuple[int, int]:
        return (self.month, self.year)

    def with_status(self, status: str, *, at: datetime) -> "PayoutRequest":
        return replace(self, status=status, updated_at=at)


@dataclass(frozen=True)
class StageFilter:
    status: str
    include_period: bool


@dataclass(frozen=True)
class AggregatedPayoutUnit:
    """
    Read-time projection of one beneficiary's pending requests.
    Never persisted; rebuilt on every read of the review stage.
    """
    beneficiary_id: UUID
    total_amount: Decimal
    solo_amount: Decimal
    collab_amount: Decimal
    periods: tuple[tuple[int, int], ...]
    member_request_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class Beneficiary:
    id: UUID
    email: Optional[str] = None
    username: Optional[str] = None
    default_payment_method: Optional[dict[str, Any]] = None


@dataclass
class BulkResult:
    succeeded: list[UUID] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "succeeded": [str(i) for i in self.succeeded],
            "failed": [{"id": str(f["id"]), "reason": f["reason"]} for f in self.failed],
        }
