from __future__ import annotations

from threading import Lock
from typing import Any, Iterable, Optional
from uuid import UUID

from app.payouts.model import Beneficiary, PayoutRequest, StageFilter


class InMemoryPayoutStore:
    """
    Process-local ledger store. Used by the test-suite and by PAYOUT_STORE=memory
    for local runs; state is lost on restart.
    """

    def __init__(self, requests: Iterable[PayoutRequest] = ()):
        self._lock = Lock()
        self._rows: dict[UUID, PayoutRequest] = {}
        self.events: list[dict[str, Any]] = []
        for r in requests:
            self.add(r)

    def add(self, request: PayoutRequest) -> PayoutRequest:
        with self._lock:
            self._rows[request.id] = request
        return request

    def find(
        self,
        stage_filter: StageFilter,
        *,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[PayoutRequest]:
        with self._lock:
            rows = [r for r in self._rows.values() if r.status == stage_filter.status]
        if stage_filter.include_period:
            if month is not None:
                rows = [r for r in rows if r.month == month]
            if year is not None:
                rows = [r for r in rows if r.year == year]
        return sorted(rows, key=lambda r: (r.created_at, str(r.id)))

    def get(self, payout_id: UUID) -> Optional[PayoutRequest]:
        with self._lock:
            return self._rows.get(payout_id)

    def save(
        self,
        request: PayoutRequest,
        *,
        expected_status: Optional[str] = None,
    ) -> Optional[PayoutRequest]:
        with self._lock:
            current = self._rows.get(request.id)
            if current is None:
                return None
            if expected_status is not None and current.status != expected_status:
                return None
            self._rows[request.id] = request
            return request

    def log_event(
        self,
        *,
        action: str,
        entity_id: str | None,
        metadata: dict[str, Any] | None = None,
        operator_id: str | None = None,
        request_id: str | None = None,
    ) -> None:
        with self._lock:
            self.events.append(
                {
                    "action": action,
                    "entity_id": entity_id,
                    "metadata": metadata or {},
                    "operator_id": operator_id,
                    "request_id": request_id,
                }
            )


class InMemoryBeneficiaryDirectory:
    def __init__(self, beneficiaries: Iterable[Beneficiary] = ()):
        self._items: dict[UUID, Beneficiary] = {b.id: b for b in beneficiaries}

    def add(self, beneficiary: Beneficiary) -> Beneficiary:
        self._items[beneficiary.id] = beneficiary
        return beneficiary

    def get_beneficiary(self, beneficiary_id: UUID) -> Optional[Beneficiary]:
        return self._items.get(beneficiary_id)

    def get_default_payment_method(self, beneficiary_id: UUID) -> Optional[dict[str, Any]]:
        b = self._items.get(beneficiary_id)
        return b.default_payment_method if b else None
