from __future__ import annotations

from typing import Any, Optional, Protocol
from uuid import UUID

from app.payouts.model import Beneficiary, PayoutRequest, StageFilter


class PayoutStore(Protocol):
    def find(
        self,
        stage_filter: StageFilter,
        *,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[PayoutRequest]: ...

    def get(self, payout_id: UUID) -> Optional[PayoutRequest]: ...

    # Returns None when expected_status no longer matches the stored row.
    def save(
        self,
        request: PayoutRequest,
        *,
        expected_status: Optional[str] = None,
    ) -> Optional[PayoutRequest]: ...

    def log_event(
        self,
        *,
        action: str,
        entity_id: str | None,
        metadata: dict[str, Any] | None = None,
        operator_id: str | None = None,
        request_id: str | None = None,
    ) -> None: ...


class BeneficiaryDirectory(Protocol):
    def get_beneficiary(self, beneficiary_id: UUID) -> Optional[Beneficiary]: ...
    def get_default_payment_method(self, beneficiary_id: UUID) -> Optional[dict[str, Any]]: ...
