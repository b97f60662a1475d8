

# schemas.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

PayoutStatusName = Literal[
    "pending",
    "approved",
    "processing",
    "paid",
    "failed",
    "rejected",
    "payment_method_not_found",
]
StageName = Literal["review", "approved", "processing", "history"]
BulkActionName = Literal["approve", "reject", "process", "pay", "fail"]
UnitActionName = Literal["approve", "reject"]
MethodName = Literal["bank", "paypal", "mobile_money", "unresolved"]


# -------- REQUESTS --------
class StatusUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")
    status: PayoutStatusName


class BulkUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")
    action: BulkActionName
    ids: List[UUID] = Field(min_length=1, max_length=5000)


class UnitSelection(BaseModel):
    model_config = ConfigDict(extra="forbid")
    beneficiary_id: UUID
    # the member ids shown on the review listing for this unit
    member_request_ids: List[UUID] = Field(min_length=1, max_length=5000)


class UnitBulkUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")
    action: UnitActionName
    units: List[UnitSelection] = Field(min_length=1, max_length=5000)


# -------- RESPONSES --------
class PaymentMethodItem(BaseModel):
    method: str
    source: Optional[str] = None
    label: str
    fields: Dict[str, str] = Field(default_factory=dict)


class BeneficiaryItem(BaseModel):
    beneficiary_id: UUID
    email: Optional[str] = None
    username: Optional[str] = None


class PayoutItem(BaseModel):
    id: UUID
    beneficiary_id: Optional[UUID] = None
    beneficiary: Optional[BeneficiaryItem] = None
    total_amount: Decimal
    solo_amount: Decimal
    collab_amount: Decimal
    status: str
    month: int
    year: int
    payment_method: PaymentMethodItem
    created_at: datetime
    updated_at: datetime


class PeriodItem(BaseModel):
    month: int
    year: int


class UnitItem(BaseModel):
    beneficiary_id: UUID
    beneficiary: Optional[BeneficiaryItem] = None
    total_amount: Decimal
    solo_amount: Decimal
    collab_amount: Decimal
    periods: List[PeriodItem]
    member_request_ids: List[UUID]
    payment_method: PaymentMethodItem


class StageListResponse(BaseModel):
    stage: StageName
    count: int
    payouts: List[PayoutItem] = Field(default_factory=list)
    units: List[UnitItem] = Field(default_factory=list)
    orphans: List[PayoutItem] = Field(default_factory=list)


class BulkFailureItem(BaseModel):
    id: UUID
    reason: str


class BulkUpdateResponse(BaseModel):
    target: str
    succeeded: List[UUID]
    failed: List[BulkFailureItem]


class StatsResponse(BaseModel):
    stage: StageName
    counts: Dict[str, int]
    count: int
    total_amount: Decimal
    average_payout: Decimal
    monthly_growth: Decimal
    currency: str


class ImportResponse(BaseModel):
    applied: int
    warnings: List[str]
    unmatched: List[Dict[str, Any]]
