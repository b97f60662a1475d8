

# app/payouts/state_machine.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from app.payouts.base import PayoutStore
from app.payouts.errors import InvalidTransition, NotFound
from app.payouts.model import (
    APPROVED,
    FAILED,
    PAID,
    PAYMENT_METHOD_NOT_FOUND,
    PENDING,
    PROCESSING,
    REJECTED,
    TERMINAL_STATUSES,
    PayoutRequest,
)
from services.metrics import increment_payout_transition
from services.observability import get_operator_id, get_request_id

logger = logging.getLogger("payouts.state_machine")


ALLOWED = {
    PENDING: {APPROVED, REJECTED, FAILED},
    APPROVED: {PROCESSING, REJECTED, FAILED},
    PROCESSING: {PAID, PENDING, REJECTED, FAILED},  # PROCESSING->PENDING is the revert edge
    PAYMENT_METHOD_NOT_FOUND: {PENDING},
    PAID: set(),
    REJECTED: set(),
    FAILED: set(),
}

# Only the reconciliation import may flag an unusable destination.
IMPORT_ONLY = {
    PENDING: {PAYMENT_METHOD_NOT_FOUND},
    APPROVED: {PAYMENT_METHOD_NOT_FOUND},
    PROCESSING: {PAYMENT_METHOD_NOT_FOUND},
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def assert_transition(old: str, new: str, *, via_import: bool = False) -> None:
    if old in TERMINAL_STATUSES:
        raise InvalidTransition(f"Payout is terminal: {old} -> {new}")
    allowed = ALLOWED.get(old, set())
    if via_import:
        allowed = allowed | IMPORT_ONLY.get(old, set())
    if new not in allowed:
        raise InvalidTransition(f"Illegal payout transition: {old} -> {new}")


def transition(
    store: PayoutStore,
    payout_id: UUID,
    target: str,
    *,
    via_import: bool = False,
) -> PayoutRequest:
    """
    Move one payout request to `target`.

    Calling it again with a target equal to the current status is a no-op success,
    which lets bulk runs and re-imported reports be replayed safely.
    The write is compare-and-set on the status read here; losing that race
    raises InvalidTransition instead of silently overwriting the other write.
    """
    current = store.get(payout_id)
    if current is None:
        raise NotFound(f"Payout request not found: {payout_id}")

    if current.status == target:
        increment_payout_transition(target, "noop")
        return current

    try:
        assert_transition(current.status, target, via_import=via_import)
    except InvalidTransition:
        increment_payout_transition(target, "rejected")
        raise

    updated = store.save(current.with_status(target, at=_utcnow()), expected_status=current.status)
    if updated is None:
        increment_payout_transition(target, "stale")
        raise InvalidTransition(
            f"Payout {payout_id} changed concurrently (was {current.status}); re-read and retry"
        )

    store.log_event(
        action="PAYOUT_IMPORT_STATUS" if via_import else "PAYOUT_STATUS",
        entity_id=str(payout_id),
        metadata={"from": current.status, "to": target},
        operator_id=get_operator_id(),
        request_id=get_request_id(),
    )
    increment_payout_transition(target, "applied")
    logger.info("payout %s: %s -> %s", payout_id, current.status, target)
    return updated


def revert(store: PayoutStore, payout_id: UUID) -> PayoutRequest:
    current = store.get(payout_id)
    if current is None:
        raise NotFound(f"Payout request not found: {payout_id}")
    if current.status != PROCESSING:
        raise InvalidTransition(f"Only processing payouts can be reverted (status={current.status})")
    return transition(store, payout_id, PENDING)
