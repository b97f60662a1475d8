from __future__ import annotations

import logging
from typing import Iterable, Mapping
from uuid import UUID

from app.payouts import state_machine
from app.payouts.aggregation import aggregate_pending
from app.payouts.base import BeneficiaryDirectory, PayoutStore
from app.payouts.errors import PayoutError
from app.payouts.model import APPROVED, FAILED, PAID, PROCESSING, REJECTED, BulkResult
from app.payouts.stages import STAGE_REVIEW, stage_filter

logger = logging.getLogger("payouts.bulk")

BULK_ACTIONS: dict[str, str] = {
    "approve": APPROVED,
    "reject": REJECTED,
    "process": PROCESSING,
    "pay": PAID,
    "fail": FAILED,
}

UNIT_ACTIONS = ("approve", "reject")


def target_for_action(action: str) -> str:
    key = (action or "").strip().lower()
    if key not in BULK_ACTIONS:
        raise ValueError(f"Unknown bulk action: {action!r}")
    return BULK_ACTIONS[key]


def _unique(ids: Iterable[UUID]) -> list[UUID]:
    seen: set[UUID] = set()
    out: list[UUID] = []
    for i in ids:
        if i in seen:
            continue
        seen.add(i)
        out.append(i)
    return out


def bulk_transition(
    store: PayoutStore,
    ids: Iterable[UUID],
    target: str,
    *,
    via_import: bool = False,
) -> BulkResult:
    """
    Best-effort batch: every id gets exactly one transition attempt and a failure
    on one id never rolls back or skips the others.
    """
    result = BulkResult()
    for payout_id in _unique(ids):
        try:
            state_machine.transition(store, payout_id, target, via_import=via_import)
        except PayoutError as exc:
            logger.warning("bulk %s: payout %s not applied: %s", target, payout_id, exc)
            result.failed.append({"id": payout_id, "reason": f"{exc.code}: {exc}"})
            continue
        result.succeeded.append(payout_id)

    logger.info(
        "bulk %s: succeeded=%s failed=%s",
        target,
        len(result.succeeded),
        len(result.failed),
    )
    return result


def bulk_unit_action(
    store: PayoutStore,
    directory: BeneficiaryDirectory,
    selections: Mapping[UUID, Iterable[UUID]],
    action: str,
) -> BulkResult:
    """
    Apply an action to whole aggregated units as the operator reviewed them.

    `selections` maps each beneficiary to the member request ids that were
    rendered. Units are rebuilt from the current pending set and only ids that
    are still members get transitioned. A rendered id that left the unit, and a
    member that arrived after the review, are both reported in `failed`; the
    latter stays pending for the next review.
    """
    key = (action or "").strip().lower()
    if key not in UNIT_ACTIONS:
        raise ValueError(f"Unit action must be one of {', '.join(UNIT_ACTIONS)}")

    pending = store.find(stage_filter(STAGE_REVIEW))
    aggregation = aggregate_pending(
        pending,
        is_known=lambda bid: directory.get_beneficiary(bid) is not None,
    )
    current = {u.beneficiary_id: u.member_request_ids for u in aggregation.units}

    to_apply: list[UUID] = []
    changed: list[dict] = []
    for beneficiary_id, rendered in selections.items():
        rendered_ids = _unique(rendered)
        members = current.get(beneficiary_id, ())
        for rid in rendered_ids:
            if rid in members:
                to_apply.append(rid)
            else:
                changed.append(
                    {"id": rid, "reason": f"UNIT_CHANGED: no longer a pending member of unit {beneficiary_id}"}
                )
        for rid in members:
            if rid not in rendered_ids:
                changed.append(
                    {"id": rid, "reason": f"UNIT_CHANGED: joined unit {beneficiary_id} after review; left pending"}
                )

    if changed:
        logger.warning("unit %s: %s member(s) differ from the reviewed units", key, len(changed))

    result = bulk_transition(store, to_apply, BULK_ACTIONS[key])
    result.failed.extend(changed)
    return result
