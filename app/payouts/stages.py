from __future__ import annotations

from app.payouts.model import APPROVED, PAID, PENDING, PROCESSING, StageFilter

STAGE_REVIEW = "review"
STAGE_APPROVED = "approved"
STAGE_PROCESSING = "processing"
STAGE_HISTORY = "history"

STAGES = [STAGE_REVIEW, STAGE_APPROVED, STAGE_PROCESSING, STAGE_HISTORY]

# Unpaid stages carry over across billing periods, so only history is period-browsable.
_STAGE_FILTERS: dict[str, StageFilter] = {
    STAGE_REVIEW: StageFilter(status=PENDING, include_period=False),
    STAGE_APPROVED: StageFilter(status=APPROVED, include_period=False),
    STAGE_PROCESSING: StageFilter(status=PROCESSING, include_period=False),
    STAGE_HISTORY: StageFilter(status=PAID, include_period=True),
}


def _normalize(value: str | None) -> str:
    return (value or "").strip().lower()


def stage_filter(stage: str) -> StageFilter:
    key = _normalize(stage)
    if key not in _STAGE_FILTERS:
        raise ValueError(f"Unknown payout stage: {stage!r} (expected one of {', '.join(STAGES)})")
    return _STAGE_FILTERS[key]


def is_review(stage: str) -> bool:
    return _normalize(stage) == STAGE_REVIEW
