# services/errors.py
from __future__ import annotations

from app.payouts.errors import PayoutError

PAYOUT_ERROR_HTTP_MAP: dict[str, tuple[int, str]] = {
    "PAYOUT_NOT_FOUND": (404, "PAYOUT_NOT_FOUND"),
    "INVALID_TRANSITION": (409, "INVALID_TRANSITION"),
    "PAYMENT_METHOD_NOT_FOUND": (409, "PAYMENT_METHOD_NOT_FOUND"),
    "IMPORT_ROW_MISMATCH": (422, "IMPORT_ROW_MISMATCH"),
    "MALFORMED_IMPORT_FILE": (422, "MALFORMED_IMPORT_FILE"),
}


def http_error_for(exc: PayoutError) -> tuple[int, dict]:
    """
    Map a domain error to (status, body). Unknown codes fail closed as 500
    without echoing the message.
    """
    status, code = PAYOUT_ERROR_HTTP_MAP.get(exc.code, (500, "Internal server error"))
    if status >= 500:
        return status, {"detail": code}
    return status, {"detail": code, "message": str(exc)}
