from __future__ import annotations

from typing import Any


class PayoutError(Exception):
    code = "PAYOUT_ERROR"


class NotFound(PayoutError):
    code = "PAYOUT_NOT_FOUND"


class InvalidTransition(PayoutError):
    code = "INVALID_TRANSITION"


class UnresolvedPaymentMethod(PayoutError):
    code = "PAYMENT_METHOD_NOT_FOUND"


class ImportRowMismatch(PayoutError):
    code = "IMPORT_ROW_MISMATCH"

    def __init__(self, message: str, *, row_number: int, row: dict[str, Any] | None = None):
        super().__init__(message)
        self.row_number = row_number
        self.row = row or {}


class MalformedImportFile(PayoutError):
    code = "MALFORMED_IMPORT_FILE"
