from __future__ import annotations

from contextvars import ContextVar


_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_operator_id: ContextVar[str | None] = ContextVar("operator_id", default=None)


def set_request_id(value: str | None) -> None:
    _request_id.set(value)


def get_request_id() -> str | None:
    return _request_id.get()


# Operator identity is informational (audit trail only); it is not authenticated.
def set_operator_id(value: str | None) -> None:
    _operator_id.set((value or "").strip() or None)


def get_operator_id() -> str | None:
    return _operator_id.get()
