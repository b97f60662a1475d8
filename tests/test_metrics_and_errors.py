import logging
import uuid

import pytest

from app.payouts.errors import (
    ImportRowMismatch,
    InvalidTransition,
    MalformedImportFile,
    NotFound,
    PayoutError,
    UnresolvedPaymentMethod,
)
from services.errors import http_error_for
from services.metrics import get_counter, increment_payout_transition, render_prometheus


@pytest.mark.parametrize(
    "exc,status,code",
    [
        (NotFound("x"), 404, "PAYOUT_NOT_FOUND"),
        (InvalidTransition("x"), 409, "INVALID_TRANSITION"),
        (UnresolvedPaymentMethod("x"), 409, "PAYMENT_METHOD_NOT_FOUND"),
        (ImportRowMismatch("x", row_number=3), 422, "IMPORT_ROW_MISMATCH"),
        (MalformedImportFile("x"), 422, "MALFORMED_IMPORT_FILE"),
    ],
)
def test_payout_errors_map_to_http(exc, status, code):
    got_status, body = http_error_for(exc)
    assert got_status == status
    assert body == {"detail": code, "message": "x"}


def test_unknown_payout_error_fails_closed():
    status, body = http_error_for(PayoutError("SECRET_DETAIL_123"))
    assert status == 500
    assert body == {"detail": "Internal server error"}


def test_unhandled_exception_returns_500_without_details(client, monkeypatch):
    import routes.payouts as payout_routes

    def blow_up(*args, **kwargs):
        raise RuntimeError("SOME_RANDOM_DB_BLOWUP_123")

    monkeypatch.setattr(payout_routes.payout_service, "get_payout", blow_up, raising=True)

    r = client.get(f"/v1/admin/payouts/{uuid.uuid4()}")

    assert r.status_code == 500, r.text
    assert r.json().get("detail") == "Internal server error"
    assert "SOME_RANDOM_DB_BLOWUP_123" not in r.text


def test_prometheus_rendering():
    increment_payout_transition("approved", "applied")
    increment_payout_transition("approved", "applied")

    text = render_prometheus()

    assert "# TYPE payout_transitions_total counter" in text
    assert 'payout_transitions_total{result="applied",target="approved"} 2' in text
    assert get_counter("payout_transitions_total", {"target": "approved", "result": "applied"}) == 2


def test_metrics_endpoint_counts_requests(client):
    client.get("/healthz")
    r = client.get("/metrics")
    assert r.status_code == 200, r.text
    assert 'http_requests_total{route="/healthz",status="200"}' in r.text


def test_request_log_line(client, caplog):
    caplog.set_level(logging.INFO, logger="payouts.http")
    client.get("/healthz")
    assert any(
        "http_request" in record.getMessage() and "'path': '/healthz'" in record.getMessage()
        for record in caplog.records
    )
