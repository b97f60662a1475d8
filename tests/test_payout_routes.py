from __future__ import annotations

import uuid
from decimal import Decimal

from app.payouts.model import APPROVED, PAID, PENDING, PROCESSING, REJECTED


PAYPAL = {"type": "paypal", "email": "creator@example.com"}


def test_review_stage_returns_units_and_ignores_period(client, make_request, make_beneficiary):
    b = make_beneficiary(default_payment_method=PAYPAL)
    make_request(b.id, total="30.00", month=1)
    make_request(b.id, total="20.00", month=2)

    r = client.get("/v1/admin/payouts", params={"stage": "review", "month": 5, "year": 2024})
    assert r.status_code == 200, r.text
    data = r.json()

    assert data["stage"] == "review"
    assert data["count"] == 1
    assert data["payouts"] == []
    [unit] = data["units"]
    assert unit["beneficiary_id"] == str(b.id)
    assert Decimal(unit["total_amount"]) == Decimal("50.00")
    assert unit["periods"] == [{"month": 1, "year": 2024}, {"month": 2, "year": 2024}]
    assert unit["payment_method"]["method"] == "paypal"
    assert unit["payment_method"]["label"] == "PayPal - creator@example.com"


def test_review_stage_lists_orphans(client, make_request, make_beneficiary):
    b = make_beneficiary()
    make_request(b.id)
    orphan = make_request(uuid.uuid4())

    data = client.get("/v1/admin/payouts", params={"stage": "review"}).json()

    assert len(data["units"]) == 1
    assert [o["id"] for o in data["orphans"]] == [str(orphan.id)]
    assert data["orphans"][0]["payment_method"]["label"] == "N/A"


def test_review_search_leaves_out_orphans(client, make_request, make_beneficiary):
    ama = make_beneficiary(email="ama@example.com", username="ama")
    make_request(ama.id)
    make_request(uuid.uuid4())

    data = client.get("/v1/admin/payouts", params={"stage": "review", "search": "ama"}).json()

    assert [u["beneficiary_id"] for u in data["units"]] == [str(ama.id)]
    assert data["orphans"] == []
    assert data["count"] == 1


def test_history_stage_is_period_scoped(client, make_request, make_beneficiary):
    b = make_beneficiary()
    make_request(b.id, status=PAID, month=2)
    march = make_request(b.id, status=PAID, month=3)

    data = client.get("/v1/admin/payouts", params={"stage": "history", "month": 3, "year": 2024}).json()

    assert [p["id"] for p in data["payouts"]] == [str(march.id)]
    assert data["units"] == []


def test_listing_filters_by_method_and_search(client, make_request, make_beneficiary):
    ama = make_beneficiary(email="ama@example.com", username="ama", default_payment_method=PAYPAL)
    kofi = make_beneficiary(email="kofi@example.com", username="kofi")
    a = make_request(ama.id, status=APPROVED)
    k = make_request(kofi.id, status=APPROVED)

    by_method = client.get("/v1/admin/payouts", params={"stage": "approved", "method": "unresolved"}).json()
    assert [p["id"] for p in by_method["payouts"]] == [str(k.id)]

    by_search = client.get("/v1/admin/payouts", params={"stage": "approved", "search": "AMA@"}).json()
    assert [p["id"] for p in by_search["payouts"]] == [str(a.id)]
    assert by_search["payouts"][0]["beneficiary"]["username"] == "ama"


def test_unknown_stage_is_rejected(client):
    r = client.get("/v1/admin/payouts", params={"stage": "archive"})
    assert r.status_code == 422, r.text


def test_get_payout(client, make_request):
    req = make_request(total="12.34")
    r = client.get(f"/v1/admin/payouts/{req.id}")
    assert r.status_code == 200, r.text
    assert Decimal(r.json()["total_amount"]) == Decimal("12.34")


def test_get_unknown_payout_is_404(client):
    r = client.get(f"/v1/admin/payouts/{uuid.uuid4()}")
    assert r.status_code == 404, r.text
    assert r.json()["detail"] == "PAYOUT_NOT_FOUND"


def test_patch_status_applies_transition(client, store, make_request):
    req = make_request()
    r = client.patch(f"/v1/admin/payouts/{req.id}/status", json={"status": "approved"})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == APPROVED
    assert store.get(req.id).status == APPROVED


def test_patch_illegal_transition_is_409(client, store, make_request):
    req = make_request(status=PAID)
    r = client.patch(f"/v1/admin/payouts/{req.id}/status", json={"status": "pending"})
    assert r.status_code == 409, r.text
    assert r.json()["detail"] == "INVALID_TRANSITION"
    assert store.get(req.id).status == PAID


def test_patch_payment_method_not_found_is_import_only(client, make_request):
    req = make_request(status=PROCESSING)
    r = client.patch(f"/v1/admin/payouts/{req.id}/status", json={"status": "payment_method_not_found"})
    assert r.status_code == 409, r.text


def test_patch_unknown_status_value_is_422(client, make_request):
    req = make_request()
    r = client.patch(f"/v1/admin/payouts/{req.id}/status", json={"status": "sent"})
    assert r.status_code == 422, r.text


def test_revert_endpoint(client, make_request):
    req = make_request(status=PROCESSING)
    r = client.post(f"/v1/admin/payouts/{req.id}/revert")
    assert r.status_code == 200, r.text
    assert r.json()["status"] == PENDING

    again = client.post(f"/v1/admin/payouts/{req.id}/revert")
    assert again.status_code == 409, again.text


def test_bulk_update_reports_partial_failure(client, store, make_request):
    ok = make_request()
    done = make_request(status=REJECTED)

    r = client.post(
        "/v1/admin/payouts/bulk-update",
        json={"action": "approve", "ids": [str(ok.id), str(done.id)]},
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["target"] == APPROVED
    assert data["succeeded"] == [str(ok.id)]
    assert [f["id"] for f in data["failed"]] == [str(done.id)]
    assert data["failed"][0]["reason"].startswith("INVALID_TRANSITION")
    assert store.get(ok.id).status == APPROVED


def test_bulk_update_requires_ids(client):
    r = client.post("/v1/admin/payouts/bulk-update", json={"action": "approve", "ids": []})
    assert r.status_code == 422, r.text


def test_unit_bulk_update(client, store, make_request, make_beneficiary):
    b = make_beneficiary()
    first = make_request(b.id, month=1)
    second = make_request(b.id, month=2)

    r = client.post(
        "/v1/admin/payouts/units/bulk-update",
        json={
            "action": "reject",
            "units": [{"beneficiary_id": str(b.id), "member_request_ids": [str(first.id), str(second.id)]}],
        },
    )
    assert r.status_code == 200, r.text
    assert r.json()["succeeded"] == [str(first.id), str(second.id)]
    assert store.get(first.id).status == REJECTED
    assert store.get(second.id).status == REJECTED


def test_unit_approve_only_covers_reviewed_members(client, store, make_request, make_beneficiary):
    b = make_beneficiary()
    make_request(b.id, total="30.00")

    listing = client.get("/v1/admin/payouts", params={"stage": "review"}).json()
    [unit] = listing["units"]
    assert Decimal(unit["total_amount"]) == Decimal("30.00")

    late = make_request(b.id, total="999.00")

    r = client.post(
        "/v1/admin/payouts/units/bulk-update",
        json={
            "action": "approve",
            "units": [{"beneficiary_id": unit["beneficiary_id"], "member_request_ids": unit["member_request_ids"]}],
        },
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["succeeded"] == unit["member_request_ids"]
    assert [f["id"] for f in data["failed"]] == [str(late.id)]
    assert store.get(late.id).status == PENDING


def test_unit_bulk_update_requires_member_ids(client, make_beneficiary):
    b = make_beneficiary()
    r = client.post(
        "/v1/admin/payouts/units/bulk-update",
        json={"action": "approve", "beneficiary_ids": [str(b.id)]},
    )
    assert r.status_code == 422, r.text


def test_stats_endpoint(client, make_request):
    make_request(total="10.00")
    make_request(total="15.00")

    r = client.get("/v1/admin/payouts/stats", params={"stage": "review"})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["count"] == 2
    assert Decimal(data["total_amount"]) == Decimal("25.00")
    assert Decimal(data["average_payout"]) == Decimal("12.50")
    assert data["counts"]["pending"] == 2
    assert data["counts"]["payment_method_not_found"] == 0
    assert data["currency"] == "USD"


def test_request_id_header_is_echoed(client):
    r = client.get("/healthz", headers={"X-Request-Id": "client-request-id"})
    assert r.headers.get("X-Request-Id") == "client-request-id"
