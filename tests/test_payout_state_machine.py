import uuid

import pytest

from app.payouts import state_machine
from app.payouts.errors import InvalidTransition, NotFound
from app.payouts.model import (
    APPROVED,
    FAILED,
    PAID,
    PAYMENT_METHOD_NOT_FOUND,
    PENDING,
    PROCESSING,
    REJECTED,
)
from app.payouts.state_machine import assert_transition
from services.metrics import get_counter
from services.observability import set_operator_id, set_request_id


def test_valid_transitions():
    assert_transition(PENDING, APPROVED)
    assert_transition(PENDING, REJECTED)
    assert_transition(APPROVED, PROCESSING)
    assert_transition(PROCESSING, PAID)
    assert_transition(PROCESSING, PENDING)
    assert_transition(PAYMENT_METHOD_NOT_FOUND, PENDING)


def test_invalid_transition_skipping_states():
    with pytest.raises(InvalidTransition):
        assert_transition(PENDING, PAID)
    with pytest.raises(InvalidTransition):
        assert_transition(APPROVED, PAID)
    with pytest.raises(InvalidTransition):
        assert_transition(APPROVED, PENDING)


@pytest.mark.parametrize("terminal", [PAID, REJECTED, FAILED])
def test_terminal_states_cannot_transition(terminal):
    for target in (PENDING, APPROVED, PROCESSING, PAID, FAILED, REJECTED):
        if target == terminal:
            continue
        with pytest.raises(InvalidTransition):
            assert_transition(terminal, target)


def test_payment_method_not_found_is_import_only():
    with pytest.raises(InvalidTransition):
        assert_transition(PENDING, PAYMENT_METHOD_NOT_FOUND)
    assert_transition(PENDING, PAYMENT_METHOD_NOT_FOUND, via_import=True)
    assert_transition(PROCESSING, PAYMENT_METHOD_NOT_FOUND, via_import=True)


def test_transition_updates_status_and_timestamp(store, make_request):
    req = make_request()
    updated = state_machine.transition(store, req.id, APPROVED)

    assert updated.status == APPROVED
    assert updated.updated_at > req.updated_at
    assert store.get(req.id).status == APPROVED
    # amounts are never recomputed
    assert updated.total_amount == req.total_amount
    assert updated.solo_amount == req.solo_amount


def test_transition_unknown_id_raises_not_found(store):
    with pytest.raises(NotFound):
        state_machine.transition(store, uuid.uuid4(), APPROVED)


def test_transition_to_current_status_is_noop(store, make_request):
    req = make_request(status=APPROVED)
    out = state_machine.transition(store, req.id, APPROVED)

    assert out == req
    assert store.events == []
    assert get_counter("payout_transitions_total", {"target": APPROVED, "result": "noop"}) == 1


def test_terminal_noop_is_allowed_but_exit_is_rejected(store, make_request):
    req = make_request(status=PAID)
    assert state_machine.transition(store, req.id, PAID).status == PAID

    with pytest.raises(InvalidTransition):
        state_machine.transition(store, req.id, PENDING)
    assert store.get(req.id).status == PAID


def test_invalid_transition_leaves_record_untouched(store, make_request):
    req = make_request()
    with pytest.raises(InvalidTransition):
        state_machine.transition(store, req.id, PAID)

    assert store.get(req.id) == req
    assert get_counter("payout_transitions_total", {"target": PAID, "result": "rejected"}) == 1


def test_stale_write_is_rejected(store, make_request, monkeypatch):
    req = make_request()
    real_get = store.get

    def racing_get(payout_id):
        current = real_get(payout_id)
        # another operator rejects the request between our read and our write
        store.add(current.with_status(REJECTED, at=current.updated_at))
        return current

    monkeypatch.setattr(store, "get", racing_get)

    with pytest.raises(InvalidTransition):
        state_machine.transition(store, req.id, APPROVED)

    assert real_get(req.id).status == REJECTED
    assert get_counter("payout_transitions_total", {"target": APPROVED, "result": "stale"}) == 1


def test_transition_writes_audit_event(store, make_request):
    req = make_request()
    set_operator_id("ops@example.com")
    set_request_id("req-123")
    try:
        state_machine.transition(store, req.id, APPROVED)
    finally:
        set_operator_id(None)
        set_request_id(None)

    assert store.events == [
        {
            "action": "PAYOUT_STATUS",
            "entity_id": str(req.id),
            "metadata": {"from": PENDING, "to": APPROVED},
            "operator_id": "ops@example.com",
            "request_id": "req-123",
        }
    ]


def test_import_transition_uses_import_action(store, make_request):
    req = make_request(status=PROCESSING)
    state_machine.transition(store, req.id, PAYMENT_METHOD_NOT_FOUND, via_import=True)

    assert store.events[-1]["action"] == "PAYOUT_IMPORT_STATUS"


def test_revert_moves_processing_back_to_pending(store, make_request):
    req = make_request(status=PROCESSING)
    out = state_machine.revert(store, req.id)
    assert out.status == PENDING


@pytest.mark.parametrize("status", [PENDING, APPROVED, PAID])
def test_revert_requires_processing(store, make_request, status):
    req = make_request(status=status)
    with pytest.raises(InvalidTransition):
        state_machine.revert(store, req.id)
    assert store.get(req.id).status == status


def test_revert_unknown_id_raises_not_found(store):
    with pytest.raises(NotFound):
        state_machine.revert(store, uuid.uuid4())
