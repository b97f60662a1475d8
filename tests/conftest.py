# tests/conftest.py

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from app.payouts.memory import InMemoryBeneficiaryDirectory, InMemoryPayoutStore
from app.payouts.model import PENDING, Beneficiary, PayoutRequest
from deps.stores import Ledger, get_ledger
from main import create_app
from services.metrics import reset_metrics


BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


# ---------------------------
# Ledger fixtures
# ---------------------------

@pytest.fixture
def store() -> InMemoryPayoutStore:
    return InMemoryPayoutStore()


@pytest.fixture
def directory() -> InMemoryBeneficiaryDirectory:
    return InMemoryBeneficiaryDirectory()


@pytest.fixture
def ledger(store, directory) -> Ledger:
    return Ledger(store=store, directory=directory)


@pytest.fixture
def make_request(store):
    """
    Factory that inserts a PayoutRequest into the in-memory store.
    Each call is created one minute after the previous one so store order is stable.
    """
    counter = {"n": 0}

    def _make(
        beneficiary_id: Optional[uuid.UUID] = None,
        *,
        total: str = "10.00",
        solo: Optional[str] = None,
        collab: str = "0.00",
        status: str = PENDING,
        month: int = 3,
        year: int = 2024,
        payout_details: Optional[Dict[str, Any]] = None,
    ) -> PayoutRequest:
        created = BASE_TIME + timedelta(minutes=counter["n"])
        counter["n"] += 1
        total_d = Decimal(total)
        collab_d = Decimal(collab)
        solo_d = Decimal(solo) if solo is not None else total_d - collab_d
        req = PayoutRequest(
            id=uuid.uuid4(),
            beneficiary_id=beneficiary_id,
            total_amount=total_d,
            solo_amount=solo_d,
            collab_amount=collab_d,
            status=status,
            month=month,
            year=year,
            created_at=created,
            updated_at=created,
            payout_details=payout_details,
        )
        return store.add(req)

    return _make


@pytest.fixture
def make_beneficiary(directory):
    def _make(
        *,
        email: Optional[str] = None,
        username: Optional[str] = None,
        default_payment_method: Optional[Dict[str, Any]] = None,
    ) -> Beneficiary:
        bid = uuid.uuid4()
        return directory.add(
            Beneficiary(
                id=bid,
                email=email or f"creator-{bid.hex[:8]}@example.com",
                username=username or f"creator_{bid.hex[:8]}",
                default_payment_method=default_payment_method,
            )
        )

    return _make


# ---------------------------
# Client
# ---------------------------

@pytest.fixture
def client(ledger) -> TestClient:
    app = create_app()

    def _override():
        yield ledger

    app.dependency_overrides[get_ledger] = _override
    # Needed so tests can assert 500s instead of pytest re-raising server exceptions
    return TestClient(app, raise_server_exceptions=False)
