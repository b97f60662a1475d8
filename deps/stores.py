
# deps/stores.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from app.payouts.base import BeneficiaryDirectory, PayoutStore
from app.payouts.memory import InMemoryBeneficiaryDirectory, InMemoryPayoutStore
from app.payouts.repository import PostgresBeneficiaryDirectory, PostgresPayoutStore
from db import get_conn
from settings import settings


@dataclass
class Ledger:
    store: PayoutStore
    directory: BeneficiaryDirectory


_memory_ledger: Ledger | None = None


def memory_ledger() -> Ledger:
    global _memory_ledger
    if _memory_ledger is None:
        _memory_ledger = Ledger(store=InMemoryPayoutStore(), directory=InMemoryBeneficiaryDirectory())
    return _memory_ledger


def get_ledger() -> Iterator[Ledger]:
    """
    One transactional connection per HTTP request; committed when the handler
    returns, rolled back if it raises.
    """
    if settings.PAYOUT_STORE == "memory":
        yield memory_ledger()
        return

    with get_conn() as conn:
        yield Ledger(store=PostgresPayoutStore(conn), directory=PostgresBeneficiaryDirectory(conn))
