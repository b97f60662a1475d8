

# app/payouts/repository.py
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from psycopg2.extras import Json, RealDictCursor

from app.payouts.model import Beneficiary, PayoutRequest, StageFilter

_PAYOUT_COLUMNS = """
  p.id,
  p.beneficiary_id,
  p.total_amount,
  p.solo_amount,
  p.collab_amount,
  p.payout_details,
  p.status,
  p.month,
  p.year,
  p.created_at,
  p.updated_at
"""


def _row_to_payout(row: dict[str, Any]) -> PayoutRequest:
    return PayoutRequest(
        id=row["id"],
        beneficiary_id=row.get("beneficiary_id"),
        total_amount=row["total_amount"],
        solo_amount=row["solo_amount"],
        collab_amount=row["collab_amount"],
        payout_details=row.get("payout_details"),
        status=row["status"],
        month=int(row["month"]),
        year=int(row["year"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresPayoutStore:
    """
    Ledger store over app.payout_requests.
    Works on the caller's connection; commit/rollback is owned by db.get_conn().
    """

    def __init__(self, conn):
        self.conn = conn

    # ==========================================================
    # Reads
    # ==========================================================

    def find(
        self,
        stage_filter: StageFilter,
        *,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[PayoutRequest]:
        where = ["p.status = %s"]
        params: list[Any] = [stage_filter.status]

        if stage_filter.include_period:
            if month is not None:
                where.append("p.month = %s")
                params.append(month)
            if year is not None:
                where.append("p.year = %s")
                params.append(year)

        with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                SELECT {_PAYOUT_COLUMNS}
                FROM app.payout_requests p
                WHERE {" AND ".join(where)}
                ORDER BY p.created_at ASC, p.id ASC
                """,
                tuple(params),
            )
            return [_row_to_payout(dict(r)) for r in cur.fetchall()]

    def get(self, payout_id: UUID) -> Optional[PayoutRequest]:
        with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                SELECT {_PAYOUT_COLUMNS}
                FROM app.payout_requests p
                WHERE p.id = %s
                """,
                (payout_id,),
            )
            row = cur.fetchone()
            return _row_to_payout(dict(row)) if row else None

    # ==========================================================
    # Updates
    # ==========================================================

    def save(
        self,
        request: PayoutRequest,
        *,
        expected_status: Optional[str] = None,
    ) -> Optional[PayoutRequest]:
        status_guard_sql = ""
        params: list[Any] = [request.status, request.updated_at, request.id]
        if expected_status is not None:
            status_guard_sql = "AND status = %s"
            params.append(expected_status)

        with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                f"""
                UPDATE app.payout_requests p
                SET
                  status = %s,
                  updated_at = %s
                WHERE p.id = %s
                {status_guard_sql}
                RETURNING {_PAYOUT_COLUMNS}
                """,
                tuple(params),
            )
            row = cur.fetchone()
            return _row_to_payout(dict(row)) if row else None

    def log_event(
        self,
        *,
        action: str,
        entity_id: str | None,
        metadata: dict[str, Any] | None = None,
        operator_id: str | None = None,
        request_id: str | None = None,
    ) -> None:
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO audit.admin_events (
                    operator_id,
                    action,
                    entity_type,
                    entity_id,
                    metadata,
                    request_id
                )
                VALUES (%s, %s, 'PAYOUT_REQUEST', %s, %s::jsonb, %s);
                """,
                (
                    operator_id,
                    action,
                    entity_id,
                    Json(metadata or {}),
                    request_id,
                ),
            )


class PostgresBeneficiaryDirectory:
    def __init__(self, conn):
        self.conn = conn

    def get_beneficiary(self, beneficiary_id: UUID) -> Optional[Beneficiary]:
        with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(
                """
                SELECT b.id, b.email, b.username, b.default_payment_method
                FROM app.beneficiaries b
                WHERE b.id = %s
                """,
                (beneficiary_id,),
            )
            row = cur.fetchone()
        if not row:
            return None
        return Beneficiary(
            id=row["id"],
            email=row.get("email"),
            username=row.get("username"),
            default_payment_method=row.get("default_payment_method"),
        )

    def get_default_payment_method(self, beneficiary_id: UUID) -> Optional[dict[str, Any]]:
        b = self.get_beneficiary(beneficiary_id)
        return b.default_payment_method if b else None
