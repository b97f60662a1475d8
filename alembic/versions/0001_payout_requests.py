"""payout requests, beneficiaries and admin audit events

Revision ID: 0001_payout_requests
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""

from __future__ import annotations

from alembic import op


revision = "0001_payout_requests"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")
    op.execute("CREATE SCHEMA IF NOT EXISTS app;")
    op.execute("CREATE SCHEMA IF NOT EXISTS audit;")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.beneficiaries (
          id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
          email text,
          username text,
          default_payment_method jsonb,
          created_at timestamptz NOT NULL DEFAULT now(),
          updated_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )

    # beneficiary_id has no FK: orphaned rows are expected and must stay readable
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.payout_requests (
          id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
          beneficiary_id uuid,
          total_amount numeric(14, 2) NOT NULL CHECK (total_amount >= 0),
          solo_amount numeric(14, 2) NOT NULL DEFAULT 0 CHECK (solo_amount >= 0),
          collab_amount numeric(14, 2) NOT NULL DEFAULT 0 CHECK (collab_amount >= 0),
          payout_details jsonb,
          status text NOT NULL DEFAULT 'pending'
            CHECK (status IN (
              'pending', 'approved', 'processing', 'paid',
              'failed', 'rejected', 'payment_method_not_found'
            )),
          month smallint NOT NULL CHECK (month BETWEEN 1 AND 12),
          year smallint NOT NULL,
          created_at timestamptz NOT NULL DEFAULT now(),
          updated_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS payout_requests_status_idx "
        "ON app.payout_requests (status, created_at, id);"
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS payout_requests_period_idx "
        "ON app.payout_requests (status, year, month);"
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS payout_requests_beneficiary_idx "
        "ON app.payout_requests (beneficiary_id);"
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS audit.admin_events (
            id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
            created_at timestamptz NOT NULL DEFAULT now(),
            operator_id text,
            action text NOT NULL,
            entity_type text NOT NULL,
            entity_id text,
            metadata jsonb NOT NULL DEFAULT '{}'::jsonb,
            request_id text
        );
        """
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS audit.admin_events;")
    op.execute("DROP TABLE IF EXISTS app.payout_requests;")
    op.execute("DROP TABLE IF EXISTS app.beneficiaries;")
