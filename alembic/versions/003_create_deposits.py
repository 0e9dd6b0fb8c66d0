"""003: create deposits table

Written by the deposit-review service; this service only reads approved rows.

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE deposits (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         UUID            NOT NULL REFERENCES users (id),
            amount          BIGINT          NOT NULL,
            status          VARCHAR(16)     NOT NULL DEFAULT 'pending',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_deposits_amount   CHECK (amount > 0),
            CONSTRAINT ck_deposits_status   CHECK (status IN ('pending', 'approved', 'rejected'))
        );
    """)
    op.execute("""
        CREATE INDEX idx_deposits_user_approved
        ON deposits (user_id)
        WHERE status = 'approved';
    """)
    op.execute("""
        CREATE TRIGGER trg_deposits_updated_at
            BEFORE UPDATE ON deposits
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS deposits CASCADE;")
