"""006: create tick_logs table

Append-only audit of lifecycle ticks (promotions, closures, allocations,
per-offering failures).

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE tick_logs (
            id                  BIGSERIAL       PRIMARY KEY,
            job_name            VARCHAR(64)     NOT NULL,
            status              VARCHAR(16)     NOT NULL,
            promoted_count      INT             NOT NULL DEFAULT 0,
            closed_count        INT             NOT NULL DEFAULT 0,
            allocated_count     INT             NOT NULL DEFAULT 0,
            failed_count        INT             NOT NULL DEFAULT 0,
            deferred_count      INT             NOT NULL DEFAULT 0,
            details             JSONB           NOT NULL DEFAULT '{}'::jsonb,
            execution_time_ms   INT             NOT NULL DEFAULT 0,
            started_at          TIMESTAMPTZ     NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_tick_logs_status  CHECK (status IN ('success', 'partial', 'error'))
        );
    """)
    op.execute("CREATE INDEX idx_tick_logs_job ON tick_logs (job_name, id DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS tick_logs;")
