"""007: add offerings.archived_at

An archived offering keeps its row (subscriptions still reference it) but
drops out of every listing and of the lifecycle tick.

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("ALTER TABLE offerings ADD COLUMN archived_at TIMESTAMPTZ;")
    op.execute("""
        CREATE INDEX idx_offerings_live_created
        ON offerings (created_at DESC, id DESC)
        WHERE archived_at IS NULL;
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_offerings_live_created;")
    op.execute("ALTER TABLE offerings DROP COLUMN IF EXISTS archived_at;")
