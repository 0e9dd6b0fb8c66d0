"""004: create offerings table

status never holds 'allocated': a closed offering with allocation_completed
= TRUE is the allocated phase.

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE offerings (
            id                      BIGSERIAL       PRIMARY KEY,
            symbol                  VARCHAR(16)     NOT NULL,
            company_name            VARCHAR(255)    NOT NULL,
            exchange                VARCHAR(16)     NOT NULL DEFAULT 'BIST',
            price_min               BIGINT          NOT NULL,
            price_max               BIGINT          NOT NULL,
            lot_size                INT             NOT NULL DEFAULT 1,
            total_shares            BIGINT          NOT NULL,
            allocated_shares        BIGINT          NOT NULL DEFAULT 0,
            remaining_shares        BIGINT          NOT NULL,
            start_date              TIMESTAMPTZ     NOT NULL,
            end_date                TIMESTAMPTZ     NOT NULL,
            status                  VARCHAR(16)     NOT NULL DEFAULT 'upcoming',
            allocation_completed    BOOLEAN         NOT NULL DEFAULT FALSE,
            description             TEXT,
            created_by              UUID            REFERENCES users (id),
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_offerings_symbol          UNIQUE (symbol),
            CONSTRAINT ck_offerings_exchange        CHECK (exchange IN ('BIST', 'NASDAQ', 'NYSE')),
            CONSTRAINT ck_offerings_price_band      CHECK (price_min > 0 AND price_min <= price_max),
            CONSTRAINT ck_offerings_lot_size        CHECK (lot_size >= 1),
            CONSTRAINT ck_offerings_total_shares    CHECK (total_shares > 0),
            CONSTRAINT ck_offerings_allocated       CHECK (allocated_shares >= 0),
            CONSTRAINT ck_offerings_remaining       CHECK (remaining_shares >= 0),
            CONSTRAINT ck_offerings_share_pool      CHECK (allocated_shares + remaining_shares = total_shares),
            CONSTRAINT ck_offerings_window          CHECK (start_date < end_date),
            CONSTRAINT ck_offerings_status          CHECK (status IN ('upcoming', 'active', 'closed')),
            CONSTRAINT ck_offerings_completed_closed CHECK (NOT allocation_completed OR status = 'closed')
        );
    """)
    op.execute("""
        CREATE INDEX idx_offerings_upcoming_start
        ON offerings (start_date)
        WHERE status = 'upcoming';
    """)
    op.execute("""
        CREATE INDEX idx_offerings_active_end
        ON offerings (end_date)
        WHERE status = 'active';
    """)
    op.execute("""
        CREATE INDEX idx_offerings_pending_allocation
        ON offerings (end_date, id)
        WHERE status = 'closed' AND allocation_completed = FALSE;
    """)
    op.execute("CREATE INDEX idx_offerings_created ON offerings (created_at DESC, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_offerings_updated_at
            BEFORE UPDATE ON offerings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS offerings CASCADE;")
