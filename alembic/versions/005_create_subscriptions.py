"""005: create subscriptions table

uq_subscriptions_active_user_offering enforces at most one pending/confirmed
subscription per (user, offering); the service maps its violation to
DuplicateSubscriptionError.

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE subscriptions (
            id                      BIGSERIAL       PRIMARY KEY,
            user_id                 UUID            NOT NULL REFERENCES users (id),
            offering_id             BIGINT          NOT NULL REFERENCES offerings (id),
            quantity                BIGINT          NOT NULL,
            price_per_share         BIGINT          NOT NULL,
            total_amount            BIGINT          NOT NULL,
            status                  VARCHAR(16)     NOT NULL DEFAULT 'pending',
            allocation_quantity     BIGINT          NOT NULL DEFAULT 0,
            allocation_amount       BIGINT          NOT NULL DEFAULT 0,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT clock_timestamp(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_subscriptions_quantity        CHECK (quantity > 0),
            CONSTRAINT ck_subscriptions_price           CHECK (price_per_share > 0),
            CONSTRAINT ck_subscriptions_total           CHECK (total_amount = quantity * price_per_share),
            CONSTRAINT ck_subscriptions_status          CHECK (
                status IN ('pending', 'confirmed', 'allocated', 'rejected')
            ),
            CONSTRAINT ck_subscriptions_alloc_qty       CHECK (
                allocation_quantity >= 0 AND allocation_quantity <= quantity
            ),
            CONSTRAINT ck_subscriptions_alloc_amount    CHECK (
                allocation_amount = allocation_quantity * price_per_share
            ),
            CONSTRAINT ck_subscriptions_rejected_zero   CHECK (
                status <> 'rejected' OR allocation_quantity = 0
            )
        );
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_subscriptions_active_user_offering
        ON subscriptions (user_id, offering_id)
        WHERE status IN ('pending', 'confirmed');
    """)
    op.execute("""
        CREATE INDEX idx_subscriptions_offering_queue
        ON subscriptions (offering_id, created_at, id);
    """)
    op.execute("""
        CREATE INDEX idx_subscriptions_user_reserved
        ON subscriptions (user_id)
        WHERE status IN ('pending', 'confirmed');
    """)
    op.execute("CREATE INDEX idx_subscriptions_user_created ON subscriptions (user_id, created_at, id);")
    op.execute("""
        CREATE TRIGGER trg_subscriptions_updated_at
            BEFORE UPDATE ON subscriptions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS subscriptions CASCADE;")
