"""003: create credit_transactions table

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
        CREATE TABLE credit_transactions (
            id              VARCHAR(32)     PRIMARY KEY,
            account_id      VARCHAR(64)     NOT NULL REFERENCES accounts (id),
            amount          INTEGER         NOT NULL,
            kind            VARCHAR(20)     NOT NULL,
            description     VARCHAR(500)    NOT NULL,
            metadata        JSONB,
            timestamp       TIMESTAMPTZ     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_credit_tx_kind CHECK (
                kind IN ('DEDUCT', 'ADD', 'REFUND', 'ADMIN_ADJUSTMENT')
            ),
            CONSTRAINT ck_credit_tx_amount_sign CHECK (
                amount <> 0
                AND (kind <> 'DEDUCT' OR amount < 0)
                AND (kind NOT IN ('ADD', 'REFUND') OR amount > 0)
            ),
            CONSTRAINT ck_credit_tx_description CHECK (length(trim(description)) > 0)
        );
    """)
    op.execute("CREATE INDEX idx_credit_tx_account_id ON credit_transactions (account_id, id DESC);")
    op.execute("CREATE INDEX idx_credit_tx_kind ON credit_transactions (kind, timestamp);")
    op.execute("""
        CREATE INDEX idx_credit_tx_saga
        ON credit_transactions ((metadata ->> 'saga_id'))
        WHERE metadata ? 'saga_id';
    """)
    op.execute("""
        CREATE TRIGGER trg_credit_tx_append_only
        BEFORE UPDATE OR DELETE ON credit_transactions
        FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute(
        "COMMENT ON TABLE credit_transactions IS "
        "'Credit ledger: append-only, one row per balance change';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS credit_transactions CASCADE;")
