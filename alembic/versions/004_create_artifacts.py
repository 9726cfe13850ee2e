"""004: create artifacts table

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
        CREATE TABLE artifacts (
            id          VARCHAR(32) PRIMARY KEY,
            account_id  VARCHAR(64) NOT NULL,
            operation   VARCHAR(30) NOT NULL,
            content     JSONB       NOT NULL,
            saga_id     VARCHAR(32) NOT NULL,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_artifacts_saga_id UNIQUE (saga_id)
        );
    """)
    op.execute("CREATE INDEX idx_artifacts_account_time ON artifacts (account_id, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS artifacts CASCADE;")
