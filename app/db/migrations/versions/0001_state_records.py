# ruff: noqa
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_state_records"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "state_records",
        sa.Column("name", sa.String(length=32), primary_key=True),
        sa.Column("payload_json", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_state_records_updated_at", "state_records", ["updated_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_state_records_updated_at", table_name="state_records")
    op.drop_table("state_records")
