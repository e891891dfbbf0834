"""add completion_records table

Revision ID: 5b2e91c4d7a3
Revises:
Create Date: 2026-10-19 09:12:40.518203
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "5b2e91c4d7a3"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "completion_records",
        sa.Column("id", sa.String(length=36), primary_key=True),

        sa.Column("checkout_session_id", sa.String(length=255), nullable=False),
        sa.Column("provider_event_id", sa.String(length=100), nullable=True),
        sa.Column("preview_id", sa.String(length=64), nullable=True),

        sa.Column("customer_email", sa.String(length=320), nullable=False, server_default=""),
        sa.Column("form_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),

        sa.Column("amount_total", sa.Integer(), nullable=True),
        sa.Column("currency", sa.String(length=10), nullable=True),

        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.false()),

        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # checkout session 하나당 레코드 하나 (Stripe 재전송 dedupe)
    op.create_index(
        "ix_completion_records_checkout_session_id",
        "completion_records",
        ["checkout_session_id"],
        unique=True,
    )
    op.create_index("ix_completion_records_provider_event_id", "completion_records", ["provider_event_id"])
    op.create_index("ix_completion_records_preview_id", "completion_records", ["preview_id"])
    op.create_index("ix_completion_records_processed", "completion_records", ["processed"])


def downgrade() -> None:
    op.drop_index("ix_completion_records_processed", table_name="completion_records")
    op.drop_index("ix_completion_records_preview_id", table_name="completion_records")
    op.drop_index("ix_completion_records_provider_event_id", table_name="completion_records")
    op.drop_index("ix_completion_records_checkout_session_id", table_name="completion_records")
    op.drop_table("completion_records")
