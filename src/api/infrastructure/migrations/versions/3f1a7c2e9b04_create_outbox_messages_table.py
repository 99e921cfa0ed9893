"""create_outbox_messages_table

Create the outbox_messages table for the transactional outbox pattern.
Producers append rows in the same transaction as their state change and
the dispatcher delivers them as domain events.

Revision ID: 3f1a7c2e9b04
Revises:
Create Date: 2026-10-19 09:12:41.507213

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "3f1a7c2e9b04"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "outbox_messages",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("type", sa.String(length=255), nullable=False),  # e.g., "BonusClaimed"
        sa.Column("data", sa.Text(), nullable=False),  # JSON text
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "processed_at", sa.DateTime(timezone=True), nullable=True
        ),  # NULL until processed
        sa.Column(
            "retry_count", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column(
            "failed_at", sa.DateTime(timezone=True), nullable=True
        ),  # NULL unless dead-lettered
        sa.PrimaryKeyConstraint("id"),
    )
    # Index for efficiently fetching pending messages ordered by creation time
    op.create_index(
        "idx_outbox_messages_pending",
        "outbox_messages",
        ["created_at"],
        unique=False,
        postgresql_where=sa.text("processed_at IS NULL AND failed_at IS NULL"),
    )
    # Index for retention cleanup
    op.create_index(
        "idx_outbox_messages_processed_at",
        "outbox_messages",
        ["processed_at"],
        unique=False,
    )
    op.create_index(
        "idx_outbox_messages_failed",
        "outbox_messages",
        ["failed_at"],
        unique=False,
        postgresql_where=sa.text("failed_at IS NOT NULL"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_outbox_messages_failed", table_name="outbox_messages")
    op.drop_index("idx_outbox_messages_processed_at", table_name="outbox_messages")
    op.drop_index("idx_outbox_messages_pending", table_name="outbox_messages")
    op.drop_table("outbox_messages")
