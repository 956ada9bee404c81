"""message sync tables

Revision ID: 3c1f9a7d2b40
Revises:
Create Date: 2026-10-18 09:12:44.318205

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1f9a7d2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create conversation mapping, message and tombstone tables."""
    op.create_table(
        "conversation_mapping",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_id", sa.String(length=64), nullable=False),
        sa.Column("participant_low", sa.String(length=64), nullable=False),
        sa.Column("participant_high", sa.String(length=64), nullable=False),
        sa.Column("external_handle", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_handle"),
        sa.UniqueConstraint(
            "job_id",
            "participant_low",
            "participant_high",
            name="uq_conversation_mapping_job_pair",
        ),
    )
    op.create_index(
        "ix_conversation_mapping_job_id", "conversation_mapping", ["job_id"], unique=False
    )

    op.create_table(
        "message",
        sa.Column("local_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_id", sa.String(length=64), nullable=False),
        sa.Column("sender_id", sa.String(length=64), nullable=False),
        sa.Column("recipient_id", sa.String(length=64), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("external_message_id", sa.String(length=64), nullable=True),
        sa.Column("sequence_index", sa.Integer(), nullable=True),
        sa.Column("provider_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("read_flag", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("local_id"),
        sa.UniqueConstraint("external_message_id"),
    )
    op.create_index("ix_message_sender_id", "message", ["sender_id"], unique=False)
    op.create_index(
        "ix_message_job_participants",
        "message",
        ["job_id", "sender_id", "recipient_id"],
        unique=False,
    )
    op.create_index(
        "ix_message_recipient_unread", "message", ["recipient_id", "read_flag"], unique=False
    )

    op.create_table(
        "message_tombstone",
        sa.Column("external_message_id", sa.String(length=64), nullable=False),
        sa.Column("deleted_by", sa.String(length=64), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("external_message_id"),
    )

    # Owned by the marketplace app; created here only when absent.
    bind = op.get_bind()
    existing = set(sa.inspect(bind).get_table_names())
    if "job" not in existing:
        op.create_table(
            "job",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("title", sa.Text(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
    if "user_profile" not in existing:
        op.create_table(
            "user_profile",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("full_name", sa.Text(), nullable=True),
            sa.Column("photo_url", sa.Text(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )


def downgrade() -> None:
    """Drop the message sync tables, leaving marketplace tables in place."""
    op.drop_table("message_tombstone")
    op.drop_index("ix_message_recipient_unread", table_name="message")
    op.drop_index("ix_message_job_participants", table_name="message")
    op.drop_index("ix_message_sender_id", table_name="message")
    op.drop_table("message")
    op.drop_index("ix_conversation_mapping_job_id", table_name="conversation_mapping")
    op.drop_table("conversation_mapping")
