"""Initial schema for convsync.

Revision ID: 7e1c0a52d9f3
Revises: None
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "7e1c0a52d9f3"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "agents",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("agent_id", sa.String(length=100), nullable=True),
        sa.Column("api_key", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        if_not_exists=True,
    )

    op.create_table(
        "conversations",
        sa.Column("conversation_id", sa.String(length=100), primary_key=True, nullable=False),
        sa.Column(
            "agent_db_id",
            sa.Uuid(),
            sa.ForeignKey("agents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("agent_el_id", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=True),
        sa.Column("start_time_unix", sa.BigInteger(), nullable=True),
        sa.Column("duration_secs", sa.Integer(), nullable=True),
        sa.Column("user_name", sa.String(length=255), nullable=True),
        sa.Column("transcript", postgresql.JSONB(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=False),
        sa.Column("cost", sa.Float(), nullable=True),
        sa.Column("llm_cost", sa.Float(), nullable=True),
        sa.Column("llm_price", sa.Float(), nullable=True),
        sa.Column("tokens_in", sa.Integer(), nullable=True),
        sa.Column("tokens_out", sa.Integer(), nullable=True),
        sa.Column("transcript_summary", sa.Text(), nullable=True),
        sa.Column("confidence_score", postgresql.JSONB(), nullable=True),
        sa.Column("knowledge_coverage_score", postgresql.JSONB(), nullable=True),
        sa.Column("primary_question", sa.Text(), nullable=True),
        sa.Column("question_category", sa.String(length=255), nullable=True),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=False),
        if_not_exists=True,
    )

    op.create_index(
        "idx_conversations_agent_start",
        "conversations",
        ["agent_db_id", "start_time_unix"],
        if_not_exists=True,
    )


def downgrade() -> None:
    op.drop_index("idx_conversations_agent_start", table_name="conversations", if_exists=True)
    op.drop_table("conversations", if_exists=True)
    op.drop_table("agents", if_exists=True)
