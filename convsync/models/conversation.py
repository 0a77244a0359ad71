"""Conversation model: one mirrored ElevenLabs conversation."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Float, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from convsync.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Conversation(Base):
    """
    Conversation row built from a list item and (when available) its detail.

    Rows are replaced wholesale on every sync that re-encounters them.
    """

    __tablename__ = "conversations"

    conversation_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    agent_db_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("agents.id", ondelete="CASCADE"), nullable=False
    )
    agent_el_id: Mapped[str | None] = mapped_column(String(100))

    status: Mapped[str | None] = mapped_column(String(50))
    start_time_unix: Mapped[int | None] = mapped_column(BigInteger)
    duration_secs: Mapped[int | None] = mapped_column(Integer)
    user_name: Mapped[str | None] = mapped_column(String(255))

    # Raw payloads; never null
    transcript: Mapped[list[Any]] = mapped_column(JSONType, nullable=False, default=list)
    # "metadata" is reserved on declarative classes
    conversation_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )

    # Cost
    cost: Mapped[float | None] = mapped_column(Float)
    llm_cost: Mapped[float | None] = mapped_column(Float)
    llm_price: Mapped[float | None] = mapped_column(Float)
    tokens_in: Mapped[int | None] = mapped_column(Integer)
    tokens_out: Mapped[int | None] = mapped_column(Integer)

    # Analysis
    transcript_summary: Mapped[str | None] = mapped_column(Text)
    confidence_score: Mapped[dict[str, Any] | None] = mapped_column(JSONType)
    knowledge_coverage_score: Mapped[dict[str, Any] | None] = mapped_column(JSONType)
    primary_question: Mapped[str | None] = mapped_column(Text)
    question_category: Mapped[str | None] = mapped_column(String(255))

    synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        # Checkpoint lookup and newest-first listing
        Index("idx_conversations_agent_start", "agent_db_id", "start_time_unix"),
    )

    def __repr__(self) -> str:
        return f"<Conversation {self.conversation_id}: {self.status}>"
