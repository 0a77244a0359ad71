"""Pydantic schemas for conversations and sync runs."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EvaluationResult(BaseModel):
    """Named evaluation criterion outcome."""

    result: str | None = None
    rationale: str | None = None


class ConversationOut(BaseModel):
    """Stored conversation response schema."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    conversation_id: str
    agent_db_id: uuid.UUID
    agent_el_id: str | None = None
    status: str | None = None
    start_time_unix: int | None = None
    duration_secs: int | None = None
    user_name: str | None = None

    transcript: list[Any] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="conversation_metadata")

    cost: float | None = None
    llm_cost: float | None = None
    llm_price: float | None = None
    tokens_in: int | None = None
    tokens_out: int | None = None

    transcript_summary: str | None = None
    confidence_score: EvaluationResult | None = None
    knowledge_coverage_score: EvaluationResult | None = None
    primary_question: str | None = None
    question_category: str | None = None

    synced_at: datetime


class ConversationsResponse(BaseModel):
    """Paginated list of stored conversations."""

    conversations: list[ConversationOut]
    total: int
    limit: int
    offset: int
    agent_id: uuid.UUID
    last_synced_at: datetime | None = None


class SyncResultOut(BaseModel):
    """Summary of one sync run."""

    new_count: int
    total_count: int
    last_synced_at: datetime
    pages_fetched: int
    stop_reason: str
    failed_detail_ids: list[str] = Field(default_factory=list)
    agent_id: uuid.UUID
    agent_name: str


class SyncResponse(BaseModel):
    """Response of a manual sync."""

    success: bool = True
    data: SyncResultOut
    message: str


class ResetResponse(BaseModel):
    """Response of a cache reset."""

    success: bool = True
    deleted: int
    message: str
