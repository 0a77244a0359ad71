"""Pydantic schemas for agents."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AgentCreate(BaseModel):
    """Request body for registering an agent."""

    name: str = Field(..., min_length=1, max_length=255)
    agent_id: str | None = Field(None, max_length=100, description="ElevenLabs agent ID")
    api_key: str | None = Field(None, max_length=255, description="ElevenLabs API key")


class AgentOut(BaseModel):
    """Agent response schema. The API key is never echoed back."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    agent_id: str | None = None
    has_api_key: bool = False
    created_at: datetime | None = None
    last_synced_at: datetime | None = None


class AgentStats(BaseModel):
    """Quick stats for one agent."""

    agent_id: uuid.UUID
    conversation_count: int
    last_synced_at: datetime | None = None
    sync_running: bool = False
