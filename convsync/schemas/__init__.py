"""Pydantic schemas for API request/response validation."""

from convsync.schemas.agent import AgentCreate, AgentOut, AgentStats
from convsync.schemas.conversation import (
    ConversationOut,
    ConversationsResponse,
    ResetResponse,
    SyncResponse,
    SyncResultOut,
)

__all__ = [
    "AgentCreate",
    "AgentOut",
    "AgentStats",
    "ConversationOut",
    "ConversationsResponse",
    "ResetResponse",
    "SyncResponse",
    "SyncResultOut",
]
