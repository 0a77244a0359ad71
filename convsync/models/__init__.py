"""Database models."""

from convsync.models.agent import Agent
from convsync.models.conversation import Conversation

__all__ = [
    "Agent",
    "Conversation",
]
