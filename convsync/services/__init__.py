"""Services for conversation sync and storage."""

from convsync.services.conversation_store import ConversationStore
from convsync.services.elevenlabs_client import ElevenLabsClient
from convsync.services.sync import ConversationSyncService, SyncSummary

__all__ = ["ConversationStore", "ConversationSyncService", "ElevenLabsClient", "SyncSummary"]
