"""Conversation sync orchestration: checkpoint, listing, details, rows, upsert."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from convsync.config import get_settings
from convsync.services.conversation_store import ConversationStore
from convsync.services.detail_fetcher import fetch_details
from convsync.services.elevenlabs_client import ElevenLabsClient
from convsync.services.paginator import STOP_EXHAUSTED, list_new_since
from convsync.services.row_builder import build_row

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class SyncSummary:
    """Outcome of one sync run."""

    new_count: int
    total_count: int
    last_synced_at: datetime
    pages_fetched: int = 0
    stop_reason: str = STOP_EXHAUSTED
    failed_detail_ids: list[str] = field(default_factory=list)


class ConversationSyncService:
    """
    Mirrors new ElevenLabs conversations of one agent into the local store.

    Features:
    - Delta sync from a checkpoint derived from stored rows (never cached)
    - Early-stop cursor pagination with a page ceiling
    - Batched detail fetch; failed details degrade rows instead of dropping them
    - One bulk upsert per run

    Runs for the same agent are not serialized here; callers hold the
    per-agent lock (see ``convsync.services.locks``).
    """

    def __init__(
        self,
        store: ConversationStore,
        client: ElevenLabsClient,
        *,
        max_pages: int = settings.max_list_pages,
        page_size: int | None = settings.list_page_size,
        page_delay: float = settings.page_delay_ms / 1000,
        batch_size: int = settings.detail_batch_size,
        batch_delay: float = settings.detail_batch_delay_ms / 1000,
    ):
        self.store = store
        self.client = client
        self.max_pages = max_pages
        self.page_size = page_size
        self.page_delay = page_delay
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def sync(self, agent_db_id: uuid.UUID, agent_el_id: str | None) -> SyncSummary:
        """
        Run one delta sync.

        1. Read the checkpoint (newest stored start time).
        2. List conversations newer than it.
        3. Fetch their details in batches.
        4. Build and upsert rows.
        5. Update the agent's last-synced marker.
        6. Return the new and total counts.

        Raises:
            StorageError: checkpoint read, upsert or marker update failed
            TransportError, RemoteError: the listing could not be fetched
        """
        logger.info(f"Starting conversation sync: agent={agent_db_id} remote={agent_el_id}")

        checkpoint = await self.store.read_max_start_time(agent_db_id)
        if checkpoint is None:
            logger.info("Sync checkpoint: none - first sync")
        else:
            checkpoint_date = datetime.fromtimestamp(checkpoint, UTC).isoformat()
            logger.info(f"Sync checkpoint: {checkpoint} ({checkpoint_date})")

        listing = await list_new_since(
            self.client,
            agent_el_id,
            checkpoint,
            max_pages=self.max_pages,
            page_size=self.page_size,
            page_delay=self.page_delay,
        )

        if not listing.items:
            total = await self.store.count_rows(agent_db_id)
            logger.info(f"Sync complete - no new conversations (agent={agent_db_id})")
            return SyncSummary(
                new_count=0,
                total_count=total,
                last_synced_at=datetime.now(UTC),
                pages_fetched=listing.pages_fetched,
                stop_reason=listing.stop_reason,
            )

        logger.info(f"Fetching details for {len(listing.items)} new conversations")
        details = await fetch_details(
            self.client,
            listing.items,
            batch_size=self.batch_size,
            batch_delay=self.batch_delay,
        )

        synced_at = datetime.now(UTC)
        rows = [
            build_row(agent_db_id, agent_el_id, result.item, result.detail, synced_at=synced_at)
            for result in details
        ]
        failed_ids = [result.item["conversation_id"] for result in details if result.failed]

        sample = rows[0]
        logger.info(
            f"Sample row: conversation_id={sample['conversation_id']} "
            f"cost={sample['cost']} llm_cost={sample['llm_cost']} "
            f"llm_price={sample['llm_price']} has_transcript={bool(sample['transcript'])} "
            f"has_metadata={bool(sample['metadata'])}"
        )

        await self.store.upsert_rows(rows)
        await self.store.set_last_synced_marker(agent_db_id, synced_at)
        total = await self.store.count_rows(agent_db_id)

        if failed_ids:
            logger.warning(f"{len(failed_ids)} conversations stored without detail: {failed_ids}")
        logger.info(
            f"Sync complete: agent={agent_db_id} new={len(rows)} total={total} "
            f"pages={listing.pages_fetched} stop_reason={listing.stop_reason}"
        )

        return SyncSummary(
            new_count=len(rows),
            total_count=total,
            last_synced_at=synced_at,
            pages_fetched=listing.pages_fetched,
            stop_reason=listing.stop_reason,
            failed_detail_ids=failed_ids,
        )
