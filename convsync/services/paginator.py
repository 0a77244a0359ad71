"""Cursor pagination over the conversation listing with checkpoint early-stop."""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from convsync.services.elevenlabs_client import ElevenLabsClient
from convsync.services.row_builder import dig

logger = logging.getLogger(__name__)

STOP_CHECKPOINT = "checkpoint"
STOP_EXHAUSTED = "exhausted"
STOP_PAGE_LIMIT = "page_limit"


def item_start_time(item: dict[str, Any]) -> int | None:
    """Start time of a list item; nested under metadata or at the top level."""
    value = dig(item, "metadata", "start_time_unix_secs")
    if value is None:
        value = item.get("start_time_unix_secs")
    return value if isinstance(value, int | float) and not isinstance(value, bool) else None


@dataclass
class ListingResult:
    """Items discovered by one pagination run, newest first."""

    items: list[dict[str, Any]] = field(default_factory=list)
    pages_fetched: int = 0
    stop_reason: str = STOP_EXHAUSTED

    @property
    def truncated(self) -> bool:
        return self.stop_reason == STOP_PAGE_LIMIT


class ConversationPaginator:
    """
    Walks the listing endpoint for one agent, yielding items newer than the checkpoint.

    Upstream returns items in descending start-time order, so the first item at
    or before the checkpoint ends the walk. A page ceiling bounds the work when
    upstream keeps returning cursors. Single use: build a new one per run.
    """

    def __init__(
        self,
        client: ElevenLabsClient,
        agent_id: str | None,
        checkpoint: int | None,
        max_pages: int = 20,
        page_size: int | None = None,
        page_delay: float = 0.1,
    ):
        self.client = client
        self.agent_id = agent_id
        self.checkpoint = checkpoint
        self.max_pages = max_pages
        self.page_size = page_size
        self.page_delay = page_delay

        self.pages_fetched = 0
        self.stop_reason: str | None = None
        self._started = False

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        if self._started:
            raise RuntimeError("ConversationPaginator cannot be iterated twice")
        self._started = True
        return self._walk()

    async def _walk(self) -> AsyncIterator[dict[str, Any]]:
        cursor: str | None = None
        seen: set[str] = set()

        while True:
            data = await self.client.fetch_page(
                agent_id=self.agent_id,
                cursor=cursor,
                page_size=self.page_size,
            )
            self.pages_fetched += 1

            conversations = data.get("conversations") or []
            for item in conversations:
                if not isinstance(item, dict):
                    continue
                if not item.get("conversation_id"):
                    logger.warning("Skipping listed conversation without conversation_id")
                    continue
                if item["conversation_id"] in seen:
                    logger.warning(
                        f"Skipping repeated conversation {item['conversation_id']} in listing"
                    )
                    continue

                start_time = item_start_time(item)
                if (
                    self.checkpoint is not None
                    and start_time is not None
                    and start_time <= self.checkpoint
                ):
                    self.stop_reason = STOP_CHECKPOINT
                    return
                seen.add(item["conversation_id"])
                yield item

            cursor = data.get("next_cursor") or data.get("cursor") or None
            if not conversations or not cursor:
                self.stop_reason = STOP_EXHAUSTED
                return
            if self.pages_fetched >= self.max_pages:
                logger.warning(f"Reached page limit of {self.max_pages} pages; listing truncated")
                self.stop_reason = STOP_PAGE_LIMIT
                return

            # Small delay between pages to be kind to the rate limiter
            if self.page_delay:
                await asyncio.sleep(self.page_delay)


async def list_new_since(
    client: ElevenLabsClient,
    agent_id: str | None,
    checkpoint: int | None,
    *,
    max_pages: int = 20,
    page_size: int | None = None,
    page_delay: float = 0.1,
) -> ListingResult:
    """
    Collect every conversation newer than ``checkpoint``.

    Args:
        client: Remote client bound to the agent's credential
        agent_id: Remote agent id to filter the listing by
        checkpoint: Newest start time already stored (None on first sync)
        max_pages: Hard ceiling on listing requests
        page_size: Items per page (upstream default when None)
        page_delay: Seconds between consecutive page requests

    Returns:
        ListingResult with items newest first, page count and stop reason
    """
    paginator = ConversationPaginator(
        client,
        agent_id,
        checkpoint,
        max_pages=max_pages,
        page_size=page_size,
        page_delay=page_delay,
    )
    items = [item async for item in paginator]

    result = ListingResult(
        items=items,
        pages_fetched=paginator.pages_fetched,
        stop_reason=paginator.stop_reason or STOP_EXHAUSTED,
    )
    logger.info(
        f"ElevenLabs fetch complete: agent={agent_id} fetched={len(items)} "
        f"pages={result.pages_fetched} stop_reason={result.stop_reason}"
    )
    return result
