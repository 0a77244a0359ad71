"""Batched, failure-isolated detail fetching."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from convsync.services.elevenlabs_client import ElevenLabsClient

logger = logging.getLogger(__name__)


@dataclass
class DetailResult:
    """A listed conversation paired with its detail, or with the reason it has none."""

    item: dict[str, Any]
    detail: dict[str, Any] | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.detail is None


async def fetch_details(
    client: ElevenLabsClient,
    items: list[dict[str, Any]],
    *,
    batch_size: int = 8,
    batch_delay: float = 0.15,
) -> list[DetailResult]:
    """
    Fetch the detail of every item, ``batch_size`` requests at a time.

    Requests within a batch run concurrently and the whole batch settles before
    the next one starts. A failed request never affects its siblings: the item
    is kept with ``detail=None`` so a degraded row can still be built.

    Args:
        client: Remote client bound to the agent's credential
        items: Listed conversations, in discovery order
        batch_size: Maximum concurrent detail requests
        batch_delay: Seconds between batches, whatever their outcome

    Returns:
        One DetailResult per item, in input order
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    results: list[DetailResult] = []

    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        outcomes = await asyncio.gather(
            *(client.fetch_detail(item["conversation_id"]) for item in batch),
            return_exceptions=True,
        )

        for item, outcome in zip(batch, outcomes):
            if isinstance(outcome, Exception):
                reason = str(outcome) or type(outcome).__name__
            elif isinstance(outcome, BaseException):
                raise outcome
            elif not outcome:
                reason = "empty detail response"
            else:
                results.append(DetailResult(item=item, detail=outcome))
                continue

            logger.warning(
                f"Failed to fetch conversation detail for {item['conversation_id']}: {reason}"
            )
            results.append(DetailResult(item=item, error=reason))

        if start + batch_size < len(items) and batch_delay:
            await asyncio.sleep(batch_delay)

    return results
