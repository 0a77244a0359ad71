"""Background task scheduler for periodic conversation sync."""

import logging
import uuid
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from convsync.config import get_settings
from convsync.database import async_session_maker
from convsync.errors import SyncError
from convsync.services.conversation_store import ConversationStore
from convsync.services.elevenlabs_client import ElevenLabsClient
from convsync.services.locks import sync_locks
from convsync.services.sync import ConversationSyncService

logger = logging.getLogger(__name__)
settings = get_settings()

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


async def sync_all_agents(db: AsyncSession) -> dict[uuid.UUID, int]:
    """
    Sync every agent that has an API key, one after another.

    Agents already being synced are skipped. A failing agent is logged and
    does not stop the others.

    Returns:
        New conversation count per successfully synced agent
    """
    store = ConversationStore(db)
    agents = [agent for agent in await store.list_agents() if agent.api_key]
    results: dict[uuid.UUID, int] = {}

    for agent in agents:
        key = str(agent.id)
        if sync_locks.is_running(key):
            logger.info(f"Skipping agent {agent.id}: sync already running")
            continue
        try:
            async with sync_locks.hold(key):
                service = ConversationSyncService(store, ElevenLabsClient(agent.api_key))
                summary = await service.sync(agent.id, agent.agent_id)
        except SyncError as e:
            logger.error(f"Scheduled sync failed for agent {agent.id} ({e.code}): {e.message}")
            continue
        results[agent.id] = summary.new_count

    return results


async def sync_all_agents_job() -> None:
    """Background job to sync all agents from ElevenLabs."""
    logger.info("Starting scheduled conversation sync")
    try:
        async with async_session_maker() as db:
            results = await sync_all_agents(db)
            logger.info(
                f"Scheduled sync complete: {len(results)} agents, "
                f"{sum(results.values())} new conversations"
            )
    except Exception as e:
        logger.error(f"Scheduled sync failed: {e}", exc_info=True)


def setup_scheduler() -> AsyncIOScheduler | None:
    """Set up and start the scheduler, unless the sync interval is 0."""
    global scheduler

    if settings.auto_sync_interval_minutes <= 0:
        logger.info("Scheduled sync disabled")
        return None

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        sync_all_agents_job,
        trigger=IntervalTrigger(minutes=settings.auto_sync_interval_minutes),
        next_run_time=datetime.now(UTC),
        id="sync_all_agents",
        name="Sync conversations from ElevenLabs",
        replace_existing=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info("Scheduler started")

    return scheduler


def shutdown_scheduler() -> None:
    """Shut down the scheduler gracefully."""
    global scheduler

    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shut down")
        scheduler = None
