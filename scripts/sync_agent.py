#!/usr/bin/env python3
"""
Run one conversation sync for an agent outside the web process.

Usage:
    python scripts/sync_agent.py <agent-uuid>
"""

import argparse
import asyncio
import logging
import sys
import uuid

from convsync.database import async_session_maker
from convsync.errors import SyncError
from convsync.services.conversation_store import ConversationStore
from convsync.services.elevenlabs_client import ElevenLabsClient
from convsync.services.sync import ConversationSyncService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def log(msg):
    """Print with flush for immediate output."""
    print(msg, flush=True)


async def run(agent_db_id: uuid.UUID) -> int:
    async with async_session_maker() as db:
        store = ConversationStore(db)
        agent = await store.get_agent(agent_db_id)
        if agent is None:
            log(f"Agent {agent_db_id} not found")
            return 1
        if not agent.api_key:
            log(f"Agent {agent.name} has no API key configured")
            return 1

        service = ConversationSyncService(store, ElevenLabsClient(agent.api_key))
        try:
            summary = await service.sync(agent.id, agent.agent_id)
        except SyncError as e:
            log(f"Sync failed ({e.code}): {e.message}")
            return 2

    log(f"Agent:         {agent.name} ({agent.id})")
    log(f"New:           {summary.new_count}")
    log(f"Total:         {summary.total_count}")
    log(f"Pages fetched: {summary.pages_fetched} (stop: {summary.stop_reason})")
    if summary.failed_detail_ids:
        log(f"Without detail: {', '.join(summary.failed_detail_ids)}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Sync one agent's conversations from ElevenLabs")
    parser.add_argument("agent_id", type=uuid.UUID, help="Local agent UUID")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args.agent_id)))


if __name__ == "__main__":
    main()
