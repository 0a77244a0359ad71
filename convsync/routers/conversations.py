"""API routes for syncing and reading mirrored conversations."""

import logging
import uuid
from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from convsync.database import get_db
from convsync.models import Agent
from convsync.rate_limit import SYNC_RATE_LIMIT, limiter
from convsync.schemas.conversation import (
    ConversationOut,
    ConversationsResponse,
    ResetResponse,
    SyncResponse,
    SyncResultOut,
)
from convsync.services.conversation_store import ConversationStore
from convsync.services.elevenlabs_client import ElevenLabsClient
from convsync.services.locks import sync_locks
from convsync.services.sync import ConversationSyncService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/conversations", tags=["conversations"])

ClientFactory = Callable[[str], ElevenLabsClient]


def get_client_factory() -> ClientFactory:
    """Dependency returning the factory that binds a remote client to an API key."""
    return ElevenLabsClient


async def _get_agent(store: ConversationStore, agent_id: uuid.UUID) -> Agent:
    agent = await store.get_agent(agent_id)
    if agent is None:
        raise HTTPException(status_code=404, detail="Agent not found.")
    return agent


@router.post("/sync/{agent_id}", response_model=SyncResponse)
@limiter.limit(SYNC_RATE_LIMIT)
async def sync_conversations(
    request: Request,
    agent_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    client_factory: Annotated[ClientFactory, Depends(get_client_factory)],
) -> SyncResponse:
    """
    Delta sync: fetch only conversations newer than the newest stored one.

    Returns 409 while another sync of the same agent is running.
    """
    store = ConversationStore(db)
    agent = await _get_agent(store, agent_id)

    if not agent.api_key:
        raise HTTPException(
            status_code=400,
            detail="This agent has no API key configured. Add one first.",
        )

    logger.info(f"Sync triggered for agent {agent.id} ({agent.name})")

    async with sync_locks.hold(str(agent.id)):
        service = ConversationSyncService(store, client_factory(agent.api_key))
        summary = await service.sync(agent.id, agent.agent_id)

    if summary.new_count > 0:
        plural = "s" if summary.new_count != 1 else ""
        message = f"Synced {summary.new_count} new conversation{plural}."
    else:
        message = "Already up to date - no new conversations."

    return SyncResponse(
        data=SyncResultOut(
            new_count=summary.new_count,
            total_count=summary.total_count,
            last_synced_at=summary.last_synced_at,
            pages_fetched=summary.pages_fetched,
            stop_reason=summary.stop_reason,
            failed_detail_ids=summary.failed_detail_ids,
            agent_id=agent.id,
            agent_name=agent.name,
        ),
        message=message,
    )


@router.delete("/reset/{agent_id}", response_model=ResetResponse)
async def reset_conversations(
    agent_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ResetResponse:
    """
    Wipe an agent's cached conversations so the next sync refetches everything.

    Useful when rows were stored by an older build without cost or analysis data.
    """
    store = ConversationStore(db)
    agent = await _get_agent(store, agent_id)

    async with sync_locks.hold(str(agent.id)):
        deleted = await store.delete_conversations(agent.id)
        await store.clear_last_synced_marker(agent.id)

    logger.info(f"Cache reset for agent {agent.id} ({agent.name}): {deleted} rows deleted")

    return ResetResponse(
        deleted=deleted,
        message=f'Cache cleared for agent "{agent.name}". Run sync to re-fetch all conversations.',
    )


@router.get("/{agent_id}", response_model=ConversationsResponse)
async def list_conversations(
    agent_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(500, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> ConversationsResponse:
    """List stored conversations of an agent, newest first."""
    store = ConversationStore(db)
    agent = await _get_agent(store, agent_id)

    conversations, total = await store.list_conversations(agent.id, limit=limit, offset=offset)

    return ConversationsResponse(
        conversations=[ConversationOut.model_validate(c) for c in conversations],
        total=total,
        limit=limit,
        offset=offset,
        agent_id=agent.id,
        last_synced_at=agent.last_synced_at,
    )


@router.get("/{agent_id}/{conversation_id}", response_model=ConversationOut)
async def get_conversation(
    agent_id: uuid.UUID,
    conversation_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ConversationOut:
    """Return one stored conversation with its full transcript."""
    store = ConversationStore(db)
    agent = await _get_agent(store, agent_id)

    conversation = await store.get_conversation(agent.id, conversation_id)
    if conversation is None:
        raise HTTPException(
            status_code=404,
            detail=f"Conversation {conversation_id} not found. Try syncing first.",
        )

    return ConversationOut.model_validate(conversation)
