"""API routes for managing tracked agents."""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from convsync.database import get_db
from convsync.schemas.agent import AgentCreate, AgentOut, AgentStats
from convsync.services.conversation_store import ConversationStore
from convsync.services.locks import sync_locks

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/agents", tags=["agents"])


@router.get("", response_model=list[AgentOut])
async def list_agents(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[AgentOut]:
    """List tracked agents."""
    agents = await ConversationStore(db).list_agents()
    return [AgentOut.model_validate(agent) for agent in agents]


@router.post("", response_model=AgentOut, status_code=201)
async def create_agent(
    body: AgentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AgentOut:
    """Register an ElevenLabs agent to mirror."""
    agent = await ConversationStore(db).create_agent(
        name=body.name, agent_id=body.agent_id, api_key=body.api_key
    )
    logger.info(f"Agent created: {agent.id} ({agent.name})")
    return AgentOut.model_validate(agent)


@router.get("/{agent_id}", response_model=AgentOut)
async def get_agent(
    agent_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AgentOut:
    agent = await ConversationStore(db).get_agent(agent_id)
    if agent is None:
        raise HTTPException(status_code=404, detail="Agent not found.")
    return AgentOut.model_validate(agent)


@router.delete("/{agent_id}")
async def delete_agent(
    agent_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Delete an agent together with its cached conversations."""
    deleted = await ConversationStore(db).delete_agent(agent_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Agent not found.")
    logger.info(f"Agent deleted: {agent_id}")
    return {"success": True, "message": "Agent deleted."}


@router.get("/{agent_id}/stats", response_model=AgentStats)
async def agent_stats(
    agent_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AgentStats:
    """Conversation count and last sync time for one agent."""
    store = ConversationStore(db)
    agent = await store.get_agent(agent_id)
    if agent is None:
        raise HTTPException(status_code=404, detail="Agent not found.")

    return AgentStats(
        agent_id=agent.id,
        conversation_count=await store.count_rows(agent.id),
        last_synced_at=agent.last_synced_at,
        sync_running=sync_locks.is_running(str(agent.id)),
    )
