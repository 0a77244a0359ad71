"""Health endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from convsync.database import get_db
from convsync.models import Agent, Conversation

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    agent_count: int
    conversation_count: int
    last_sync: datetime | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    """
    Health check endpoint with cache status.

    Returns record counts and the most recent sync across all agents.
    """
    agent_count_result = await db.execute(select(func.count()).select_from(Agent))
    conversation_count_result = await db.execute(select(func.count()).select_from(Conversation))
    last_sync_result = await db.execute(select(func.max(Agent.last_synced_at)))

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        agent_count=agent_count_result.scalar() or 0,
        conversation_count=conversation_count_result.scalar() or 0,
        last_sync=last_sync_result.scalar(),
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Simple readiness probe for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness probe for container orchestration."""
    return {"status": "alive"}
