"""Persistence for agents and mirrored conversations."""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from convsync.errors import StorageError
from convsync.models import Agent, Conversation

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class ConversationStore:
    """
    Storage collaborator of the sync engine.

    Every database failure surfaces as StorageError after rolling back.
    Write methods commit their own transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fail(self, message: str, error: SQLAlchemyError) -> StorageError:
        logger.error(f"{message}: {error}")
        await self.db.rollback()
        return StorageError(message, details={"error": str(error)})

    # -- sync engine contract ------------------------------------------------

    async def read_max_start_time(self, agent_db_id: uuid.UUID) -> int | None:
        """
        Newest stored start time for an agent: the delta-sync checkpoint.

        Ends the session transaction so no connection stays idle in
        transaction while the remote listing and detail requests run.
        """
        try:
            result = await self.db.execute(
                select(func.max(Conversation.start_time_unix)).where(
                    Conversation.agent_db_id == agent_db_id
                )
            )
            checkpoint = result.scalar()
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._fail("Could not read conversation cache", e) from e
        return checkpoint

    async def count_rows(self, agent_db_id: uuid.UUID) -> int:
        """Number of stored conversations for an agent."""
        try:
            result = await self.db.execute(
                select(func.count()).select_from(Conversation).where(
                    Conversation.agent_db_id == agent_db_id
                )
            )
        except SQLAlchemyError as e:
            raise await self._fail("Could not count cached conversations", e) from e
        return result.scalar() or 0

    async def upsert_rows(self, rows: list[dict[str, Any]]) -> int:
        """
        Insert or fully replace rows keyed by ``conversation_id``.

        All rows go out as one statement in one transaction, so a reader never
        sees a conversation half-written. Every non-key column is overwritten.
        """
        if not rows:
            return 0

        table = Conversation.__table__
        dialect = self.db.get_bind().dialect.name
        try:
            insert = _DIALECT_INSERTS[dialect]
        except KeyError:
            raise StorageError(f"Upsert is not supported on the {dialect} dialect") from None

        stmt = insert(table)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.conversation_id],
            set_={
                column.name: stmt.excluded[column.name]
                for column in table.columns
                if column.name != "conversation_id"
            },
        )

        try:
            await self.db.execute(stmt, rows)
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._fail("Failed to save conversations", e) from e

        return len(rows)

    async def set_last_synced_marker(self, agent_db_id: uuid.UUID, synced_at: datetime) -> None:
        """Record when the agent was last synced."""
        try:
            await self.db.execute(
                update(Agent).where(Agent.id == agent_db_id).values(last_synced_at=synced_at)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._fail("Failed to update last sync time", e) from e

    # -- cache management ----------------------------------------------------

    async def clear_last_synced_marker(self, agent_db_id: uuid.UUID) -> None:
        try:
            await self.db.execute(
                update(Agent).where(Agent.id == agent_db_id).values(last_synced_at=None)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._fail("Failed to clear last sync time", e) from e

    async def delete_conversations(self, agent_db_id: uuid.UUID) -> int:
        """Drop every cached conversation of an agent so the next sync refetches all."""
        try:
            result = await self.db.execute(
                delete(Conversation).where(Conversation.agent_db_id == agent_db_id)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._fail("Failed to reset conversation cache", e) from e
        return result.rowcount or 0

    async def list_conversations(
        self,
        agent_db_id: uuid.UUID,
        limit: int = 500,
        offset: int = 0,
    ) -> tuple[list[Conversation], int]:
        """Stored conversations newest first, with the agent's total count."""
        try:
            result = await self.db.execute(
                select(Conversation)
                .where(Conversation.agent_db_id == agent_db_id)
                .order_by(
                    Conversation.start_time_unix.desc().nulls_last(),
                    Conversation.conversation_id,
                )
                .limit(limit)
                .offset(offset)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise await self._fail("Failed to read conversations", e) from e
        conversations = list(result.scalars().all())
        total = await self.count_rows(agent_db_id)
        return conversations, total

    async def get_conversation(
        self, agent_db_id: uuid.UUID, conversation_id: str
    ) -> Conversation | None:
        try:
            result = await self.db.execute(
                select(Conversation).where(
                    Conversation.agent_db_id == agent_db_id,
                    Conversation.conversation_id == conversation_id,
                )
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise await self._fail("Failed to read conversation", e) from e
        return result.scalar_one_or_none()

    # -- agents --------------------------------------------------------------

    async def get_agent(self, agent_db_id: uuid.UUID) -> Agent | None:
        try:
            return await self.db.get(Agent, agent_db_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise await self._fail("Failed to read agent", e) from e

    async def list_agents(self) -> list[Agent]:
        try:
            result = await self.db.execute(
                select(Agent)
                .order_by(Agent.created_at, Agent.name)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise await self._fail("Failed to read agents", e) from e
        return list(result.scalars().all())

    async def create_agent(
        self, name: str, agent_id: str | None = None, api_key: str | None = None
    ) -> Agent:
        agent = Agent(name=name, agent_id=agent_id, api_key=api_key)
        self.db.add(agent)
        try:
            await self.db.commit()
            await self.db.refresh(agent)
        except SQLAlchemyError as e:
            raise await self._fail("Failed to create agent", e) from e
        return agent

    async def delete_agent(self, agent_db_id: uuid.UUID) -> bool:
        """Delete an agent and its cached conversations."""
        try:
            await self.db.execute(
                delete(Conversation).where(Conversation.agent_db_id == agent_db_id)
            )
            result = await self.db.execute(delete(Agent).where(Agent.id == agent_db_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._fail("Failed to delete agent", e) from e
        return (result.rowcount or 0) > 0
