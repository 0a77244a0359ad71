"""Agent model: one tracked ElevenLabs agent whose conversations are mirrored."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from convsync.database import Base


class Agent(Base):
    """
    A tracked upstream agent and the credential used to read it.

    ``last_synced_at`` is an observability marker only. The delta-sync
    checkpoint is derived from stored conversations, not from this column.
    """

    __tablename__ = "agents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    agent_id: Mapped[str | None] = mapped_column(String(100))  # ElevenLabs agent ID
    api_key: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def __repr__(self) -> str:
        return f"<Agent {self.id}: {self.name}>"
