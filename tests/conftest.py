"""Pytest fixtures for convsync backend tests."""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import convsync.models  # noqa: F401  registers tables on Base.metadata
from convsync.database import Base, get_db
from convsync.errors import RemoteGenericError
from convsync.main import app
from convsync.models import Agent
from convsync.routers.conversations import get_client_factory


# Test database URL - SQLite keeps tests isolated (JSON instead of JSONB)
TEST_DATABASE_URL = "sqlite+aiosqlite://"


def make_list_item(
    conversation_id: str,
    start_time: int | None,
    status: str = "done",
    duration: int | None = 60,
) -> dict[str, Any]:
    """Listing entry in the shape ElevenLabs returns it."""
    return {
        "agent_id": "agent_el_1",
        "conversation_id": conversation_id,
        "status": status,
        "start_time_unix_secs": start_time,
        "call_duration_secs": duration,
        "message_count": 4,
        "call_successful": "success",
    }


def make_detail(conversation_id: str, start_time: int | None, cost: float = 0.0042) -> dict[str, Any]:
    """Full conversation detail with charging, analysis and a transcript."""
    return {
        "agent_id": "agent_el_1",
        "conversation_id": conversation_id,
        "status": "done",
        "transcript": [
            {"role": "agent", "message": "Hi Sarah, how can I help?", "time_in_call_secs": 0},
            {"role": "user", "message": "When do you open?", "time_in_call_secs": 3},
        ],
        "metadata": {
            "start_time_unix_secs": start_time,
            "call_duration_secs": 60,
            "cost": cost,
            "charging": {
                "llm_charge": 0.0021,
                "llm_price": 0.001,
                "llm_usage": {
                    "irreversible_generation": {
                        "model_usage": {
                            "gpt-4.1-nano": {
                                "input": {"tokens": 500, "price": 0.00005},
                                "output_total": {"tokens": 200, "price": 0.00008},
                            }
                        }
                    }
                },
            },
        },
        "analysis": {
            "transcript_summary": "Caller asked about opening hours.",
            "evaluation_criteria_results": {
                "confidence_score": {
                    "criteria_id": "confidence_score",
                    "result": "success",
                    "rationale": "Answer came straight from the knowledge base.",
                },
            },
            "data_collection_results": {
                "primary_question": {
                    "data_collection_id": "primary_question",
                    "value": "When do you open?",
                },
                "question_category": {
                    "data_collection_id": "question_category",
                    "value": "hours",
                },
            },
        },
    }


class FakeElevenLabsClient:
    """
    In-memory stand-in for ElevenLabsClient.

    Serves ``conversations`` newest first in pages of ``page_size`` using the
    page index as cursor, and builds a detail for every id not in ``failing``.
    ``pages`` serves hand-built pages as given instead.
    """

    def __init__(
        self,
        conversations: list[dict[str, Any]] | None = None,
        page_size: int = 100,
        failing: set[str] | None = None,
        listing_error: Exception | None = None,
        pages: list[list[dict[str, Any]]] | None = None,
    ):
        self.pages = pages
        if pages is not None:
            conversations = [item for page in pages for item in page]
        self.conversations = sorted(
            conversations or [],
            key=lambda item: item.get("start_time_unix_secs") or 0,
            reverse=True,
        )
        self.page_size = page_size
        self.failing = failing or set()
        self.listing_error = listing_error
        self.page_calls: list[dict[str, Any]] = []
        self.detail_calls: list[str] = []

    async def fetch_page(self, agent_id=None, cursor=None, page_size=None) -> dict[str, Any]:
        self.page_calls.append({"agent_id": agent_id, "cursor": cursor, "page_size": page_size})
        if self.listing_error is not None:
            raise self.listing_error

        index = int(cursor) if cursor else 0
        if self.pages is not None:
            has_more = index + 1 < len(self.pages)
            return {
                "conversations": self.pages[index],
                "next_cursor": str(index + 1) if has_more else None,
            }

        start = index * self.page_size
        page = self.conversations[start:start + self.page_size]
        has_more = start + self.page_size < len(self.conversations)
        return {
            "conversations": page,
            "has_more": has_more,
            "next_cursor": str(index + 1) if has_more else None,
        }

    async def fetch_detail(self, conversation_id: str) -> dict[str, Any]:
        self.detail_calls.append(conversation_id)
        if conversation_id in self.failing:
            raise RemoteGenericError("ElevenLabs API error 500", status=500)
        item = next(c for c in self.conversations if c["conversation_id"] == conversation_id)
        return make_detail(conversation_id, item["start_time_unix_secs"])


@pytest_asyncio.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def agent(db_session: AsyncSession) -> Agent:
    """A tracked agent with an API key."""
    agent = Agent(name="Front desk", agent_id="agent_el_1", api_key="xi_test_key")
    db_session.add(agent)
    await db_session.commit()
    await db_session.refresh(agent)
    return agent


@pytest.fixture
def fake_remote() -> FakeElevenLabsClient:
    """Upstream with three conversations; the middle one has a broken detail."""
    return FakeElevenLabsClient(
        conversations=[
            make_list_item("conv_300", 300),
            make_list_item("conv_200", 200, status="failed", duration=45),
            make_list_item("conv_100", 100),
        ],
        failing={"conv_200"},
    )


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, fake_remote: FakeElevenLabsClient
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and upstream overrides."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_client_factory] = lambda: (lambda api_key: fake_remote)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
