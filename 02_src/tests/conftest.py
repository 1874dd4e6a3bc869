"""Pytest configuration and fixtures."""

import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


ZOE_JSON = json.dumps(
    {
        "firstName": "Zoe",
        "lastName": "Zach",
        "age": 15,
        "interests": ["rock climbing"],
    }
)


def introduction_json(first_name: str, last_name: str = "Doe", age: int = 30) -> str:
    return json.dumps(
        {
            "firstName": first_name,
            "lastName": last_name,
            "age": age,
            "interests": ["music"],
        }
    )


class FixedRandom:
    """Stand-in for random.Random that returns scripted indices, then 0."""

    def __init__(self, indices: list[int] | None = None):
        self._indices = list(indices or [])
        self.calls: list[int] = []

    def randrange(self, n: int) -> int:
        self.calls.append(n)
        if self._indices:
            return self._indices.pop(0) % n
        return 0


async def force_waiting(manager, user_id: str, first_name: str | None = None):
    """Put a session straight into WAITING_FOR_PARTNER without pairing it."""
    from icebreaker.models import IntroductionData, SessionState

    session = await manager.get_or_create(user_id)
    async with session.lock:
        session._introduction = IntroductionData(
            firstName=first_name or user_id.title(),
            lastName="Doe",
            age=30,
            interests=["music"],
        )
        await session.transition(SessionState.WAITING_FOR_PARTNER)
    return session


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from icebreaker.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def event_bus():
    """Create EventBus."""
    from icebreaker.event_bus import EventBus

    return EventBus()


@pytest_asyncio.fixture
async def tracker(storage, event_bus):
    """Create Tracker subscribed to the event bus."""
    from icebreaker.tracker import Tracker

    tr = Tracker(event_bus=event_bus, storage=storage)
    await tr.start()
    return tr


@pytest.fixture
def registry(storage):
    """Create a storage-backed UnpairedRegistry."""
    from icebreaker.registry import UnpairedRegistry

    return UnpairedRegistry(storage)


@pytest.fixture
def mock_llm():
    """Create mock LLM provider.

    complete() answers extraction requests (an empty JSON object by default);
    stream() yields a canned follow-up question.
    """
    llm = Mock()
    llm.complete = AsyncMock(return_value="{}")

    async def stream(messages, system=None, max_tokens=1024):
        for chunk in ["What is", " your name?"]:
            yield chunk

    llm.stream = Mock(side_effect=stream)
    return llm


@pytest.fixture
def extractor(mock_llm):
    from icebreaker.llm import IntroductionExtractor

    return IntroductionExtractor(mock_llm)


@pytest.fixture
def responder(mock_llm):
    from icebreaker.llm import ResponseGenerator

    return ResponseGenerator(mock_llm)


@pytest.fixture
def rng():
    return FixedRandom()


@pytest_asyncio.fixture
async def session_manager(
    registry, extractor, responder, storage, event_bus, tracker, rng
):
    """Create a started SessionManager for testing."""
    from icebreaker.sessions import SessionManager

    manager = SessionManager(
        registry=registry,
        extractor=extractor,
        responder=responder,
        storage=storage,
        event_bus=event_bus,
        tracker=tracker,
        rng=rng,
    )
    await manager.start()
    yield manager
    await manager.stop()


@pytest_asyncio.fixture
async def outbound(event_bus):
    """Create a started OutboundRouter."""
    from icebreaker.delivery import OutboundRouter

    router = OutboundRouter(event_bus)
    await router.start()
    yield router
    await router.stop()
