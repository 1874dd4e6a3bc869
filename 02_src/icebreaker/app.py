"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .config import resolve_db_path, resolve_max_pairing_draws
from .delivery import OutboundRouter
from .event_bus import EventBus
from .llm import ILLMProvider, IntroductionExtractor, LLMProvider, ResponseGenerator
from .logging_config import get_logger
from .registry import UnpairedRegistry
from .sessions import SessionManager
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        db_path: str | None = None,
        llm_provider: ILLMProvider | None = None,
        max_pairing_draws: int | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._max_pairing_draws = max_pairing_draws or resolve_max_pairing_draws()

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._event_bus: EventBus | None = None
        self._tracker: ITracker | None = None
        self._llm: ILLMProvider | None = llm_provider
        self._registry: UnpairedRegistry | None = None
        self._outbound: OutboundRouter | None = None
        self._sessions: SessionManager | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. EventBus (no dependencies)
        self._event_bus = EventBus()

        # 3. Tracker (depends on EventBus + Storage)
        self._tracker = Tracker(self._event_bus, self._storage)
        await self._tracker.start()

        # 4. LLMProvider (no internal dependencies)
        if self._llm is None:
            self._llm = LLMProvider()
        logger.info("LLM provider initialized")

        # 5. OutboundRouter (depends on EventBus)
        self._outbound = OutboundRouter(self._event_bus)
        await self._outbound.start()

        # 6. Registry (depends on Storage)
        self._registry = UnpairedRegistry(self._storage)
        await self._registry.load()

        # 7. SessionManager (depends on everything above)
        self._sessions = SessionManager(
            registry=self._registry,
            extractor=IntroductionExtractor(self._llm),
            responder=ResponseGenerator(self._llm),
            storage=self._storage,
            event_bus=self._event_bus,
            tracker=self._tracker,
            max_pairing_draws=self._max_pairing_draws,
        )
        await self._sessions.start()
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._sessions:
            await self._sessions.stop()
        if self._outbound:
            await self._outbound.stop()
        if self._tracker:
            await self._tracker.stop()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        if self._sessions:
            await self._sessions.stop()
            await self._sessions.clear()

        if self._registry:
            await self._registry.clear()

        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

        if self._sessions:
            await self._sessions.start()
            logger.info("Reset complete")

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def sessions(self) -> SessionManager:
        """Get session manager instance."""
        if not self._sessions:
            raise RuntimeError("Application not started")
        return self._sessions

    @property
    def registry(self) -> UnpairedRegistry:
        """Get unpaired registry instance."""
        if not self._registry:
            raise RuntimeError("Application not started")
        return self._registry

    @property
    def outbound(self) -> OutboundRouter:
        """Get outbound router instance."""
        if not self._outbound:
            raise RuntimeError("Application not started")
        return self._outbound

    @property
    def tracker(self) -> ITracker | None:
        return self._tracker
