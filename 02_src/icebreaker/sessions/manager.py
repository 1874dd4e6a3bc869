"""SessionManager: owns live sessions and acts as their peer lookup."""

import asyncio
import random

from ..config import DEFAULT_MAX_PAIRING_DRAWS
from ..event_bus import IEventBus
from ..llm import IIntroductionExtractor, IResponseGenerator
from ..logging_config import get_logger
from ..matchmaking import Matchmaker
from ..models import Message, SessionRecord, SessionState
from ..registry import IUnpairedRegistry
from ..storage import IStorage
from ..tracker import ITracker
from .session import UserSession

logger = get_logger(__name__)


class SessionManager:
    """Creates, restores and retires UserSessions."""

    def __init__(
        self,
        registry: IUnpairedRegistry,
        extractor: IIntroductionExtractor,
        responder: IResponseGenerator,
        storage: IStorage | None = None,
        event_bus: IEventBus | None = None,
        tracker: ITracker | None = None,
        max_pairing_draws: int = DEFAULT_MAX_PAIRING_DRAWS,
        rng: random.Random | None = None,
    ):
        self._registry = registry
        self._extractor = extractor
        self._responder = responder
        self._storage = storage
        self._event_bus = event_bus
        self._tracker = tracker

        self._sessions: dict[str, UserSession] = {}
        self._create_lock = asyncio.Lock()
        self._running = False

        self._matchmaker = Matchmaker(
            registry=registry,
            lookup=self.get,
            tracker=tracker,
            event_bus=event_bus,
            max_draws=max_pairing_draws,
            rng=rng,
        )

    @property
    def matchmaker(self) -> Matchmaker:
        return self._matchmaker

    async def start(self) -> None:
        """Bring waiting and chatting users back into memory.

        Both sides of a stored pair are live before the first message
        arrives, so relays and pairing attempts never mistake a persisted
        session for a vanished one.
        """
        logger.info("Starting SessionManager")
        self._running = True

        user_ids = set(await self._registry.list())
        if self._storage:
            user_ids.update(
                await self._storage.get_session_ids(
                    [SessionState.WAITING_FOR_PARTNER, SessionState.CHATTING]
                )
            )

        for user_id in sorted(user_ids):
            session = await self.load(user_id)
            if session is None:
                # Registry entry without a stored session
                await self._registry.remove(user_id)
                continue
            await session.sync_registry()

        await self._repair_pairs()

    async def _repair_pairs(self) -> None:
        """Send chatting sessions whose partner does not point back to waiting."""
        for session in self.sessions():
            partner_id = session.partner_id
            if session.state is not SessionState.CHATTING or not partner_id:
                continue
            partner = self.get(partner_id)
            if partner is None or partner.partner_id != session.user_id:
                logger.warning(
                    "Stored pair with %s is one-sided",
                    partner_id,
                    extra={"user_id": session.user_id},
                )
                await session.partner_left(partner_id)

    async def stop(self) -> None:
        """Stop accepting messages."""
        logger.info("Stopping SessionManager")
        self._running = False

    def _ensure_running(self) -> None:
        if not self._running:
            raise RuntimeError("SessionManager not started")

    def get(self, user_id: str) -> UserSession | None:
        """Peer lookup: the live session for user_id, if any."""
        return self._sessions.get(user_id)

    def sessions(self) -> list[UserSession]:
        return list(self._sessions.values())

    async def get_or_create(self, user_id: str) -> UserSession:
        """Return the live session, restoring it from Storage if needed."""
        return await self._resolve(user_id, create=True)

    async def load(self, user_id: str) -> UserSession | None:
        """Live session, or the stored one brought back; None if neither exists."""
        return await self._resolve(user_id, create=False)

    async def _resolve(self, user_id: str, create: bool) -> UserSession | None:
        self._ensure_running()

        session = self._sessions.get(user_id)
        if session:
            return session

        async with self._create_lock:
            session = self._sessions.get(user_id)
            if session:
                return session

            record = None
            log: list[Message] = []
            if self._storage:
                record = await self._storage.get_session(user_id)
                if record:
                    log = await self._storage.get_messages(user_id)
            if record is None and not create:
                return None

            session = UserSession(
                record or SessionRecord(user_id=user_id),
                registry=self._registry,
                extractor=self._extractor,
                responder=self._responder,
                peers=self,
                storage=self._storage,
                event_bus=self._event_bus,
                log=log,
            )
            self._sessions[user_id] = session

            if record:
                logger.info("Session restored", extra={"user_id": user_id})
            else:
                await session.save()
                logger.info("Session created", extra={"user_id": user_id})
            return session

    async def find_partner(self, user_id: str) -> str | None:
        return await self._matchmaker.find_partner(user_id)

    async def handle_message(self, user_id: str, text: str) -> str | None:
        """Transport entry point: a user typed `text`."""
        self._ensure_running()
        logger.info(f"Message received from {user_id}: {text[:100]}")

        session = await self.get_or_create(user_id)
        return await session.handle_message(Message.from_user(text))

    async def end_session(self, user_id: str) -> bool:
        """Withdraw a user. A chatting partner goes back to waiting."""
        session = await self.load(user_id)
        # A concurrent call may have ended it already
        if session is None or self._sessions.pop(user_id, None) is not session:
            return False

        partner_id = await session.close()
        if self._storage:
            await self._storage.delete_session(user_id)
        if self._tracker:
            await self._tracker.track(
                "session_ended",
                "session_manager",
                {"user_id": user_id, "partner_id": partner_id},
            )

        if partner_id:
            partner = await self.load(partner_id)
            if partner:
                await partner.partner_left(user_id)
        return True

    async def clear(self) -> None:
        """Drop every live session (in memory only)."""
        for session in list(self._sessions.values()):
            await session.close()
        self._sessions.clear()
