"""UserSession: the per-user state machine."""

import asyncio
from typing import Protocol

from ..event_bus import IEventBus
from ..llm import IIntroductionExtractor, IResponseGenerator
from ..logging_config import get_session_logger
from ..models import (
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
    IntroductionData,
    Message,
    Origin,
    SessionRecord,
    SessionState,
    Topic,
)
from ..registry import IUnpairedRegistry
from ..storage import IStorage

COMPLETION_MESSAGE = (
    "Thanks {first_name}, your introduction is complete! "
    "We are now looking for someone for you to chat with."
)
WAIT_NOTICE = "Please wait, we are still looking for someone for you to chat with."
PARTNER_NOTICE = "You are now chatting with {first_name}. Say hi!"
PARTNER_LEFT_NOTICE = (
    "Your chat partner has left. We are looking for someone new for you."
)


class IPeers(Protocol):
    """Peer lookup and pairing, as seen from a single session."""

    def get(self, user_id: str) -> "UserSession | None":
        """Addressable handle to another session, or None if it is gone."""
        ...

    async def load(self, user_id: str) -> "UserSession | None":
        """Like get, but brings a stored session back into memory first."""
        ...

    async def find_partner(self, user_id: str) -> str | None:
        """Run a pairing attempt on behalf of user_id."""
        ...


class UserSession:
    """One user's conversation, introduction and pairing status.

    All mutation of state/partner_id happens while holding `lock`. Code that
    mutates two sessions (the Matchmaker) takes both locks in user_id order;
    nothing else ever waits on another session's lock while holding its own.
    """

    def __init__(
        self,
        record: SessionRecord,
        registry: IUnpairedRegistry,
        extractor: IIntroductionExtractor,
        responder: IResponseGenerator,
        peers: IPeers,
        storage: IStorage | None = None,
        event_bus: IEventBus | None = None,
        log: list[Message] | None = None,
    ):
        self.user_id = record.user_id
        self._state = record.state
        self._partner_id = record.partner_id
        self._introduction = record.introduction
        self._log: list[Message] = list(log or [])

        self._registry = registry
        self._extractor = extractor
        self._responder = responder
        self._peers = peers
        self._storage = storage
        self._event_bus = event_bus

        self._logger = get_session_logger(__name__, self.user_id)
        self.lock = asyncio.Lock()
        self._closed = False
        # Restored chatting sessions have already told their user
        self._announced_partner = record.partner_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def partner_id(self) -> str | None:
        return self._partner_id

    @property
    def introduction(self) -> IntroductionData | None:
        return self._introduction

    @property
    def log(self) -> list[Message]:
        return list(self._log)

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> SessionRecord:
        return SessionRecord(
            user_id=self.user_id,
            state=self._state,
            partner_id=self._partner_id,
            introduction=self._introduction,
        )

    async def save(self) -> None:
        """Persist the current record."""
        if self._storage:
            await self._storage.save_session(self.snapshot())

    # Inbound

    async def handle_message(self, message: Message) -> str | None:
        """Handle an inbound message. Returns the reply for the sender, if any."""
        if message.is_system_authored:
            self._logger.debug("Ignoring system-authored message")
            return None

        if message.origin is Origin.PARTNER:
            await self._receive_from_partner(message)
            return None

        reply = None
        relay_to = None
        entered_waiting = False

        async with self.lock:
            if self._closed:
                return None

            await self._record(message)

            if self._state is SessionState.INTRODUCTION:
                reply = await self._introduce()
                entered_waiting = self._state is SessionState.WAITING_FOR_PARTNER
            elif self._state is SessionState.WAITING_FOR_PARTNER:
                reply = WAIT_NOTICE
                await self._record(Message.notice(reply))
            else:
                relay_to = self._partner_id

        # Both run without our lock held: they take other sessions' locks
        if entered_waiting:
            await self._peers.find_partner(self.user_id)
        if relay_to:
            await self._relay(message, relay_to)

        return reply

    async def _receive_from_partner(self, message: Message) -> None:
        async with self.lock:
            if self._closed:
                reason = "session closed"
            elif self._state is not SessionState.CHATTING:
                reason = f"session is {self._state.value}"
            elif message.sender_id != self._partner_id:
                reason = "not the current partner"
            else:
                reason = None

            if reason:
                self._logger.warning(
                    "Dropping message from %s: %s", message.sender_id, reason
                )
                return
            await self._record(message)

    async def _introduce(self) -> str | None:
        try:
            result: ExtractionResult = await self._extractor.extract(self.log)
        except Exception as e:
            self._logger.error(f"Extractor error: {e}", exc_info=True)
            result = ExtractionFailure()

        if isinstance(result, ExtractionSuccess):
            self._introduction = result.introduction
            reply = COMPLETION_MESSAGE.format(first_name=result.introduction.first_name)
            await self._record(Message.from_assistant(reply))
            await self.transition(SessionState.WAITING_FOR_PARTNER)
            return reply

        reply = await self._follow_up(result.missing_fields)
        if reply:
            await self._record(Message.from_assistant(reply))
        return reply

    async def _follow_up(self, missing_fields: list[str]) -> str | None:
        chunks: list[str] = []
        try:
            async for chunk in self._responder.stream(self.log, missing_fields):
                chunks.append(chunk)
        except Exception as e:
            # No assistant reply this turn; the session carries on
            self._logger.error(f"Response generation error: {e}", exc_info=True)
            return None
        return "".join(chunks).strip() or None

    async def _relay(self, message: Message, partner_id: str) -> None:
        partner = await self._peers.load(partner_id)
        if partner is None or partner.closed or partner.partner_id != self.user_id:
            self._logger.warning("Partner %s vanished, returning to waiting", partner_id)
            await self.partner_left(partner_id)
            return

        await partner.handle_message(Message.from_partner(self.user_id, message.content))
        await self._emit(
            Topic.RELAYED,
            {"from_user_id": self.user_id, "to_user_id": partner_id},
        )

    # Transitions

    async def transition(
        self, new_state: SessionState, partner_id: str | None = None
    ) -> None:
        """Move to new_state. Caller must hold `lock`.

        partner_id is kept only for CHATTING. Registry membership is synced on
        every call, so repeating a transition is harmless.
        """
        if new_state is not SessionState.CHATTING:
            partner_id = None
        elif not partner_id:
            raise ValueError("CHATTING requires a partner_id")

        previous = self._state
        changed = previous is not new_state or self._partner_id != partner_id
        self._state = new_state
        self._partner_id = partner_id

        await self.sync_registry()
        if not changed:
            return

        await self.save()
        await self._emit(
            Topic.STATE_CHANGED,
            {
                "user_id": self.user_id,
                "from_state": previous.value,
                "to_state": new_state.value,
                "partner_id": partner_id,
            },
        )
        self._logger.info(
            "State %s -> %s",
            previous.value,
            new_state.value,
            extra={"partner_id": partner_id},
        )

    async def transition_if(
        self,
        expected: SessionState,
        new_state: SessionState,
        partner_id: str | None = None,
    ) -> bool:
        """Compare-and-transition. Caller must hold `lock`."""
        if self._closed or self._state is not expected:
            return False
        await self.transition(new_state, partner_id)
        return True

    async def sync_registry(self) -> None:
        """Registry holds this user iff the session is waiting."""
        if self._state is SessionState.WAITING_FOR_PARTNER and not self._closed:
            await self._registry.add(self.user_id)
        else:
            await self._registry.remove(self.user_id)

    async def announce_partner(self) -> None:
        """Tell the user who they are now chatting with, once per pairing."""
        async with self.lock:
            partner_id = self._partner_id
            if self._state is not SessionState.CHATTING or not partner_id:
                return
            if self._announced_partner == partner_id:
                return

            partner = self._peers.get(partner_id)
            first_name = "your partner"
            if partner and partner.introduction:
                first_name = partner.introduction.first_name

            self._announced_partner = partner_id
            await self._record(Message.notice(PARTNER_NOTICE.format(first_name=first_name)))

    async def partner_left(self, partner_id: str) -> None:
        """Return to waiting if partner_id is still our partner, then re-pair."""
        async with self.lock:
            if self._closed or self._partner_id != partner_id:
                return
            await self.transition_if(
                SessionState.CHATTING, SessionState.WAITING_FOR_PARTNER
            )
            self._announced_partner = None
            await self._record(Message.notice(PARTNER_LEFT_NOTICE))

        await self._peers.find_partner(self.user_id)

    async def close(self) -> str | None:
        """Stop the session for good. Returns the partner it was chatting with."""
        async with self.lock:
            partner_id = self._partner_id
            self._closed = True
            await self.sync_registry()
            return partner_id

    # Helpers

    async def _record(self, message: Message) -> None:
        self._log.append(message)
        if self._storage:
            await self._storage.save_message(self.user_id, message)
        # The user already has what they typed
        if message.origin is not Origin.USER:
            await self._emit(
                Topic.OUTBOUND,
                {"user_id": self.user_id, "message": message.to_dict()},
            )

    async def _emit(self, topic: Topic, payload: dict) -> None:
        if self._event_bus:
            await self._event_bus.emit(topic, payload, source=f"session:{self.user_id}")
