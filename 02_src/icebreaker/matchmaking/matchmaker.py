"""Matchmaker: draws and claims a partner from the unpaired registry."""

import random
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Callable, Protocol

from ..config import DEFAULT_MAX_PAIRING_DRAWS
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import SessionState, Topic
from ..registry import IUnpairedRegistry
from ..tracker import ITracker

logger = get_logger(__name__)

if TYPE_CHECKING:
    from ..sessions.session import UserSession

SessionLookup = Callable[[str], "UserSession | None"]


class IMatchmaker(Protocol):
    """Pairs a waiting session with another waiting session."""

    async def find_partner(self, caller_id: str) -> str | None:
        """Return the partner's user_id, or None if the caller keeps waiting."""
        ...


@asynccontextmanager
async def hold_locks(*sessions: "UserSession"):
    """Acquire session locks in user_id order so two claims never deadlock."""
    async with AsyncExitStack() as stack:
        for session in sorted(sessions, key=lambda s: s.user_id):
            await stack.enter_async_context(session.lock)
        yield


class Matchmaker:
    """Random draw over a registry snapshot with conditional claims.

    Each attempt draws without replacement from a snapshot of the registry,
    at most min(len(snapshot), max_draws) times. A draw only becomes a pair
    if both sessions are still waiting once their locks are held; otherwise
    the next draw is tried. Running out of draws is the normal "still
    waiting" outcome.
    """

    def __init__(
        self,
        registry: IUnpairedRegistry,
        lookup: SessionLookup,
        tracker: ITracker | None = None,
        event_bus: IEventBus | None = None,
        max_draws: int = DEFAULT_MAX_PAIRING_DRAWS,
        rng: random.Random | None = None,
    ):
        self._registry = registry
        self._lookup = lookup
        self._tracker = tracker
        self._event_bus = event_bus
        self._max_draws = max_draws
        self._rng = rng or random.Random()

    async def find_partner(self, caller_id: str) -> str | None:
        caller = self._lookup(caller_id)
        if caller is None:
            logger.warning("Pairing requested for unknown session %s", caller_id)
            return None

        snapshot = await self._registry.list()
        draws = min(len(snapshot), self._max_draws)

        for _ in range(draws):
            candidate_id = snapshot.pop(self._rng.randrange(len(snapshot)))
            if candidate_id == caller_id:
                continue

            candidate = self._lookup(candidate_id)
            if candidate is None:
                logger.warning(
                    "Dropping vanished user %s from registry",
                    candidate_id,
                    extra={"user_id": caller_id},
                )
                await self._registry.remove(candidate_id)
                await self._track(
                    "pairing_candidate_vanished",
                    {"user_id": caller_id, "candidate_id": candidate_id},
                )
                continue

            async with hold_locks(caller, candidate):
                if caller.closed or caller.state is not SessionState.WAITING_FOR_PARTNER:
                    # Claimed by a concurrent attempt (or left) meanwhile
                    return caller.partner_id

                claimed = await candidate.transition_if(
                    SessionState.WAITING_FOR_PARTNER,
                    SessionState.CHATTING,
                    partner_id=caller_id,
                )
                if not claimed:
                    await self._track(
                        "pairing_contention",
                        {"user_id": caller_id, "candidate_id": candidate_id},
                    )
                    continue

                await caller.transition_if(
                    SessionState.WAITING_FOR_PARTNER,
                    SessionState.CHATTING,
                    partner_id=candidate_id,
                )

            logger.info(
                "Paired with %s", candidate_id, extra={"user_id": caller_id}
            )
            if self._event_bus:
                await self._event_bus.emit(
                    Topic.PAIRED,
                    {"user_id": caller_id, "partner_id": candidate_id},
                    source="matchmaker",
                )
            await candidate.announce_partner()
            await caller.announce_partner()
            return candidate_id

        logger.info(
            "No partner found in %s draws", draws, extra={"user_id": caller_id}
        )
        await self._track("pairing_exhausted", {"user_id": caller_id, "draws": draws})
        return None

    async def _track(self, event_type: str, data: dict) -> None:
        if self._tracker:
            await self._tracker.track(event_type, "matchmaker", data)
