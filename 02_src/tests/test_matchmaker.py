"""Tests for the Matchmaker."""

import asyncio
import random

import pytest

from conftest import FixedRandom, force_waiting, introduction_json
from icebreaker.matchmaking import Matchmaker, hold_locks
from icebreaker.models import Origin, SessionState


class StaleRegistry:
    """Registry whose snapshot lags behind the real one."""

    def __init__(self, registry, snapshot):
        self._registry = registry
        self._snapshot = snapshot

    async def add(self, user_id):
        await self._registry.add(user_id)

    async def remove(self, user_id):
        await self._registry.remove(user_id)

    async def list(self):
        return list(self._snapshot)


def assert_symmetric(manager):
    for session in manager.sessions():
        if session.partner_id:
            partner = manager.get(session.partner_id)
            assert partner.partner_id == session.user_id
            assert session.state is SessionState.CHATTING
        else:
            assert session.state is not SessionState.CHATTING


class TestFindPartner:
    @pytest.mark.asyncio
    async def test_draw_pairs_caller_with_drawn_user(
        self, session_manager, registry, rng
    ):
        for user_id in ["A", "B", "C"]:
            await force_waiting(session_manager, user_id)
        rng._indices = [1]  # snapshot [A, B, C] -> B

        partner = await session_manager.find_partner("A")

        a, b, c = (session_manager.get(u) for u in ["A", "B", "C"])
        assert partner == "B"
        assert a.state is SessionState.CHATTING and a.partner_id == "B"
        assert b.state is SessionState.CHATTING and b.partner_id == "A"
        assert c.state is SessionState.WAITING_FOR_PARTNER
        assert await registry.list() == ["C"]

    @pytest.mark.asyncio
    async def test_caller_is_skipped(self, session_manager, rng):
        await force_waiting(session_manager, "A")
        await force_waiting(session_manager, "B")
        rng._indices = [0]  # draws A first

        partner = await session_manager.find_partner("A")

        assert partner == "B"
        assert rng.calls == [2, 1]

    @pytest.mark.asyncio
    async def test_alone_in_registry_keeps_waiting(
        self, session_manager, registry, storage
    ):
        session = await force_waiting(session_manager, "A")

        partner = await session_manager.find_partner("A")

        assert partner is None
        assert session.state is SessionState.WAITING_FOR_PARTNER
        assert session.partner_id is None
        assert await registry.list() == ["A"]
        events = await storage.get_trace_events(event_types=["pairing_exhausted"])
        assert events[0].data == {"user_id": "A", "draws": 1}

    @pytest.mark.asyncio
    async def test_empty_registry(self, session_manager):
        await session_manager.get_or_create("A")

        assert await session_manager.find_partner("A") is None

    @pytest.mark.asyncio
    async def test_unknown_caller(self, session_manager):
        assert await session_manager.find_partner("nobody") is None

    @pytest.mark.asyncio
    async def test_paired_event_published(self, session_manager, storage):
        await force_waiting(session_manager, "A")
        await force_waiting(session_manager, "B")

        await session_manager.find_partner("B")

        events = await storage.get_trace_events(event_types=["paired"])
        assert len(events) == 1
        assert events[0].actor == "matchmaker"
        assert events[0].data == {"user_id": "B", "partner_id": "A"}

    @pytest.mark.asyncio
    async def test_both_sides_are_notified(self, session_manager):
        await force_waiting(session_manager, "A", first_name="Ann")
        await force_waiting(session_manager, "B", first_name="Ben")

        await session_manager.find_partner("B")

        a_log = session_manager.get("A").log
        b_log = session_manager.get("B").log
        assert a_log[-1].origin is Origin.SYSTEM
        assert "Ben" in a_log[-1].content
        assert "Ann" in b_log[-1].content

    @pytest.mark.asyncio
    async def test_caller_already_chatting(self, session_manager):
        await force_waiting(session_manager, "A")
        await force_waiting(session_manager, "B")
        await session_manager.find_partner("A")
        await force_waiting(session_manager, "C")

        # A was paired already; a late attempt on its behalf changes nothing
        assert await session_manager.find_partner("A") == "B"
        assert session_manager.get("C").state is SessionState.WAITING_FOR_PARTNER


class TestContention:
    @pytest.mark.asyncio
    async def test_claimed_candidate_is_skipped(
        self, session_manager, registry, storage, rng
    ):
        for user_id in ["A", "B", "C", "D"]:
            await force_waiting(session_manager, user_id)
        snapshot = await registry.list()
        rng._indices = [1]  # C draws B
        # B and C pair up after A's snapshot was taken
        await session_manager.find_partner("C")
        assert session_manager.get("B").partner_id == "C"

        matchmaker = Matchmaker(
            StaleRegistry(registry, snapshot),
            lookup=session_manager.get,
            tracker=session_manager.matchmaker._tracker,
            rng=FixedRandom([1, 1]),  # [A, B, C, D] -> B, then [A, C, D] -> C
        )
        partner = await matchmaker.find_partner("A")

        assert partner == "D"
        assert session_manager.get("B").partner_id == "C"
        assert session_manager.get("D").partner_id == "A"
        contention = await storage.get_trace_events(event_types=["pairing_contention"])
        assert {e.data["candidate_id"] for e in contention} == {"B", "C"}

    @pytest.mark.asyncio
    async def test_vanished_candidate_is_dropped(self, session_manager, registry):
        await force_waiting(session_manager, "A")
        await registry.add("ghost")

        partner = await session_manager.find_partner("A")

        assert partner is None
        assert await registry.list() == ["A"]

    @pytest.mark.asyncio
    async def test_draws_are_bounded(self, registry):
        ghosts = [f"ghost{i}" for i in range(10)]
        for ghost in ghosts:
            await registry.add(ghost)

        rng = FixedRandom()
        caller = object()
        lookup = {"caller": caller}.get
        matchmaker = Matchmaker(registry, lookup=lookup, max_draws=3, rng=rng)

        assert await matchmaker.find_partner("caller") is None
        assert rng.calls == [10, 9, 8]
        assert len(await registry.list()) == 7

    @pytest.mark.asyncio
    async def test_concurrent_attempts_make_disjoint_pairs(
        self, session_manager, registry
    ):
        ids = [f"user{i:02d}" for i in range(10)]
        for user_id in ids:
            await force_waiting(session_manager, user_id)
        session_manager.matchmaker._rng = random.Random(7)

        await asyncio.gather(*(session_manager.find_partner(u) for u in ids))

        sessions = [session_manager.get(u) for u in ids]
        assert all(s.state is SessionState.CHATTING for s in sessions)
        partners = [s.partner_id for s in sessions]
        assert sorted(partners) == sorted(ids)
        assert all(s.partner_id != s.user_id for s in sessions)
        assert_symmetric(session_manager)
        assert await registry.list() == []

    @pytest.mark.asyncio
    async def test_concurrent_introductions_never_double_pair(
        self, session_manager, mock_llm, registry
    ):
        mock_llm.complete.return_value = introduction_json("Sam")
        ids = [f"user{i:02d}" for i in range(8)]

        await asyncio.gather(
            *(session_manager.handle_message(u, "I'm Sam Doe, 30, music") for u in ids)
        )

        assert_symmetric(session_manager)
        chatting = [
            s for s in session_manager.sessions() if s.state is SessionState.CHATTING
        ]
        waiting = await registry.list()
        assert len(chatting) % 2 == 0
        assert len(chatting) + len(waiting) == len(ids)


class TestHoldLocks:
    @pytest.mark.asyncio
    async def test_locks_taken_in_user_id_order(self, session_manager):
        a = await session_manager.get_or_create("a")
        b = await session_manager.get_or_create("b")

        async def claim(first, second):
            async with hold_locks(first, second):
                await asyncio.sleep(0)

        # Opposite argument orders must not deadlock
        await asyncio.wait_for(
            asyncio.gather(claim(a, b), claim(b, a)), timeout=1.0
        )
        assert not a.lock.locked() and not b.lock.locked()
