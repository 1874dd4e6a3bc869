"""SIM implementation - virtual users that introduce themselves and chat."""

import asyncio
import random
from typing import Protocol

import httpx

from icebreaker.logging_config import get_logger
from icebreaker.tracker import ITracker

logger = get_logger(__name__)

VIRTUAL_USERS = [
    {
        "user_id": "sim_zoe",
        "introduction": "Hi! My name is Zoe, last name is Zach, I am 15 and I like rock climbing.",
        "lines": ["Hey there!", "Do you climb too?", "Nice talking to you!"],
    },
    {
        "user_id": "sim_liam",
        "introduction": "I'm Liam Ortega, 27 years old. I love chess and cooking.",
        "lines": ["Hello!", "What are you up to today?", "Cool, see you around."],
    },
    {
        "user_id": "sim_ana",
        "introduction": "Ana here. Surname Petrova.",
        "follow_up": "I'm 31 and into photography and hiking.",
        "lines": ["Hi :)", "Any favourite hiking spots?", "Bye!"],
    },
    {
        "user_id": "sim_kenji",
        "introduction": "My name is Kenji Sato, I'm 22, I enjoy jazz and running.",
        "lines": ["Yo!", "Listening to anything good lately?", "Take care."],
    },
]


class ISim(Protocol):
    """Generate load for a running service."""

    async def start(self) -> None:
        """Start the scenario."""
        ...

    async def stop(self) -> None:
        """Stop the scenario."""
        ...

    @property
    def running(self) -> bool:
        """True while the scenario is in progress."""
        ...


class Sim:
    """SIM with a fixed introduce-then-chat scenario."""

    def __init__(
        self,
        api_url: str = "http://localhost:8000",
        tracker: ITracker | None = None,
        poll_interval: float = 1.0,
        max_polls: int = 30,
    ):
        self._api_url = api_url
        self._tracker = tracker
        self._poll_interval = poll_interval
        self._max_polls = max_polls
        self._running = False
        self._task: asyncio.Task | None = None
        self._client: httpx.AsyncClient | None = None

    @property
    def running(self) -> bool:
        return self._running

    def set_tracker(self, tracker: ITracker) -> None:
        """Inject tracker for SIM trace events."""
        self._tracker = tracker

    async def start(self) -> None:
        """Start the scenario in the background."""
        if self._running:
            return

        self._running = True
        self._client = httpx.AsyncClient(base_url=self._api_url, timeout=30.0)
        self._task = asyncio.create_task(self._run_scenario())

    async def stop(self) -> None:
        """Stop the scenario."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._client:
            await self._client.aclose()
            self._client = None

    async def _run_scenario(self) -> None:
        summary = {"scenario": "introduce_and_chat", "user_count": len(VIRTUAL_USERS)}
        try:
            if self._tracker:
                await self._tracker.track("sim_started", "sim", summary)

            await asyncio.gather(*(self._run_user(user) for user in VIRTUAL_USERS))

        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("SIM scenario error: %s", e)
        finally:
            self._running = False
            if self._tracker:
                await self._tracker.track("sim_completed", "sim", summary)

    async def _run_user(self, user: dict) -> None:
        """Introduce, wait for a partner, then send a few chat lines."""
        user_id = user["user_id"]

        state = await self._send_message(user_id, user["introduction"])
        if state == "introduction" and user.get("follow_up"):
            await asyncio.sleep(random.uniform(0.5, 1.5))
            state = await self._send_message(user_id, user["follow_up"])

        for _ in range(self._max_polls):
            if not self._running or state == "chatting":
                break
            await asyncio.sleep(self._poll_interval)
            state = await self._get_state(user_id)

        if state != "chatting":
            logger.info("SIM: %s never got a partner", user_id)
            return

        for line in user["lines"]:
            if not self._running:
                break
            await self._send_message(user_id, line)
            await asyncio.sleep(random.uniform(1, 3))

    async def _send_message(self, user_id: str, text: str) -> str | None:
        """Send a message via HTTP API; returns the session state."""
        if not self._client:
            return None

        try:
            response = await self._client.post(
                "/api/messages", json={"user_id": user_id, "text": text}
            )
            if response.status_code != 200:
                logger.error("SIM: Error sending message: %s", response.status_code)
                return None

            data = response.json()
            logger.info("SIM: %s -> %s", user_id, text)
            logger.info("SIM: Response: %s", data.get("response") or "N/A")
            return data.get("state")

        except httpx.HTTPError as e:
            logger.error("SIM: Failed to send message: %s", e)
            return None

    async def _get_state(self, user_id: str) -> str | None:
        if not self._client:
            return None

        try:
            response = await self._client.get(f"/api/sessions/{user_id}")
            if response.status_code != 200:
                return None
            return response.json().get("state")
        except httpx.HTTPError as e:
            logger.error("SIM: Failed to read session: %s", e)
            return None
