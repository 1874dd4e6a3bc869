"""OutboundRouter: push channel from sessions to connected transports."""

import asyncio
from typing import AsyncIterator, Protocol

from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import BusMessage, Topic

logger = get_logger(__name__)


class IOutboundRouter(Protocol):
    """Fan-out of outbound messages to each user's open streams."""

    async def start(self) -> None:
        """Subscribe to EventBus topic: OUTBOUND."""
        ...

    async def stop(self) -> None:
        """Unsubscribe from EventBus and close open streams."""
        ...

    def listen(self, user_id: str) -> AsyncIterator[dict]:
        """Yield outbound messages for user_id until stopped."""
        ...


class OutboundRouter:
    """Routes OUTBOUND bus messages to per-user subscriber queues."""

    def __init__(self, event_bus: IEventBus, max_queue_size: int = 100):
        self._event_bus = event_bus
        self._max_queue_size = max_queue_size
        self._queues: dict[str, list[asyncio.Queue]] = {}

    async def start(self) -> None:
        """Subscribe to OUTBOUND topic."""
        self._event_bus.subscribe(Topic.OUTBOUND, self._handle_outbound)

    async def stop(self) -> None:
        """Unsubscribe and wake every listener so it can finish."""
        self._event_bus.unsubscribe(Topic.OUTBOUND, self._handle_outbound)
        for queues in self._queues.values():
            for queue in queues:
                while queue.full():
                    queue.get_nowait()
                queue.put_nowait(None)

    def subscriber_count(self, user_id: str) -> int:
        return len(self._queues.get(user_id, []))

    def subscribe(self, user_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._queues.setdefault(user_id, []).append(queue)
        return queue

    def unsubscribe(self, user_id: str, queue: asyncio.Queue) -> None:
        queues = self._queues.get(user_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._queues.pop(user_id, None)

    async def listen(self, user_id: str) -> AsyncIterator[dict]:
        """Yield outbound messages for user_id until the router stops."""
        queue = self.subscribe(user_id)
        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                yield item
        finally:
            self.unsubscribe(user_id, queue)

    async def _handle_outbound(self, bus_message: BusMessage) -> None:
        """Deliver the message to every open stream of the target user."""
        payload = bus_message.payload
        user_id = payload.get("user_id")
        message = payload.get("message")
        if not user_id or message is None:
            return

        for queue in self._queues.get(user_id, []):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning(
                    "Outbound queue full, dropping message", extra={"user_id": user_id}
                )
