import asyncio
import logging
from typing import Any, Protocol, Set

from .schemas import LivePacket
from .store import Packet

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...


class LiveBroadcastHub:
    """Fans newly stored packets out to every connected live-feed client."""

    def __init__(self):
        self.subscribers: Set[Subscriber] = set()
        self._lock = asyncio.Lock()

    async def register(self, subscriber: Subscriber):
        async with self._lock:
            self.subscribers.add(subscriber)
        logger.info("Live subscriber connected (%d total)", len(self.subscribers))

    async def unregister(self, subscriber: Subscriber):
        async with self._lock:
            if subscriber not in self.subscribers:
                return
            self.subscribers.discard(subscriber)
        logger.info("Live subscriber disconnected (%d left)", len(self.subscribers))

    async def _send(self, subscriber: Subscriber, payload: dict) -> bool:
        try:
            await subscriber.send_json(payload)
        except Exception:
            logger.debug("Dropping live subscriber after failed send", exc_info=True)
            return False
        return True

    async def publish(self, packet: Packet):
        # same JSON encoding as the /packets listing
        payload = LivePacket(
            timestamp=packet.received_at, message=packet.message, frequency=packet.frequency
        ).model_dump(mode="json")
        targets = list(self.subscribers)
        if not targets:
            return
        results = await asyncio.gather(*(self._send(s, payload) for s in targets))
        for subscriber, ok in zip(targets, results):
            if not ok:
                await self.unregister(subscriber)
