"""Datagram -> decoded reports -> stored packets -> live subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from . import semtech
from .hub import LiveBroadcastHub
from .store import Packet, PacketStore, PacketStoreError

logger = logging.getLogger(__name__)


class IngestionPipeline:
    def __init__(self, store: PacketStore, hub: LiveBroadcastHub) -> None:
        self.store = store
        self.hub = hub

    async def handle(self, datagram: bytes, source: Any = None) -> list[Packet]:
        """Store and publish every report in *datagram*.

        Reports are inserted one after another in array order, each publish
        following its own insert. A failed insert is logged and skipped.
        """

        stored: list[Packet] = []
        for report in semtech.decode(datagram, source):
            try:
                packet = await self.store.insert(report)
            except PacketStoreError:
                logger.exception("Failed to store packet from %s: %r", source, report.message)
                continue
            await self.hub.publish(packet)
            stored.append(packet)
        return stored


class UplinkProtocol(asyncio.DatagramProtocol):
    """Hands each datagram to the pipeline in its own task; never replies."""

    def __init__(self, pipeline: IngestionPipeline) -> None:
        self.pipeline = pipeline
        self.tasks: set[asyncio.Task] = set()

    def datagram_received(self, data: bytes, addr) -> None:
        task = asyncio.get_running_loop().create_task(self.pipeline.handle(data, addr))
        self.tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self.tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Datagram handling failed", exc_info=task.exception())

    def error_received(self, exc: Exception) -> None:
        logger.warning("UDP socket error: %s", exc)


class UdpListener:
    def __init__(self, pipeline: IngestionPipeline, host: str = "0.0.0.0", port: int = 1700) -> None:
        self.pipeline = pipeline
        self.host = host
        self.port = port
        self._transport: asyncio.DatagramTransport | None = None
        self._protocol: UplinkProtocol | None = None

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._transport, self._protocol = await loop.create_datagram_endpoint(
            lambda: UplinkProtocol(self.pipeline),
            local_addr=(self.host, self.port),
        )
        logger.info("Listening for LoRa UDP packets on %s:%d", *self.address)

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); differs from the configured port when that was 0."""
        if self._transport is None:
            return self.host, self.port
        return self._transport.get_extra_info("sockname")[:2]

    async def stop(self) -> None:
        if self._transport is None:
            return
        self._transport.close()
        self._transport = None
        pending = list(self._protocol.tasks) if self._protocol else []
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._protocol = None
        logger.info("UDP listener stopped")
