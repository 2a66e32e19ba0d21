"""Append-only packet storage.

Two interchangeable backends implement :class:`PacketStore`:
:class:`SqlPacketStore` (SQLAlchemy, any async URL) and
:class:`MemoryPacketStore` (process memory). :func:`create_store` picks one
from the settings at startup.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Protocol, Union

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from .config import Settings
from .models import PacketRow
from .semtech import RawReport

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# async drivers (asyncpg) let socket errors through unwrapped when the server is unreachable
BACKEND_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes; everything is written in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PacketStoreError(Exception):
    """Raised when the storage backend fails to insert or query."""


@dataclass(frozen=True)
class Packet:
    id: int
    received_at: datetime
    message: str
    frequency: float | None = None


@dataclass(frozen=True)
class DateRangeFilter:
    start: datetime
    end: datetime

    def matches(self, packet: Packet) -> bool:
        return self.start <= packet.received_at <= self.end


@dataclass(frozen=True)
class TextFilter:
    text: str

    def matches(self, packet: Packet) -> bool:
        return self.text.lower() in packet.message.lower()


# None means "no filter"
PacketFilter = Union[DateRangeFilter, TextFilter, None]


@dataclass(frozen=True)
class Pagination:
    skip: int = 0
    limit: int = 25


class PacketStore(Protocol):
    async def insert(self, report: RawReport) -> Packet: ...

    async def query(self, filter: PacketFilter, pagination: Pagination) -> tuple[list[Packet], int]: ...


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _to_packet(row: PacketRow) -> Packet:
    return Packet(id=row.id, received_at=as_utc(row.timestamp), message=row.message, frequency=row.frequency)


class SqlPacketStore:
    def __init__(self, sessionmaker: async_sessionmaker, clock: Clock = utcnow) -> None:
        self._sessionmaker = sessionmaker
        self._clock = clock

    @staticmethod
    def _where(stmt, filter: PacketFilter):
        if isinstance(filter, DateRangeFilter):
            return stmt.where(PacketRow.timestamp >= filter.start, PacketRow.timestamp <= filter.end)
        if isinstance(filter, TextFilter):
            return stmt.where(PacketRow.message.ilike(f"%{_escape_like(filter.text)}%", escape="\\"))
        return stmt

    async def insert(self, report: RawReport) -> Packet:
        row = PacketRow(timestamp=as_utc(self._clock()), message=report.message, frequency=report.frequency)
        try:
            async with self._sessionmaker() as session:
                session.add(row)
                await session.commit()
        except BACKEND_ERRORS as exc:
            raise PacketStoreError(f"insert failed: {exc}") from exc
        return _to_packet(row)

    async def query(self, filter: PacketFilter, pagination: Pagination) -> tuple[list[Packet], int]:
        stmt = self._where(select(PacketRow), filter)
        stmt = stmt.order_by(PacketRow.id.desc()).offset(pagination.skip).limit(pagination.limit)
        count_stmt = self._where(select(func.count()).select_from(PacketRow), filter)
        try:
            async with self._sessionmaker() as session:
                rows = (await session.execute(stmt)).scalars().all()
                total = (await session.execute(count_stmt)).scalar_one()
        except BACKEND_ERRORS as exc:
            raise PacketStoreError(f"query failed: {exc}") from exc
        return [_to_packet(r) for r in rows], int(total)


class MemoryPacketStore:
    """Volatile store for development and tests; lost on restart."""

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._packets: list[Packet] = []
        self._lock = asyncio.Lock()

    async def insert(self, report: RawReport) -> Packet:
        async with self._lock:
            packet = Packet(
                id=len(self._packets) + 1,
                received_at=as_utc(self._clock()),
                message=report.message,
                frequency=report.frequency,
            )
            self._packets.append(packet)
        return packet

    async def query(self, filter: PacketFilter, pagination: Pagination) -> tuple[list[Packet], int]:
        async with self._lock:
            snapshot = list(self._packets)
        matching = [p for p in reversed(snapshot) if filter is None or filter.matches(p)]
        page = matching[pagination.skip:pagination.skip + pagination.limit]
        return page, len(matching)


def create_store(settings: Settings, sessionmaker: async_sessionmaker | None = None) -> PacketStore:
    if settings.store_backend == "memory":
        logger.warning("Using in-memory packet store; packets are lost on restart")
        return MemoryPacketStore()
    if sessionmaker is None:
        raise ValueError("sql packet store needs a sessionmaker")
    return SqlPacketStore(sessionmaker)
