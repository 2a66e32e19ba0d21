import asyncio
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from packetlog.config import Settings
from packetlog.db import init_models, make_engine, make_sessionmaker
from packetlog.search import day_bounds
from packetlog.semtech import RawReport
from packetlog.store import (
    DateRangeFilter,
    MemoryPacketStore,
    PacketStoreError,
    Pagination,
    SqlPacketStore,
    TextFilter,
    create_store,
)


async def _with_store(kind, clock, url, scenario):
    if kind == "memory":
        return await scenario(MemoryPacketStore(clock=clock))
    engine = make_engine(url)
    try:
        assert await init_models(engine)
        return await scenario(SqlPacketStore(make_sessionmaker(engine), clock=clock))
    finally:
        await engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def run_with_store(request, clock, sqlite_url):
    def run(scenario):
        return asyncio.run(_with_store(request.param, clock, sqlite_url, scenario))

    return run


def test_insert_assigns_increasing_ids_and_server_time(run_with_store, clock):
    async def scenario(store):
        first = await store.insert(RawReport("id:1 temp:22.5", 868.1))
        clock.advance(seconds=5)
        second = await store.insert(RawReport("id:2", None))
        return first, second

    first, second = run_with_store(scenario)

    assert second.id > first.id
    assert first.received_at == datetime(2024, 3, 2, 10, 0, tzinfo=timezone.utc)
    assert second.received_at == datetime(2024, 3, 2, 10, 0, 5, tzinfo=timezone.utc)
    assert first.message == "id:1 temp:22.5"
    assert first.frequency == 868.1
    assert second.frequency is None


def test_query_is_newest_first_and_paginated(run_with_store):
    async def scenario(store):
        for n in range(5):
            await store.insert(RawReport(f"msg {n}", 868.1))
        return (
            await store.query(None, Pagination(skip=0, limit=2)),
            await store.query(None, Pagination(skip=4, limit=2)),
            await store.query(None, Pagination(skip=10, limit=2)),
        )

    (first, total1), (last, total2), (beyond, total3) = run_with_store(scenario)

    assert [p.message for p in first] == ["msg 4", "msg 3"]
    assert [p.message for p in last] == ["msg 0"]
    assert beyond == []
    assert total1 == total2 == total3 == 5


def test_text_filter_is_case_insensitive_substring(run_with_store):
    async def scenario(store):
        await store.insert(RawReport("Sensor-7 temp:20", 868.1))
        await store.insert(RawReport("sensor-8 temp:21", 868.1))
        await store.insert(RawReport("node SENSOR-7 rh:40", 868.3))
        await store.insert(RawReport("100% humid", 868.3))
        return (
            await store.query(TextFilter("sensor-7"), Pagination(0, 25)),
            await store.query(TextFilter("%"), Pagination(0, 25)),
        )

    (matches, total), (percent, percent_total) = run_with_store(scenario)

    assert [p.message for p in matches] == ["node SENSOR-7 rh:40", "Sensor-7 temp:20"]
    assert total == 2
    assert [p.message for p in percent] == ["100% humid"]
    assert percent_total == 1


def test_date_filter_selects_one_utc_day(run_with_store, clock):
    async def scenario(store):
        clock.now = datetime(2024, 3, 1, 23, 59, 59, tzinfo=timezone.utc)
        await store.insert(RawReport("day before", 868.1))
        clock.now = datetime(2024, 3, 2, 0, 0, tzinfo=timezone.utc)
        await store.insert(RawReport("midnight", 868.1))
        clock.now = datetime(2024, 3, 2, 23, 59, 59, 500000, tzinfo=timezone.utc)
        await store.insert(RawReport("last second", 868.1))
        clock.now = datetime(2024, 3, 3, 0, 0, tzinfo=timezone.utc)
        await store.insert(RawReport("next day", 868.1))
        return await store.query(DateRangeFilter(*day_bounds(date(2024, 3, 2))), Pagination(0, 25))

    packets, total = run_with_store(scenario)

    assert [p.message for p in packets] == ["last second", "midnight"]
    assert total == 2


def test_sql_failures_surface_as_store_errors():
    class BrokenSession:
        def add(self, obj):
            pass

        async def commit(self):
            raise OperationalError("INSERT", {}, Exception("database is locked"))

        async def execute(self, stmt):
            raise OperationalError("SELECT", {}, Exception("no such table"))

        async def __aenter__(self):
            return self

        async def __aexit__(self, *args):
            return False

    store = SqlPacketStore(BrokenSession)

    with pytest.raises(PacketStoreError):
        asyncio.run(store.insert(RawReport("x", None)))
    with pytest.raises(PacketStoreError):
        asyncio.run(store.query(None, Pagination(0, 25)))


def test_create_store_picks_backend():
    assert isinstance(create_store(Settings(store_backend="memory")), MemoryPacketStore)
    assert isinstance(create_store(Settings(), sessionmaker=object()), SqlPacketStore)
    with pytest.raises(ValueError):
        create_store(Settings(store_backend="sql"))


def test_refused_connections_surface_as_store_errors():
    def unreachable():
        raise ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 1)")

    store = SqlPacketStore(unreachable)

    with pytest.raises(PacketStoreError):
        asyncio.run(store.insert(RawReport("x", None)))
    with pytest.raises(PacketStoreError):
        asyncio.run(store.query(None, Pagination(0, 25)))
