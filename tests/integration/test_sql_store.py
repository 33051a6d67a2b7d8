"""
Integration tests for SQLLocationStore against real SQLite databases.
"""
import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import create_async_engine

from storage.base import StoreError
from storage.sql_store import SQLLocationStore, locations_table

pytestmark = pytest.mark.integration


def _utc_now_seconds() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


async def _insert_at(store: SQLLocationStore, source: str, created_at: datetime) -> None:
    async with store.engine.begin() as conn:
        await conn.execute(
            locations_table.insert().values(
                source=source, latitude=1.0, longitude=2.0, created_at=created_at
            )
        )


class TestInsert:

    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_timestamp(self, sql_store):
        before = _utc_now_seconds()

        record = await sql_store.insert(source="gps", latitude=37.7749, longitude=-122.4194)

        after = _utc_now_seconds()
        assert record.id >= 1
        assert record.source == "gps"
        assert record.latitude == 37.7749
        assert record.longitude == -122.4194
        assert before <= record.created_at <= after
        assert record.created_at.microsecond == 0

    @pytest.mark.asyncio
    async def test_ids_are_distinct_and_increasing(self, sql_store):
        ids = [
            (await sql_store.insert(source="gps", latitude=0.0, longitude=0.0)).id
            for _ in range(3)
        ]

        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    @pytest.mark.asyncio
    async def test_ids_are_never_reused(self, sql_store):
        first = await sql_store.insert(source="gps", latitude=0.0, longitude=0.0)
        async with sql_store.engine.begin() as conn:
            await conn.execute(delete(locations_table).where(locations_table.c.id == first.id))

        second = await sql_store.insert(source="gps", latitude=0.0, longitude=0.0)

        assert second.id > first.id

    @pytest.mark.asyncio
    async def test_concurrent_inserts_each_persist(self, sql_store):
        records = await asyncio.gather(*[
            sql_store.insert(source=f"device_{i}", latitude=float(i), longitude=float(-i))
            for i in range(10)
        ])

        assert len({r.id for r in records}) == 10
        stored = await sql_store.scan()
        assert {r.source for r in stored} == {f"device_{i}" for i in range(10)}


class TestScan:

    @pytest.mark.asyncio
    async def test_empty_table(self, sql_store):
        assert await sql_store.scan() == []

    @pytest.mark.asyncio
    async def test_scan_all_and_by_source(self, sql_store):
        await sql_store.insert(source="gps", latitude=1.0, longitude=1.0)
        await sql_store.insert(source="wifi", latitude=2.0, longitude=2.0)
        await sql_store.insert(source="gps", latitude=3.0, longitude=3.0)

        everything = await sql_store.scan()
        gps_only = await sql_store.scan(source="gps")

        assert len(everything) == 3
        assert sorted(r.latitude for r in gps_only) == [1.0, 3.0]
        assert await sql_store.scan(source="GPS") == []

    @pytest.mark.asyncio
    async def test_time_bounds_are_inclusive(self, sql_store):
        await _insert_at(sql_store, "a", datetime(2024, 1, 1, 0, 0, 0))
        await _insert_at(sql_store, "b", datetime(2024, 1, 1, 12, 0, 0))
        await _insert_at(sql_store, "c", datetime(2024, 1, 2, 0, 0, 0))

        inside = await sql_store.scan(
            from_=datetime(2024, 1, 1, 0, 0, 0), to=datetime(2024, 1, 1, 12, 0, 0)
        )
        after = await sql_store.scan(from_=datetime(2024, 1, 1, 12, 0, 0))
        before = await sql_store.scan(to=datetime(2024, 1, 1, 11, 59, 59))

        assert sorted(r.source for r in inside) == ["a", "b"]
        assert sorted(r.source for r in after) == ["b", "c"]
        assert [r.source for r in before] == ["a"]

    @pytest.mark.asyncio
    async def test_inverted_range_is_empty(self, sql_store):
        await _insert_at(sql_store, "a", datetime(2024, 1, 1, 6, 0, 0))

        result = await sql_store.scan(
            from_=datetime(2024, 1, 2, 0, 0, 0), to=datetime(2024, 1, 1, 0, 0, 0)
        )

        assert result == []

    @pytest.mark.asyncio
    async def test_created_at_is_its_own_bound(self, sql_store):
        record = await sql_store.insert(source="gps", latitude=1.0, longitude=2.0)

        result = await sql_store.scan(
            source="gps", from_=record.created_at, to=record.created_at
        )

        assert [r.id for r in result] == [record.id]

    @pytest.mark.asyncio
    async def test_all_predicates_combined(self, sql_store):
        await _insert_at(sql_store, "gps", datetime(2024, 3, 1, 8, 0, 0))
        await _insert_at(sql_store, "wifi", datetime(2024, 3, 1, 8, 0, 0))
        await _insert_at(sql_store, "gps", datetime(2024, 4, 1, 8, 0, 0))

        result = await sql_store.scan(
            source="gps",
            from_=datetime(2024, 3, 1, 0, 0, 0),
            to=datetime(2024, 3, 31, 23, 59, 59),
        )

        assert len(result) == 1
        assert result[0].created_at == datetime(2024, 3, 1, 8, 0, 0)


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_in_memory_database(self):
        store = await SQLLocationStore.connect("sqlite+aiosqlite://")
        try:
            await store.insert(source="gps", latitude=1.0, longitude=2.0)
            assert len(await store.scan()) == 1
            assert await store.health_check() is True
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_schema_creation_is_idempotent(self, sqlite_url):
        first = await SQLLocationStore.connect(sqlite_url)
        await first.insert(source="gps", latitude=1.0, longitude=2.0)
        await first.close()

        second = await SQLLocationStore.connect(sqlite_url)
        try:
            assert len(await second.scan()) == 1
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_connect_fails_for_missing_directory(self, tmp_path):
        url = f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'locations.db'}"

        with pytest.raises(StoreError) as exc_info:
            await SQLLocationStore.connect(url)

        assert exc_info.value.operation == "create_schema"

    @pytest.mark.asyncio
    async def test_unreachable_database_fails_operations(self, tmp_path):
        url = f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'locations.db'}"
        store = SQLLocationStore(create_async_engine(url))
        try:
            with pytest.raises(StoreError):
                await store.insert(source="gps", latitude=1.0, longitude=2.0)
            with pytest.raises(StoreError):
                await store.scan()
            assert await store.health_check() is False
        finally:
            await store.close()
