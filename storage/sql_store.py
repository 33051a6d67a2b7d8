"""
SQLAlchemy implementation of the location store.

Uses SQLAlchemy 2.0 Core on an async engine (``aiosqlite`` by default).
The ``locations`` table is created on connect if it does not exist yet.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    Table,
    Text,
    and_,
    func,
    insert,
    select,
    text,
    true,
)
from sqlalchemy.dialects import sqlite
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from locations.models import LocationRecord
from storage.base import LocationStore, StoreError

logger = logging.getLogger(__name__)

# SQLite keeps timestamps as text. CURRENT_TIMESTAMP writes
# "YYYY-MM-DD HH:MM:SS", so bound filter values must use the same form or
# the inclusive comparisons break at equality.
SQLITE_TIMESTAMP = sqlite.DATETIME(
    storage_format="%(year)04d-%(month)02d-%(day)02d %(hour)02d:%(minute)02d:%(second)02d",
    regexp=r"(\d+)-(\d+)-(\d+) (\d+):(\d+):(\d+)",
)

metadata = MetaData()

locations_table = Table(
    "locations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("source", Text, nullable=False),
    Column("latitude", Float, nullable=False),
    Column("longitude", Float, nullable=False),
    Column(
        "created_at",
        DateTime().with_variant(SQLITE_TIMESTAMP, "sqlite"),
        nullable=False,
        server_default=func.current_timestamp(),
    ),
    # ids are never reused, even after the highest row disappears
    sqlite_autoincrement=True,
)


def _is_in_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


class SQLLocationStore(LocationStore):
    """
    Location store backed by a single SQL table.

    Attributes:
        engine: The async engine; its pool is the only state shared between requests
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    async def connect(cls, database_url: str, **engine_kwargs: Any) -> "SQLLocationStore":
        """
        Open an engine for ``database_url`` and make sure the table exists.

        In-memory SQLite databases are private to a connection, so they are
        opened on a single shared connection.

        Args:
            database_url: SQLAlchemy async URL, e.g. ``sqlite+aiosqlite:///locations.db``
            **engine_kwargs: Passed through to ``create_async_engine``

        Raises:
            StoreError: If the table could not be created.
        """
        if _is_in_memory_sqlite(database_url):
            engine_kwargs.setdefault("poolclass", StaticPool)

        engine = create_async_engine(database_url, **engine_kwargs)
        store = cls(engine)
        try:
            await store.create_schema()
        except StoreError:
            await engine.dispose()
            raise

        logger.info(
            "Location store connected",
            extra={"extra_data": {"backend": engine.url.get_backend_name()}}
        )
        return store

    async def create_schema(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all, checkfirst=True)
        except (SQLAlchemyError, OSError) as e:
            raise StoreError("create_schema", str(e)) from e

    async def insert(self, source: str, latitude: float, longitude: float) -> LocationRecord:
        stmt = (
            insert(locations_table)
            .values(source=source, latitude=latitude, longitude=longitude)
            .returning(*locations_table.c)
        )
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
                row = result.mappings().one()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError("insert", str(e)) from e

        return LocationRecord(**row)

    async def scan(
        self,
        source: Optional[str] = None,
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
    ) -> List[LocationRecord]:
        conditions = []
        if source is not None:
            conditions.append(locations_table.c.source == source)
        if from_ is not None:
            conditions.append(locations_table.c.created_at >= from_)
        if to is not None:
            conditions.append(locations_table.c.created_at <= to)

        stmt = select(locations_table).where(and_(true(), *conditions))
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                rows = result.mappings().all()
        except (SQLAlchemyError, OSError) as e:
            raise StoreError("scan", str(e)) from e

        return [LocationRecord(**row) for row in rows]

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning(
                f"Location store health check failed: {e}",
                extra={"extra_data": {"error": str(e)}}
            )
            return False

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Location store closed")
