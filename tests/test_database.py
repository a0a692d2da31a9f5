#!/usr/bin/env python3
"""Tests for the database helpers and the PostgreSQL document store.

Tests cover:
    - Driver error conversion
    - Connection acquisition and release
    - Shared pool configuration
    - Document store round trips against a real database (integration)

BEST PRACTICES FOR TEST ISOLATION:
    1. Integration data is written to a collection named 'test-<uuid>'
    2. The collection is deleted after each test
    3. DATABASE_URL loaded from .env for local dev
    4. CI/CD should set DATABASE_URL explicitly or skip the integration tests
"""
import asyncio
import os
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv

from src.charter.api import database
from src.charter.api.database import (
    check_database_health,
    convert_db_exception,
    database_connection,
    get_shared_pool,
)
from src.charter.api.exceptions import (
    ConfigurationError,
    ConnectionPoolError,
    PersistenceError,
)
from src.charter.sync.adapters.postgres_document_store import PostgresDocumentStore

# Load environment variables from .env file (for local development)
load_dotenv()

# Check if asyncpg is available
try:
    import asyncpg
    ASYNCPG_AVAILABLE = True
except ImportError:
    ASYNCPG_AVAILABLE = False

requires_database = pytest.mark.skipif(
    not ASYNCPG_AVAILABLE or not os.getenv("DATABASE_URL"),
    reason="asyncpg not installed or DATABASE_URL not set"
)


def make_pool(conn=None):
    pool = MagicMock()
    pool.acquire = AsyncMock(return_value=conn or AsyncMock())
    pool.release = AsyncMock()
    return pool


# ============================================
# Error Conversion Tests
# ============================================

class TestConvertDbException:
    """Driver errors become PersistenceError subtypes."""

    def test_timeout(self):
        error = convert_db_exception(Exception("canceling statement due to statement timeout"), collection="yachts")

        assert type(error) is PersistenceError
        assert error.code == "DATABASE_TIMEOUT"
        assert error.collection == "yachts"

    def test_connection_closed(self):
        error = convert_db_exception(Exception("connection was closed in the middle of operation"))

        assert isinstance(error, ConnectionPoolError)

    def test_other_errors_keep_their_cause(self):
        cause = ValueError("invalid input syntax for type json")

        error = convert_db_exception(cause, collection="yachts", key={"id": 7})

        assert error.code == "DATABASE_ERROR"
        assert error.key == {"id": 7}
        assert error.__cause__ is cause

    def test_persistence_errors_pass_through(self):
        original = PersistenceError("already converted")

        assert convert_db_exception(original) is original


# ============================================
# Connection Tests
# ============================================

class TestDatabaseConnection:
    @pytest.mark.asyncio
    async def test_connection_is_released(self):
        conn = AsyncMock()
        pool = make_pool(conn)

        async with database_connection(pool) as acquired:
            assert acquired is conn

        pool.release.assert_awaited_once_with(conn)

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        pool = make_pool()

        with pytest.raises(RuntimeError):
            async with database_connection(pool):
                raise RuntimeError("query failed")

        pool.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_pool(self):
        with pytest.raises(ConnectionPoolError):
            async with database_connection(None):
                pass

    @pytest.mark.asyncio
    async def test_acquire_timeout(self):
        async def never():
            await asyncio.sleep(10)

        pool = MagicMock()
        pool.acquire = never
        pool.release = AsyncMock()

        with pytest.raises(ConnectionPoolError) as exc_info:
            async with database_connection(pool, acquire_timeout=0.01):
                pass

        assert "Timeout" in exc_info.value.message
        pool.release.assert_not_awaited()


class TestSharedPool:
    @pytest.mark.asyncio
    async def test_missing_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setattr(database, "_shared_pool", None)

        with pytest.raises(ConfigurationError) as exc_info:
            await get_shared_pool()

        assert exc_info.value.details["missing_keys"] == ["DATABASE_URL"]

    @pytest.mark.asyncio
    async def test_pool_is_created_once(self, monkeypatch):
        monkeypatch.setattr(database, "_shared_pool", None)
        pool = MagicMock()

        with patch.object(database, "create_pool", AsyncMock(return_value=pool)) as create:
            first = await get_shared_pool("postgresql://localhost/charter")
            second = await get_shared_pool("postgresql://localhost/charter")

        assert first is second is pool
        create.assert_awaited_once()


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_healthy(self):
        conn = AsyncMock()
        conn.fetchval.return_value = 1
        pool = make_pool(conn)
        pool.get_size.return_value = 5
        pool.get_idle_size.return_value = 3

        health = await check_database_health(pool)

        assert health == {"healthy": True, "pool_size": 5, "pool_free": 3, "pool_used": 2}

    @pytest.mark.asyncio
    async def test_not_initialized(self):
        assert (await check_database_health(None))["healthy"] is False


# ============================================
# Integration Tests
# ============================================

@pytest_asyncio.fixture
async def db_pool():
    """Create a database connection pool for testing."""
    pool = await asyncpg.create_pool(os.getenv("DATABASE_URL"), min_size=1, max_size=5)
    yield pool
    await pool.close()


@pytest_asyncio.fixture
async def document_store(db_pool):
    """Document store writing to a throwaway collection."""
    store = PostgresDocumentStore(db_pool)
    await store.ensure_schema()
    collection = f"test-{uuid4()}"
    yield store, collection
    async with db_pool.acquire() as conn:
        await conn.execute("DELETE FROM documents WHERE collection = $1", collection)


@requires_database
class TestPostgresDocumentStore:
    """Upsert and query semantics against PostgreSQL."""

    @pytest.mark.asyncio
    async def test_upsert_reports_insert_then_update(self, document_store):
        store, collection = document_store

        assert await store.upsert(collection, {"id": 1}, {"id": 1, "name": "Sea Breeze"}) is True
        assert await store.upsert(collection, {"id": 1}, {"id": 1, "beam": 4.2}) is False

        stored = await store.find_one(collection, {"id": 1})
        assert stored["name"] == "Sea Breeze"
        assert stored["beam"] == 4.2
        assert "updatedAt" in stored

    @pytest.mark.asyncio
    async def test_composite_keys(self, document_store):
        store, collection = document_store
        await store.upsert(collection, {"reservationId": 500, "id": 1}, {"reservationId": 500, "id": 1})
        await store.upsert(collection, {"id": 1, "reservationId": 501}, {"reservationId": 501, "id": 1})
        await store.upsert(collection, {"id": 1, "reservationId": 500}, {"reservationId": 500, "id": 1})

        assert await store.count(collection) == 2

    @pytest.mark.asyncio
    async def test_filters_sort_and_paging(self, document_store):
        store, collection = document_store
        for record_id, company in ((1, 7), (2, 8), (3, 7), (4, 9)):
            await store.upsert(collection, {"id": record_id}, {"id": record_id, "companyId": company})

        assert [d["id"] for d in await store.find(collection, {"companyId": 7})] == [1, 3]
        assert [d["id"] for d in await store.find(collection, {"companyId": [8, 9]})] == [2, 4]
        assert await store.find(collection, {"companyId": []}) == []
        assert [d["id"] for d in await store.find(collection, sort="-id", limit=2)] == [4, 3]
        assert [d["id"] for d in await store.find(collection, sort="id", skip=3)] == [4]
        assert await store.aggregate_count(collection, "companyId") == {7: 2, 8: 1, 9: 1}

    @pytest.mark.asyncio
    async def test_datetimes_are_stored_as_iso_text(self, document_store):
        store, collection = document_store
        await store.upsert(collection, {"id": 1}, {"id": 1, "periodFrom": datetime(2024, 6, 1)})

        stored = await store.find_one(collection, {"id": 1})

        assert stored["periodFrom"] == "2024-06-01T00:00:00"
