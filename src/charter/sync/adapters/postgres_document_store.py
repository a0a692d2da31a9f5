"""PostgreSQL document store adapter.

This adapter implements IDocumentStore on a single JSONB table. Every
synchronized record is one row keyed by ``(collection, key)``, where ``key``
is the canonical JSON rendering of the record's natural key fields.

Upserts merge the incoming document into the stored one with the JSONB
``||`` operator, so top-level fields that the incoming document omits keep
their stored value. Each upsert is one statement and atomic on its own.
"""

import json
import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from ...api.database import convert_db_exception, database_connection
from ...api.exceptions import PersistenceError
from ..domain.ports import IDocumentStore

if TYPE_CHECKING:
    import asyncpg

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    collection  TEXT        NOT NULL,
    key         TEXT        NOT NULL,
    doc         JSONB       NOT NULL,
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (collection, key)
);
CREATE INDEX IF NOT EXISTS idx_documents_doc ON documents USING GIN (doc jsonb_path_ops);
"""


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def canonical_key(key: dict[str, Any]) -> str:
    """Stable text form of a natural key (field order does not matter)."""
    return json.dumps(key, sort_keys=True, default=_json_default)


def to_json(document: dict[str, Any]) -> str:
    return json.dumps(document, default=_json_default)


class PostgresDocumentStore(IDocumentStore):
    """PostgreSQL implementation of IDocumentStore.

    Provides:
    - UPSERT (INSERT ON CONFLICT) with JSONB merge
    - Equality filters via JSONB containment (``@>``), served by a GIN index
    - Grouped counts for statistics
    """

    def __init__(self, pool: "asyncpg.Pool"):
        """Initialize the store.

        Args:
            pool: asyncpg connection pool (usually the shared pool)
        """
        self.pool = pool

    async def ensure_schema(self) -> None:
        """Create the documents table and index if they do not exist."""
        async with database_connection(self.pool) as conn:
            await conn.execute(SCHEMA_SQL)
        logger.info("Document store schema ready")

    async def upsert(self, collection: str, key: dict[str, Any], document: dict[str, Any]) -> bool:
        payload = {**document, "updatedAt": datetime.now().astimezone().isoformat()}
        try:
            async with database_connection(self.pool) as conn:
                inserted = await conn.fetchval(
                    """
                    INSERT INTO documents (collection, key, doc, updated_at)
                    VALUES ($1, $2, $3::jsonb, NOW())
                    ON CONFLICT (collection, key) DO UPDATE SET
                        doc = documents.doc || EXCLUDED.doc,
                        updated_at = NOW()
                    RETURNING (xmax = 0)
                    """,
                    collection,
                    canonical_key(key),
                    to_json(payload),
                )
        except PersistenceError:
            raise
        except Exception as e:
            raise convert_db_exception(e, collection=collection, key=key) from e
        return bool(inserted)

    @staticmethod
    def _where(collection: str, filter: dict[str, Any] | None) -> tuple[str, list[Any]]:
        """Build the WHERE clause for an equality filter.

        Scalar values are merged into one containment document. A list value
        becomes an OR of containments, one per accepted value.
        """
        clauses = ["collection = $1"]
        args: list[Any] = [collection]
        scalars: dict[str, Any] = {}

        for field, value in (filter or {}).items():
            if isinstance(value, (list, tuple, set)):
                if not value:
                    clauses.append("FALSE")
                    continue
                options = []
                for option in value:
                    args.append(to_json({field: option}))
                    options.append(f"doc @> ${len(args)}::jsonb")
                clauses.append(f"({' OR '.join(options)})")
            else:
                scalars[field] = value

        if scalars:
            args.append(to_json(scalars))
            clauses.append(f"doc @> ${len(args)}::jsonb")

        return " AND ".join(clauses), args

    async def find(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        sort: str | None = None,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[dict[str, Any]]:
        where, args = self._where(collection, filter)
        query = f"SELECT doc FROM documents WHERE {where}"

        if sort:
            descending = sort.startswith("-")
            args.append(sort.lstrip("-"))
            query += f" ORDER BY doc -> ${len(args)}::text {'DESC' if descending else 'ASC'}, key"
        else:
            query += " ORDER BY key"
        if limit is not None:
            args.append(limit)
            query += f" LIMIT ${len(args)}"
        if skip:
            args.append(skip)
            query += f" OFFSET ${len(args)}"

        try:
            async with database_connection(self.pool) as conn:
                rows = await conn.fetch(query, *args)
        except PersistenceError:
            raise
        except Exception as e:
            raise convert_db_exception(e, collection=collection) from e
        return [self._decode(row["doc"]) for row in rows]

    async def find_one(self, collection: str, filter: dict[str, Any]) -> dict[str, Any] | None:
        documents = await self.find(collection, filter, limit=1)
        return documents[0] if documents else None

    async def count(self, collection: str, filter: dict[str, Any] | None = None) -> int:
        where, args = self._where(collection, filter)
        try:
            async with database_connection(self.pool) as conn:
                return await conn.fetchval(f"SELECT COUNT(*) FROM documents WHERE {where}", *args)
        except PersistenceError:
            raise
        except Exception as e:
            raise convert_db_exception(e, collection=collection) from e

    async def aggregate_count(
        self,
        collection: str,
        group_by: str,
        filter: dict[str, Any] | None = None,
    ) -> dict[Any, int]:
        where, args = self._where(collection, filter)
        args.append(group_by)
        query = (
            f"SELECT doc -> ${len(args)}::text AS value, COUNT(*) AS count "
            f"FROM documents WHERE {where} GROUP BY 1 ORDER BY 2 DESC"
        )
        try:
            async with database_connection(self.pool) as conn:
                rows = await conn.fetch(query, *args)
        except PersistenceError:
            raise
        except Exception as e:
            raise convert_db_exception(e, collection=collection) from e
        return {self._decode(row["value"]): row["count"] for row in rows}

    async def collection_counts(self) -> dict[str, int]:
        """Number of stored documents per collection."""
        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                "SELECT collection, COUNT(*) AS count FROM documents GROUP BY collection ORDER BY collection"
            )
        return {row["collection"]: row["count"] for row in rows}

    @staticmethod
    def _decode(value: Any) -> Any:
        # asyncpg returns jsonb as text unless a codec is registered
        if isinstance(value, str):
            return json.loads(value)
        return value


__all__ = [
    "SCHEMA_SQL",
    "canonical_key",
    "PostgresDocumentStore",
]
