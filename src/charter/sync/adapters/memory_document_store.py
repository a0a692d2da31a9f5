"""In-memory document store adapter.

Implements IDocumentStore with the same upsert/merge semantics as the
PostgreSQL store. Used by the CLI when no database is configured (the result
can be exported to a JSON file) and by the test suite.
"""

import copy
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..domain.ports import IDocumentStore
from .postgres_document_store import canonical_key, to_json

logger = logging.getLogger(__name__)


def _matches(document: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    for field, expected in (filter or {}).items():
        value = document.get(field)
        if isinstance(expected, (list, tuple, set)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


def _sort_key(value: Any) -> tuple:
    # Missing values sort first; mixed types are grouped by type name
    if value is None:
        return (0, "", "")
    return (1, type(value).__name__, value)


class InMemoryDocumentStore(IDocumentStore):
    """Dictionary-backed document store.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state by accident.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    async def upsert(self, collection: str, key: dict[str, Any], document: dict[str, Any]) -> bool:
        documents = self._collections.setdefault(collection, {})
        stored_key = canonical_key(key)
        incoming = copy.deepcopy(document)
        incoming["updatedAt"] = datetime.now(timezone.utc)

        existing = documents.get(stored_key)
        if existing is None:
            documents[stored_key] = incoming
            return True
        existing.update(incoming)
        return False

    async def find(
        self,
        collection: str,
        filter: dict[str, Any] | None = None,
        sort: str | None = None,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[dict[str, Any]]:
        documents = self._collections.get(collection, {})
        matched = [
            document
            for _, document in sorted(documents.items())
            if _matches(document, filter)
        ]
        if sort:
            field = sort.lstrip("-")
            matched.sort(key=lambda d: _sort_key(d.get(field)), reverse=sort.startswith("-"))
        matched = matched[skip:]
        if limit is not None:
            matched = matched[:limit]
        return copy.deepcopy(matched)

    async def find_one(self, collection: str, filter: dict[str, Any]) -> dict[str, Any] | None:
        documents = await self.find(collection, filter, limit=1)
        return documents[0] if documents else None

    async def count(self, collection: str, filter: dict[str, Any] | None = None) -> int:
        return sum(
            1
            for document in self._collections.get(collection, {}).values()
            if _matches(document, filter)
        )

    async def aggregate_count(
        self,
        collection: str,
        group_by: str,
        filter: dict[str, Any] | None = None,
    ) -> dict[Any, int]:
        counts = Counter(
            document.get(group_by)
            for document in self._collections.get(collection, {}).values()
            if _matches(document, filter)
        )
        return dict(counts.most_common())

    async def collection_counts(self) -> dict[str, int]:
        return {name: len(documents) for name, documents in sorted(self._collections.items())}

    def export_json(self, path: str | Path) -> int:
        """Write every collection to one JSON file.

        Returns:
            Number of documents written
        """
        exported = {
            name: list(documents.values())
            for name, documents in sorted(self._collections.items())
        }
        Path(path).write_text(to_json(exported))
        total = sum(len(documents) for documents in exported.values())
        logger.info(f"Exported {total} documents in {len(exported)} collections to {path}")
        return total


__all__ = ["InMemoryDocumentStore"]
