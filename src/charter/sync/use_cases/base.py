"""Shared upsert loop for every domain synchronizer.

Every synchronizer has the same shape: fetch -> normalize -> upsert by
external key. This module holds the second and third steps so each domain
only decides what to fetch and which mapper to use.

Per-record failure policy:
    - NormalizationError (no usable external id): record skipped and logged
    - ValidationError (schema invariant broken): record skipped and logged
    - PersistenceError (store write failed): logged with the record key
None of them abort the loop. Anything else is a bug and propagates.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from pydantic import ValidationError

from ...api.exceptions import ErrorCollector, NormalizationError, PersistenceError
from ...api.resilience import process_concurrent
from ..domain.entities import SyncResult
from ..domain.ports import IDocumentStore
from ..domain.records import Record

logger = logging.getLogger(__name__)

Mapper = Callable[[dict[str, Any]], Record]


def describe(raw: Any) -> Any:
    """Best identifier of a raw provider entry for log messages."""
    if isinstance(raw, dict):
        for field in ("id", "packageId", "yachtId"):
            if raw.get(field) is not None:
                return raw[field]
    return "unknown"


class RecordUpserter:
    """Normalizes raw provider entries and upserts them one by one.

    Upserts run in the iteration order of the fetched collection. With
    ``max_concurrent`` above 1 they are spread over that many slots; duplicate
    keys are collapsed to their last occurrence first, so "last write wins"
    holds either way.

    Example:
        upserter = RecordUpserter(store)
        result = await upserter.upsert_all(
            "catalogue", raw_countries, mapper.map_country,
        )
    """

    def __init__(self, store: IDocumentStore, max_concurrent: int = 1):
        self.store = store
        self.max_concurrent = max_concurrent

    def normalize(
        self,
        domain: str,
        raw_items: Iterable[dict[str, Any]],
        mapper: Mapper,
        errors: ErrorCollector,
    ) -> list[Record]:
        """Map every raw entry, collecting the ones that cannot be stored."""
        records = []
        for raw in raw_items:
            try:
                records.append(mapper(raw))
            except NormalizationError as e:
                logger.warning(f"Skipping {domain} record without usable id ({describe(raw)}): {e}")
                errors.add(e, context={"domain": domain, "id": describe(raw)})
            except ValidationError as e:
                logger.warning(f"Skipping invalid {domain} record {describe(raw)}: {e.error_count()} error(s)")
                errors.add(e, context={"domain": domain, "id": describe(raw)})
        return records

    async def upsert_records(
        self,
        domain: str,
        records: list[Record],
        errors: ErrorCollector,
    ) -> int:
        """Upsert validated records; returns how many were written."""
        if not records:
            return 0

        last_index = {}
        for index, record in enumerate(records):
            last_index[self._key_text(record)] = index
        unique = [record for index, record in enumerate(records) if last_index[self._key_text(record)] == index]
        if len(unique) < len(records):
            logger.debug(f"Collapsed {len(records) - len(unique)} duplicate {domain} records")

        async def write(record: Record) -> bool:
            key = record.store_key()
            try:
                await self.store.upsert(record.COLLECTION, key, record.to_document())
                return True
            except PersistenceError as e:
                logger.warning(f"Failed to upsert {record.COLLECTION} {key}: {e}")
                errors.add(e, context={"collection": record.COLLECTION, "key": key})
                return False

        written = await process_concurrent(unique, write, max_concurrent=self.max_concurrent)
        return sum(1 for ok in written if ok)

    async def upsert_all(
        self,
        domain: str,
        raw_items: list[dict[str, Any]],
        mapper: Mapper,
    ) -> SyncResult:
        """Normalize and upsert one fetched collection.

        Args:
            domain: Domain name used in logs and the result
            raw_items: Raw provider entries
            mapper: Callable turning one entry into a record

        Returns:
            SyncResult with per-record error details
        """
        started_at = datetime.now(timezone.utc)
        errors = ErrorCollector()

        records = self.normalize(domain, raw_items, mapper, errors)
        upserted = await self.upsert_records(domain, records, errors)

        result = SyncResult(
            domain=domain,
            success=not errors.has_errors(),
            total=len(raw_items),
            upserted=upserted,
            errors=errors.count(),
            synced_at=started_at,
            error_details=errors.messages(),
        )
        if records:
            result.collections[records[0].COLLECTION] = upserted
        return result

    @staticmethod
    def _key_text(record: Record) -> str:
        key = record.store_key()
        return repr(sorted(key.items()))


def finish(result: SyncResult, started_at: datetime) -> SyncResult:
    """Log the outcome of a synchronizer run and return its result."""
    duration = (datetime.now(timezone.utc) - started_at).total_seconds()
    logger.info(
        f"{result.domain} sync completed in {duration:.2f}s: "
        f"{result.upserted}/{result.total} upserted, {result.errors} errors"
    )
    return result


__all__ = [
    "Mapper",
    "RecordUpserter",
    "describe",
    "finish",
]
