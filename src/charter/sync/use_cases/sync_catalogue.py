"""Sync Catalogue Use Case - Reference data every other domain points at.

Workflow:
1. Fetch the eight reference collections concurrently (via ICharterAPI)
2. Map each entry to its catalogue record
3. Upsert every collection that was fetched, in a fixed order
4. Raise if any collection could not be fetched

Fetches are independent reads, so they are issued together. Writes stay
sequential per collection. A collection that fails to fetch does not stop
the others from being written, but the domain as a whole still fails so
the orchestrator can stop before dependent domains run.
"""

import logging
from datetime import datetime, timezone

from ...api.exceptions import PartialSyncError, SyncError
from ...api.resilience import run_concurrent_tasks
from ..adapters.field_mapper import CatalogueFieldMapper
from ..domain.entities import SyncResult
from ..domain.ports import ICharterAPI, IDocumentStore
from .base import RecordUpserter, finish

logger = logging.getLogger(__name__)

DOMAIN = "catalogue"

# Referenced collections before the ones that reference them
CATALOGUE_ORDER = (
    "countries",
    "regions",
    "locations",
    "bases",
    "equipment",
    "yacht_categories",
    "services",
    "yacht_builders",
)


class SyncCatalogueUseCase:
    """Synchronizes countries, regions, locations, bases, equipment,
    yacht categories, services and yacht builders.

    Example:
        use_case = SyncCatalogueUseCase(
            api=NausysCharterAPI(client),
            store=PostgresDocumentStore(pool),
        )
        result = await use_case.execute()
    """

    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        mapper: CatalogueFieldMapper | None = None,
        max_concurrent_fetches: int = 4,
        max_concurrent_upserts: int = 1,
    ):
        self.api = api
        self.store = store
        self.mapper = mapper or CatalogueFieldMapper()
        self.max_concurrent_fetches = max_concurrent_fetches
        self.upserter = RecordUpserter(store, max_concurrent=max_concurrent_upserts)

    def _fetchers(self) -> dict:
        return {
            "countries": self.api.fetch_countries,
            "regions": self.api.fetch_regions,
            "locations": self.api.fetch_locations,
            "bases": self.api.fetch_bases,
            "equipment": self.api.fetch_equipment,
            "yacht_categories": self.api.fetch_yacht_categories,
            "services": self.api.fetch_services,
            "yacht_builders": self.api.fetch_yacht_builders,
        }

    async def execute(self) -> SyncResult:
        """Execute the catalogue sync.

        Returns:
            SyncResult with per-collection upsert counts

        Raises:
            SyncError: Every collection failed to fetch
            PartialSyncError: Some collections failed to fetch (the others
                were still written)
        """
        started_at = datetime.now(timezone.utc)
        logger.info(f"Starting catalogue sync at {started_at.isoformat()}")

        fetched = await run_concurrent_tasks(
            self._fetchers(),
            max_concurrent=self.max_concurrent_fetches,
        )

        result = SyncResult.empty(DOMAIN)
        failed: dict[str, Exception] = {}

        for name in CATALOGUE_ORDER:
            raw_items = fetched[name]
            if isinstance(raw_items, Exception):
                logger.error(f"Failed to fetch {name}: {raw_items}")
                failed[name] = raw_items
                continue

            logger.info(f"Fetched {len(raw_items)} {name}")
            collection_result = await self.upserter.upsert_all(
                DOMAIN,
                raw_items,
                lambda raw, name=name: self.mapper.map_to_record(name, raw),
            )
            collection_result.collections.setdefault(name, collection_result.upserted)
            result.merge(collection_result)

        finish(result, started_at)

        if failed:
            succeeded = len(CATALOGUE_ORDER) - len(failed)
            first_error = next(iter(failed.values()))
            if not succeeded:
                raise SyncError(
                    f"Catalogue sync failed for every collection: {first_error}",
                    domain=DOMAIN,
                    cause=first_error,
                )
            raise PartialSyncError(
                f"Catalogue sync failed for {', '.join(failed)}",
                succeeded=succeeded,
                failed=len(failed),
                errors=list(failed.values()),
                domain=DOMAIN,
            )

        return result


__all__ = ["CATALOGUE_ORDER", "SyncCatalogueUseCase"]
