"""Sync Yacht Details Use Case - Equipment, services, pricing and ratings.

For every locally stored yacht the four detail endpoints are read
concurrently (they are independent), then each detail collection is
upserted sequentially, keyed by (yachtId, id).

Failures are isolated per yacht and per detail kind. The domain fails only
when every single detail fetch failed.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from ...api.exceptions import ErrorCollector, SyncError
from ...api.resilience import run_concurrent_tasks
from ..adapters.cabin_mapper import YachtDetailFieldMapper
from ..domain.entities import SyncResult
from ..domain.normalizers import id_list
from ..domain.ports import ICharterAPI, IDocumentStore
from ..domain.records import Yacht
from .base import RecordUpserter, finish

logger = logging.getLogger(__name__)

DOMAIN = "yacht_details"

DETAIL_KINDS = ("equipment", "services", "pricing", "ratings")


class SyncYachtDetailsUseCase:
    """Synchronizes the per-yacht detail collections.

    Example:
        use_case = SyncYachtDetailsUseCase(api, store, max_concurrent_fetches=4)
        result = await use_case.execute()
        print(result.collections)
        # {"yacht_equipment": 120, "yacht_services": 40, ...}
    """

    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        mapper: YachtDetailFieldMapper | None = None,
        kinds: tuple[str, ...] = DETAIL_KINDS,
        max_concurrent_fetches: int = 4,
        max_concurrent_upserts: int = 1,
    ):
        unknown = set(kinds) - set(DETAIL_KINDS)
        if unknown:
            raise ValueError(f"Unknown yacht detail kinds: {sorted(unknown)}")
        self.api = api
        self.store = store
        self.mapper = mapper or YachtDetailFieldMapper()
        self.kinds = kinds
        self.max_concurrent_fetches = max_concurrent_fetches
        self.upserter = RecordUpserter(store, max_concurrent=max_concurrent_upserts)

    def _fetchers(self, yacht_id: int) -> dict[str, Callable]:
        fetchers = {
            "equipment": lambda: self.api.fetch_yacht_equipment(yacht_id),
            "services": lambda: self.api.fetch_yacht_services(yacht_id),
            "pricing": lambda: self.api.fetch_yacht_pricing(yacht_id),
            "ratings": lambda: self.api.fetch_yacht_ratings(yacht_id),
        }
        return {kind: fetchers[kind] for kind in self.kinds}

    def _mapper(self, kind: str) -> Callable[[dict[str, Any], int], Any]:
        return {
            "equipment": self.mapper.map_equipment,
            "services": self.mapper.map_service,
            "pricing": self.mapper.map_pricing,
            "ratings": self.mapper.map_rating,
        }[kind]

    async def execute(self) -> SyncResult:
        """Execute the yacht detail sync over every stored yacht.

        Raises:
            SyncError: Every detail fetch failed
        """
        started_at = datetime.now(timezone.utc)
        yacht_ids = id_list(await self.store.find(Yacht.COLLECTION, sort="id"))
        result = SyncResult.empty(DOMAIN)

        if not yacht_ids:
            logger.info("No yachts stored, skipping yacht detail sync")
            return result

        logger.info(f"Starting yacht detail sync ({', '.join(self.kinds)}) for {len(yacht_ids)} yachts")
        fetch_errors = ErrorCollector()
        attempted = 0

        for yacht_id in yacht_ids:
            fetched = await run_concurrent_tasks(
                self._fetchers(yacht_id),
                max_concurrent=self.max_concurrent_fetches,
            )
            for kind in self.kinds:
                attempted += 1
                raw_items = fetched[kind]
                if isinstance(raw_items, Exception):
                    logger.warning(f"Failed to fetch {kind} for yacht {yacht_id}: {raw_items}")
                    fetch_errors.add(raw_items, context={"yacht_id": yacht_id, "kind": kind})
                    continue
                map_fn = self._mapper(kind)
                result.merge(
                    await self.upserter.upsert_all(
                        DOMAIN,
                        raw_items,
                        lambda raw, map_fn=map_fn, yacht_id=yacht_id: map_fn(raw, yacht_id),
                    )
                )

        if fetch_errors.count() == attempted:
            raise SyncError(
                f"Failed to fetch details for all {len(yacht_ids)} yachts",
                domain=DOMAIN,
                cause=fetch_errors.get_errors()[0][0],
            )

        result.errors += fetch_errors.count()
        result.error_details.extend(fetch_errors.messages())
        result.success = result.success and not fetch_errors.has_errors()
        return finish(result, started_at)


__all__ = ["DETAIL_KINDS", "SyncYachtDetailsUseCase"]
