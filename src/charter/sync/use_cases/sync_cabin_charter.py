"""Sync Cabin Charter Use Case - Cabin charter bases and companies.

Both come from the charter base and charter company catalogues and are
stored with the cabin charter schema (company contact details and bank
accounts) in their own collections.
"""

import logging
from datetime import datetime, timezone

from ..adapters.cabin_mapper import CabinCharterFieldMapper
from ..domain.entities import SyncResult
from ..domain.ports import ICharterAPI, IDocumentStore
from .base import RecordUpserter, finish

logger = logging.getLogger(__name__)

DOMAIN = "cabin_charter"


class SyncCabinCharterUseCase:
    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        mapper: CabinCharterFieldMapper | None = None,
        max_concurrent_upserts: int = 1,
    ):
        self.api = api
        self.store = store
        self.mapper = mapper or CabinCharterFieldMapper()
        self.upserter = RecordUpserter(store, max_concurrent=max_concurrent_upserts)

    async def execute(self) -> SyncResult:
        """Fetch and upsert cabin charter bases, then companies.

        Raises:
            UpstreamError / TransportError: Either catalogue could not be fetched
        """
        started_at = datetime.now(timezone.utc)

        raw_bases = await self.api.fetch_cabin_charter_bases()
        logger.info(f"Fetched {len(raw_bases)} cabin charter bases")
        result = await self.upserter.upsert_all(DOMAIN, raw_bases, self.mapper.map_base)

        raw_companies = await self.api.fetch_cabin_charter_companies()
        logger.info(f"Fetched {len(raw_companies)} cabin charter companies")
        result.merge(await self.upserter.upsert_all(DOMAIN, raw_companies, self.mapper.map_company))

        return finish(result, started_at)


__all__ = ["SyncCabinCharterUseCase"]
