"""Sync Contacts Use Case - Client contacts modified within the sync window."""

import logging
from datetime import datetime, timezone

from ..adapters.booking_mapper import ContactFieldMapper
from ..domain.entities import SyncResult, SyncWindow
from ..domain.ports import ICharterAPI, IDocumentStore
from .base import RecordUpserter, finish

logger = logging.getLogger(__name__)

DOMAIN = "contacts"


class SyncContactsUseCase:
    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        mapper: ContactFieldMapper | None = None,
        max_concurrent_upserts: int = 1,
    ):
        self.api = api
        self.store = store
        self.mapper = mapper or ContactFieldMapper()
        self.upserter = RecordUpserter(store, max_concurrent=max_concurrent_upserts)

    async def execute(self, window: SyncWindow | None = None) -> SyncResult:
        """Fetch and upsert contacts; fetch failures propagate."""
        started_at = datetime.now(timezone.utc)
        window = window or SyncWindow.around()

        raw_contacts = await self.api.fetch_contacts(window.period_from, window.period_to)
        logger.info(f"Fetched {len(raw_contacts)} contacts")
        result = await self.upserter.upsert_all(DOMAIN, raw_contacts, self.mapper.map_contact)
        return finish(result, started_at)


__all__ = ["SyncContactsUseCase"]
