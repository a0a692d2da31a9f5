"""Sync Journeys Use Case - Options mapped to prospective journeys.

Options are reservations held but not yet confirmed. Each one becomes a
Journey record with its period and option expiry parsed from the provider's
date format, used for route-based yacht filtering.
"""

import logging
from datetime import datetime, timezone

from ..adapters.booking_mapper import ReservationFieldMapper
from ..domain.entities import SyncResult, SyncWindow
from ..domain.ports import ICharterAPI, IDocumentStore
from .base import RecordUpserter, finish

logger = logging.getLogger(__name__)

DOMAIN = "journeys"


class SyncJourneysUseCase:
    """Synchronizes journeys from the options endpoint.

    Example:
        result = await SyncJourneysUseCase(api, store).execute()
    """

    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        mapper: ReservationFieldMapper | None = None,
        max_concurrent_upserts: int = 1,
    ):
        self.api = api
        self.store = store
        self.mapper = mapper or ReservationFieldMapper()
        self.upserter = RecordUpserter(store, max_concurrent=max_concurrent_upserts)

    async def execute(self, window: SyncWindow | None = None) -> SyncResult:
        started_at = datetime.now(timezone.utc)
        window = window or SyncWindow.around()

        raw_options = await self.api.fetch_options(window.period_from, window.period_to)
        logger.info(f"Fetched {len(raw_options)} options")
        result = await self.upserter.upsert_all(DOMAIN, raw_options, self.mapper.map_journey)
        return finish(result, started_at)


__all__ = ["SyncJourneysUseCase"]
