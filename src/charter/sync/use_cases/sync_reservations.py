"""Sync Reservations Use Case - Reservations and yacht occupancy.

Workflow:
1. Fetch reservations for the sync window and upsert them by id
2. For every stored charter company, fetch the current year's occupancy
   and upsert it by (companyId, yachtId, periodFrom, periodTo)

Occupancy failures are per company: one company's error is logged and
counted, the others still sync.
"""

import logging
from datetime import date, datetime, timezone

from ...api.exceptions import ErrorCollector, TransportError, UpstreamError
from ..adapters.booking_mapper import ReservationFieldMapper
from ..domain.entities import SyncResult, SyncWindow
from ..domain.normalizers import id_list
from ..domain.ports import ICharterAPI, IDocumentStore
from ..domain.records import CharterCompany
from .base import RecordUpserter, finish

logger = logging.getLogger(__name__)

DOMAIN = "reservations"


class SyncReservationsUseCase:
    """Synchronizes reservations and per-company occupancy.

    Example:
        use_case = SyncReservationsUseCase(api, store)
        result = await use_case.execute(SyncWindow.around())
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

    async def execute(self, window: SyncWindow | None = None, include_occupancy: bool = True) -> SyncResult:
        """Execute the reservation sync.

        Args:
            window: Reservation period to query (default: one year either side of today)
            include_occupancy: Also sync the current year's occupancy

        Returns:
            SyncResult with ``reservations`` and ``occupancy`` counts

        Raises:
            UpstreamError / TransportError: Reservations could not be fetched
        """
        started_at = datetime.now(timezone.utc)
        window = window or SyncWindow.around()
        logger.info(f"Starting reservation sync for {window.period_from} to {window.period_to}")

        raw_reservations = await self.api.fetch_reservations(window.period_from, window.period_to)
        logger.info(f"Fetched {len(raw_reservations)} reservations")
        result = await self.upserter.upsert_all(DOMAIN, raw_reservations, self.mapper.map_reservation)

        if include_occupancy:
            result.merge(await self.sync_occupancy(date.today().year))

        return finish(result, started_at)

    async def sync_occupancy(self, year: int) -> SyncResult:
        """Fetch and upsert occupancy of every stored charter company for ``year``."""
        companies = await self.store.find(CharterCompany.COLLECTION, sort="id")
        company_ids = id_list(companies)
        result = SyncResult.empty(DOMAIN)
        fetch_errors = ErrorCollector()

        if not company_ids:
            logger.info("No charter companies stored, skipping occupancy sync")
            return result

        for company_id in company_ids:
            try:
                raw_entries = await self.api.fetch_occupancy(company_id, year)
            except (UpstreamError, TransportError) as e:
                logger.warning(f"Failed to fetch occupancy for company {company_id}: {e}")
                fetch_errors.add(e, context={"company_id": company_id})
                continue
            result.merge(await self.upserter.upsert_all(DOMAIN, raw_entries, self.mapper.map_occupancy))

        result.errors += fetch_errors.count()
        result.error_details.extend(fetch_errors.messages())
        result.success = result.success and not fetch_errors.has_errors()
        logger.info(
            f"Occupancy {year}: {result.upserted} entries for {len(company_ids)} companies, "
            f"{fetch_errors.count()} companies failed"
        )
        return result


__all__ = ["SyncReservationsUseCase"]
