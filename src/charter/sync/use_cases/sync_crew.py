"""Sync Crew Use Case - Crew lists of every stored reservation.

The provider only hands out crew lists with a per-reservation security code.
Without one configured the sync is skipped (not failed), so unattended runs
keep working on installations that never use crew lists.
"""

import logging
from datetime import datetime, timezone

from ...api.exceptions import ErrorCollector, SyncError, TransportError, UpstreamError
from ..adapters.booking_mapper import ReservationFieldMapper
from ..domain.entities import SyncResult
from ..domain.normalizers import id_list
from ..domain.ports import ICharterAPI, IDocumentStore
from ..domain.records import Reservation
from .base import RecordUpserter, finish

logger = logging.getLogger(__name__)

DOMAIN = "crew"


class SyncCrewUseCase:
    """Synchronizes crew members keyed by (reservationId, id).

    Example:
        use_case = SyncCrewUseCase(api, store, security_code=config.crew_security_code)
        result = await use_case.execute()
        if result.skipped:
            print("No security code configured")
    """

    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        security_code: str | None = None,
        mapper: ReservationFieldMapper | None = None,
        max_concurrent_upserts: int = 1,
    ):
        self.api = api
        self.store = store
        self.security_code = security_code
        self.mapper = mapper or ReservationFieldMapper()
        self.upserter = RecordUpserter(store, max_concurrent=max_concurrent_upserts)

    async def execute(self) -> SyncResult:
        """Execute the crew sync.

        Returns:
            SyncResult; ``skipped`` is set when no security code is configured

        Raises:
            SyncError: The crew list could not be fetched for any reservation
        """
        started_at = datetime.now(timezone.utc)

        if not self.security_code:
            logger.info("No crew security code configured, skipping crew sync")
            return SyncResult.empty(DOMAIN, skipped=True)

        reservation_ids = id_list(await self.store.find(Reservation.COLLECTION, sort="id"))
        if not reservation_ids:
            logger.info("No reservations stored, nothing to fetch crew for")
            return SyncResult.empty(DOMAIN)

        logger.info(f"Starting crew sync for {len(reservation_ids)} reservations")
        result = SyncResult.empty(DOMAIN)
        fetch_errors = ErrorCollector()

        for reservation_id in reservation_ids:
            try:
                raw_crew = await self.api.fetch_crew_list(reservation_id, self.security_code)
            except (UpstreamError, TransportError) as e:
                logger.warning(f"Failed to fetch crew for reservation {reservation_id}: {e}")
                fetch_errors.add(e, context={"reservation_id": reservation_id})
                continue

            result.merge(
                await self.upserter.upsert_all(
                    DOMAIN,
                    raw_crew,
                    lambda raw, reservation_id=reservation_id: self.mapper.map_crew_member(raw, reservation_id),
                )
            )

        if fetch_errors.count() == len(reservation_ids):
            raise SyncError(
                f"Failed to fetch crew lists for all {len(reservation_ids)} reservations",
                domain=DOMAIN,
                cause=fetch_errors.get_errors()[0][0],
            )

        result.errors += fetch_errors.count()
        result.error_details.extend(fetch_errors.messages())
        result.success = result.success and not fetch_errors.has_errors()
        return finish(result, started_at)


__all__ = ["SyncCrewUseCase"]
