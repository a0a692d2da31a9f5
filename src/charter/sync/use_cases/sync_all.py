"""Sync All Use Case - Every domain synchronizer in dependency order.

Order:
    catalogue -> yachts (incl. model specs) -> reservations -> crew ->
    invoices -> contacts -> journeys -> cabin charter -> yacht details ->
    free cabins

Each step is isolated: an exception is logged with the domain name and
recorded as a domain failure, and the next step runs. The two prerequisite
domains (catalogue and contacts) are the exception: their failure stops the
run, because every later step assumes the data they provide.

The result is a SyncReport, never an exception, so unattended callers get a
summary instead of a stack trace. Pass ``propagate_prerequisites=True`` to
re-raise a prerequisite failure instead.
"""

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable

from ...api.exceptions import AuthenticationError, TransportError
from ..config import SyncConfig
from ..domain.entities import DomainFailure, SyncReport, SyncResult, SyncWindow
from ..domain.ports import ICharterAPI, IDocumentStore
from .apply_model_specs import ApplyModelSpecsUseCase
from .free_cabin import SyncFreeCabinsUseCase
from .sync_cabin_charter import SyncCabinCharterUseCase
from .sync_catalogue import SyncCatalogueUseCase
from .sync_contacts import SyncContactsUseCase
from .sync_crew import SyncCrewUseCase
from .sync_invoices import SyncInvoicesUseCase
from .sync_journeys import SyncJourneysUseCase
from .sync_reservations import SyncReservationsUseCase
from .sync_yacht_details import SyncYachtDetailsUseCase
from .sync_yachts import SyncYachtsUseCase

logger = logging.getLogger(__name__)

# Every selectable step, in dependency order
SYNC_ORDER = (
    "catalogue",
    "yachts",
    "model_specs",
    "reservations",
    "crew",
    "invoices",
    "contacts",
    "journeys",
    "cabin_charter",
    "yacht_details",
    "free_cabins",
)

# The yacht step already ends with the model-spec pass
DEFAULT_DOMAINS = tuple(domain for domain in SYNC_ORDER if domain != "model_specs")

PREREQUISITE_DOMAINS = frozenset({"catalogue", "contacts"})

Step = Callable[[], Awaitable[SyncResult]]


class SyncAllUseCase:
    """Runs the domain synchronizers in dependency order with failure isolation.

    Example:
        use_case = SyncAllUseCase(
            api=NausysCharterAPI(client),
            store=PostgresDocumentStore(pool),
            config=SyncConfig(),
        )
        report = await use_case.execute()
        print(report.summary())  # "completed with 0 domain failures"
    """

    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        config: SyncConfig | None = None,
        window: SyncWindow | None = None,
    ):
        self.api = api
        self.store = store
        self.config = config or SyncConfig()
        self.window = window

    def build_steps(self) -> dict[str, Step]:
        """Bind every domain step to this run's dependencies."""
        config = self.config
        upserts = config.max_concurrent_upserts
        window = self.window or SyncWindow.around()
        api, store = self.api, self.store

        return {
            "catalogue": SyncCatalogueUseCase(
                api, store,
                max_concurrent_fetches=config.max_concurrent_fetches,
                max_concurrent_upserts=upserts,
            ).execute,
            "yachts": SyncYachtsUseCase(api, store, max_concurrent_upserts=upserts).execute,
            "model_specs": ApplyModelSpecsUseCase(store).execute,
            "reservations": lambda: SyncReservationsUseCase(
                api, store, max_concurrent_upserts=upserts
            ).execute(window),
            "crew": SyncCrewUseCase(
                api, store,
                security_code=config.crew_security_code,
                max_concurrent_upserts=upserts,
            ).execute,
            "invoices": lambda: SyncInvoicesUseCase(
                api, store, max_concurrent_upserts=upserts
            ).execute(window),
            "contacts": lambda: SyncContactsUseCase(
                api, store, max_concurrent_upserts=upserts
            ).execute(window),
            "journeys": lambda: SyncJourneysUseCase(
                api, store, max_concurrent_upserts=upserts
            ).execute(window),
            "cabin_charter": SyncCabinCharterUseCase(api, store, max_concurrent_upserts=upserts).execute,
            "yacht_details": SyncYachtDetailsUseCase(
                api, store,
                max_concurrent_fetches=config.max_concurrent_fetches,
                max_concurrent_upserts=upserts,
            ).execute,
            "free_cabins": SyncFreeCabinsUseCase(
                api, store,
                criteria_ttl=config.criteria_ttl,
                search_days=config.free_cabin_search_days,
                max_concurrent_upserts=upserts,
            ).execute,
        }

    async def execute(
        self,
        domains: Iterable[str] | None = None,
        propagate_prerequisites: bool = False,
    ) -> SyncReport:
        """Run the selected domains (default: all) in dependency order.

        Args:
            domains: Domain names to run; order is always SYNC_ORDER
            propagate_prerequisites: Re-raise a catalogue/contacts failure
                instead of returning an aborted report

        Returns:
            SyncReport with per-domain results and failures

        Raises:
            ValueError: Unknown domain name
        """
        selected = set(DEFAULT_DOMAINS if domains is None else domains)
        unknown = selected - set(SYNC_ORDER)
        if unknown:
            raise ValueError(f"Unknown sync domains: {sorted(unknown)}")

        report = SyncReport(started_at=datetime.now(timezone.utc))
        steps = self.build_steps()
        logger.info(f"Starting sync of {len(selected)} domains with {self.config!r}")

        for domain in SYNC_ORDER:
            if domain not in selected:
                continue

            logger.info(f"Syncing {domain}...")
            try:
                result = await steps[domain]()
            except Exception as e:
                self._log_failure(domain, e)
                report.failures.append(DomainFailure(domain, type(e).__name__, str(e)))
                if domain in PREREQUISITE_DOMAINS:
                    report.completed = False
                    report.aborted_by = domain
                    report.completed_at = datetime.now(timezone.utc)
                    logger.error(f"Stopping sync: {domain} is required by the remaining domains")
                    if propagate_prerequisites:
                        raise
                    break
                continue

            report.results[domain] = result
            if result.skipped:
                logger.info(f"{domain} skipped")

        report.completed_at = report.completed_at or datetime.now(timezone.utc)
        logger.info(
            f"Sync {report.summary()} in {report.duration_seconds:.1f}s, "
            f"{report.record_errors} record errors"
        )
        if report.failures:
            logger.warning(f"Failed domains: {', '.join(report.failed_domains)}")
        return report

    @staticmethod
    def _log_failure(domain: str, error: Exception) -> None:
        if isinstance(error, AuthenticationError):
            logger.error(
                f"{domain} sync failed: provider rejected the credentials "
                f"(check NAUSYS_USERNAME/NAUSYS_PASSWORD): {error}",
                exc_info=True,
            )
        elif isinstance(error, TransportError):
            logger.error(f"{domain} sync failed: provider unreachable: {error}", exc_info=True)
        else:
            logger.error(f"{domain} sync failed: {error}", exc_info=True)


__all__ = [
    "DEFAULT_DOMAINS",
    "PREREQUISITE_DOMAINS",
    "SYNC_ORDER",
    "SyncAllUseCase",
]
