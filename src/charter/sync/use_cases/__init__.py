"""Use cases layer - Domain synchronizers and the sync-all orchestrator.

Every synchronizer follows the same workflow:
- Fetch raw data from the provider (via the ICharterAPI port)
- Map it to validated records (via the field mappers)
- Upsert each record by its external key (via the IDocumentStore port)

Use cases depend only on ports, not concrete implementations.
"""

from .apply_model_specs import ApplyModelSpecsUseCase
from .base import RecordUpserter
from .free_cabin import FreeCabinCriteriaCache, FreeCabinPackageSearch, SyncFreeCabinsUseCase
from .free_yachts import FreeYachtsQuery
from .sync_all import DEFAULT_DOMAINS, PREREQUISITE_DOMAINS, SYNC_ORDER, SyncAllUseCase
from .sync_cabin_charter import SyncCabinCharterUseCase
from .sync_catalogue import SyncCatalogueUseCase
from .sync_contacts import SyncContactsUseCase
from .sync_crew import SyncCrewUseCase
from .sync_invoices import SyncInvoicesUseCase
from .sync_journeys import SyncJourneysUseCase
from .sync_reservations import SyncReservationsUseCase
from .sync_yacht_details import SyncYachtDetailsUseCase
from .sync_yachts import SyncYachtsUseCase

__all__ = [
    # Orchestrator
    "SyncAllUseCase",
    "SYNC_ORDER",
    "DEFAULT_DOMAINS",
    "PREREQUISITE_DOMAINS",
    # Synchronizers
    "ApplyModelSpecsUseCase",
    "SyncCabinCharterUseCase",
    "SyncCatalogueUseCase",
    "SyncContactsUseCase",
    "SyncCrewUseCase",
    "SyncFreeCabinsUseCase",
    "SyncInvoicesUseCase",
    "SyncJourneysUseCase",
    "SyncReservationsUseCase",
    "SyncYachtDetailsUseCase",
    "SyncYachtsUseCase",
    # Queries
    "FreeCabinCriteriaCache",
    "FreeCabinPackageSearch",
    "FreeYachtsQuery",
    # Shared
    "RecordUpserter",
]
