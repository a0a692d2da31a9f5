"""Domain layer - Pure domain entities and port interfaces.

This layer contains:
- Normalizers: Pure functions turning loosely-typed upstream values into canonical ones
- Records: Versioned record schemas, validated before anything is written
- Model matcher: Heuristic yacht-to-model linkage and spec back-fill
- Entities: Sync results and reports
- Ports: Abstract interfaces defining contracts for adapters

No infrastructure dependencies allowed in this layer.
"""

from .entities import DomainFailure, SyncReport, SyncResult, SyncWindow
from .model_matcher import (
    MATCH_THRESHOLD,
    ModelMatch,
    SpecBackfill,
    apply_model_specs,
    backfill_yacht,
    find_best_model,
    score_model,
)
from .ports import ICharterAPI, IDocumentStore
from .records import (
    CATALOGUE_RECORDS,
    INVOICE_TYPES,
    CabinCharterBase,
    CabinCharterCompany,
    CharterCompany,
    Contact,
    CrewMember,
    FreeCabinPackage,
    FreeCabinSearchCriteria,
    Invoice,
    Journey,
    Occupancy,
    Record,
    Reservation,
    Yacht,
    YachtEquipment,
    YachtModel,
    YachtPricing,
    YachtRating,
    YachtService,
)

__all__ = [
    # Result Entities
    "DomainFailure",
    "SyncReport",
    "SyncResult",
    "SyncWindow",
    # Matcher
    "MATCH_THRESHOLD",
    "ModelMatch",
    "SpecBackfill",
    "apply_model_specs",
    "backfill_yacht",
    "find_best_model",
    "score_model",
    # Ports
    "ICharterAPI",
    "IDocumentStore",
    # Records
    "CATALOGUE_RECORDS",
    "INVOICE_TYPES",
    "CabinCharterBase",
    "CabinCharterCompany",
    "CharterCompany",
    "Contact",
    "CrewMember",
    "FreeCabinPackage",
    "FreeCabinSearchCriteria",
    "Invoice",
    "Journey",
    "Occupancy",
    "Record",
    "Reservation",
    "Yacht",
    "YachtEquipment",
    "YachtModel",
    "YachtPricing",
    "YachtRating",
    "YachtService",
]
