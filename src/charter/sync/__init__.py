"""Sync module - Clean Architecture implementation of the charter data sync.

This module pulls catalogue, yacht, reservation, crew, invoice, contact,
journey and cabin-charter data from the upstream charter-management provider
and upserts it into the local document store, one domain at a time.

Architecture:
    domain/     - Normalizers, record schemas, model matcher, results, ports
    use_cases/  - Domain synchronizers and the sync-all orchestrator
    adapters/   - Infrastructure implementations (NauSYS API, mappers, stores)
"""

from .config import SyncConfig
from .domain.entities import SyncReport, SyncResult, SyncWindow
from .domain.ports import ICharterAPI, IDocumentStore

__all__ = [
    "SyncConfig",
    # Result Entities
    "SyncReport",
    "SyncResult",
    "SyncWindow",
    # Ports
    "ICharterAPI",
    "IDocumentStore",
]
