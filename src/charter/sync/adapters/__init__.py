"""Adapters layer - Infrastructure implementations for sync operations.

This layer contains concrete implementations of the ports defined in the domain layer:
- NausysCharterAPI: NauSYS REST implementation of ICharterAPI
- PostgresDocumentStore: PostgreSQL JSONB implementation of IDocumentStore
- InMemoryDocumentStore: Dictionary implementation of IDocumentStore
- Field mappers: Provider dictionaries to validated records
"""

from .booking_mapper import ContactFieldMapper, InvoiceFieldMapper, ReservationFieldMapper
from .cabin_mapper import CabinCharterFieldMapper, YachtDetailFieldMapper
from .field_mapper import CatalogueFieldMapper, YachtFieldMapper
from .memory_document_store import InMemoryDocumentStore
from .nausys_api_adapter import NausysCharterAPI
from .postgres_document_store import PostgresDocumentStore

__all__ = [
    # API
    "NausysCharterAPI",
    # Stores
    "InMemoryDocumentStore",
    "PostgresDocumentStore",
    # Mappers
    "CabinCharterFieldMapper",
    "CatalogueFieldMapper",
    "ContactFieldMapper",
    "InvoiceFieldMapper",
    "ReservationFieldMapper",
    "YachtDetailFieldMapper",
    "YachtFieldMapper",
]
