"""Port interfaces for sync operations.

Ports define the contracts between the domain/use cases and the infrastructure.
These are abstract base classes that adapters must implement.

Following the Hexagonal Architecture (Ports and Adapters) pattern:
- Ports are interfaces defined in the domain layer
- Adapters implement these ports in the adapters layer
- Use cases depend only on ports, not concrete implementations
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any

from .records import InvoiceType

Document = dict[str, Any]


# ============================================
# Upstream Provider Port
# ============================================


class ICharterAPI(ABC):
    """Port for the upstream charter-management provider.

    Every method returns raw provider dictionaries; mapping to records is the
    field mappers' job. A collection key missing from the response is returned
    as an empty list. Transport and authentication failures propagate as
    ``TransportError`` / ``AuthenticationError``.
    """

    # ----------------------------------------
    # Catalogue
    # ----------------------------------------

    @abstractmethod
    async def fetch_countries(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_regions(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_locations(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_bases(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_equipment(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_yacht_categories(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_services(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_yacht_builders(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_charter_companies(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_yacht_models(self) -> list[Document]:
        ...

    # ----------------------------------------
    # Yachts
    # ----------------------------------------

    @abstractmethod
    async def fetch_yachts(
        self,
        company_id: int,
        yacht_ids: list[int] | None = None,
    ) -> Document:
        """Fetch the yachts of one charter company.

        The provider answers in one of two shapes: full records under
        ``yachts``, or only identifiers under ``yachtIDs``. The whole response
        is returned so the caller can tell them apart.

        Args:
            company_id: Charter company external id
            yacht_ids: Restrict the response to these yachts

        Returns:
            Raw response body
        """
        ...

    @abstractmethod
    async def fetch_yacht(self, yacht_id: int) -> Document | None:
        """Fetch one yacht with full details, or ``None`` if not returned."""
        ...

    @abstractmethod
    async def fetch_yacht_equipment(self, yacht_id: int) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_yacht_services(self, yacht_id: int) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_yacht_pricing(self, yacht_id: int) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_yacht_ratings(self, yacht_id: int) -> list[Document]:
        ...

    # ----------------------------------------
    # Reservations
    # ----------------------------------------

    @abstractmethod
    async def fetch_reservations(self, period_from: date, period_to: date) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_occupancy(self, company_id: int, year: int) -> list[Document]:
        """Occupancy entries of one company for one calendar year.

        Entries that do not carry ``companyId`` themselves get it from the
        response envelope.
        """
        ...

    @abstractmethod
    async def fetch_crew_list(self, reservation_id: int, security_code: str) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_options(self, period_from: date, period_to: date) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_free_yachts(
        self,
        period_from: date,
        period_to: date,
        yacht_ids: list[int] | None = None,
    ) -> list[Document]:
        ...

    # ----------------------------------------
    # Invoices and Contacts
    # ----------------------------------------

    @abstractmethod
    async def fetch_invoices(
        self,
        invoice_type: InvoiceType,
        period_from: date,
        period_to: date,
    ) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_contacts(self, period_from: date, period_to: date) -> list[Document]:
        ...

    # ----------------------------------------
    # Cabin Charter
    # ----------------------------------------

    @abstractmethod
    async def fetch_cabin_charter_bases(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_cabin_charter_companies(self) -> list[Document]:
        ...

    @abstractmethod
    async def fetch_free_cabin_search_criteria(self) -> Document:
        """Fetch the filter options for the cabin package search.

        Returns:
            Raw response body with ``countries``, ``regions``, ``locations``
            and ``packages`` id lists
        """
        ...

    @abstractmethod
    async def search_free_cabin_packages(
        self,
        period_from: date,
        period_to: date,
        locations: list[int] | None = None,
        countries: list[int] | None = None,
        regions: list[int] | None = None,
        packages: list[int] | None = None,
        ignore_options: bool = False,
    ) -> list[Document]:
        ...


# ============================================
# Persistent Store Port
# ============================================


class IDocumentStore(ABC):
    """Port for the local document store.

    The synchronizers need only three primitives: upsert by key, find with a
    filter, and grouped counts. Each upsert is atomic on its own; nothing
    spans more than one document.

    Filters are equality matches on top-level document fields. A list value
    matches documents whose field equals any element of the list.
    """

    @abstractmethod
    async def upsert(self, collection: str, key: Document, document: Document) -> bool:
        """Create the document if absent, else merge its fields.

        Fields missing from ``document`` keep their stored value. ``updatedAt``
        is set on every call.

        Args:
            collection: Collection name
            key: Natural key fields (e.g., ``{"id": 42}``)
            document: Full document (key fields included)

        Returns:
            True if the document was created, False if it was updated

        Raises:
            PersistenceError: The write failed
        """
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: Document | None = None,
        sort: str | None = None,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[Document]:
        """Return documents matching ``filter``.

        Args:
            collection: Collection name
            filter: Equality filter on top-level fields
            sort: Field to sort by; prefix with ``-`` for descending
            limit: Maximum number of documents
            skip: Number of documents to skip first
        """
        ...

    @abstractmethod
    async def find_one(self, collection: str, filter: Document) -> Document | None:
        ...

    @abstractmethod
    async def count(self, collection: str, filter: Document | None = None) -> int:
        ...

    @abstractmethod
    async def aggregate_count(
        self,
        collection: str,
        group_by: str,
        filter: Document | None = None,
    ) -> dict[Any, int]:
        """Count documents grouped by the value of one field."""
        ...


__all__ = [
    "Document",
    "ICharterAPI",
    "IDocumentStore",
]
