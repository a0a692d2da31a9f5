"""Sync Invoices Use Case - Base, agency and owner invoices.

Each invoice type is its own endpoint and is fetched and upserted on its
own. A failure for one type is caught and logged, and the remaining types
still sync; the domain only fails when no type could be fetched.
"""

import logging
from datetime import datetime, timezone

from ...api.exceptions import ErrorCollector, SyncError, TransportError, UpstreamError
from ..adapters.booking_mapper import InvoiceFieldMapper
from ..domain.entities import SyncResult, SyncWindow
from ..domain.ports import ICharterAPI, IDocumentStore
from ..domain.records import INVOICE_TYPES
from .base import RecordUpserter, finish

logger = logging.getLogger(__name__)

DOMAIN = "invoices"


class SyncInvoicesUseCase:
    """Synchronizes invoices of every type.

    Example:
        use_case = SyncInvoicesUseCase(api, store)
        result = await use_case.execute()
        print(result.collections)  # {"invoices": 42}
    """

    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        mapper: InvoiceFieldMapper | None = None,
        invoice_types: tuple[str, ...] = INVOICE_TYPES,
        max_concurrent_upserts: int = 1,
    ):
        self.api = api
        self.store = store
        self.mapper = mapper or InvoiceFieldMapper()
        self.invoice_types = invoice_types
        self.upserter = RecordUpserter(store, max_concurrent=max_concurrent_upserts)

    async def execute(self, window: SyncWindow | None = None) -> SyncResult:
        """Execute the invoice sync.

        Args:
            window: Invoice period to query (default: one year either side of today)

        Returns:
            SyncResult; a failed type counts as one error and marks it unsuccessful

        Raises:
            SyncError: No invoice type could be fetched
        """
        started_at = datetime.now(timezone.utc)
        window = window or SyncWindow.around()
        result = SyncResult.empty(DOMAIN)
        type_errors = ErrorCollector()

        for invoice_type in self.invoice_types:
            try:
                raw_invoices = await self.api.fetch_invoices(invoice_type, window.period_from, window.period_to)
            except (UpstreamError, TransportError) as e:
                logger.error(f"Failed to fetch {invoice_type} invoices: {e}")
                type_errors.add(e, context={"invoice_type": invoice_type})
                continue

            logger.info(f"Fetched {len(raw_invoices)} {invoice_type} invoices")
            type_result = await self.upserter.upsert_all(
                DOMAIN,
                raw_invoices,
                lambda raw, invoice_type=invoice_type: self.mapper.map_invoice(raw, invoice_type),
            )
            result.merge(type_result)

        if self.invoice_types and type_errors.count() == len(self.invoice_types):
            raise SyncError(
                "Failed to fetch invoices of every type",
                domain=DOMAIN,
                cause=type_errors.get_errors()[0][0],
            )

        result.errors += type_errors.count()
        result.error_details.extend(type_errors.messages())
        result.success = result.success and not type_errors.has_errors()
        return finish(result, started_at)


__all__ = ["SyncInvoicesUseCase"]
