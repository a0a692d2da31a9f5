"""NauSYS API adapter for fetching charter data.

This adapter implements ICharterAPI and wraps NausysClient to provide the
endpoint paths, request bodies and response collection keys of each
provider resource. It returns raw dictionaries; mapping them to records is
done by the field mappers.
"""

import logging
from datetime import date
from typing import TYPE_CHECKING, Any

from ..domain.normalizers import format_provider_date
from ..domain.ports import ICharterAPI
from ..domain.records import INVOICE_TYPES, InvoiceType

if TYPE_CHECKING:
    from ...api.client import NausysClient

logger = logging.getLogger(__name__)

CATALOGUE = "/catalogue/v6"
RESERVATION = "/yachtReservation/v6"


class NausysCharterAPI(ICharterAPI):
    """NauSYS REST API adapter.

    Catalogue endpoints take the credentials flat in the body. Reservation,
    invoice, contact and option endpoints take them nested next to the
    ``periodFrom``/``periodTo`` window.
    """

    ENDPOINTS = {
        "countries": f"{CATALOGUE}/countries",
        "regions": f"{CATALOGUE}/regions",
        "locations": f"{CATALOGUE}/locations",
        "bases": f"{CATALOGUE}/charterBases",
        "equipment": f"{CATALOGUE}/equipment",
        "yacht_categories": f"{CATALOGUE}/yachtCategories",
        "services": f"{CATALOGUE}/services",
        "yacht_builders": f"{CATALOGUE}/yachtBuilders",
        "charter_companies": f"{CATALOGUE}/charterCompanies",
        "yacht_models": f"{CATALOGUE}/yachtModels",
        "yachts": f"{CATALOGUE}/yachts/{{company_id}}",
        "yacht": f"{CATALOGUE}/yacht/{{yacht_id}}",
        "yacht_equipment": f"{CATALOGUE}/yachtEquipment/{{yacht_id}}",
        "yacht_services": f"{CATALOGUE}/yachtServices/{{yacht_id}}",
        "yacht_pricing": f"{CATALOGUE}/yachtPricing/{{yacht_id}}",
        "yacht_ratings": f"{CATALOGUE}/yachtRatings/{{yacht_id}}",
        "reservations": f"{RESERVATION}/reservations",
        "occupancy": f"{RESERVATION}/occupancy/{{company_id}}/{{year}}",
        "options": f"{RESERVATION}/options",
        "free_yachts": f"{RESERVATION}/freeYachts",
        "free_cabin_criteria": f"{RESERVATION}/freeCabinPackageSearchCriteria",
        "free_cabin_search": f"{RESERVATION}/freeCabinPackageSearch",
        "crew_list": "/crewList/v6/get/{reservation_id}/{security_code}",
        "invoices": "/invoice/v6/{invoice_type}",
        "contacts": "/client/v6/contact/all2",
    }

    def __init__(self, client: "NausysClient"):
        """Initialize the API adapter.

        Args:
            client: Configured NausysClient instance (inside its context manager)
        """
        self.client = client

    # ----------------------------------------
    # Helpers
    # ----------------------------------------

    @staticmethod
    def _collection(response: dict[str, Any], *keys: str, label: str | None = None) -> list[dict[str, Any]]:
        """Pull the record list out of a response envelope.

        A missing or empty collection is normal and logged, not an error.
        """
        for key in keys:
            items = response.get(key)
            if isinstance(items, list):
                records = [item for item in items if isinstance(item, dict)]
                logger.debug(f"Found {len(records)} {label or key}")
                return records
        logger.info(f"No {label or keys[0]} found in API response")
        return []

    @staticmethod
    def _period(period_from: date, period_to: date) -> dict[str, str]:
        return {
            "periodFrom": format_provider_date(period_from),
            "periodTo": format_provider_date(period_to),
        }

    async def _catalogue(self, name: str, key: str) -> list[dict[str, Any]]:
        response = await self.client.post(self.ENDPOINTS[name])
        return self._collection(response, key, label=name)

    # ----------------------------------------
    # Catalogue
    # ----------------------------------------

    async def fetch_countries(self) -> list[dict[str, Any]]:
        return await self._catalogue("countries", "countries")

    async def fetch_regions(self) -> list[dict[str, Any]]:
        return await self._catalogue("regions", "regions")

    async def fetch_locations(self) -> list[dict[str, Any]]:
        return await self._catalogue("locations", "locations")

    async def fetch_bases(self) -> list[dict[str, Any]]:
        return await self._catalogue("bases", "bases")

    async def fetch_equipment(self) -> list[dict[str, Any]]:
        return await self._catalogue("equipment", "equipment")

    async def fetch_yacht_categories(self) -> list[dict[str, Any]]:
        return await self._catalogue("yacht_categories", "categories")

    async def fetch_services(self) -> list[dict[str, Any]]:
        return await self._catalogue("services", "services")

    async def fetch_yacht_builders(self) -> list[dict[str, Any]]:
        return await self._catalogue("yacht_builders", "builders")

    async def fetch_charter_companies(self) -> list[dict[str, Any]]:
        return await self._catalogue("charter_companies", "companies")

    async def fetch_yacht_models(self) -> list[dict[str, Any]]:
        return await self._catalogue("yacht_models", "models")

    # ----------------------------------------
    # Yachts
    # ----------------------------------------

    async def fetch_yachts(
        self,
        company_id: int,
        yacht_ids: list[int] | None = None,
    ) -> dict[str, Any]:
        """Fetch yachts of one charter company (full records or ids only)."""
        payload = {"yachtIDs": yacht_ids} if yacht_ids else None
        return await self.client.post(
            self.ENDPOINTS["yachts"].format(company_id=company_id),
            payload,
        )

    async def fetch_yacht(self, yacht_id: int) -> dict[str, Any] | None:
        response = await self.client.post(
            self.ENDPOINTS["yacht"].format(yacht_id=yacht_id),
            {"extendedDataSet": "OBLIGATORY_SERVICES"},
        )
        yacht = response.get("yacht")
        if isinstance(yacht, dict):
            return yacht
        yachts = self._collection(response, "yachts", label=f"details for yacht {yacht_id}")
        return yachts[0] if yachts else None

    async def _yacht_detail(self, name: str, yacht_id: int, *keys: str) -> list[dict[str, Any]]:
        response = await self.client.post(self.ENDPOINTS[name].format(yacht_id=yacht_id))
        return self._collection(response, *keys, label=f"{name} for yacht {yacht_id}")

    async def fetch_yacht_equipment(self, yacht_id: int) -> list[dict[str, Any]]:
        return await self._yacht_detail("yacht_equipment", yacht_id, "equipment", "yachtEquipment")

    async def fetch_yacht_services(self, yacht_id: int) -> list[dict[str, Any]]:
        return await self._yacht_detail("yacht_services", yacht_id, "services", "yachtServices")

    async def fetch_yacht_pricing(self, yacht_id: int) -> list[dict[str, Any]]:
        return await self._yacht_detail("yacht_pricing", yacht_id, "pricing", "prices", "yachtPricing")

    async def fetch_yacht_ratings(self, yacht_id: int) -> list[dict[str, Any]]:
        return await self._yacht_detail("yacht_ratings", yacht_id, "ratings", "reviews", "yachtRatings")

    # ----------------------------------------
    # Reservations
    # ----------------------------------------

    async def fetch_reservations(self, period_from: date, period_to: date) -> list[dict[str, Any]]:
        response = await self.client.post(
            self.ENDPOINTS["reservations"],
            self._period(period_from, period_to),
            nest_credentials=True,
        )
        return self._collection(response, "reservations")

    async def fetch_occupancy(self, company_id: int, year: int) -> list[dict[str, Any]]:
        response = await self.client.post(
            self.ENDPOINTS["occupancy"].format(company_id=company_id, year=year),
        )
        entries = self._collection(
            response, "reservations", "occupancy", label=f"occupancy for company {company_id}"
        )
        envelope_company = response.get("companyId", company_id)
        return [{"companyId": envelope_company, **entry} for entry in entries]

    async def fetch_crew_list(self, reservation_id: int, security_code: str) -> list[dict[str, Any]]:
        response = await self.client.post(
            self.ENDPOINTS["crew_list"].format(
                reservation_id=reservation_id,
                security_code=security_code,
            ),
        )
        return self._collection(response, "passengers", label=f"crew for reservation {reservation_id}")

    async def fetch_options(self, period_from: date, period_to: date) -> list[dict[str, Any]]:
        response = await self.client.post(
            self.ENDPOINTS["options"],
            self._period(period_from, period_to),
            nest_credentials=True,
        )
        return self._collection(response, "options", "reservations", label="options")

    async def fetch_free_yachts(
        self,
        period_from: date,
        period_to: date,
        yacht_ids: list[int] | None = None,
    ) -> list[dict[str, Any]]:
        payload: dict[str, Any] = self._period(period_from, period_to)
        if yacht_ids:
            payload["yachts"] = yacht_ids
        response = await self.client.post(
            self.ENDPOINTS["free_yachts"],
            payload,
            nest_credentials=True,
        )
        return self._collection(response, "freeYachts", label="free yachts")

    # ----------------------------------------
    # Invoices and Contacts
    # ----------------------------------------

    async def fetch_invoices(
        self,
        invoice_type: InvoiceType,
        period_from: date,
        period_to: date,
    ) -> list[dict[str, Any]]:
        if invoice_type not in INVOICE_TYPES:
            raise ValueError(f"Invalid invoice type: {invoice_type}")
        response = await self.client.post(
            self.ENDPOINTS["invoices"].format(invoice_type=invoice_type),
            self._period(period_from, period_to),
            nest_credentials=True,
        )
        return self._collection(response, "invoices", label=f"{invoice_type} invoices")

    async def fetch_contacts(self, period_from: date, period_to: date) -> list[dict[str, Any]]:
        response = await self.client.post(
            self.ENDPOINTS["contacts"],
            self._period(period_from, period_to),
            nest_credentials=True,
        )
        return self._collection(response, "clients", label="contacts")

    # ----------------------------------------
    # Cabin Charter
    # ----------------------------------------

    async def fetch_cabin_charter_bases(self) -> list[dict[str, Any]]:
        return await self._catalogue("bases", "bases")

    async def fetch_cabin_charter_companies(self) -> list[dict[str, Any]]:
        return await self._catalogue("charter_companies", "companies")

    async def fetch_free_cabin_search_criteria(self) -> dict[str, Any]:
        return await self.client.post(self.ENDPOINTS["free_cabin_criteria"])

    async def search_free_cabin_packages(
        self,
        period_from: date,
        period_to: date,
        locations: list[int] | None = None,
        countries: list[int] | None = None,
        regions: list[int] | None = None,
        packages: list[int] | None = None,
        ignore_options: bool = False,
    ) -> list[dict[str, Any]]:
        payload = {
            **self._period(period_from, period_to),
            "locations": locations or [],
            "countries": countries or [],
            "regions": regions or [],
            "packages": packages or [],
            "ignoreOptions": ignore_options,
        }
        response = await self.client.post(
            self.ENDPOINTS["free_cabin_search"],
            payload,
            nest_credentials=True,
        )
        return self._collection(response, "freeCabinPackages", label="free cabin packages")


__all__ = ["NausysCharterAPI"]
