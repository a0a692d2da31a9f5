"""Field mapper adapters for cabin charter and per-yacht detail records."""

from datetime import datetime
from typing import Any

from ..domain.normalizers import external_id, id_list, optional_bool
from ..domain.records import (
    CabinCharterBase,
    CabinCharterCompany,
    FreeCabinPackage,
    FreeCabinSearchCriteria,
    YachtEquipment,
    YachtPricing,
    YachtRating,
    YachtService,
)
from .field_mapper import first_present

RATING_FIELDS = (
    "cleanliness",
    "equipment",
    "personalService",
    "pricePerformance",
    "recommendation",
    "overall",
)

PACKAGE_STATUSES = ("FREE", "UNDER_OPTION")


class CabinCharterFieldMapper:
    """Maps cabin charter bases, companies, search criteria and packages."""

    def map_base(self, raw: dict[str, Any]) -> CabinCharterBase:
        return CabinCharterBase.model_validate({**raw, "id": external_id(raw.get("id"))})

    def map_company(self, raw: dict[str, Any]) -> CabinCharterCompany:
        data = {**raw, "id": external_id(raw.get("id"))}
        data["bank_accounts"] = first_present(raw, "bankAccounts", "bankAccount")
        data.pop("bankAccounts", None)
        return CabinCharterCompany.model_validate(data)

    def map_search_criteria(
        self,
        response: dict[str, Any],
        fetched_at: datetime,
    ) -> FreeCabinSearchCriteria:
        """Snapshot of the search filter options taken at ``fetched_at``."""
        return FreeCabinSearchCriteria(
            countries=id_list(response.get("countries")),
            regions=id_list(response.get("regions")),
            locations=id_list(response.get("locations")),
            packages=id_list(response.get("packages")),
            last_updated=fetched_at,
        )

    def map_package(self, raw: dict[str, Any], ignore_options: bool = False) -> FreeCabinPackage:
        """Map one package returned by the live package search.

        Args:
            raw: Raw package dictionary
            ignore_options: The ``ignoreOptions`` flag of the search that
                returned it, used when the package does not carry its own
        """
        status = str(raw.get("status") or "FREE").upper()
        flag = optional_bool(raw.get("ignoreOptions"))
        data = {
            **raw,
            "package_id": external_id(raw.get("packageId"), field="packageId"),
            "status": status if status in PACKAGE_STATUSES else "FREE",
            "ignore_options": ignore_options if flag is None else flag,
        }
        for key in ("packageId", "ignoreOptions"):
            data.pop(key, None)
        return FreeCabinPackage.model_validate(data)


class YachtDetailFieldMapper:
    """Maps the per-yacht equipment, service, pricing and rating entries.

    Entries are only unique within one yacht, so every record carries the
    owning yacht id as part of its key.
    """

    def map_equipment(self, raw: dict[str, Any], yacht_id: int) -> YachtEquipment:
        data = {
            "id": external_id(first_present(raw, "id", "equipmentId")),
            "yacht_id": yacht_id,
            "equipment_id": raw.get("equipmentId"),
            "name": raw.get("name"),
            "category": raw.get("category"),
            "quantity": raw.get("quantity"),
            "price": raw.get("price"),
            "currency": raw.get("currency"),
            "is_standard": first_present(raw, "isStandard", "standard"),
            "is_optional": first_present(raw, "isOptional", "optional"),
            "is_included": first_present(raw, "isIncluded", "includedInPrice"),
        }
        return YachtEquipment.model_validate(data)

    def map_service(self, raw: dict[str, Any], yacht_id: int) -> YachtService:
        data = {
            "id": external_id(first_present(raw, "id", "serviceId")),
            "yacht_id": yacht_id,
            "service_id": raw.get("serviceId"),
            "name": raw.get("name"),
            "price": raw.get("price"),
            "currency": raw.get("currency"),
            "price_measure": first_present(raw, "priceMeasure", "priceMeasureId"),
            "is_obligatory": first_present(raw, "isObligatory", "obligatory"),
            "is_optional": first_present(raw, "isOptional", "optional"),
            "is_included": first_present(raw, "isIncluded", "includedInPrice"),
            "category": raw.get("category"),
        }
        return YachtService.model_validate(data)

    def map_pricing(self, raw: dict[str, Any], yacht_id: int) -> YachtPricing:
        data = {
            "id": external_id(raw.get("id")),
            "yacht_id": yacht_id,
            "period": first_present(raw, "period", "season"),
            "start_date": first_present(raw, "startDate", "dateFrom", "periodFrom"),
            "end_date": first_present(raw, "endDate", "dateTo", "periodTo"),
            "weekly_price": first_present(raw, "weeklyPrice", "price"),
            "currency": raw.get("currency"),
            "discount": raw.get("discount"),
            "discount_type": raw.get("discountType"),
            "is_active": raw.get("isActive"),
        }
        return YachtPricing.model_validate(data)

    def map_rating(self, raw: dict[str, Any], yacht_id: int) -> YachtRating:
        """Map a review; sub-ratings may be nested or flat in the entry."""
        ratings = raw.get("ratings")
        if not isinstance(ratings, dict):
            ratings = {name: raw.get(name) for name in RATING_FIELDS}
        data = {
            "id": external_id(raw.get("id")),
            "yacht_id": yacht_id,
            "review_date": first_present(raw, "reviewDate", "date"),
            "ratings": ratings,
            "source": raw.get("source") or "internal",
            "is_published": raw.get("isPublished"),
        }
        return YachtRating.model_validate(data)


__all__ = [
    "CabinCharterFieldMapper",
    "YachtDetailFieldMapper",
]
