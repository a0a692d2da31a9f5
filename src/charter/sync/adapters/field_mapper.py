"""Field mapper adapters for catalogue, yacht and yacht-model records.

These mappers translate raw provider dictionaries into validated records.
They encapsulate the provider's naming quirks (the same logical field under
different keys depending on endpoint); the value-level normalization itself
happens in the record schemas, so a mapper never has to care whether a number
arrived as a string.

Every mapper method raises ``NormalizationError`` when the record's external
id is unusable, and pydantic's ``ValidationError`` when the record violates a
schema invariant. Both are per-record failures handled by the synchronizers.
"""

from typing import Any

from ..domain.normalizers import external_id
from ..domain.records import (
    CATALOGUE_RECORDS,
    CharterCompany,
    Record,
    Yacht,
    YachtModel,
)


def first_present(raw: dict[str, Any], *keys: str) -> Any:
    """Value of the first key that is present and not ``None``."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


class CatalogueFieldMapper:
    """Maps catalogue reference entries (countries, bases, services...).

    Catalogue payloads already use the record field names, so mapping is
    mostly identity plus identity checks. Bases carry two extra multilingual
    notes; their normalization is handled by the Base schema.
    """

    def map_to_record(self, collection: str, raw: dict[str, Any]) -> Record:
        """Map one catalogue entry of ``collection``.

        Args:
            collection: Catalogue collection name (e.g., "countries")
            raw: Raw provider dictionary

        Returns:
            The validated record

        Raises:
            KeyError: Unknown catalogue collection
            NormalizationError: The entry has no usable id
        """
        record_class = CATALOGUE_RECORDS[collection]
        return record_class.model_validate({**raw, "id": external_id(raw.get("id"))})

    def map_charter_company(self, raw: dict[str, Any]) -> CharterCompany:
        return CharterCompany.model_validate({**raw, "id": external_id(raw.get("id"))})


class YachtFieldMapper:
    """Maps yachts and yacht models.

    Handles:
    - Spec fields published under two names (``length``/``loa``, ``fuelTank``...)
    - Linkage ids prefixed with ``yacht`` on some endpoints (``yachtModelId``)
    - Picture/video lists and nested equipment, service and pricing entries
    """

    def map_yacht(self, raw: dict[str, Any], company_id: int | None = None) -> Yacht:
        """Transform a provider yacht into a Yacht record.

        Args:
            raw: Raw yacht dictionary from the yachts or yacht endpoint
            company_id: Owning charter company when fetched per company

        Returns:
            Yacht record; unusable numeric fields are left unset
        """
        data = {
            "id": external_id(raw.get("id")),
            "name": raw.get("name"),
            "description": raw.get("description"),
            "highlights": raw.get("highlights"),
            "note": raw.get("note"),
            "builder_id": first_present(raw, "yachtBuilderId", "builderId"),
            "model_id": first_present(raw, "yachtModelId", "modelId"),
            "base_id": first_present(raw, "baseId", "homeBaseId"),
            "location_id": raw.get("locationId"),
            "category_id": first_present(raw, "yachtCategoryId", "categoryId"),
            "charter_company_id": first_present(raw, "charterCompanyId", "companyId") or company_id,
            "charter_type": raw.get("charterType"),
            "length": first_present(raw, "length", "loa"),
            "beam": raw.get("beam"),
            "draft": raw.get("draft"),
            "cabins": first_present(raw, "cabins", "cabinsTotal"),
            "berths": first_present(raw, "berthsTotal", "berths"),
            "wc": first_present(raw, "wc", "wcTotal"),
            "year": first_present(raw, "buildYear", "year"),
            "fuel_capacity": first_present(raw, "fuelCapacity", "fuelTank"),
            "water_capacity": first_present(raw, "waterCapacity", "waterTank"),
            "engine_power": first_present(raw, "enginePower", "enginePowerHp"),
            "engines": first_present(raw, "engines", "numberOfEngines"),
            "deposit": raw.get("deposit"),
            "deposit_currency": raw.get("depositCurrency"),
            "main_picture_url": raw.get("mainPictureUrl"),
            "pictures": first_present(raw, "picturesURL", "pictures"),
            "videos": first_present(raw, "youtubeVideos", "videos"),
            "standard_equipment": first_present(raw, "standardYachtEquipment", "standardEquipment"),
            "optional_equipment": first_present(raw, "optionalYachtEquipment", "optionalEquipment"),
            "services": first_present(raw, "services", "yachtServices"),
            "seasonal_pricing": first_present(raw, "seasonSpecificData", "seasonalPricing"),
        }
        return Yacht.model_validate(data)

    def map_model(self, raw: dict[str, Any]) -> YachtModel:
        """Transform a provider yacht model into a YachtModel record."""
        data = {
            "id": external_id(raw.get("id")),
            "name": raw.get("name"),
            "builder_id": first_present(raw, "yachtBuilderId", "builderId"),
            "category_id": first_present(raw, "yachtCategoryId", "categoryId"),
            "loa": first_present(raw, "loa", "length"),
            "beam": raw.get("beam"),
            "draft": raw.get("draft"),
            "cabins": raw.get("cabins"),
            "wc": raw.get("wc"),
            "water_tank": first_present(raw, "waterTank", "waterCapacity"),
            "fuel_tank": first_present(raw, "fuelTank", "fuelCapacity"),
            "displacement": raw.get("displacement"),
            "virtual_length": raw.get("virtualLength"),
        }
        return YachtModel.model_validate(data)


__all__ = [
    "first_present",
    "CatalogueFieldMapper",
    "YachtFieldMapper",
]
