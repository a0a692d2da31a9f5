"""Versioned record schemas for every synchronized entity.

Each record is a pydantic model validated at the normalization boundary,
right after an upstream payload is mapped and before anything is written.
The annotated field types below run every value through the field
normalizers, so a record that validates only ever holds canonical types:
numbers are finite floats or absent, counts are integers, multilingual
fields always carry English, and provider dates are datetimes.

Stored documents use camelCase keys (the provider's naming), omit absent
values so an upsert never erases a known value, and carry ``schemaVersion``.
"""

import logging
from datetime import datetime
from typing import Annotated, Any, ClassVar, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .normalizers import (
    dict_list,
    id_list,
    normalize_multilingual,
    optional_bool,
    optional_id,
    optional_int,
    optional_measure,
    optional_number,
    optional_str,
    parse_provider_date,
    str_list,
)

logger = logging.getLogger(__name__)

# ============================================
# Field Types
# ============================================

ExternalId = Annotated[int, BeforeValidator(optional_id)]
RefId = Annotated[Optional[int], BeforeValidator(optional_id)]
IdList = Annotated[list[int], BeforeValidator(id_list)]
Number = Annotated[Optional[float], BeforeValidator(optional_number)]
Measure = Annotated[Optional[float], BeforeValidator(optional_measure)]
Count = Annotated[Optional[int], BeforeValidator(optional_int)]
Flag = Annotated[Optional[bool], BeforeValidator(optional_bool)]
Text = Annotated[Optional[str], BeforeValidator(optional_str)]
MultilingualText = Annotated[Optional[dict[str, str]], BeforeValidator(normalize_multilingual)]
ProviderDate = Annotated[Optional[datetime], BeforeValidator(parse_provider_date)]
Strings = Annotated[list[str], BeforeValidator(str_list)]
Objects = Annotated[list[dict[str, Any]], BeforeValidator(dict_list)]

INVOICE_TYPES = ("base", "agency", "owner")
InvoiceType = Literal["base", "agency", "owner"]


def _rating(value: Any) -> Optional[float]:
    number = optional_number(value)
    if number is None or not 1 <= number <= 5:
        return None
    return number


Rating = Annotated[Optional[float], BeforeValidator(_rating)]


class Schema(BaseModel):
    """Shared configuration for records and their nested parts."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        protected_namespaces=(),
    )


class Record(Schema):
    """A top-level document with a stable external key.

    Class attributes:
        COLLECTION: Store collection name
        KEY_FIELDS: Document fields (camelCase) forming the upsert key
        SCHEMA_VERSION: Bumped when the stored shape changes
    """

    COLLECTION: ClassVar[str] = ""
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("id",)
    SCHEMA_VERSION: ClassVar[int] = 1

    def to_document(self) -> dict[str, Any]:
        document = self.model_dump(by_alias=True, exclude_none=True)
        document["schemaVersion"] = self.SCHEMA_VERSION
        return document

    def store_key(self) -> dict[str, Any]:
        document = self.model_dump(by_alias=True)
        return {field: document[field] for field in self.KEY_FIELDS}

    @classmethod
    def from_document(cls, document: dict[str, Any]):
        return cls.model_validate(document)


# ============================================
# Catalogue Reference Data
# ============================================

class Country(Record):
    COLLECTION: ClassVar[str] = "countries"

    id: ExternalId
    name: MultilingualText = None
    code: Text = None
    code2: Text = None


class Region(Record):
    COLLECTION: ClassVar[str] = "regions"

    id: ExternalId
    name: MultilingualText = None
    country_id: RefId = None


class Location(Record):
    COLLECTION: ClassVar[str] = "locations"

    id: ExternalId
    name: MultilingualText = None
    region_id: RefId = None
    country_id: RefId = None
    lat: Number = None
    lon: Number = None


class Base(Record):
    COLLECTION: ClassVar[str] = "bases"

    id: ExternalId
    name: MultilingualText = None
    country_id: RefId = None
    region_id: RefId = None
    location_id: RefId = None
    company_id: RefId = None
    disabled: Flag = None
    disabled_date: ProviderDate = None
    open_base_date: ProviderDate = None
    closed_base_date: ProviderDate = None
    return_to_base_note: MultilingualText = None
    return_to_base_delay_note: MultilingualText = None
    lat: Number = None
    lon: Number = None
    check_in_time: Text = None
    check_out_time: Text = None
    secondary_base: Flag = None


class Equipment(Record):
    COLLECTION: ClassVar[str] = "equipment"

    id: ExternalId
    name: MultilingualText = None
    category_id: RefId = None


class YachtCategory(Record):
    COLLECTION: ClassVar[str] = "yacht_categories"

    id: ExternalId
    name: MultilingualText = None


class YachtBuilder(Record):
    COLLECTION: ClassVar[str] = "yacht_builders"

    id: ExternalId
    name: MultilingualText = None


class Service(Record):
    COLLECTION: ClassVar[str] = "services"

    id: ExternalId
    name: MultilingualText = None
    deposit_insurance: Flag = None


class CharterCompany(Record):
    COLLECTION: ClassVar[str] = "charter_companies"

    id: ExternalId
    name: MultilingualText = None
    country_id: RefId = None
    disabled: Flag = None


# ============================================
# Yachts
# ============================================

class YachtModel(Record):
    """Hull specifications shared by every yacht of one model."""

    COLLECTION: ClassVar[str] = "yacht_models"

    id: ExternalId
    name: MultilingualText = None
    builder_id: RefId = None
    category_id: RefId = None
    loa: Measure = None
    beam: Measure = None
    draft: Measure = None
    cabins: Count = None
    wc: Count = None
    water_tank: Measure = None
    fuel_tank: Measure = None
    displacement: Measure = None
    virtual_length: Measure = None


class EquipmentItem(Schema):
    id: RefId = None
    equipment_id: RefId = None
    quantity: Number = None
    price: Number = None
    currency: Text = None
    calculation_type: Text = None
    comment: Text = None


class ServiceItem(Schema):
    id: RefId = None
    service_id: RefId = None
    price: Number = None
    currency: Text = None
    price_measure_id: RefId = None
    calculation_type: Text = None
    obligatory: Flag = None


class SeasonalPrice(Schema):
    season_id: RefId = None
    date_from: ProviderDate = None
    date_to: ProviderDate = None
    price: Number = None
    currency: Text = None
    base_id: RefId = None
    location_id: RefId = None


class Yacht(Record):
    """A charter yacht with its numeric attributes normalized field by field."""

    COLLECTION: ClassVar[str] = "yachts"

    id: ExternalId
    name: MultilingualText = None
    description: MultilingualText = None
    highlights: MultilingualText = None
    note: MultilingualText = None

    builder_id: RefId = None
    model_id: RefId = None
    base_id: RefId = None
    location_id: RefId = None
    category_id: RefId = None
    charter_company_id: RefId = None
    charter_type: Text = None

    length: Measure = None
    beam: Measure = None
    draft: Measure = None
    cabins: Count = None
    berths: Count = None
    wc: Count = None
    year: Count = None
    fuel_capacity: Measure = None
    water_capacity: Measure = None
    engine_power: Measure = None
    engines: Count = None
    deposit: Number = None
    deposit_currency: Text = None

    main_picture_url: Text = None
    pictures: Strings = Field(default_factory=list)
    videos: Strings = Field(default_factory=list)
    standard_equipment: Annotated[list[EquipmentItem], BeforeValidator(dict_list)] = Field(default_factory=list)
    optional_equipment: Annotated[list[EquipmentItem], BeforeValidator(dict_list)] = Field(default_factory=list)
    services: Annotated[list[ServiceItem], BeforeValidator(dict_list)] = Field(default_factory=list)
    seasonal_pricing: Annotated[list[SeasonalPrice], BeforeValidator(dict_list)] = Field(default_factory=list)

    @property
    def has_model_linkage(self) -> bool:
        return self.model_id is not None


# ============================================
# Reservations
# ============================================

class Discount(Schema):
    discount_item_id: RefId = None
    amount: Number = None
    type: Text = None


class ReservationService(Schema):
    id: RefId = None
    service_id: RefId = None
    quantity: Number = None
    list_price: Number = None
    amount: Number = None
    currency: Text = None
    calculation_type: Text = None
    condition: Text = None


class ReservationEquipment(Schema):
    id: RefId = None
    equipment_id: RefId = None
    quantity: Number = None
    list_price: Number = None
    amount: Number = None
    currency: Text = None
    calculation_type: Text = None
    condition: Text = None


class PaymentPlan(Schema):
    id: RefId = None
    date: ProviderDate = None
    amount: Number = None
    amount_in_payment_currency: Number = None
    paid: Flag = None


class Payment(Schema):
    id: RefId = None
    date: ProviderDate = None
    amount: Number = None
    amount_in_payment_currency: Number = None
    payment_currency: Text = None


class Comment(Schema):
    id: RefId = None
    note: Text = None
    made_by_id: RefId = None
    made_time: ProviderDate = None
    internal_note: Flag = None
    show_in_base: Flag = None


def _client_object(value: Any) -> Optional[dict[str, Any]]:
    if isinstance(value, dict):
        return value
    name = optional_str(value)
    return {"name": name} if name else None


def _check_period(record: Any) -> Any:
    if record.period_from and record.period_to and record.period_from > record.period_to:
        raise ValueError(
            f"periodFrom {record.period_from.isoformat()} is after periodTo {record.period_to.isoformat()}"
        )
    return record


def _drop_inverted_period(record: Any) -> Any:
    if record.period_from and record.period_to and record.period_from > record.period_to:
        logger.warning(
            f"{type(record).__name__} {record.id}: periodFrom {record.period_from.isoformat()} "
            f"is after periodTo {record.period_to.isoformat()}, dropping the period"
        )
        record.period_from = None
        record.period_to = None
    return record


class Reservation(Record):
    COLLECTION: ClassVar[str] = "reservations"

    id: ExternalId
    uuid: Text = None
    yacht_id: RefId = None
    period_from: ProviderDate = None
    period_to: ProviderDate = None
    base_from_id: RefId = None
    base_to_id: RefId = None
    location_from_id: RefId = None
    location_to_id: RefId = None
    client: Annotated[Optional[dict[str, Any]], BeforeValidator(_client_object)] = None
    reservation_type: Text = None
    reservation_status: Text = None
    booking_type: Text = None
    currency: Text = None
    price_list_price: Number = None
    agency_price: Number = None
    client_price: Number = None
    payment_currency: Text = None
    security_deposit: Number = None
    approved: Flag = None
    created_date: ProviderDate = None
    last_modified_at: ProviderDate = None

    discounts: Annotated[list[Discount], BeforeValidator(dict_list)] = Field(default_factory=list)
    services: Annotated[list[ReservationService], BeforeValidator(dict_list)] = Field(default_factory=list)
    additional_equipment: Annotated[list[ReservationEquipment], BeforeValidator(dict_list)] = Field(default_factory=list)
    payment_plans: Annotated[list[PaymentPlan], BeforeValidator(dict_list)] = Field(default_factory=list)
    payments: Annotated[list[Payment], BeforeValidator(dict_list)] = Field(default_factory=list)
    comments: Annotated[list[Comment], BeforeValidator(dict_list)] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_period(self):
        return _drop_inverted_period(self)


class Occupancy(Record):
    COLLECTION: ClassVar[str] = "occupancy"
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("companyId", "yachtId", "periodFrom", "periodTo")

    company_id: ExternalId
    yacht_id: ExternalId
    period_from: ProviderDate = None
    period_to: ProviderDate = None
    check_in_time: Text = None
    check_out_time: Text = None
    location_from_id: RefId = None
    location_to_id: RefId = None
    reservation_type: Text = None

    @model_validator(mode="after")
    def check_period(self):
        return _check_period(self)


class Journey(Record):
    """A prospective trip derived from an option (held reservation)."""

    COLLECTION: ClassVar[str] = "journeys"

    id: ExternalId
    yacht_id: RefId = None
    base_from_id: RefId = None
    base_to_id: RefId = None
    location_from_id: RefId = None
    location_to_id: RefId = None
    period_from: ProviderDate = None
    period_to: ProviderDate = None
    option_expiry: ProviderDate = None
    reservation_status: Text = None
    currency: Text = None
    price_list_price: Number = None
    agency_price: Number = None
    client_price: Number = None

    @model_validator(mode="after")
    def check_period(self):
        return _drop_inverted_period(self)


class CrewMember(Record):
    """Crew list entry; ids are only unique within one reservation."""

    COLLECTION: ClassVar[str] = "crew_members"
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("reservationId", "id")

    id: ExternalId
    reservation_id: ExternalId
    name: Text = None
    surname: Text = None
    date_of_birth: ProviderDate = None
    place_of_birth: Text = None
    nationality: Text = None
    passport_number: Text = None
    passport_issued_at: ProviderDate = None
    passport_valid_to: ProviderDate = None
    passport_issued_in: Text = None
    address: Text = None
    postcode: Text = None
    city: Text = None
    country: Text = None
    role: Text = None
    skipper: Flag = None
    disabled_person: Flag = None
    shoe_size: Text = None
    embarkment_date: ProviderDate = None
    disembarkment_date: ProviderDate = None


# ============================================
# Invoices and Contacts
# ============================================

class InvoiceClient(Schema):
    name: Text = None
    address: Text = None
    city: Text = None
    zip: Text = None
    country: Text = None
    vat_nr: Text = None


class InvoiceItem(Schema):
    id: ExternalId
    description: Text = None
    quantity: Number = None
    price: Number = None
    amount: Number = None
    vat_percentage: Number = None
    vat_amount: Number = None
    amount_with_vat: Number = None


class VatItem(Schema):
    percentage: Number = None
    base_amount: Number = None
    vat_amount: Number = None


class Invoice(Record):
    COLLECTION: ClassVar[str] = "invoices"

    id: ExternalId
    invoice_type: InvoiceType
    number: Text = None
    date: ProviderDate = None
    due_date: ProviderDate = None
    currency: Text = None
    total_amount: Number = None
    total_amount_with_vat: Number = None
    total_vat_amount: Number = None
    client: Optional[InvoiceClient] = None
    items: list[InvoiceItem] = Field(default_factory=list)
    vat_items: list[VatItem] = Field(default_factory=list)
    reservation_id: RefId = None


class Contact(Record):
    COLLECTION: ClassVar[str] = "contacts"

    id: ExternalId
    name: Text = None
    surname: Text = None
    company: Text = None
    country_id: RefId = None
    address: Text = None
    city: Text = None
    zip_code: Text = None
    email: Text = None
    phone: Text = None
    mobile: Text = None
    skype: Text = None
    vat_nr: Text = None
    belongs_to: RefId = None
    disabled: Flag = None
    contact_role_ids: IdList = Field(default_factory=list)
    last_modify_time: ProviderDate = None


# ============================================
# Cabin Charter
# ============================================

class CabinCharterBase(Record):
    COLLECTION: ClassVar[str] = "cabin_charter_bases"

    id: ExternalId
    location_id: RefId = None
    company_id: RefId = None
    disabled: Flag = None
    check_in_time: Text = None
    check_out_time: Text = None
    lat: Number = None
    lon: Number = None


class BankAccount(Schema):
    bank_name: Text = None
    bank_address: Text = None
    account_number: Text = None
    swift: Text = None
    iban: Text = None
    sepa: Flag = None


class CabinCharterCompany(Record):
    COLLECTION: ClassVar[str] = "cabin_charter_companies"

    id: ExternalId
    name: Text = None
    address: Text = None
    city: Text = None
    zip: Text = None
    country_id: RefId = None
    phone: Text = None
    fax: Text = None
    mobile: Text = None
    vatcode: Text = None
    web: Text = None
    email: Text = None
    pac: Text = None
    bank_accounts: Annotated[list[BankAccount], BeforeValidator(dict_list)] = Field(default_factory=list)


# ============================================
# Yacht Details
# ============================================

class YachtEquipment(Record):
    COLLECTION: ClassVar[str] = "yacht_equipment"
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("yachtId", "id")

    id: ExternalId
    yacht_id: ExternalId
    equipment_id: RefId = None
    name: MultilingualText = None
    category: Text = None
    quantity: Number = None
    price: Number = None
    currency: Text = None
    is_standard: Flag = None
    is_optional: Flag = None
    is_included: Flag = None


class YachtService(Record):
    COLLECTION: ClassVar[str] = "yacht_services"
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("yachtId", "id")

    id: ExternalId
    yacht_id: ExternalId
    service_id: RefId = None
    name: MultilingualText = None
    price: Number = None
    currency: Text = None
    price_measure: Text = None
    is_obligatory: Flag = None
    is_optional: Flag = None
    is_included: Flag = None
    category: Text = None


class YachtPricing(Record):
    COLLECTION: ClassVar[str] = "yacht_pricing"
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("yachtId", "id")

    id: ExternalId
    yacht_id: ExternalId
    period: Text = None
    start_date: ProviderDate = None
    end_date: ProviderDate = None
    weekly_price: Number = None
    currency: Text = None
    discount: Number = None
    discount_type: Text = None
    is_active: Flag = None


class Ratings(Schema):
    cleanliness: Rating = None
    equipment: Rating = None
    personal_service: Rating = None
    price_performance: Rating = None
    recommendation: Rating = None
    overall: Rating = None

    def average(self) -> Optional[float]:
        """Mean of the four scored categories, one decimal."""
        scores = [
            self.cleanliness,
            self.equipment,
            self.personal_service,
            self.price_performance,
        ]
        present = [score for score in scores if score is not None]
        if not present:
            return None
        return round(sum(present) / len(present), 1)


class YachtRating(Record):
    COLLECTION: ClassVar[str] = "yacht_ratings"
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("yachtId", "id")

    id: ExternalId
    yacht_id: ExternalId
    review_date: ProviderDate = None
    ratings: Ratings = Field(default_factory=Ratings)
    average_rating: Number = None
    source: Text = "internal"
    is_published: Flag = None

    @model_validator(mode="after")
    def derive_average(self) -> "YachtRating":
        self.average_rating = self.ratings.average()
        return self


# ============================================
# Free Cabin Charter
# ============================================

class FreeCabinSearchCriteria(Record):
    """Cached filter options for the cabin package search."""

    COLLECTION: ClassVar[str] = "free_cabin_search_criteria"
    CURRENT_ID: ClassVar[str] = "current"

    id: str = "current"
    countries: IdList = Field(default_factory=list)
    regions: IdList = Field(default_factory=list)
    locations: IdList = Field(default_factory=list)
    packages: IdList = Field(default_factory=list)
    last_updated: datetime


class CabinPrices(Schema):
    currency: Text = None
    price1: Number = None
    price2: Number = None
    discounts: Objects = Field(default_factory=list)


class FreeCabin(Schema):
    cabin_id: RefId = None
    number_of_free_cabins: Count = None
    prices: Optional[CabinPrices] = None


class CabinPackagePeriod(Schema):
    period_from: ProviderDate = None
    period_to: ProviderDate = None
    free_cabins: Annotated[list[FreeCabin], BeforeValidator(dict_list)] = Field(default_factory=list)

    def overlaps(self, period_from: datetime, period_to: datetime) -> bool:
        if self.period_from is None or self.period_to is None:
            return False
        return self.period_from <= period_to and self.period_to >= period_from


class FreeCabinPackage(Record):
    COLLECTION: ClassVar[str] = "free_cabin_packages"
    KEY_FIELDS: ClassVar[tuple[str, ...]] = ("packageId",)

    package_id: ExternalId
    package_name: Text = None
    package_description: Text = None
    yacht_id: RefId = None
    yacht_name: Text = None
    yacht_length: Measure = None
    yacht_length_feet: Measure = None
    yacht_equipment: Objects = Field(default_factory=list)
    yacht_services: Objects = Field(default_factory=list)
    charter_company_id: RefId = None
    charter_company_name: Text = None
    location_id: RefId = None
    location_name: Text = None
    region_id: RefId = None
    region_name: Text = None
    country_id: RefId = None
    country_name: Text = None
    cabin_package_periods: Annotated[list[CabinPackagePeriod], BeforeValidator(dict_list)] = Field(default_factory=list)
    cabin_package_cabins: Objects = Field(default_factory=list)
    cabin_package_prices: Objects = Field(default_factory=list)
    status: Literal["FREE", "UNDER_OPTION"] = "FREE"
    ignore_options: bool = False

    def available_between(self, period_from: datetime, period_to: datetime) -> bool:
        return any(period.overlaps(period_from, period_to) for period in self.cabin_package_periods)


# ============================================
# Registry
# ============================================

CATALOGUE_RECORDS: dict[str, type[Record]] = {
    "countries": Country,
    "regions": Region,
    "locations": Location,
    "bases": Base,
    "equipment": Equipment,
    "yacht_categories": YachtCategory,
    "services": Service,
    "yacht_builders": YachtBuilder,
}


__all__ = [
    "Record",
    "Schema",
    "INVOICE_TYPES",
    "CATALOGUE_RECORDS",
    "Country",
    "Region",
    "Location",
    "Base",
    "Equipment",
    "YachtCategory",
    "YachtBuilder",
    "Service",
    "CharterCompany",
    "YachtModel",
    "EquipmentItem",
    "ServiceItem",
    "SeasonalPrice",
    "Yacht",
    "Discount",
    "ReservationService",
    "ReservationEquipment",
    "PaymentPlan",
    "Payment",
    "Comment",
    "Reservation",
    "Occupancy",
    "Journey",
    "CrewMember",
    "InvoiceClient",
    "InvoiceItem",
    "VatItem",
    "Invoice",
    "Contact",
    "CabinCharterBase",
    "BankAccount",
    "CabinCharterCompany",
    "YachtEquipment",
    "YachtService",
    "YachtPricing",
    "Ratings",
    "YachtRating",
    "FreeCabinSearchCriteria",
    "CabinPrices",
    "FreeCabin",
    "CabinPackagePeriod",
    "FreeCabinPackage",
]
