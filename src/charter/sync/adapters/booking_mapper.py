"""Field mapper adapters for booking-side records.

Covers reservations, occupancy, journeys (derived from options), crew lists,
invoices and contacts. Like the catalogue mappers these only resolve the
provider's key names; numbers, dates and multilingual text are normalized by
the record schemas.
"""

from typing import Any

from ..domain.normalizers import dict_list, external_id, optional_id, optional_number
from ..domain.records import (
    Contact,
    CrewMember,
    Invoice,
    InvoiceType,
    Journey,
    Occupancy,
    Reservation,
)
from .field_mapper import first_present

# Synthesized invoice item ids are invoice_id * ITEM_ID_FACTOR + position
ITEM_ID_FACTOR = 1000


class ReservationFieldMapper:
    """Maps reservations, occupancy entries and options."""

    def map_reservation(self, raw: dict[str, Any]) -> Reservation:
        return Reservation.model_validate({**raw, "id": external_id(raw.get("id"))})

    def map_occupancy(self, raw: dict[str, Any]) -> Occupancy:
        data = {
            **raw,
            "company_id": external_id(raw.get("companyId"), field="companyId"),
            "yacht_id": external_id(raw.get("yachtId"), field="yachtId"),
        }
        data.pop("companyId", None)
        data.pop("yachtId", None)
        return Occupancy.model_validate(data)

    def map_journey(self, raw: dict[str, Any]) -> Journey:
        """Map an option (held reservation) to a prospective journey."""
        data = {
            "id": external_id(raw.get("id")),
            "yacht_id": raw.get("yachtId"),
            "base_from_id": raw.get("baseFromId"),
            "base_to_id": raw.get("baseToId"),
            "location_from_id": raw.get("locationFromId"),
            "location_to_id": raw.get("locationToId"),
            "period_from": raw.get("periodFrom"),
            "period_to": raw.get("periodTo"),
            "option_expiry": first_present(raw, "optionTill", "optionExpirationDate", "validUntil"),
            "reservation_status": first_present(raw, "reservationStatus", "status"),
            "currency": raw.get("currency"),
            "price_list_price": raw.get("priceListPrice"),
            "agency_price": raw.get("agencyPrice"),
            "client_price": raw.get("clientPrice"),
        }
        return Journey.model_validate(data)

    def map_crew_member(self, raw: dict[str, Any], reservation_id: int) -> CrewMember:
        data = {
            **raw,
            "id": external_id(raw.get("id")),
            "reservation_id": reservation_id,
        }
        data.pop("reservationId", None)
        return CrewMember.model_validate(data)


class InvoiceFieldMapper:
    """Maps provider invoices, whose field names are all lower-case.

    Provider names:
        altcurrency                 -> currency
        totalaltpricewithouttax     -> totalAmount
        totalaltprice               -> totalAmountWithVat
        totalalttax                 -> totalVatAmount
        client2 + clientcountry     -> client
        items.items                 -> items (with per-item VAT)
    """

    def map_invoice(self, raw: dict[str, Any], invoice_type: InvoiceType) -> Invoice:
        """Transform a provider invoice into an Invoice record.

        Args:
            raw: Raw invoice dictionary
            invoice_type: Which invoice endpoint it came from (base/agency/owner)

        Returns:
            Invoice record with synthesized ids for items that lack one
        """
        invoice_id = external_id(raw.get("id"))
        items = self.map_items(invoice_id, self._raw_items(raw))
        vat_items = self.map_vat_items(raw, items)

        data = {
            "id": invoice_id,
            "invoice_type": invoice_type,
            "number": raw.get("number"),
            "date": raw.get("date"),
            "due_date": raw.get("dueDate"),
            "currency": first_present(raw, "altcurrency", "currency"),
            "total_amount": first_present(raw, "totalaltpricewithouttax", "totalAmount"),
            "total_amount_with_vat": first_present(raw, "totalaltprice", "totalAmountWithVat"),
            "total_vat_amount": first_present(raw, "totalalttax", "totalVatAmount"),
            "client": self._client(raw),
            "items": items,
            "vat_items": vat_items,
            "reservation_id": raw.get("reservationId"),
        }
        return Invoice.model_validate(data)

    @staticmethod
    def _raw_items(raw: dict[str, Any]) -> list[dict[str, Any]]:
        items = raw.get("items")
        if isinstance(items, dict):
            items = items.get("items")
        return dict_list(items)

    @staticmethod
    def _client(raw: dict[str, Any]) -> dict[str, Any] | None:
        client = raw.get("client2")
        if not isinstance(client, dict):
            client = raw.get("client") if isinstance(raw.get("client"), dict) else {}
        country = first_present(raw, "clientcountry") or client.get("country")
        if not client and country is None:
            return None
        return {
            "name": client.get("name"),
            "address": client.get("address"),
            "city": client.get("city"),
            "zip": client.get("zip"),
            "country": country,
            "vat_nr": client.get("vatNr"),
        }

    def map_items(self, invoice_id: int, raw_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Map line items, synthesizing unique ids where the provider gave none.

        A synthesized id is ``invoice_id * 1000 + position`` (1-based), moved
        forward past any id already used in the same invoice, so it is stable
        across runs and never collides within one invoice.
        """
        used = {optional_id(item.get("id")) for item in raw_items} - {None}
        items = []
        for position, item in enumerate(raw_items, start=1):
            item_id = optional_id(item.get("id"))
            if item_id is None:
                item_id = invoice_id * ITEM_ID_FACTOR + position
                while item_id in used:
                    item_id += 1
                used.add(item_id)
            items.append({
                "id": item_id,
                "description": first_present(item, "identname", "description", "name"),
                "quantity": item.get("quantity"),
                "price": first_present(item, "singlepricewithouttax", "price"),
                "amount": first_present(item, "totalaltpricewithouttax", "amount"),
                "vat_percentage": first_present(item, "vatrate", "vatPercentage"),
                "vat_amount": first_present(item, "totalalttax", "vatAmount"),
                "amount_with_vat": first_present(item, "totalaltpricewithtax", "amountWithVat"),
            })
        return items

    def map_vat_items(
        self,
        raw: dict[str, Any],
        items: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Aggregate VAT summary: the provider's when present, else grouped from items."""
        provided = dict_list(first_present(raw, "vatItems", "vats"))
        if provided:
            return [
                {
                    "percentage": first_present(vat, "vatrate", "percentage"),
                    "base_amount": first_present(vat, "totalaltpricewithouttax", "baseAmount"),
                    "vat_amount": first_present(vat, "totalalttax", "vatAmount"),
                }
                for vat in provided
            ]

        groups: dict[float, dict[str, float]] = {}
        for item in items:
            percentage = optional_number(item["vat_percentage"])
            if percentage is None:
                continue
            group = groups.setdefault(percentage, {"base_amount": 0.0, "vat_amount": 0.0})
            group["base_amount"] += optional_number(item["amount"]) or 0.0
            group["vat_amount"] += optional_number(item["vat_amount"]) or 0.0

        return [
            {
                "percentage": percentage,
                "base_amount": round(totals["base_amount"], 2),
                "vat_amount": round(totals["vat_amount"], 2),
            }
            for percentage, totals in sorted(groups.items())
        ]


class ContactFieldMapper:
    def map_contact(self, raw: dict[str, Any]) -> Contact:
        return Contact.model_validate({**raw, "id": external_id(raw.get("id"))})


__all__ = [
    "ITEM_ID_FACTOR",
    "ReservationFieldMapper",
    "InvoiceFieldMapper",
    "ContactFieldMapper",
]
