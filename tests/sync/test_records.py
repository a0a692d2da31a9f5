"""Tests for the versioned record schemas.

Records are validated right after mapping, so these tests check that a
record that validates only holds canonical values, and that its stored
document form never carries an unknown value that would erase a known one.
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from src.charter.sync.domain.records import (
    CATALOGUE_RECORDS,
    Country,
    CrewMember,
    FreeCabinPackage,
    FreeCabinSearchCriteria,
    Journey,
    Occupancy,
    Reservation,
    Yacht,
    YachtRating,
)


class TestYachtRecord:
    """Numeric fields are normalized independently of each other."""

    def test_bad_field_does_not_void_the_record(self):
        yacht = Yacht.model_validate({
            "id": "7",
            "name": "Sea Breeze",
            "length": "13.9",
            "beam": "n/a",
            "cabins": "4",
            "draft": -2,
        })

        assert yacht.id == 7
        assert yacht.length == 13.9
        assert yacht.beam is None
        assert yacht.cabins == 4
        assert yacht.draft is None
        assert yacht.name["textEN"] == "Sea Breeze"

    def test_document_is_camel_case_without_unknown_values(self):
        yacht = Yacht.model_validate({"id": 7, "charterCompanyId": 3, "fuelCapacity": "200"})

        document = yacht.to_document()

        assert document["charterCompanyId"] == 3
        assert document["fuelCapacity"] == 200.0
        assert document["schemaVersion"] == Yacht.SCHEMA_VERSION
        assert "beam" not in document
        assert "modelId" not in document

    def test_round_trip_through_document(self):
        yacht = Yacht.model_validate({"id": 7, "name": "Sea Breeze", "beam": 4.2})

        restored = Yacht.from_document({**yacht.to_document(), "updatedAt": "2024-01-01T00:00:00"})

        assert restored == yacht

    def test_missing_id_is_rejected(self):
        with pytest.raises(ValidationError):
            Yacht.model_validate({"name": "Nameless", "id": None})


class TestKeys:
    def test_single_id_key(self):
        assert Country(id=1).store_key() == {"id": 1}

    def test_crew_members_are_scoped_to_reservation(self):
        member = CrewMember(id=1, reservation_id=500)

        assert member.store_key() == {"reservationId": 500, "id": 1}

    def test_occupancy_key(self):
        entry = Occupancy.model_validate({
            "companyId": 3,
            "yachtId": 7,
            "periodFrom": "01.06.2024",
            "periodTo": "08.06.2024",
        })

        assert entry.store_key() == {
            "companyId": 3,
            "yachtId": 7,
            "periodFrom": datetime(2024, 6, 1),
            "periodTo": datetime(2024, 6, 8),
        }

    def test_free_cabin_package_key(self):
        assert FreeCabinPackage(package_id=9).store_key() == {"packageId": 9}

    def test_criteria_is_a_single_snapshot(self):
        criteria = FreeCabinSearchCriteria(last_updated=datetime(2024, 1, 1))

        assert criteria.store_key() == {"id": FreeCabinSearchCriteria.CURRENT_ID}

    def test_catalogue_registry_collections(self):
        for collection, record_class in CATALOGUE_RECORDS.items():
            assert record_class.COLLECTION == collection


class TestReservationRecord:
    def test_provider_dates_are_parsed(self):
        reservation = Reservation.model_validate({
            "id": 1,
            "periodFrom": "01.06.2024 17:00",
            "periodTo": "08.06.2024 09:00",
        })

        assert reservation.period_from == datetime(2024, 6, 1, 17, 0)
        assert reservation.period_to == datetime(2024, 6, 8, 9, 0)

    def test_unparseable_date_is_left_unset(self):
        reservation = Reservation.model_validate({"id": 1, "periodFrom": "soon"})

        assert reservation.period_from is None

    def test_inverted_period_is_dropped(self):
        reservation = Reservation.model_validate({
            "id": 1,
            "yachtId": 101,
            "periodFrom": "10.03.2024",
            "periodTo": "05.03.2024",
            "clientPrice": "1500",
        })

        assert reservation.period_from is None
        assert reservation.period_to is None
        assert reservation.client_price == 1500.0
        document = reservation.to_document()
        assert "periodFrom" not in document
        assert "periodTo" not in document
        assert document["yachtId"] == 101

    def test_journey_inverted_period_is_dropped(self):
        journey = Journey.model_validate({"id": 9, "periodFrom": "08.06.2024", "periodTo": "01.06.2024"})

        assert journey.period_from is None
        assert journey.period_to is None

    def test_occupancy_inverted_period_is_rejected(self):
        with pytest.raises(ValidationError):
            Occupancy.model_validate({
                "companyId": 7,
                "yachtId": 101,
                "periodFrom": "08.06.2024",
                "periodTo": "01.06.2024",
            })

    def test_nested_numbers_are_normalized(self):
        reservation = Reservation.model_validate({
            "id": 1,
            "discounts": [{"discountItemId": 2, "amount": "10.5"}],
            "services": [{"id": 3, "amount": "abc"}, "not an object"],
            "client": "Jane Doe",
        })

        assert reservation.discounts[0].amount == 10.5
        assert len(reservation.services) == 1
        assert reservation.services[0].amount is None
        assert reservation.client == {"name": "Jane Doe"}


class TestYachtRating:
    def test_average_of_four_scored_categories(self):
        rating = YachtRating.model_validate({
            "id": 1,
            "yachtId": 7,
            "ratings": {
                "cleanliness": 5,
                "equipment": "4",
                "personalService": 4,
                "pricePerformance": 4,
                "overall": 1,
            },
        })

        assert rating.average_rating == 4.2

    def test_out_of_range_ratings_are_ignored(self):
        rating = YachtRating.model_validate({
            "id": 1,
            "yachtId": 7,
            "ratings": {"cleanliness": 9, "equipment": 3},
        })

        assert rating.ratings.cleanliness is None
        assert rating.average_rating == 3.0

    def test_no_ratings_no_average(self):
        rating = YachtRating(id=1, yacht_id=7)

        assert rating.average_rating is None
        assert rating.source == "internal"


class TestFreeCabinPackage:
    @pytest.fixture
    def package(self):
        return FreeCabinPackage.model_validate({
            "packageId": 9,
            "cabinPackagePeriods": [
                {"periodFrom": "01.06.2024", "periodTo": "08.06.2024"},
            ],
        })

    def test_overlapping_period(self, package):
        assert package.available_between(datetime(2024, 6, 7), datetime(2024, 6, 14))

    def test_touching_period_overlaps(self, package):
        assert package.available_between(datetime(2024, 6, 8), datetime(2024, 6, 15))

    def test_disjoint_period(self, package):
        assert not package.available_between(datetime(2024, 6, 9), datetime(2024, 6, 15))
