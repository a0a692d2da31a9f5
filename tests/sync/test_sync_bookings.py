"""Tests for the reservation, occupancy, crew, invoice, contact and journey synchronizers."""

from datetime import date, datetime

import pytest
from fakes import FakeCharterAPI, stored_documents

from src.charter.api.exceptions import (
    AuthenticationError,
    ServerError,
    SyncError,
    TransportError,
)
from src.charter.sync.adapters.memory_document_store import InMemoryDocumentStore
from src.charter.sync.domain.entities import SyncWindow
from src.charter.sync.use_cases import (
    SyncContactsUseCase,
    SyncCrewUseCase,
    SyncInvoicesUseCase,
    SyncJourneysUseCase,
    SyncReservationsUseCase,
)

WINDOW = SyncWindow(period_from=date(2023, 6, 1), period_to=date(2025, 6, 1))


async def seed(store, collection, *ids):
    for record_id in ids:
        await store.upsert(collection, {"id": record_id}, {"id": record_id})


@pytest.fixture
def store():
    return InMemoryDocumentStore()


class TestSyncReservations:
    @pytest.fixture
    def api(self):
        return FakeCharterAPI(
            reservations=[
                {"id": 500, "yachtId": 101, "periodFrom": "01.06.2024", "periodTo": "08.06.2024",
                 "reservationStatus": "RESERVATION", "clientPrice": "2300.50"},
                {"id": 501, "yachtId": 102, "periodFrom": "08.06.2024", "periodTo": "01.06.2024"},
            ],
            occupancy={
                7: [
                    {"companyId": 7, "yachtId": 101, "periodFrom": "01.06.2024", "periodTo": "08.06.2024"},
                    {"companyId": 7, "yachtId": 101, "periodFrom": "08.06.2024", "periodTo": "15.06.2024"},
                ],
                8: [{"companyId": 8, "yachtId": 102, "periodFrom": "01.07.2024", "periodTo": "08.07.2024"}],
            },
        )

    @pytest.mark.asyncio
    async def test_reservations_use_the_window(self, api, store):
        result = await SyncReservationsUseCase(api, store).execute(WINDOW, include_occupancy=False)

        assert api.called("fetch_reservations") == [(WINDOW.period_from, WINDOW.period_to)]
        assert api.called("fetch_occupancy") == []
        assert result.upserted == 2
        assert result.errors == 0
        reservation = await store.find_one("reservations", {"id": 500})
        assert reservation["periodFrom"] == datetime(2024, 6, 1)
        assert reservation["clientPrice"] == 2300.5

    @pytest.mark.asyncio
    async def test_inverted_period_keeps_reservation(self, api, store):
        await SyncReservationsUseCase(api, store).execute(WINDOW, include_occupancy=False)

        # 501 ends before it starts: stored without a period
        reservation = await store.find_one("reservations", {"id": 501})
        assert reservation["yachtId"] == 102
        assert "periodFrom" not in reservation
        assert "periodTo" not in reservation

    @pytest.mark.asyncio
    async def test_second_run_leaves_store_unchanged(self, api, store):
        await seed(store, "charter_companies", 7, 8)
        use_case = SyncReservationsUseCase(api, store)
        await use_case.execute(WINDOW)
        first = await stored_documents(store)

        await use_case.execute(WINDOW)

        assert await stored_documents(store) == first
        assert await store.count("occupancy") == 3

    @pytest.mark.asyncio
    async def test_occupancy_for_every_stored_company(self, api, store):
        await seed(store, "charter_companies", 8, 7)

        result = await SyncReservationsUseCase(api, store).execute(WINDOW)

        year = date.today().year
        assert api.called("fetch_occupancy") == [(7, year), (8, year)]
        assert await store.count("occupancy") == 3
        assert result.collections["occupancy"] == 3
        assert await store.count("occupancy", {"companyId": 7}) == 2

    @pytest.mark.asyncio
    async def test_occupancy_company_failure_is_isolated(self, api, store):
        await seed(store, "charter_companies", 7, 8)
        api.fail("fetch_occupancy", TransportError("reset"), arg=7)

        result = await SyncReservationsUseCase(api, store).execute(WINDOW)

        assert result.success is False
        assert await store.count("occupancy", {"companyId": 7}) == 0
        assert await store.count("occupancy", {"companyId": 8}) == 1

    @pytest.mark.asyncio
    async def test_no_companies_skips_occupancy(self, api, store):
        await SyncReservationsUseCase(api, store).execute(WINDOW)

        assert api.called("fetch_occupancy") == []

    @pytest.mark.asyncio
    async def test_reservation_fetch_failure_propagates(self, store):
        api = FakeCharterAPI().fail("fetch_reservations", AuthenticationError())

        with pytest.raises(AuthenticationError):
            await SyncReservationsUseCase(api, store).execute(WINDOW)


class TestSyncCrew:
    @pytest.fixture
    def api(self):
        return FakeCharterAPI(crew={
            500: [{"id": 1, "name": "Ana", "skipper": "true"}],
            501: [{"id": 1, "name": "Marko"}, {"id": 2, "name": "Iva"}],
        })

    @pytest.mark.asyncio
    async def test_skipped_without_security_code(self, api, store):
        await seed(store, "reservations", 500)

        result = await SyncCrewUseCase(api, store, security_code=None).execute()

        assert result.skipped == 1
        assert result.success is True
        assert api.called("fetch_crew_list") == []

    @pytest.mark.asyncio
    async def test_crew_ids_are_scoped_per_reservation(self, api, store):
        await seed(store, "reservations", 500, 501)

        result = await SyncCrewUseCase(api, store, security_code="s3cret").execute()

        assert api.called("fetch_crew_list") == [(500, "s3cret"), (501, "s3cret")]
        assert result.upserted == 3
        assert await store.count("crew_members") == 3
        ana = await store.find_one("crew_members", {"reservationId": 500, "id": 1})
        assert ana["name"] == "Ana"
        assert ana["skipper"] is True

    @pytest.mark.asyncio
    async def test_one_reservation_failing(self, api, store):
        await seed(store, "reservations", 500, 501)
        api.fail("fetch_crew_list", ServerError(), arg=500)

        result = await SyncCrewUseCase(api, store, security_code="s3cret").execute()

        assert result.success is False
        assert result.errors == 1
        assert await store.count("crew_members") == 2

    @pytest.mark.asyncio
    async def test_every_reservation_failing(self, api, store):
        await seed(store, "reservations", 500, 501)
        api.fail("fetch_crew_list", AuthenticationError())

        with pytest.raises(SyncError):
            await SyncCrewUseCase(api, store, security_code="wrong").execute()

    @pytest.mark.asyncio
    async def test_no_reservations(self, api, store):
        result = await SyncCrewUseCase(api, store, security_code="s3cret").execute()

        assert result.total == 0
        assert not result.skipped


class TestSyncInvoices:
    @pytest.fixture
    def api(self):
        return FakeCharterAPI(invoices={
            "base": [{"id": 1, "number": "B-1", "items": [{"identname": "Charter"}, {"identname": "Fuel"}]}],
            "agency": [{"id": 2, "number": "A-1"}],
            "owner": [{"id": 3, "number": "O-1", "items": [{"identname": "Commission"}]}],
        })

    @pytest.mark.asyncio
    async def test_every_type_is_stored(self, api, store):
        result = await SyncInvoicesUseCase(api, store).execute(WINDOW)

        assert [args[0] for args in api.called("fetch_invoices")] == ["base", "agency", "owner"]
        assert result.upserted == 3
        assert await store.aggregate_count("invoices", "invoiceType") == {"base": 1, "agency": 1, "owner": 1}

    @pytest.mark.asyncio
    async def test_item_ids_are_unique_within_an_invoice(self, api, store):
        await SyncInvoicesUseCase(api, store).execute(WINDOW)

        invoice = await store.find_one("invoices", {"id": 1})
        ids = [item["id"] for item in invoice["items"]]
        assert len(ids) == 2
        assert len(set(ids)) == 2

    @pytest.mark.asyncio
    async def test_missing_due_date_stays_absent(self, store):
        api = FakeCharterAPI(invoices={"base": [
            {"id": 4, "date": "15.06.2024"},
            {"id": 5, "date": "15.06.2024", "dueDate": "30.06.2024"},
        ]})

        await SyncInvoicesUseCase(api, store).execute(WINDOW)

        invoice = await store.find_one("invoices", {"id": 4})
        assert invoice["date"] == datetime(2024, 6, 15)
        assert "dueDate" not in invoice
        assert (await store.find_one("invoices", {"id": 5}))["dueDate"] == datetime(2024, 6, 30)

    @pytest.mark.asyncio
    async def test_second_run_leaves_store_unchanged(self, store):
        api = FakeCharterAPI(invoices={
            "base": [{"id": 1, "items": [{"id": 1002, "identname": "Charter"}, {"identname": "Fuel"}, {}]}],
            "owner": [{"id": 3, "items": [{"identname": "Commission"}]}],
        })
        use_case = SyncInvoicesUseCase(api, store)
        await use_case.execute(WINDOW)
        first = await stored_documents(store)

        await use_case.execute(WINDOW)

        assert await stored_documents(store) == first
        assert await store.count("invoices") == 2
        ids = [item["id"] for item in (await store.find_one("invoices", {"id": 1}))["items"]]
        assert ids == [item["id"] for item in first["invoices"][0]["items"]]
        assert len(set(ids)) == 3

    @pytest.mark.asyncio
    async def test_failed_type_does_not_stop_the_others(self, api, store):
        api.fail("fetch_invoices", TransportError("agency endpoint down"), arg="agency")

        result = await SyncInvoicesUseCase(api, store).execute(WINDOW)

        assert result.success is False
        assert result.errors == 1
        assert await store.find_one("invoices", {"invoiceType": "base"}) is not None
        assert await store.find_one("invoices", {"invoiceType": "owner"}) is not None
        assert await store.count("invoices", {"invoiceType": "agency"}) == 0

    @pytest.mark.asyncio
    async def test_every_type_failing(self, store):
        api = FakeCharterAPI().fail("fetch_invoices", ServerError())

        with pytest.raises(SyncError) as exc_info:
            await SyncInvoicesUseCase(api, store).execute(WINDOW)

        assert exc_info.value.domain == "invoices"


class TestSyncContactsAndJourneys:
    @pytest.mark.asyncio
    async def test_contacts(self, store):
        api = FakeCharterAPI(contacts=[
            {"id": 3, "name": "Jane", "email": "jane@example.com", "contactRoleIds": [1, 2]},
            {"name": "No id"},
        ])

        result = await SyncContactsUseCase(api, store).execute(WINDOW)

        assert api.called("fetch_contacts") == [(WINDOW.period_from, WINDOW.period_to)]
        assert result.upserted == 1
        assert result.errors == 1
        contact = await store.find_one("contacts", {"id": 3})
        assert contact["contactRoleIds"] == [1, 2]

    @pytest.mark.asyncio
    async def test_contact_fetch_failure_propagates(self, store):
        api = FakeCharterAPI().fail("fetch_contacts", TransportError("reset"))

        with pytest.raises(TransportError):
            await SyncContactsUseCase(api, store).execute(WINDOW)

    @pytest.mark.asyncio
    async def test_journeys_from_options(self, store):
        api = FakeCharterAPI(options=[{
            "id": 77,
            "yachtId": 101,
            "periodFrom": "01.06.2024",
            "periodTo": "08.06.2024",
            "optionTill": "20.05.2024 12:00",
        }])

        result = await SyncJourneysUseCase(api, store).execute(WINDOW)

        assert result.domain == "journeys"
        journey = await store.find_one("journeys", {"id": 77})
        assert journey["optionExpiry"] == datetime(2024, 5, 20, 12, 0)
        assert journey["periodTo"] == datetime(2024, 6, 8)
