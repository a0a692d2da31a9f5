"""Tests for NausysCharterAPI: endpoints, request bodies and response envelopes."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.charter.sync.adapters.nausys_api_adapter import NausysCharterAPI


@pytest.fixture
def client():
    client = MagicMock()
    client.post = AsyncMock(return_value={"status": "OK"})
    return client


@pytest.fixture
def api(client):
    return NausysCharterAPI(client)


class TestCatalogueEndpoints:
    @pytest.mark.asyncio
    async def test_collection_key_differs_from_name(self, api, client):
        client.post.return_value = {"status": "OK", "builders": [{"id": 3}, "garbage"]}

        builders = await api.fetch_yacht_builders()

        assert builders == [{"id": 3}]
        client.post.assert_awaited_once_with("/catalogue/v6/yachtBuilders")

    @pytest.mark.asyncio
    async def test_missing_collection_is_empty(self, api, client):
        assert await api.fetch_countries() == []

    @pytest.mark.asyncio
    async def test_company_yachts_refetch_by_ids(self, api, client):
        await api.fetch_yachts(7, [101, 102])

        client.post.assert_awaited_once_with("/catalogue/v6/yachts/7", {"yachtIDs": [101, 102]})

    @pytest.mark.asyncio
    async def test_single_yacht_from_list_envelope(self, api, client):
        client.post.return_value = {"status": "OK", "yachts": [{"id": 101, "beam": 4.2}]}

        assert await api.fetch_yacht(101) == {"id": 101, "beam": 4.2}

    @pytest.mark.asyncio
    async def test_single_yacht_not_found(self, api, client):
        assert await api.fetch_yacht(101) is None

    @pytest.mark.asyncio
    async def test_yacht_detail_alternative_keys(self, api, client):
        client.post.return_value = {"status": "OK", "reviews": [{"id": 8}]}

        assert await api.fetch_yacht_ratings(101) == [{"id": 8}]
        client.post.assert_awaited_once_with("/catalogue/v6/yachtRatings/101")


class TestReservationEndpoints:
    @pytest.mark.asyncio
    async def test_period_and_nested_credentials(self, api, client):
        client.post.return_value = {"status": "OK", "reservations": [{"id": 500}]}

        reservations = await api.fetch_reservations(date(2024, 1, 1), date(2024, 12, 31))

        assert reservations == [{"id": 500}]
        client.post.assert_awaited_once_with(
            "/yachtReservation/v6/reservations",
            {"periodFrom": "01.01.2024", "periodTo": "31.12.2024"},
            nest_credentials=True,
        )

    @pytest.mark.asyncio
    async def test_occupancy_carries_envelope_company(self, api, client):
        client.post.return_value = {
            "status": "OK",
            "companyId": 70,
            "reservations": [{"yachtId": 101}, {"yachtId": 102, "companyId": 71}],
        }

        entries = await api.fetch_occupancy(7, 2024)

        client.post.assert_awaited_once_with("/yachtReservation/v6/occupancy/7/2024")
        assert entries == [
            {"companyId": 70, "yachtId": 101},
            {"companyId": 71, "yachtId": 102},
        ]

    @pytest.mark.asyncio
    async def test_occupancy_defaults_to_requested_company(self, api, client):
        client.post.return_value = {"status": "OK", "reservations": [{"yachtId": 101}]}

        assert await api.fetch_occupancy(7, 2024) == [{"companyId": 7, "yachtId": 101}]

    @pytest.mark.asyncio
    async def test_crew_list_path(self, api, client):
        client.post.return_value = {"status": "OK", "passengers": [{"id": 1}]}

        assert await api.fetch_crew_list(500, "s3cret") == [{"id": 1}]
        client.post.assert_awaited_once_with("/crewList/v6/get/500/s3cret")

    @pytest.mark.asyncio
    async def test_free_yachts_filter(self, api, client):
        await api.fetch_free_yachts(date(2024, 6, 1), date(2024, 6, 8), [101])

        payload = client.post.await_args.args[1]
        assert payload["yachts"] == [101]

    @pytest.mark.asyncio
    async def test_free_yachts_without_filter(self, api, client):
        await api.fetch_free_yachts(date(2024, 6, 1), date(2024, 6, 8))

        assert "yachts" not in client.post.await_args.args[1]


class TestInvoiceAndCabinEndpoints:
    @pytest.mark.asyncio
    async def test_invoice_type_in_path(self, api, client):
        client.post.return_value = {"status": "OK", "invoices": [{"id": 1}]}

        assert await api.fetch_invoices("agency", date(2024, 1, 1), date(2024, 12, 31)) == [{"id": 1}]
        assert client.post.await_args.args[0] == "/invoice/v6/agency"

    @pytest.mark.asyncio
    async def test_invalid_invoice_type(self, api, client):
        with pytest.raises(ValueError):
            await api.fetch_invoices("supplier", date(2024, 1, 1), date(2024, 12, 31))

        client.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_package_search_body(self, api, client):
        client.post.return_value = {"status": "OK", "freeCabinPackages": [{"packageId": 9}]}

        packages = await api.search_free_cabin_packages(
            date(2024, 6, 1), date(2024, 6, 8), countries=[1], ignore_options=True,
        )

        assert packages == [{"packageId": 9}]
        payload = client.post.await_args.args[1]
        assert payload["countries"] == [1]
        assert payload["locations"] == []
        assert payload["ignoreOptions"] is True
        assert client.post.await_args.kwargs == {"nest_credentials": True}

    def test_every_endpoint_is_versioned_or_templated(self):
        for name, path in NausysCharterAPI.ENDPOINTS.items():
            assert path.startswith("/"), name
            assert "/v6" in path, name
