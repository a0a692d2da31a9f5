"""Tests for SyncYachtsUseCase and the standalone model-spec pass."""

import pytest
from fakes import FakeCharterAPI, fleet_data, stored_documents

from src.charter.api.exceptions import ServerError, SyncError, TransportError
from src.charter.sync.adapters.field_mapper import YachtFieldMapper
from src.charter.sync.adapters.memory_document_store import InMemoryDocumentStore
from src.charter.sync.use_cases import ApplyModelSpecsUseCase, SyncYachtsUseCase
from src.charter.sync.use_cases.sync_yachts import is_summary

FULL_YACHT = {
    "id": 101,
    "name": "Bavaria Cruiser 46",
    "beam": "4.2",
    "cabins": 4,
    "baseId": 1000,
    "picturesURL": ["a.jpg"],
}


@pytest.fixture
def store():
    return InMemoryDocumentStore()


def test_is_summary():
    assert is_summary({"id": 1, "name": "Sea Breeze"})
    assert is_summary({"id": 1})
    assert not is_summary({"id": 1, "name": "Sea Breeze", "beam": 4.2})


class TestYachtSync:
    @pytest.mark.asyncio
    async def test_companies_models_and_yachts_are_stored(self, store):
        api = FakeCharterAPI(**fleet_data())

        result = await SyncYachtsUseCase(api, store).execute()

        assert result.success is True
        assert await store.count("charter_companies") == 2
        assert await store.count("yacht_models") == 2
        assert await store.count("yachts") == 2
        assert api.called("fetch_yachts") == [(7, None), (8, None)]

    @pytest.mark.asyncio
    async def test_inferred_model_backfills_without_overwriting(self, store):
        await SyncYachtsUseCase(FakeCharterAPI(**fleet_data()), store).execute()

        yacht = await store.find_one("yachts", {"id": 101})
        assert yacht["charterCompanyId"] == 7
        assert yacht["modelId"] == 12
        assert yacht["builderId"] == 3
        assert yacht["beam"] == 4.2
        assert yacht["length"] == 14.27
        assert yacht["draft"] == 2.1
        assert yacht["fuelCapacity"] == 210.0
        assert yacht["waterCapacity"] == 360.0

    @pytest.mark.asyncio
    async def test_explicit_model_linkage(self, store):
        await SyncYachtsUseCase(FakeCharterAPI(**fleet_data()), store).execute()

        yacht = await store.find_one("yachts", {"id": 102})
        assert yacht["modelId"] == 13
        assert yacht["builderId"] == 4
        assert yacht["length"] == 14.6
        assert yacht["beam"] == 4.5
        assert "draft" not in yacht

    @pytest.mark.asyncio
    async def test_id_list_is_refetched_in_one_batch(self, store):
        data = fleet_data()
        data["yachts"] = {7: {"yachtIDs": [101]}}
        data["yachts_by_ids"] = {7: {"yachts": [FULL_YACHT]}}
        api = FakeCharterAPI(**data)

        await SyncYachtsUseCase(api, store).execute()

        assert (7, [101]) in api.called("fetch_yachts")
        assert api.called("fetch_yacht") == []
        yacht = await store.find_one("yachts", {"id": 101})
        assert yacht["pictures"] == ["a.jpg"]

    @pytest.mark.asyncio
    async def test_summaries_are_fetched_one_by_one(self, store):
        data = fleet_data()
        data["yachts"] = {7: {"yachts": [{"id": 101, "name": "Bavaria Cruiser 46"}, {"id": 103, "name": "Luna"}]}}
        data["yacht_details"] = {101: FULL_YACHT}
        api = FakeCharterAPI(**data)

        await SyncYachtsUseCase(api, store).execute()

        assert api.called("fetch_yacht") == [(101,), (103,)]
        assert (await store.find_one("yachts", {"id": 101}))["baseId"] == 1000
        # no detail available: the summary itself is stored
        assert (await store.find_one("yachts", {"id": 103}))["name"]["textEN"] == "Luna"

    @pytest.mark.asyncio
    async def test_empty_refetch_falls_back_to_detail_requests(self, store):
        data = fleet_data()
        data["yachts"] = {7: {"yachtIDs": [101]}}
        data["yacht_details"] = {101: FULL_YACHT}
        api = FakeCharterAPI(**data)

        await SyncYachtsUseCase(api, store).execute()

        assert api.called("fetch_yacht") == [(101,)]
        assert await store.count("yachts", {"charterCompanyId": 7}) == 1

    @pytest.mark.asyncio
    async def test_entry_without_id_is_skipped(self, store):
        data = fleet_data()
        data["yachts"][7] = {"yachts": [{"id": 101, "name": "Bavaria Cruiser 46"}, {"name": "Nameless"}]}
        data["yacht_details"] = {101: FULL_YACHT}
        api = FakeCharterAPI(**data)

        result = await SyncYachtsUseCase(api, store).execute()

        assert api.called("fetch_yacht") == [(101,)]
        assert result.errors == 1
        assert (await store.find_one("yachts", {"id": 101}))["baseId"] == 1000
        assert await store.find_one("yachts", {"id": 102}) is not None
        assert await store.count("yachts") == 2

    @pytest.mark.asyncio
    async def test_failed_detail_keeps_summary(self, store):
        data = fleet_data()
        data["yachts"][7] = {"yachts": [{"id": 101, "name": "Bavaria Cruiser 46"}, {"id": 103, "name": "Luna"}]}
        data["yacht_details"] = {101: FULL_YACHT}
        api = FakeCharterAPI(**data).fail("fetch_yacht", ServerError(status_code=502), arg=103)

        result = await SyncYachtsUseCase(api, store).execute()

        assert result.success is False
        assert result.errors == 1
        assert any("yacht_id=103" in detail for detail in result.error_details)
        assert (await store.find_one("yachts", {"id": 101}))["baseId"] == 1000
        assert (await store.find_one("yachts", {"id": 103}))["name"]["textEN"] == "Luna"
        assert await store.find_one("yachts", {"id": 102}) is not None

    @pytest.mark.asyncio
    async def test_second_run_leaves_store_unchanged(self, store):
        use_case = SyncYachtsUseCase(FakeCharterAPI(**fleet_data()), store)
        await use_case.execute()
        first = await stored_documents(store)

        result = await use_case.execute()

        assert result.success is True
        assert await stored_documents(store) == first

    @pytest.mark.asyncio
    async def test_company_failure_is_isolated(self, store):
        api = FakeCharterAPI(**fleet_data()).fail("fetch_yachts", TransportError("reset"), arg=7)

        result = await SyncYachtsUseCase(api, store).execute()

        assert result.success is False
        assert result.errors == 1
        assert await store.find_one("yachts", {"id": 101}) is None
        assert await store.find_one("yachts", {"id": 102}) is not None

    @pytest.mark.asyncio
    async def test_every_company_failing(self, store):
        api = FakeCharterAPI(**fleet_data()).fail("fetch_yachts", ServerError(status_code=502))

        with pytest.raises(SyncError) as exc_info:
            await SyncYachtsUseCase(api, store).execute()

        assert exc_info.value.domain == "yachts"
        # companies and models were written before the yacht fetches
        assert await store.count("charter_companies") == 2

    @pytest.mark.asyncio
    async def test_company_fetch_failure_propagates(self, store):
        api = FakeCharterAPI(**fleet_data()).fail("fetch_charter_companies", ServerError())

        with pytest.raises(ServerError):
            await SyncYachtsUseCase(api, store).execute()


class TestApplyModelSpecs:
    @pytest.fixture
    async def seeded_store(self, store):
        mapper = YachtFieldMapper()
        for raw_model in fleet_data()["yacht_models"]:
            model = mapper.map_model(raw_model)
            await store.upsert(model.COLLECTION, model.store_key(), model.to_document())
        yacht = mapper.map_yacht({"id": 101, "name": "Bavaria Cruiser 46", "beam": 4.2, "cabins": 4})
        await store.upsert(yacht.COLLECTION, yacht.store_key(), yacht.to_document())
        return store

    @pytest.mark.asyncio
    async def test_backfills_stored_yachts(self, seeded_store):
        result = await ApplyModelSpecsUseCase(seeded_store).execute()

        assert result.domain == "model_specs"
        assert result.total == 1
        assert result.upserted == 1
        yacht = await seeded_store.find_one("yachts", {"id": 101})
        assert yacht["modelId"] == 12
        assert yacht["beam"] == 4.2
        assert yacht["length"] == 14.27
        assert yacht["name"]["textEN"] == "Bavaria Cruiser 46"

    @pytest.mark.asyncio
    async def test_second_pass_changes_nothing(self, seeded_store):
        use_case = ApplyModelSpecsUseCase(seeded_store)
        await use_case.execute()
        before = await seeded_store.find_one("yachts", {"id": 101})

        result = await use_case.execute()

        assert result.upserted == 0
        assert await seeded_store.find_one("yachts", {"id": 101}) == before

    @pytest.mark.asyncio
    async def test_unmatched_yacht_is_left_alone(self, store):
        mapper = YachtFieldMapper()
        model = mapper.map_model({"id": 12, "name": "Bavaria Cruiser 46", "cabins": 4, "wc": 3})
        await store.upsert(model.COLLECTION, model.store_key(), model.to_document())
        yacht = mapper.map_yacht({"id": 201, "name": "Catamaran", "cabins": 6})
        await store.upsert(yacht.COLLECTION, yacht.store_key(), yacht.to_document())

        result = await ApplyModelSpecsUseCase(store).execute()

        assert result.upserted == 0
        assert "modelId" not in await store.find_one("yachts", {"id": 201})

    @pytest.mark.asyncio
    async def test_no_models_stored(self, store):
        result = await ApplyModelSpecsUseCase(store).execute()

        assert result.total == 0
        assert result.success is True
