"""Sync Yachts Use Case - Charter companies, yacht models and yachts.

Workflow:
1. Fetch and upsert charter companies
2. Fetch and upsert yacht models, then load the full model catalogue once
3. For each company, fetch its yachts in whichever shape the provider
   answers with (full records, an id list, or summaries)
4. Map each yacht, resolve its model (explicit linkage first, otherwise the
   fuzzy matcher), back-fill unset specs and upsert it
5. Run the model-spec pass over every stored yacht

A failed fetch for one company is logged and the next company proceeds.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from ...api.exceptions import ErrorCollector, SyncError, TransportError, UpstreamError
from ..adapters.field_mapper import CatalogueFieldMapper, YachtFieldMapper
from ..domain.entities import SyncResult
from ..domain.model_matcher import backfill_yacht
from ..domain.normalizers import id_list, optional_id
from ..domain.ports import ICharterAPI, IDocumentStore
from ..domain.records import Yacht
from .apply_model_specs import ApplyModelSpecsUseCase, load_models
from .base import RecordUpserter, finish

logger = logging.getLogger(__name__)

DOMAIN = "yachts"

# A list entry carrying nothing beyond these keys is a summary
SUMMARY_KEYS = frozenset({"id", "name"})


def is_summary(raw: dict[str, Any]) -> bool:
    return set(raw) <= SUMMARY_KEYS


class SyncYachtsUseCase:
    """Orchestrates the yacht sync workflow.

    Example:
        use_case = SyncYachtsUseCase(
            api=NausysCharterAPI(client),
            store=PostgresDocumentStore(pool),
        )
        result = await use_case.execute()
    """

    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        yacht_mapper: YachtFieldMapper | None = None,
        catalogue_mapper: CatalogueFieldMapper | None = None,
        max_concurrent_upserts: int = 1,
    ):
        self.api = api
        self.store = store
        self.yacht_mapper = yacht_mapper or YachtFieldMapper()
        self.catalogue_mapper = catalogue_mapper or CatalogueFieldMapper()
        self.upserter = RecordUpserter(store, max_concurrent=max_concurrent_upserts)
        self.model_specs = ApplyModelSpecsUseCase(store)

    # ----------------------------------------
    # Fetching
    # ----------------------------------------

    async def fetch_company_yachts(
        self,
        company_id: int,
        errors: ErrorCollector | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch full yacht records of one company.

        Supported response shapes:
        - ``yachts`` with full records: used as is
        - ``yachtIDs`` only: one batched refetch filtered by those ids
        - summaries (id and name only), or a batched refetch that still
          returns nothing: one detail request per yacht

        A summary without a usable id is passed on unchanged, so the mapper
        skips it. A failed detail request keeps the summary and is added to
        ``errors``.
        """
        response = await self.api.fetch_yachts(company_id)
        yachts = [item for item in response.get("yachts") or [] if isinstance(item, dict)]

        if not yachts:
            yacht_ids = id_list(response.get("yachtIDs"))
            if not yacht_ids:
                logger.info(f"No yachts found for company {company_id}")
                return []
            logger.debug(f"Company {company_id} returned {len(yacht_ids)} yacht ids, fetching records")
            response = await self.api.fetch_yachts(company_id, yacht_ids)
            yachts = [item for item in response.get("yachts") or [] if isinstance(item, dict)]
            if not yachts:
                yachts = [{"id": yacht_id} for yacht_id in yacht_ids]

        if not any(is_summary(item) for item in yachts):
            return yachts

        detailed = []
        for item in yachts:
            yacht_id = optional_id(item.get("id"))
            if yacht_id is None or not is_summary(item):
                detailed.append(item)
                continue
            try:
                detail = await self.api.fetch_yacht(yacht_id)
            except (UpstreamError, TransportError) as e:
                logger.warning(f"Failed to fetch details for yacht {yacht_id}, keeping summary: {e}")
                if errors is not None:
                    errors.add(e, context={"yacht_id": yacht_id})
                detailed.append(item)
                continue
            if detail:
                detailed.append(detail)
            else:
                logger.info(f"No details returned for yacht {yacht_id}, keeping summary")
                detailed.append(item)
        return detailed

    # ----------------------------------------
    # Execution
    # ----------------------------------------

    async def execute(self) -> SyncResult:
        """Execute the yacht sync workflow.

        Returns:
            SyncResult covering companies, models, yachts and the spec pass

        Raises:
            UpstreamError / TransportError: Companies or models could not be fetched
            SyncError: Yachts could not be fetched for any company
        """
        started_at = datetime.now(timezone.utc)
        logger.info(f"Starting yacht sync at {started_at.isoformat()}")

        raw_companies = await self.api.fetch_charter_companies()
        result = await self.upserter.upsert_all(DOMAIN, raw_companies, self.catalogue_mapper.map_charter_company)

        raw_models = await self.api.fetch_yacht_models()
        result.merge(await self.upserter.upsert_all(DOMAIN, raw_models, self.yacht_mapper.map_model))

        models = await load_models(self.store)
        models_by_id = {model.id: model for model in models}
        logger.info(f"Loaded {len(models)} yacht models for spec matching")

        company_ids = sorted(set(id_list(raw_companies)))
        fetch_errors = ErrorCollector()
        detail_errors = ErrorCollector()
        matched = 0

        for company_id in company_ids:
            try:
                raw_yachts = await self.fetch_company_yachts(company_id, detail_errors)
            except (UpstreamError, TransportError) as e:
                logger.warning(f"Failed to fetch yachts for company {company_id}: {e}")
                fetch_errors.add(e, context={"company_id": company_id})
                continue

            def prepare(raw: dict[str, Any], company_id: int = company_id) -> Yacht:
                nonlocal matched
                yacht = self.yacht_mapper.map_yacht(raw, company_id=company_id)
                backfill = backfill_yacht(yacht, models_by_id, models)
                if backfill is not None and backfill.changed:
                    matched += 1
                return yacht

            result.merge(await self.upserter.upsert_all(DOMAIN, raw_yachts, prepare))

        if company_ids and fetch_errors.count() == len(company_ids):
            raise SyncError(
                f"Failed to fetch yachts for all {len(company_ids)} charter companies",
                domain=DOMAIN,
                cause=fetch_errors.get_errors()[0][0],
            )

        for collector in (fetch_errors, detail_errors):
            result.errors += collector.count()
            result.error_details.extend(collector.messages())
            result.success = result.success and not collector.has_errors()
        logger.info(f"Back-filled specs for {matched} yachts during sync")

        specs = await self.model_specs.execute(models=models)
        result.errors += specs.errors
        result.error_details.extend(specs.error_details)
        result.success = result.success and specs.success

        return finish(result, started_at)


__all__ = ["SyncYachtsUseCase", "is_summary"]
