"""Free Cabin Use Cases - Read-through cache for cabin package availability.

Components:
    FreeCabinCriteriaCache: search filter options, refreshed when older than
        the TTL (default one hour). A failed refresh falls back to the stale
        snapshot when one exists.
    FreeCabinPackageSearch: local package search that falls back to the live
        provider search when the store has no match; live results are
        persisted before they are returned.
    SyncFreeCabinsUseCase: orchestrator step that refreshes the criteria
        unconditionally and persists a live search over the coming days.

The clock is injectable so staleness can be tested without waiting.

Example:
    cache = FreeCabinCriteriaCache(api, store)
    criteria = await cache.get()

    search = FreeCabinPackageSearch(api, store)
    packages = await search.search(date(2025, 6, 1), date(2025, 6, 8), countries=[1])
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable

from pydantic import ValidationError

from ...api.exceptions import ErrorCollector, TransportError, UpstreamError
from ..adapters.cabin_mapper import CabinCharterFieldMapper
from ..domain.entities import SyncResult
from ..domain.ports import ICharterAPI, IDocumentStore
from ..domain.records import FreeCabinPackage, FreeCabinSearchCriteria
from .base import RecordUpserter, finish

logger = logging.getLogger(__name__)

DOMAIN = "free_cabins"

DEFAULT_CRITERIA_TTL = timedelta(hours=1)
DEFAULT_SEARCH_LIMIT = 100

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _start_of(day: date) -> datetime:
    if isinstance(day, datetime):
        return day.replace(tzinfo=None)
    return datetime.combine(day, time.min)


# ============================================
# Search Criteria
# ============================================


class FreeCabinCriteriaCache:
    """Cached free cabin search criteria with a staleness window."""

    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        ttl: timedelta = DEFAULT_CRITERIA_TTL,
        mapper: CabinCharterFieldMapper | None = None,
        clock: Clock = utc_now,
    ):
        self.api = api
        self.store = store
        self.ttl = ttl
        self.mapper = mapper or CabinCharterFieldMapper()
        self.clock = clock

    async def load(self) -> FreeCabinSearchCriteria | None:
        """The stored snapshot, whatever its age."""
        document = await self.store.find_one(
            FreeCabinSearchCriteria.COLLECTION,
            {"id": FreeCabinSearchCriteria.CURRENT_ID},
        )
        if document is None:
            return None
        try:
            return FreeCabinSearchCriteria.from_document(document)
        except ValidationError as e:
            logger.warning(f"Stored search criteria unreadable, refetching: {e.error_count()} error(s)")
            return None

    def is_stale(self, criteria: FreeCabinSearchCriteria) -> bool:
        return self.clock() - _aware(criteria.last_updated) > self.ttl

    async def refresh(self) -> FreeCabinSearchCriteria:
        """Fetch fresh criteria from the provider and store them.

        Raises:
            UpstreamError / TransportError: The provider could not be reached
        """
        response = await self.api.fetch_free_cabin_search_criteria()
        criteria = self.mapper.map_search_criteria(response, fetched_at=self.clock())
        await self.store.upsert(criteria.COLLECTION, criteria.store_key(), criteria.to_document())
        logger.info(
            f"Refreshed free cabin search criteria: {len(criteria.countries)} countries, "
            f"{len(criteria.regions)} regions, {len(criteria.locations)} locations, "
            f"{len(criteria.packages)} packages"
        )
        return criteria

    async def get(self) -> FreeCabinSearchCriteria:
        """Current criteria, refreshed transparently when stale or missing.

        Raises:
            UpstreamError / TransportError: Refresh failed and nothing is cached
        """
        cached = await self.load()
        if cached is not None and not self.is_stale(cached):
            return cached

        try:
            return await self.refresh()
        except (UpstreamError, TransportError) as e:
            if cached is None:
                raise
            logger.warning(f"Criteria refresh failed, serving snapshot from {cached.last_updated}: {e}")
            return cached


# ============================================
# Package Search
# ============================================


class FreeCabinPackageSearch:
    """Package search over the local cache with a live provider fallback."""

    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        mapper: CabinCharterFieldMapper | None = None,
        max_concurrent_upserts: int = 1,
    ):
        self.api = api
        self.store = store
        self.mapper = mapper or CabinCharterFieldMapper()
        self.upserter = RecordUpserter(store, max_concurrent=max_concurrent_upserts)

    async def search_local(
        self,
        period_from: date,
        period_to: date,
        locations: list[int] | None = None,
        countries: list[int] | None = None,
        regions: list[int] | None = None,
        packages: list[int] | None = None,
        ignore_options: bool = False,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[FreeCabinPackage]:
        """Stored packages with a period overlapping the requested one, by packageId."""
        filter = {"ignoreOptions": ignore_options}
        for field, ids in (
            ("locationId", locations),
            ("countryId", countries),
            ("regionId", regions),
            ("packageId", packages),
        ):
            if ids:
                filter[field] = list(ids)

        start, end = _start_of(period_from), _start_of(period_to)
        matches = []
        for document in await self.store.find(FreeCabinPackage.COLLECTION, filter, sort="packageId"):
            try:
                package = FreeCabinPackage.from_document(document)
            except ValidationError as e:
                logger.warning(f"Skipping unreadable package {document.get('packageId')}: {e.error_count()} error(s)")
                continue
            if package.available_between(start, end):
                matches.append(package)
                if len(matches) >= limit:
                    break
        return matches

    async def search_live(
        self,
        period_from: date,
        period_to: date,
        locations: list[int] | None = None,
        countries: list[int] | None = None,
        regions: list[int] | None = None,
        packages: list[int] | None = None,
        ignore_options: bool = False,
    ) -> tuple[list[FreeCabinPackage], SyncResult]:
        """Query the provider and persist every package it returns.

        Raises:
            UpstreamError / TransportError: The provider search failed
        """
        raw_packages = await self.api.search_free_cabin_packages(
            period_from,
            period_to,
            locations=locations,
            countries=countries,
            regions=regions,
            packages=packages,
            ignore_options=ignore_options,
        )
        started_at = utc_now()
        errors = ErrorCollector()
        records = self.upserter.normalize(
            DOMAIN,
            raw_packages,
            lambda raw: self.mapper.map_package(raw, ignore_options=ignore_options),
            errors,
        )
        upserted = await self.upserter.upsert_records(DOMAIN, records, errors)
        result = SyncResult(
            domain=DOMAIN,
            success=not errors.has_errors(),
            total=len(raw_packages),
            upserted=upserted,
            errors=errors.count(),
            synced_at=started_at,
            error_details=errors.messages(),
            collections={FreeCabinPackage.COLLECTION: upserted},
        )
        return sorted(records, key=lambda package: package.package_id), result

    async def search(
        self,
        period_from: date,
        period_to: date,
        locations: list[int] | None = None,
        countries: list[int] | None = None,
        regions: list[int] | None = None,
        packages: list[int] | None = None,
        ignore_options: bool = False,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[FreeCabinPackage]:
        """Local matches, or live provider results when there are none.

        A failing live search is logged and yields no packages rather than
        an error, since the caller asked a read-only question.
        """
        local = await self.search_local(
            period_from, period_to, locations, countries, regions, packages, ignore_options, limit
        )
        if local:
            return local

        logger.info("No cached packages match, searching the provider")
        try:
            live, _ = await self.search_live(
                period_from, period_to, locations, countries, regions, packages, ignore_options
            )
        except (UpstreamError, TransportError) as e:
            logger.error(f"Live free cabin search failed: {e}")
            return []
        return live[:limit]


# ============================================
# Orchestrator Step
# ============================================


class SyncFreeCabinsUseCase:
    """Refreshes criteria and persists packages for the coming days.

    Example:
        use_case = SyncFreeCabinsUseCase(api, store, search_days=30)
        result = await use_case.execute()
    """

    def __init__(
        self,
        api: ICharterAPI,
        store: IDocumentStore,
        criteria_ttl: timedelta = DEFAULT_CRITERIA_TTL,
        search_days: int = 30,
        max_concurrent_upserts: int = 1,
        clock: Clock = utc_now,
    ):
        self.criteria = FreeCabinCriteriaCache(api, store, ttl=criteria_ttl, clock=clock)
        self.packages = FreeCabinPackageSearch(api, store, max_concurrent_upserts=max_concurrent_upserts)
        self.search_days = search_days
        self.clock = clock

    async def execute(self) -> SyncResult:
        """Refresh criteria, then search from today over ``search_days``.

        Raises:
            UpstreamError / TransportError: Either provider call failed
        """
        started_at = utc_now()
        await self.criteria.refresh()

        period_from = self.clock().date()
        period_to = period_from + timedelta(days=self.search_days)
        _, result = await self.packages.search_live(period_from, period_to)
        result.collections[FreeCabinSearchCriteria.COLLECTION] = 1
        logger.info(f"Free cabin packages {period_from} to {period_to}: {result.upserted} stored")
        return finish(result, started_at)


__all__ = [
    "DEFAULT_CRITERIA_TTL",
    "FreeCabinCriteriaCache",
    "FreeCabinPackageSearch",
    "SyncFreeCabinsUseCase",
]
