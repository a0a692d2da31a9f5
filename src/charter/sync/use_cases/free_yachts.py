"""Free Yachts Query - Yacht availability for a period.

This is a read-only query, not a synchronizer: nothing is stored. When the
provider cannot answer a filtered query (``INSUFFICIENT_DATA``), the query
is repeated once without the yacht filter instead of failing.
"""

import logging
from datetime import date
from typing import Any

from ...api.exceptions import InsufficientDataError
from ..domain.ports import ICharterAPI

logger = logging.getLogger(__name__)


class FreeYachtsQuery:
    """Free yacht availability with the unfiltered fallback.

    Example:
        query = FreeYachtsQuery(api)
        free = await query.execute(date(2025, 6, 7), date(2025, 6, 14), yacht_ids=[101, 102])
    """

    def __init__(self, api: ICharterAPI):
        self.api = api

    async def execute(
        self,
        period_from: date,
        period_to: date,
        yacht_ids: list[int] | None = None,
    ) -> list[dict[str, Any]]:
        """Free yachts in the period, optionally limited to ``yacht_ids``.

        Raises:
            ValueError: ``period_from`` is after ``period_to``
            InsufficientDataError: The unfiltered query was rejected too
        """
        if period_from > period_to:
            raise ValueError(f"period_from {period_from} is after period_to {period_to}")

        try:
            return await self.api.fetch_free_yachts(period_from, period_to, yacht_ids)
        except InsufficientDataError as e:
            if not yacht_ids:
                raise
            logger.info(f"Provider could not answer the filtered free yacht query ({e}), retrying unfiltered")

        return await self.api.fetch_free_yachts(period_from, period_to, None)


__all__ = ["FreeYachtsQuery"]
