"""Apply Model Specs Use Case - Back-fill yacht specs from yacht models.

Runs over every locally stored yacht, resolves its model (explicit linkage
first, otherwise the fuzzy matcher) and writes back only the fields it
filled. Fields that already hold a value are never touched, so the pass is
idempotent and safe to run on its own at any time.

It exists as a separate pass because yacht models may have been synced after
the yachts that reference them.
"""

import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from ...api.exceptions import ErrorCollector, PersistenceError
from ..domain.entities import SyncResult
from ..domain.model_matcher import backfill_yacht, lacks_specs
from ..domain.ports import IDocumentStore
from ..domain.records import Yacht, YachtModel
from .base import finish

logger = logging.getLogger(__name__)

DOMAIN = "model_specs"


async def load_models(store: IDocumentStore) -> list[YachtModel]:
    """Load the full model catalogue once, ordered by id.

    A fixed order keeps the matcher's first-encountered tie-breaking
    deterministic between runs.
    """
    models = []
    for document in await store.find(YachtModel.COLLECTION, sort="id"):
        try:
            models.append(YachtModel.from_document(document))
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable yacht model {document.get('id')}: {e.error_count()} error(s)")
    return models


class ApplyModelSpecsUseCase:
    """Second pass of the yacht sync, also triggerable standalone.

    Example:
        result = await ApplyModelSpecsUseCase(store).execute()
        print(f"Back-filled {result.upserted} yachts")
    """

    def __init__(self, store: IDocumentStore):
        self.store = store

    async def execute(self, models: list[YachtModel] | None = None) -> SyncResult:
        """Back-fill every stored yacht that still lacks specs or linkage.

        Args:
            models: Preloaded model catalogue; loaded from the store when omitted

        Returns:
            SyncResult where ``total`` is the number of yachts examined and
            ``upserted`` the number actually updated
        """
        started_at = datetime.now(timezone.utc)
        errors = ErrorCollector()

        if models is None:
            models = await load_models(self.store)
        if not models:
            logger.info("No yacht models stored, skipping spec back-fill")
            return SyncResult.empty(DOMAIN)

        models_by_id = {model.id: model for model in models}
        documents = await self.store.find(Yacht.COLLECTION, sort="id")
        updated = 0

        for document in documents:
            try:
                yacht = Yacht.from_document(document)
            except ValidationError as e:
                logger.warning(f"Skipping unreadable stored yacht {document.get('id')}: {e.error_count()} error(s)")
                errors.add(e, context={"id": document.get("id")})
                continue

            if yacht.model_id is not None and not lacks_specs(yacht):
                continue

            backfill = backfill_yacht(yacht, models_by_id, models)
            if backfill is None or not backfill.changed:
                continue

            fields = set(backfill.filled)
            if backfill.linked:
                fields |= {"model_id", "builder_id"}
            update = yacht.model_dump(by_alias=True, include=fields, exclude_none=True)

            try:
                await self.store.upsert(Yacht.COLLECTION, yacht.store_key(), update)
                updated += 1
                logger.debug(
                    f"Back-filled yacht {yacht.id} from model {backfill.model.id}: {sorted(update)}"
                )
            except PersistenceError as e:
                logger.warning(f"Failed to back-fill yacht {yacht.id}: {e}")
                errors.add(e, context={"id": yacht.id})

        result = SyncResult(
            domain=DOMAIN,
            success=not errors.has_errors(),
            total=len(documents),
            upserted=updated,
            errors=errors.count(),
            synced_at=started_at,
            error_details=errors.messages(),
            collections={Yacht.COLLECTION: updated},
        )
        return finish(result, started_at)


__all__ = ["ApplyModelSpecsUseCase", "load_models"]
