"""
Form configurations, dual-written to the primary and mirror stores.

Reads go to the primary first and fall back to the mirror only on a miss.
Search and listing read the mirror, which is the queryable copy. Writes have
no rollback: when one backend fails the other keeps its copy.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from formportal.core.errors import PersistenceError, ValidationError
from formportal.db.document_store import DualStore, to_document
from formportal.schemas.form_config import FormConfiguration, FormConfigSearch
from formportal.services.category_tree import CategoryTreeService

logger = logging.getLogger(__name__)

PAGES_COLLECTION = "pages"

FREQUENCY_REQUIRED = "Report frequency is required. Please select a frequency before saving."

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(config: FormConfiguration) -> datetime:
    ts = config.last_updated
    if ts is None:
        return _EPOCH
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def newest_first(configs: list[FormConfiguration]) -> list[FormConfiguration]:
    return sorted(configs, key=_sort_key, reverse=True)


class FormConfigStore:
    def __init__(self, stores: DualStore):
        self.stores = stores

    async def save(self, config: FormConfiguration) -> FormConfiguration:
        if config.scope.selected_frequency is None:
            raise ValidationError(FREQUENCY_REQUIRED, {"selected_frequency": FREQUENCY_REQUIRED})

        config = config.model_copy(update={"last_updated": datetime.now(timezone.utc)})
        doc = to_document(config)

        backends = [self.stores.primary, self.stores.mirror]
        results = await asyncio.gather(
            *(b.put(PAGES_COLLECTION, config.id, doc) for b in backends),
            return_exceptions=True,
        )

        failed = [b.name for b, r in zip(backends, results) if isinstance(r, Exception)]
        if failed:
            for b, r in zip(backends, results):
                if isinstance(r, Exception):
                    logger.error("config %s: %s write failed: %s", config.id, b.name, r,
                                 extra={"category_id": config.id, "backend": b.name})
            raise PersistenceError(
                f"Failed to save form configuration to {' and '.join(failed)} storage.",
                failed,
            )

        logger.info("config saved: %s (%d fields)", config.id, len(config.fields),
                    extra={"category_id": config.id})
        return config

    async def load(self, category_id: str) -> FormConfiguration | None:
        doc = await self.stores.primary.get(PAGES_COLLECTION, category_id)
        if doc is None:
            doc = await self.stores.mirror.get(PAGES_COLLECTION, category_id)
            if doc is not None:
                logger.info("config %s served from mirror", category_id, extra={"category_id": category_id})
        if doc is None:
            return None
        doc.setdefault("id", category_id)
        return FormConfiguration.model_validate(doc)

    async def delete(self, category_id: str) -> None:
        """Mirror only; the primary copy goes with the category batch."""
        try:
            await self.stores.mirror.delete(PAGES_COLLECTION, category_id)
        except PersistenceError:
            logger.warning("mirror delete failed for %s", category_id, extra={"category_id": category_id})
            raise

    async def delete_many(self, category_ids: list[str]) -> list[str]:
        """Best-effort mirror delete; returns the ids whose mirror copy is still there."""
        failed: list[str] = []
        for category_id in category_ids:
            try:
                await self.delete(category_id)
            except PersistenceError:
                failed.append(category_id)
        return failed

    async def search(self, criteria: FormConfigSearch | None = None) -> list[FormConfiguration]:
        criteria = criteria or FormConfigSearch()
        title = (criteria.title or "").strip().lower()

        def _match(config: FormConfiguration) -> bool:
            if title and title not in config.title.lower():
                return False
            if criteria.region and not config.scope.matches_region(criteria.region):
                return False
            if criteria.frequency and config.scope.selected_frequency != criteria.frequency:
                return False
            return True

        return [c for c in await self.list_all() if _match(c)]

    async def list_all(self) -> list[FormConfiguration]:
        docs = await self.stores.mirror.query(PAGES_COLLECTION)
        return newest_first([FormConfiguration.model_validate(d) for d in docs if d.get("id")])


async def delete_category_subtree(
    categories: CategoryTreeService, configs: FormConfigStore, category_id: str
) -> tuple[list[str], list[str]]:
    """
    Atomic primary delete of the subtree and its page configs, then mirror
    cleanup. Returns (deleted ids, ids whose mirror copy could not be removed).
    """
    ids = await categories.delete_subtree(category_id)
    failed = await configs.delete_many(ids)
    if failed:
        logger.warning("mirror cleanup incomplete after deleting %s: %s", category_id, failed,
                       extra={"category_id": category_id})
    return ids, failed
