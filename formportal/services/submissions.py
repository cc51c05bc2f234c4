from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from formportal.db.document_store import DocumentStore
from formportal.schemas.fields import FieldBase

logger = logging.getLogger(__name__)

SUBMISSIONS_COLLECTION = "submissions"


def field_label_map(fields: list[FieldBase]) -> dict[str, str]:
    return {f.id: f.label or f.id for f in fields if not f.structural}


def convert_submission_data(values: dict[str, Any], fields: list[FieldBase]) -> dict[str, Any]:
    """
    Re-key a value map by field label for reports. Values without a matching
    field keep their id; structural fields never carry values.
    """
    labels = field_label_map(fields)
    structural = {f.id for f in fields if f.structural}
    return {labels.get(k, k): v for k, v in values.items() if k not in structural}


class StoreSubmissionSink:
    """Default submission sink: one document per submission on the primary store."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def __call__(self, values: dict[str, Any], category_id: str, user_id: str | None) -> None:
        submission_id = uuid.uuid4().hex
        doc = {
            "id": submission_id,
            "form_identifier": category_id,
            "user_id": user_id,
            "submission_data": values,
            "submitted_at": datetime.now(timezone.utc).isoformat(),
        }
        await self.store.put(SUBMISSIONS_COLLECTION, submission_id, doc)
        logger.info("submission stored: %s for %s", submission_id, category_id,
                    extra={"category_id": category_id})

    async def list_for_form(self, category_id: str) -> list[dict]:
        docs = await self.store.query(
            SUBMISSIONS_COLLECTION, lambda d: d.get("form_identifier") == category_id
        )
        return sorted(docs, key=lambda d: d.get("submitted_at") or "", reverse=True)
