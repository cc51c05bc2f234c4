import asyncio

from formportal.core.errors import PersistenceError
from formportal.db.document_store import BatchOp, DocumentStore, DualStore
from formportal.schemas.form_config import FormConfiguration
from formportal.services.category_tree import CategoryTreeService
from formportal.services.location_hierarchy import OFFICES_COLLECTION


def run(coro):
    """Drive an async helper from a sync (TestClient) test."""
    return asyncio.run(coro)


async def create_employee(
    stores: DualStore,
    user_id: str,
    *,
    office_name: str | None = None,
    is_admin: bool = False,
    email: str | None = None,
) -> dict:
    doc = {
        "id": user_id,
        "email": email or f"{user_id}@local.test",
        "office_name": office_name,
        "is_admin": is_admin,
        "is_active": True,
    }
    await stores.primary.put("employees", user_id, doc)
    return doc


def office_record(
    office_name: str,
    region: str,
    division: str,
    *,
    reporting_office: str | None = None,
    office_id: str | None = None,
) -> dict:
    """A raw row as it sits in the offices collection."""
    return {
        "Facility ID": office_id or office_name.lower().replace(" ", "-"),
        "Region": region,
        "Division": division,
        "Office name": office_name,
        "Reporting Office Name": reporting_office,
    }


async def seed_offices(stores: DualStore, records: list[dict]) -> None:
    for i, rec in enumerate(records):
        await stores.primary.put(OFFICES_COLLECTION, f"{i:05d}", rec)


async def create_tree(stores: DualStore, nodes: list[tuple[str, str, str | None]]) -> CategoryTreeService:
    """nodes: [(id, title, parent_id), ...] created in order"""
    service = CategoryTreeService(stores.primary)
    for node_id, title, parent_id in nodes:
        await service.create(node_id, title, parent_id)
    return service


def make_config(
    config_id: str = "daily-sales",
    *,
    title: str = "Daily Sales",
    fields: list[dict] | None = None,
    frequency: str | None = "daily",
    **scope,
) -> FormConfiguration:
    return FormConfiguration.model_validate(
        {
            "id": config_id,
            "title": title,
            "fields": fields or [],
            "scope": {"selected_frequency": frequency, **scope},
        }
    )


class FailingStore(DocumentStore):
    """Wraps a real store and fails the listed actions."""

    def __init__(self, inner: DocumentStore, fail_on: set[str], name: str | None = None):
        self.inner = inner
        self.fail_on = fail_on
        self.name = name or inner.name
        self.calls: list[str] = []

    def _maybe_fail(self, action: str) -> None:
        self.calls.append(action)
        if action in self.fail_on:
            raise PersistenceError(f"{self.name} {action} failed: simulated", [self.name])

    async def get(self, collection, key):
        self._maybe_fail("get")
        return await self.inner.get(collection, key)

    async def put(self, collection, key, doc):
        self._maybe_fail("put")
        await self.inner.put(collection, key, doc)

    async def delete(self, collection, key):
        self._maybe_fail("delete")
        await self.inner.delete(collection, key)

    async def query(self, collection, predicate=None):
        self._maybe_fail("query")
        return await self.inner.query(collection, predicate)

    async def page(self, collection, offset, limit):
        self._maybe_fail("page")
        return await self.inner.page(collection, offset, limit)

    async def apply_batch(self, ops: list[BatchOp]):
        self._maybe_fail("batch")
        await self.inner.apply_batch(ops)
