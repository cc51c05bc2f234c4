from datetime import datetime, timedelta, timezone

import pytest

from formportal.core.errors import PersistenceError, ValidationError
from formportal.db.document_store import DualStore, to_document
from formportal.schemas.form_config import FormConfigSearch, ReportFrequency
from formportal.services.form_config_store import PAGES_COLLECTION, FormConfigStore
from tests.helpers import FailingStore, make_config


async def test_save_without_frequency_writes_nothing(stores):
    primary = FailingStore(stores.primary, fail_on=set())
    mirror = FailingStore(stores.mirror, fail_on=set())
    configs = FormConfigStore(DualStore(primary, mirror))

    with pytest.raises(ValidationError) as exc:
        await configs.save(make_config(frequency=None))

    assert "Report frequency is required" in exc.value.message
    assert primary.calls == []
    assert mirror.calls == []


async def test_save_writes_both_backends(stores):
    configs = FormConfigStore(stores)
    saved = await configs.save(make_config(fields=[{"id": "qty", "kind": "number"}]))

    assert saved.last_updated is not None
    assert (await stores.primary.get(PAGES_COLLECTION, saved.id))["fields"][0]["id"] == "qty"
    assert (await stores.mirror.get(PAGES_COLLECTION, saved.id)) is not None


async def test_save_reports_failing_backend_without_rollback(stores):
    mirror = FailingStore(stores.mirror, fail_on={"put"})
    configs = FormConfigStore(DualStore(stores.primary, mirror))

    with pytest.raises(PersistenceError) as exc:
        await configs.save(make_config())

    assert exc.value.backends == ["mirror"]
    # primary write already landed
    assert await stores.primary.get(PAGES_COLLECTION, "daily-sales") is not None


async def test_load_prefers_primary_then_mirror(stores):
    configs = FormConfigStore(stores)
    await stores.mirror.put(PAGES_COLLECTION, "a", to_document(make_config("a", title="From mirror")))
    assert (await configs.load("a")).title == "From mirror"

    await stores.primary.put(PAGES_COLLECTION, "a", to_document(make_config("a", title="From primary")))
    assert (await configs.load("a")).title == "From primary"

    assert await configs.load("missing") is None


async def test_load_error_is_not_a_miss(stores):
    configs = FormConfigStore(DualStore(FailingStore(stores.primary, fail_on={"get"}), stores.mirror))
    await stores.mirror.put(PAGES_COLLECTION, "a", to_document(make_config("a")))
    with pytest.raises(PersistenceError):
        await configs.load("a")


async def test_delete_is_mirror_only(stores):
    configs = FormConfigStore(stores)
    await configs.save(make_config("a"))
    await configs.delete("a")
    assert await stores.mirror.get(PAGES_COLLECTION, "a") is None
    assert await stores.primary.get(PAGES_COLLECTION, "a") is not None


async def test_search_on_mirror(stores):
    now = datetime.now(timezone.utc)
    rows = [
        make_config("a", title="Daily Sales", frequency="daily", selected_regions=["North"]),
        make_config("b", title="Weekly sales recap", frequency="weekly", selected_region="North"),
        make_config("c", title="Stock", frequency="daily", selected_regions=["South"]),
    ]
    for i, c in enumerate(rows):
        c.last_updated = now - timedelta(minutes=i)
        await stores.mirror.put(PAGES_COLLECTION, c.id, to_document(c))
    configs = FormConfigStore(stores)

    assert [c.id for c in await configs.search(FormConfigSearch(title="SALES"))] == ["a", "b"]
    assert [c.id for c in await configs.search(FormConfigSearch(region="North"))] == ["a", "b"]
    assert [c.id for c in await configs.search(FormConfigSearch(frequency=ReportFrequency.DAILY))] == ["a", "c"]
    assert [c.id for c in await configs.list_all()] == ["a", "b", "c"]


async def test_search_ignores_primary_only_rows(stores):
    await stores.primary.put(PAGES_COLLECTION, "p", to_document(make_config("p", title="Sales")))
    assert await FormConfigStore(stores).search(FormConfigSearch(title="sales")) == []
