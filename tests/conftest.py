import asyncio
import os

os.environ.setdefault("APP_ENV", "test")

import pytest
from sqlalchemy.pool import NullPool

from formportal.api.deps import hierarchy_service_for
from formportal.db.document_store import DualStore
from formportal.db.session import get_stores, init_models, make_engine, make_store
from formportal.main import app
from formportal.services.report_access import invalidate_classification_cache


def _engines(tmp_path):
    # NullPool: no connection outlives a session, so stores can be shared
    # between the test's event loop and TestClient's portal thread
    primary = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'primary.db'}", poolclass=NullPool)
    mirror = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'mirror.db'}", poolclass=NullPool)
    return primary, mirror


def _dual(primary, mirror) -> DualStore:
    return DualStore(primary=make_store("primary", primary), mirror=make_store("mirror", mirror))


@pytest.fixture()
async def stores(tmp_path):
    """Fresh primary + mirror databases for service-level tests."""
    primary, mirror = _engines(tmp_path)
    await init_models(primary, mirror)
    yield _dual(primary, mirror)
    await primary.dispose()
    await mirror.dispose()


@pytest.fixture()
def api_stores(tmp_path):
    """Same as `stores`, wired into the app for TestClient tests."""
    primary, mirror = _engines(tmp_path)
    asyncio.run(init_models(primary, mirror))
    dual = _dual(primary, mirror)

    app.dependency_overrides[get_stores] = lambda: dual
    yield dual
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_caches():
    invalidate_classification_cache()
    hierarchy_service_for.cache_clear()
    yield
    hierarchy_service_for.cache_clear()
