from fastapi import APIRouter, Depends

from formportal.core.errors import PersistenceError
from formportal.db.document_store import DualStore
from formportal.db.session import get_stores

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(stores: DualStore = Depends(get_stores)):
    # Simple read against each backend
    backends = {}
    for store in (stores.primary, stores.mirror):
        try:
            await store.get("categories", "__health__")
            backends[store.name] = "ok"
        except PersistenceError:
            backends[store.name] = "error"
    status = "ok" if all(v == "ok" for v in backends.values()) else "degraded"
    return {"status": status, "backends": backends}
