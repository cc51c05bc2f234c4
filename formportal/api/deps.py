from functools import lru_cache

from fastapi import Depends

from formportal.db.document_store import DocumentStore, DualStore
from formportal.db.session import get_stores
from formportal.services.category_tree import CategoryTreeService
from formportal.services.form_config_store import FormConfigStore
from formportal.services.location_hierarchy import LocationHierarchyService
from formportal.services.submissions import StoreSubmissionSink


@lru_cache
def hierarchy_service_for(store: DocumentStore) -> LocationHierarchyService:
    # one per store so the last good hierarchy outlives a request
    return LocationHierarchyService(store)


def get_category_service(stores: DualStore = Depends(get_stores)) -> CategoryTreeService:
    return CategoryTreeService(stores.primary)


def get_config_store(stores: DualStore = Depends(get_stores)) -> FormConfigStore:
    return FormConfigStore(stores)


def get_hierarchy_service(stores: DualStore = Depends(get_stores)) -> LocationHierarchyService:
    return hierarchy_service_for(stores.primary)


def get_submission_sink(stores: DualStore = Depends(get_stores)) -> StoreSubmissionSink:
    return StoreSubmissionSink(stores.primary)
