from fastapi import APIRouter, Depends, Query

from formportal.api.deps import get_hierarchy_service
from formportal.core.security import Principal, get_current_user, require_admin
from formportal.schemas.location import CascadeOut, HierarchyOut
from formportal.services.location_hierarchy import (
    LocationHierarchyService,
    eligible_divisions,
    eligible_offices,
)
from formportal.services.report_access import invalidate_classification_cache

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("/hierarchy", response_model=HierarchyOut)
async def get_hierarchy(
    refresh: bool = Query(default=False, description="Re-fetch office data (retry after an error)"),
    hierarchy: LocationHierarchyService = Depends(get_hierarchy_service),
    _: Principal = Depends(get_current_user),
):
    h = await (hierarchy.refresh() if refresh else hierarchy.current())
    return HierarchyOut(**h.model_dump(), error=hierarchy.last_error)


@router.get("/cascade", response_model=CascadeOut)
async def cascade(
    regions: list[str] = Query(default=[]),
    divisions: list[str] = Query(default=[]),
    hierarchy: LocationHierarchyService = Depends(get_hierarchy_service),
    _: Principal = Depends(get_current_user),
):
    """Divisions eligible for `regions` and offices eligible for both selections."""
    h = await hierarchy.current()
    return CascadeOut(
        divisions=eligible_divisions(h, regions),
        offices=eligible_offices(h, regions, divisions),
    )


@router.get("/offices/accessible", response_model=list[str])
async def accessible_offices(
    hierarchy: LocationHierarchyService = Depends(get_hierarchy_service),
    current_user: Principal = Depends(get_current_user),
):
    return await hierarchy.accessible_office_names(current_user.office_name)


@router.post("/cache/clear")
async def clear_cache(
    hierarchy: LocationHierarchyService = Depends(get_hierarchy_service),
    _: Principal = Depends(require_admin),
):
    invalidate_classification_cache()
    hierarchy.accessible_cache.invalidate()
    return {"status": "cleared"}
