from fastapi import APIRouter, Depends

from formportal.api.deps import get_hierarchy_service
from formportal.core.security import Principal, get_current_user
from formportal.schemas.location import OfficeAccessOut
from formportal.services.location_hierarchy import LocationHierarchyService
from formportal.services.report_access import office_access_info

router = APIRouter(tags=["auth"])


@router.get("/me")
def me(current_user: Principal = Depends(get_current_user)):
    return {
        "id": current_user.user_id,
        "email": current_user.email,
        "office_name": current_user.office_name,
        "is_admin": current_user.is_admin,
    }


@router.get("/me/access", response_model=OfficeAccessOut)
async def my_access(
    current_user: Principal = Depends(get_current_user),
    hierarchy: LocationHierarchyService = Depends(get_hierarchy_service),
):
    """Report access level and the offices the current user may report for."""
    return await office_access_info(current_user.office_name, hierarchy)
