"""
Which reports screen an office gets.

Offices whose name ends with "division" see the comprehensive, multi-office
reports; every other office sees only its own data. The classification is
cached process-wide for CLASSIFICATION_CACHE_TTL_MINUTES and can be dropped
with `invalidate_classification_cache()`.
"""
from __future__ import annotations

from datetime import timedelta

from formportal.core.cache import TtlCache
from formportal.core.config import settings
from formportal.schemas.location import OfficeAccessOut
from formportal.services.location_hierarchy import LocationHierarchyService

DIVISION_SUFFIX = "division"

classification_cache = TtlCache(
    timedelta(minutes=settings.CLASSIFICATION_CACHE_TTL_MINUTES),
    name="office-classification",
)


def is_division_office(office_name: str | None) -> bool:
    if not office_name or not office_name.strip():
        return False
    return office_name.strip().lower().endswith(DIVISION_SUFFIX)


async def classify_office(office_name: str | None, cache: TtlCache | None = None) -> bool:
    cache = cache or classification_cache
    key = (office_name or "").strip()

    async def _compute() -> bool:
        return is_division_office(key)

    return await cache.get_or_compute(key, _compute)


def invalidate_classification_cache() -> None:
    classification_cache.invalidate()


async def office_access_info(
    office_name: str | None,
    hierarchy: LocationHierarchyService,
    cache: TtlCache | None = None,
) -> OfficeAccessOut:
    if not office_name or not office_name.strip():
        return OfficeAccessOut(
            office_name=None,
            is_division_user=False,
            access_level="none",
            report_type="none",
            accessible_offices=[],
        )

    division_user = await classify_office(office_name, cache)
    return OfficeAccessOut(
        office_name=office_name.strip(),
        is_division_user=division_user,
        access_level="division" if division_user else "office",
        report_type="comprehensive" if division_user else "simple",
        accessible_offices=await hierarchy.accessible_office_names(office_name),
    )
