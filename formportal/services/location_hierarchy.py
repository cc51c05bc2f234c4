"""
Region -> division -> office hierarchy derived from the flat office table.

`resolve_hierarchy` is the single place that turns raw location records into
entities; the builder's scope pickers, the runtime's Office Name dropdown and
report scoping all consume its output.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable

from pydantic import ValidationError as PydanticValidationError

from formportal.core.cache import TtlCache
from formportal.core.config import settings
from formportal.core.errors import FormEngineError, NetworkError
from formportal.core.slug import slugify
from formportal.db.document_store import DocumentStore
from formportal.schemas.location import Division, LocationHierarchy, LocationRecord, Office, Region

logger = logging.getLogger(__name__)

OFFICES_COLLECTION = "offices"


def _clean(value: str | None) -> str:
    return (value or "").strip()


def resolve_hierarchy(records: Iterable[LocationRecord]) -> LocationHierarchy:
    """
    The caller must pass the complete record set; a partial page silently
    drops regions.

    A division name maps to the region of the first record carrying it, so the
    same division name under two regions collapses into one entry.
    """
    region_names: set[str] = set()
    division_region: dict[str, str] = {}
    offices: list[Office] = []

    for rec in records:
        region = _clean(rec.region)
        if not region:
            continue
        region_names.add(region)

        division = _clean(rec.division)
        if division and division not in division_region:
            division_region[division] = region

        office_name = _clean(rec.office_name)
        if office_name:
            offices.append(Office(id=office_name, name=office_name, region=region, division=division))

    regions = [Region(id=slugify(name), name=name) for name in sorted(region_names)]
    divisions = [
        Division(id=slugify(name), name=name, region=division_region[name])
        for name in sorted(division_region)
    ]
    return LocationHierarchy(regions=regions, divisions=divisions, offices=offices)


def unique_offices(offices: Iterable[Office]) -> list[Office]:
    seen: set[str] = set()
    out: list[Office] = []
    for o in offices:
        if o.id in seen:
            continue
        seen.add(o.id)
        out.append(o)
    return out


def eligible_divisions(hierarchy: LocationHierarchy, regions: Iterable[str]) -> list[Division]:
    regions = set(regions)
    if not regions:
        return list(hierarchy.divisions)
    return [d for d in hierarchy.divisions if d.region in regions]


def eligible_offices(
    hierarchy: LocationHierarchy,
    regions: Iterable[str],
    divisions: Iterable[str],
) -> list[Office]:
    regions = set(regions)
    divisions = set(divisions)
    offices = hierarchy.offices
    if divisions:
        offices = [
            o for o in offices
            if o.division in divisions and (not regions or o.region in regions)
        ]
    elif regions:
        offices = [o for o in offices if o.region in regions]
    return unique_offices(offices)


class ScopeSelection:
    """
    Region/division/office multi-select state.

    Changing a parent selection immediately prunes children that are no longer
    eligible. Nothing is pruned while the hierarchy is empty, so a failed fetch
    does not wipe a saved scope.
    """

    def __init__(self, hierarchy: LocationHierarchy | None = None):
        self.hierarchy = hierarchy or LocationHierarchy()
        self.regions: list[str] = []
        self.divisions: list[str] = []
        self.offices: list[str] = []

    def restore(self, regions: list[str], divisions: list[str], offices: list[str]) -> None:
        self.regions = list(regions)
        self.divisions = list(divisions)
        self.offices = list(offices)

    def set_hierarchy(self, hierarchy: LocationHierarchy) -> None:
        self.hierarchy = hierarchy

    def select_regions(self, regions: list[str]) -> None:
        self.regions = _ordered_unique(regions)
        self._prune_divisions()
        self._prune_offices()

    def select_divisions(self, divisions: list[str]) -> None:
        self.divisions = _ordered_unique(divisions)
        self._prune_offices()

    def select_offices(self, offices: list[str]) -> None:
        self.offices = _ordered_unique(offices)

    @property
    def available_divisions(self) -> list[Division]:
        return eligible_divisions(self.hierarchy, self.regions)

    @property
    def available_offices(self) -> list[Office]:
        return eligible_offices(self.hierarchy, self.regions, self.divisions)

    def _prune_divisions(self) -> None:
        if self.hierarchy.is_empty:
            return
        allowed = {d.name for d in self.available_divisions}
        self.divisions = [d for d in self.divisions if d in allowed]

    def _prune_offices(self) -> None:
        if self.hierarchy.is_empty:
            return
        allowed = {o.id for o in self.available_offices}
        self.offices = [o for o in self.offices if o in allowed]


def _ordered_unique(values: Iterable[str]) -> list[str]:
    out: list[str] = []
    for v in values:
        if v and v not in out:
            out.append(v)
    return out


def check_form_access(user_office: str | None, target_offices: list[str] | None) -> bool:
    if not user_office or not user_office.strip():
        return False
    if not target_offices:
        return True
    wanted = user_office.strip().lower()
    return any(t and t.strip().lower() == wanted for t in target_offices)


def filter_forms_by_office_access(configs, user_office: str | None) -> list:
    return [c for c in configs if check_form_access(user_office, c.scope.selected_offices)]


class LocationHierarchyService:
    """
    Loads every location record (page by page) and keeps the last good
    hierarchy. A failed refresh keeps serving the previous data and records
    `last_error`; refresh() again is the retry.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        page_size: int | None = None,
        accessible_cache: TtlCache | None = None,
    ):
        self.store = store
        self.page_size = page_size or settings.LOCATION_PAGE_SIZE
        self.hierarchy: LocationHierarchy | None = None
        self.records: list[LocationRecord] = []
        self.last_error: str | None = None
        self.accessible_cache = accessible_cache or TtlCache(
            timedelta(minutes=settings.CLASSIFICATION_CACHE_TTL_MINUTES),
            name="accessible-offices",
        )

    async def fetch_records(self) -> list[LocationRecord]:
        records: list[LocationRecord] = []
        offset = 0
        while True:
            batch = await self.store.page(OFFICES_COLLECTION, offset, self.page_size)
            for doc in batch:
                try:
                    records.append(LocationRecord.model_validate(doc))
                except PydanticValidationError as exc:
                    logger.warning("skipping malformed office row at offset %d: %s", offset, exc.errors()[0]["msg"])
            if len(batch) < self.page_size:
                break
            offset += self.page_size
        return records

    async def refresh(self) -> LocationHierarchy:
        try:
            records = await self.fetch_records()
        except FormEngineError as exc:
            self.last_error = f"Failed to load office data: {exc.message}"
            logger.warning("hierarchy refresh failed; serving %s data", "previous" if self.hierarchy else "empty")
            return self.hierarchy or LocationHierarchy()

        self.records = records
        self.hierarchy = resolve_hierarchy(records)
        self.last_error = None
        logger.info(
            "hierarchy loaded: %d records, %d regions, %d divisions",
            len(records), len(self.hierarchy.regions), len(self.hierarchy.divisions),
        )
        return self.hierarchy

    async def current(self) -> LocationHierarchy:
        if self.hierarchy is None:
            return await self.refresh()
        return self.hierarchy

    async def require(self) -> LocationHierarchy:
        h = await self.current()
        if self.hierarchy is None:
            raise NetworkError(self.last_error or "Office data unavailable")
        return h

    async def accessible_office_names(self, user_office: str | None) -> list[str]:
        """
        The user's own office plus every office reporting to it.
        """
        if not user_office or not user_office.strip():
            return []
        user_office = user_office.strip()

        async def _compute() -> list[str]:
            records = await self.fetch_records()
            names = {user_office}
            for rec in records:
                if _clean(rec.reporting_office_name) == user_office and _clean(rec.office_name):
                    names.add(_clean(rec.office_name))
            return sorted(names)

        try:
            return await self.accessible_cache.get_or_compute(user_office, _compute)
        except FormEngineError:
            logger.warning("accessible offices lookup failed for %s; using fallback", user_office)
            stale = self.accessible_cache.get_stale(user_office)
            return stale if stale is not None else [user_office]
