import pytest

from formportal.core.errors import NetworkError
from formportal.schemas.location import LocationRecord
from formportal.services.location_hierarchy import (
    LocationHierarchyService,
    ScopeSelection,
    check_form_access,
    eligible_divisions,
    eligible_offices,
    filter_forms_by_office_access,
    resolve_hierarchy,
)
from tests.helpers import FailingStore, make_config, office_record, seed_offices


def _records(rows):
    return [LocationRecord.model_validate(r) for r in rows]


SAMPLE = [
    office_record("Alpha Office", "R1", "D1"),
    office_record("Beta Office", "R2", "D2"),
    office_record("Gamma Office", "R2", "D3"),
    office_record("Delta Office", "R1", "D1"),
]


def test_first_seen_division_region_wins():
    h = resolve_hierarchy(
        _records(
            [
                {"Region": "R1", "Division": "D1", "Office name": "O1"},
                {"Region": "R2", "Division": "D1", "Office name": "O2"},
            ]
        )
    )
    d1 = [d for d in h.divisions if d.name == "D1"]
    assert len(d1) == 1
    assert d1[0].region == "R1"


def test_blank_regions_discarded_and_names_trimmed():
    h = resolve_hierarchy(
        _records(
            [
                {"Region": "  ", "Division": "D9", "Office name": "Ghost"},
                {"Region": None, "Division": "D9", "Office name": "Ghost 2"},
                {"Region": " North East ", "Division": " D1 ", "Office name": " O1 "},
                {"Region": "Central", "Division": "D2", "Office name": ""},
            ]
        )
    )
    assert [r.name for r in h.regions] == ["Central", "North East"]
    assert [r.id for r in h.regions] == ["central", "north-east"]
    assert [d.name for d in h.divisions] == ["D1", "D2"]
    assert [o.name for o in h.offices] == ["O1"]


def test_region_count_matches_distinct_names():
    h = resolve_hierarchy(_records(SAMPLE))
    assert len(h.regions) == 2


def test_duplicate_offices_retained_by_resolver():
    rows = SAMPLE + [office_record("Alpha Office", "R1", "D1", office_id="dup")]
    h = resolve_hierarchy(_records(rows))
    assert [o.id for o in h.offices].count("Alpha Office") == 2
    assert [o.id for o in eligible_offices(h, [], [])].count("Alpha Office") == 1


def test_cascade_filters():
    h = resolve_hierarchy(_records(SAMPLE))
    assert {d.name for d in eligible_divisions(h, ["R2"])} == {"D2", "D3"}
    assert {d.name for d in eligible_divisions(h, [])} == {"D1", "D2", "D3"}
    assert {o.name for o in eligible_offices(h, ["R1"], [])} == {"Alpha Office", "Delta Office"}
    assert {o.name for o in eligible_offices(h, ["R2"], ["D3"])} == {"Gamma Office"}
    assert {o.name for o in eligible_offices(h, [], ["D2"])} == {"Beta Office"}


def test_region_change_prunes_divisions_and_offices():
    sel = ScopeSelection(resolve_hierarchy(_records(SAMPLE)))
    sel.select_regions(["R1", "R2"])
    sel.select_divisions(["D1", "D2"])
    sel.select_offices(["Alpha Office", "Beta Office"])

    sel.select_regions(["R1"])

    assert sel.divisions == ["D1"]
    assert sel.offices == ["Alpha Office"]


def test_division_change_prunes_offices():
    sel = ScopeSelection(resolve_hierarchy(_records(SAMPLE)))
    sel.select_divisions(["D1", "D2"])
    sel.select_offices(["Alpha Office", "Beta Office"])
    sel.select_divisions(["D2"])
    assert sel.offices == ["Beta Office"]


def test_restore_does_not_prune_and_empty_hierarchy_keeps_selection():
    sel = ScopeSelection()
    sel.restore(["R1"], ["D2"], ["Beta Office"])
    sel.select_regions(["R1"])
    assert sel.divisions == ["D2"]
    assert sel.offices == ["Beta Office"]


def test_check_form_access():
    assert not check_form_access(None, ["A"])
    assert not check_form_access("  ", [])
    assert check_form_access("Alpha", [])
    assert check_form_access(" alpha ", ["ALPHA"])
    assert not check_form_access("Alpha", ["Beta"])


def test_filter_forms_by_office_access():
    open_form = make_config("open")
    targeted = make_config("targeted", selected_offices=["Beta Office"])
    visible = filter_forms_by_office_access([open_form, targeted], "Alpha Office")
    assert [c.id for c in visible] == ["open"]


async def test_service_pages_through_all_records(stores):
    rows = [office_record(f"Office {i}", f"R{i % 3}", f"D{i % 5}") for i in range(7)]
    await seed_offices(stores, rows)

    service = LocationHierarchyService(stores.primary, page_size=2)
    h = await service.refresh()

    assert len(service.records) == 7
    assert len(h.regions) == 3
    assert service.last_error is None


async def test_service_serves_previous_data_when_refresh_fails(stores):
    await seed_offices(stores, SAMPLE)
    failing = FailingStore(stores.primary, fail_on=set())
    service = LocationHierarchyService(failing)
    first = await service.refresh()

    failing.fail_on = {"page"}
    again = await service.refresh()

    assert again == first
    assert "Failed to load office data" in service.last_error


async def test_service_require_raises_without_any_data(stores):
    service = LocationHierarchyService(FailingStore(stores.primary, fail_on={"page"}))
    h = await service.current()
    assert h.is_empty
    assert service.last_error
    with pytest.raises(NetworkError):
        await service.require()


async def test_accessible_offices_include_reporting_offices(stores):
    await seed_offices(
        stores,
        [
            office_record("North Division", "R1", "North Division"),
            office_record("Town B", "R1", "North Division", reporting_office="North Division"),
            office_record("Town A", "R1", "North Division", reporting_office="North Division"),
            office_record("Elsewhere", "R2", "South Division", reporting_office="South Division"),
        ],
    )
    service = LocationHierarchyService(stores.primary)
    assert await service.accessible_office_names("North Division") == ["North Division", "Town A", "Town B"]
    assert await service.accessible_office_names("Town A") == ["Town A"]
    assert await service.accessible_office_names(None) == []


async def test_accessible_offices_fall_back_when_fetch_fails(stores):
    service = LocationHierarchyService(FailingStore(stores.primary, fail_on={"page"}))
    assert await service.accessible_office_names("Town A") == ["Town A"]


async def test_service_tolerates_numeric_and_malformed_rows(stores):
    await seed_offices(
        stores,
        [
            {"Facility ID": 101, "Region": "R1", "Division": "D1", "Office name": 2024},
            office_record("Alpha", "R1", "D1"),
            {"Facility ID": "x", "Region": ["R9"], "Office name": "Broken"},
        ],
    )
    service = LocationHierarchyService(stores.primary)
    h = await service.refresh()

    assert service.last_error is None
    assert service.records[0].office_id == "101"
    assert sorted(o.name for o in h.offices) == ["2024", "Alpha"]
    assert [r.name for r in h.regions] == ["R1"]
