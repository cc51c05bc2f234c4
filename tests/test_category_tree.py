import pytest

from formportal.core.errors import DuplicateIdError, PersistenceError, ValidationError
from formportal.db.document_store import to_document
from formportal.services.category_tree import (
    CARD_COLORS,
    CARD_ICONS,
    PAGES_COLLECTION,
    CategoryTreeService,
    card_style,
)
from tests.helpers import FailingStore, create_tree, make_config


def test_card_style_is_deterministic():
    h = sum(ord(c) for c in "Sales")
    assert card_style("Sales") == (CARD_ICONS[h % 4], CARD_COLORS[h % 5])
    assert card_style("Sales") == card_style("Sales")


async def test_create_root_and_child_paths(stores):
    service = await create_tree(stores, [("sales", "Sales", None), ("daily", "Daily", "sales")])
    root = await service.get("sales")
    child = await service.get("daily")
    assert root.path == "/categories/sales"
    assert child.path == "/categories/sales/daily"
    assert child.parent_id == "sales"
    assert child.is_page is True and child.page_id == "daily"
    assert child.last_updated is not None


async def test_create_duplicate_id_rejected(stores):
    service = await create_tree(stores, [("sales", "Sales", None)])
    with pytest.raises(DuplicateIdError):
        await service.create("sales", "Other")


async def test_create_requires_id_title_and_known_parent(stores):
    service = CategoryTreeService(stores.primary)
    with pytest.raises(ValidationError):
        await service.create("", "Title")
    with pytest.raises(ValidationError):
        await service.create("x", "  ")
    with pytest.raises(ValidationError):
        await service.create("x", "X", parent_id="missing")


async def test_rename_keeps_path(stores):
    service = await create_tree(stores, [("sales", "Sales", None), ("daily", "Daily", "sales")])
    renamed = await service.rename("daily", "Daily Totals")
    assert renamed.title == "Daily Totals"
    assert renamed.path == "/categories/sales/daily"


async def test_leaf_and_root(stores):
    service = await create_tree(stores, [("sales", "Sales", None), ("daily", "Daily", "sales")])
    assert await service.is_root("sales")
    assert not await service.is_leaf("sales")
    assert await service.is_leaf("daily")
    assert not await service.is_root("daily")


async def test_tree_nests_children(stores):
    service = await create_tree(
        stores, [("sales", "Sales", None), ("daily", "Daily", "sales"), ("ops", "Ops", None)]
    )
    tree = await service.tree()
    by_id = {n.id: n for n in tree}
    assert set(by_id) == {"sales", "ops"}
    assert [c.id for c in by_id["sales"].children] == ["daily"]


async def test_delete_subtree_leaves_no_residue(stores):
    service = await create_tree(
        stores,
        [("sales", "Sales", None), ("daily", "Daily", "sales"), ("weekly", "Weekly", "sales"), ("ops", "Ops", None)],
    )
    for cid in ("sales", "daily", "weekly"):
        await stores.primary.put(PAGES_COLLECTION, cid, to_document(make_config(cid)))

    deleted = await service.delete_subtree("sales")

    assert set(deleted) == {"sales", "daily", "weekly"}
    for cid in deleted:
        assert await service.get(cid) is None
        assert await stores.primary.get(PAGES_COLLECTION, cid) is None
    assert await service.exists("ops")


async def test_delete_subtree_failure_deletes_nothing(stores):
    await create_tree(stores, [("sales", "Sales", None), ("daily", "Daily", "sales")])
    service = CategoryTreeService(FailingStore(stores.primary, fail_on={"batch"}))

    with pytest.raises(PersistenceError):
        await service.delete_subtree("sales")

    assert await service.exists("sales")
    assert await service.exists("daily")


async def test_delete_unknown_category(stores):
    with pytest.raises(ValidationError):
        await CategoryTreeService(stores.primary).delete_subtree("nope")
