from formportal.core.slug import normalize_id_input, slugify


def test_slugify_basic():
    assert slugify("North East") == "north-east"


def test_slugify_trims_and_collapses():
    assert slugify("  North   East!! ") == "north-east"


def test_slugify_is_idempotent():
    once = slugify("  North   East!! ")
    assert slugify(once) == once


def test_slugify_not_injective():
    assert slugify("A&B") == slugify("AB") == "ab"


def test_slugify_empty():
    assert slugify("") == ""
    assert slugify(None) == ""


def test_normalize_id_input_keeps_trailing_separator():
    assert normalize_id_input("  Daily ") == "daily-"
    assert normalize_id_input("Daily Sales!") == "daily-sales"
