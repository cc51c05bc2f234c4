import re

_WHITESPACE = re.compile(r"\s+")
_INVALID = re.compile(r"[^a-z0-9-]")


def slugify(name: str) -> str:
    """
    "  North   East!! " -> "north-east"

    Not injective: "A&B" and "AB" both become "ab".
    """
    s = (name or "").strip().lower()
    s = _WHITESPACE.sub("-", s)
    return _INVALID.sub("", s)


def normalize_id_input(raw: str) -> str:
    """
    Live normalization for an id being typed. Leading whitespace is dropped but a
    trailing separator is kept so the next keystroke can extend it.
    """
    s = (raw or "").lstrip().lower()
    s = _WHITESPACE.sub("-", s)
    return _INVALID.sub("", s)
