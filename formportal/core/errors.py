from __future__ import annotations


class FormEngineError(Exception):
    """Base class for every error the form engine raises on purpose."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigNotFound(FormEngineError):
    def __init__(self, category_id: str):
        super().__init__(f"No form configuration found for '{category_id}'")
        self.category_id = category_id


class ValidationError(FormEngineError):
    """
    Recoverable by a user edit. `errors` maps field id -> message when the
    failure is field-level.
    """

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.errors = errors or {}


class DuplicateIdError(FormEngineError):
    def __init__(self, node_id: str):
        super().__init__(f"This Report ID already exists: '{node_id}'. Please use a unique ID.")
        self.node_id = node_id


class PersistenceError(FormEngineError):
    """A write or delete failed on one or both backends."""

    def __init__(self, message: str, backends: list[str] | None = None):
        super().__init__(message)
        self.backends = backends or []


class NetworkError(FormEngineError):
    pass


class FormReadOnlyError(FormEngineError):
    pass
