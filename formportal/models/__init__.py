from formportal.models.document import Document

__all__ = ["Document"]
