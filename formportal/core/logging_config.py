"""Root logger setup: plain text for local/dev/test, JSON lines elsewhere."""

from __future__ import annotations

import json
import logging
import sys

# set through `extra=` by the stores and services
CONTEXT_FIELDS = ("category_id", "backend")

TEXT_ENVIRONMENTS = {"local", "development", "test"}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({k: getattr(record, k) for k in CONTEXT_FIELDS if hasattr(record, k)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(environment: str = "local", level: str = "INFO") -> None:
    """Replace the root handlers with one stdout handler. Call once at startup."""
    handler = logging.StreamHandler(sys.stdout)
    if environment in TEXT_ENVIRONMENTS:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    else:
        handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
