"""Structured Logging — JSON lines for production, plain text for development.

Invariants:
    - Every line carries timestamp (of the record, UTC), level, logger and message
    - Hierarchy context passed through `extra=` (EXTRA_FIELDS) is surfaced when set
    - setup_logging is idempotent: calling it again replaces its own handler

Design Decisions:
    - stdlib logging with a custom Formatter: services only ever call
      logging.getLogger(__name__), the format is decided once at startup
    - UUIDs and Decimals are rendered as strings; ints and bools stay native
      so log queries can compare attempts numerically
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "actor_id", "requester_id", "root_id", "job_id",
    "code_purpose", "attempt", "error_code", "path",
)

_HANDLER_NAME = "tierbroker"

# Chatty library loggers never go below WARNING
_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "aiosqlite")


def _context(record: logging.LogRecord) -> dict:
    found = {}
    for key in EXTRA_FIELDS:
        value = getattr(record, key, None)
        if value is None:
            continue
        found[key] = value if isinstance(value, (bool, int, float)) else str(value)
    return found


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable line with the hierarchy context appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if context:
            line += " " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the TierBroker handler on the root logger."""
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    root.addHandler(handler)

    numeric = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(numeric)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
