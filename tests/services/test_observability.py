"""Structured logging — JSON fields, text context and idempotent setup."""

import json
import logging
from uuid import uuid4

from tierbroker.infrastructure.observability import (
    JSONFormatter, TextFormatter, setup_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "tierbroker.services.hierarchy_assignment", logging.WARNING,
        __file__, 1, "Re-parent denied", None, None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_surfaces_hierarchy_context():
    actor = uuid4()

    line = json.loads(JSONFormatter().format(_record(actor_id=actor, attempt=2)))

    assert line["level"] == "WARNING"
    assert line["message"] == "Re-parent denied"
    assert line["actor_id"] == str(actor)
    assert line["attempt"] == 2
    assert "root_id" not in line


def test_text_formatter_appends_context():
    line = TextFormatter().format(_record(job_id="job-7"))

    assert line.endswith("job_id=job-7")


def test_setup_logging_replaces_its_own_handler():
    root = logging.getLogger()
    before, level = list(root.handlers), root.level
    try:
        setup_logging("debug", "text")
        setup_logging("INFO", "json")

        ours = [h for h in root.handlers if h.get_name() == "tierbroker"]
        assert len(ours) == 1
        assert isinstance(ours[0].formatter, JSONFormatter)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    finally:
        for handler in [h for h in root.handlers if h not in before]:
            root.removeHandler(handler)
        root.setLevel(level)
