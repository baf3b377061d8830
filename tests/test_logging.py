from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from imei_forensics.logging import JsonFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "imei_forensics.test", logging.INFO, __file__, 1, "Loaded %s events", (3,), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields() -> None:
    record = _record(event="cli.stream_loaded", path=Path("swaps.ndjson"), counts=(1, 2))

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Loaded 3 events"
    assert payload["level"] == "info"
    assert payload["logger"] == "imei_forensics.test"
    assert payload["event"] == "cli.stream_loaded"
    assert payload["path"] == "swaps.ndjson"
    assert payload["counts"] == [1, 2]
    assert "args" not in payload


def test_setup_logging_writes_json_to_file(tmp_path: Path) -> None:
    target = tmp_path / "logs" / "forensics.log"

    setup_logging({"logging": {"level": "debug", "output": str(target), "format": "json"}})
    logging.getLogger("imei_forensics.analysis").debug("filters ready", extra={"event": "filters.ready"})

    (line,) = target.read_text(encoding="utf8").splitlines()
    assert json.loads(line)["event"] == "filters.ready"


def test_setup_logging_replaces_previous_handler(tmp_path: Path) -> None:
    first = tmp_path / "first.log"
    second = tmp_path / "second.log"

    setup_logging({"logging": {"output": str(first), "format": "text"}})
    root = setup_logging({"logging": {"output": str(second), "format": "text", "level": "warning"}})
    logging.getLogger("imei_forensics").warning("only once")

    marked = [handler for handler in root.handlers if getattr(handler, "_imei_forensics_handler", False)]
    assert len(marked) == 1
    assert root.level == logging.WARNING
    assert first.read_text(encoding="utf8") == ""
    assert "WARNING imei_forensics: only once" in second.read_text(encoding="utf8")


@pytest.mark.parametrize(
    "section",
    [
        pytest.param({"format": "xml"}, id="format"),
        pytest.param({"level": "loud"}, id="level"),
    ],
)
def test_setup_logging_rejects_unknown_values(section, tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        setup_logging({"logging": {"output": str(tmp_path / "x.log"), **section}})
