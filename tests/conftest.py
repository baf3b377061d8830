from __future__ import annotations

import logging
import sys
from pathlib import Path
from textwrap import dedent

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from imei_forensics.core.clock import FixedClock  # noqa: E402
from tests.helpers import BASE_TS, event_payload, ndjson_lines  # noqa: E402


def write_pyproject(directory: Path, contents: str) -> Path:
    """Persist a ``pyproject.toml`` under ``directory`` and return its path."""

    payload = dedent(contents).lstrip()
    target = directory / "pyproject.toml"
    target.write_text(payload, encoding="utf8")
    return target


@pytest.fixture
def fixed_clock() -> FixedClock:
    """Clock pinned one day after the base event timestamp."""

    return FixedClock(BASE_TS + 86400)


@pytest.fixture
def stream_path(tmp_path: Path) -> Path:
    """Small NDJSON stream with two units, a power cut and a rejected line."""

    records = [
        event_payload(
            unidad="TRUCK-01",
            unit_id=10,
            imei_ant="",
            imei_nuevo="A1",
            cambio_ts=BASE_TS,
            cambio_time="2023-11-14T22:13:20+00:00",
        ),
        event_payload(
            unidad="TRUCK-01",
            unit_id=10,
            imei_ant="A1",
            imei_nuevo="A2",
            cambio_ts=BASE_TS + 3600,
            cambio_time="2023-11-14T23:13:20+00:00",
            last={"ts": BASE_TS + 3000, "pwr_ext": 0.4, "gsm": 5, "lat": 21.5, "lon": -101.2, "iccid": "8952"},
            first_after={"ts": BASE_TS + 3900, "iccid": "8953", "lat": 21.6, "lon": -101.3},
        ),
        event_payload(
            unidad="VAN-02",
            unit_id=20,
            imei_ant="B0",
            imei_nuevo="B1",
            cambio_ts=BASE_TS + 7200,
            cambio_time="2023-11-15T00:13:20+00:00",
            downtime_seconds=120,
            last={"pwr_ext": 12.6, "gsm": 25},
        ),
        "{not json",
    ]
    target = tmp_path / "swaps.ndjson"
    target.write_text(ndjson_lines(records) + "\n", encoding="utf8")
    return target


@pytest.fixture(autouse=True)
def _reset_cli_logging():
    """Detach the handler installed by ``setup_logging`` after every test."""

    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_imei_forensics_handler", False):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(logging.WARNING)
