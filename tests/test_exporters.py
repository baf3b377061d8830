import json

import pytest

from imei_forensics.analysis.enrichment import enrich_events
from imei_forensics.analysis.history import build_unit_histories
from imei_forensics.core.clock import FixedClock
from imei_forensics.core.lifespan import compute_lifespans
from imei_forensics.core.models import RiskLevel
from imei_forensics.exporters import (
    AUDIT_COLUMNS,
    audit_frame,
    audit_rows,
    csv_exporter,
    exporters_registry,
    interval_rows,
    json_exporter,
    lifecycle_rows,
    markdown_exporter,
)
from tests.helpers import BASE_TS, build_raw_event, build_telemetry


def build_audit_events():
    events = [
        build_raw_event("TRUCK-01", BASE_TS, unit_id=10, old_identifier="", new_identifier="A1"),
        build_raw_event(
            "TRUCK-01",
            BASE_TS + 2 * 86400,
            unit_id=10,
            old_identifier="A1",
            new_identifier="A2",
            display="2023-11-16",
            last=build_telemetry(
                timestamp=BASE_TS + 2 * 86400 - 900,
                external_voltage=0.4,
                gsm_signal=0.0,
                iccid="8952",
            ),
            first_after=build_telemetry(timestamp=BASE_TS + 2 * 86400, iccid="8953"),
        ),
    ]
    return enrich_events(events, compute_lifespans(events))


def test_audit_rows_follow_column_contract():
    swap, install = audit_rows(build_audit_events())

    assert list(swap) == list(AUDIT_COLUMNS)
    assert swap["Unidad"] == "TRUCK-01"
    assert swap["ID"] == 10
    assert swap["Date"] == "2023-11-16"
    assert swap["Previous Lifespan (days)"] == "2.00"
    assert swap["Downtime (s)"] == 900
    assert swap["Is Power Cut"] == "YES"
    assert swap["Is Sim Swap"] == "YES"
    assert swap["Voltage"] == 0.4
    assert swap["Signal"] == ""
    assert swap["ICCID"] == "8953"
    assert install["Previous Lifespan (days)"] == ""
    assert install["Downtime (s)"] == ""
    assert install["Is Power Cut"] == "NO"
    assert install["Voltage"] == ""


def test_integral_voltage_drops_decimals():
    event = build_raw_event(last=build_telemetry(external_voltage=12.0, gsm_signal=18.5))

    (row,) = audit_rows(enrich_events([event], {}))

    assert row["Voltage"] == 12
    assert row["Signal"] == 18.5


def test_csv_exporter_renders_rows():
    rows = audit_rows(build_audit_events())

    rendered = csv_exporter({"columns": list(AUDIT_COLUMNS), "rows": rows})

    lines = rendered.splitlines()
    assert lines[0] == ",".join(AUDIT_COLUMNS)
    assert lines[1].startswith("TRUCK-01,10,2023-11-16,A1,A2,2.00,900,YES,YES,0.4,,8953")
    assert len(lines) == 3


def test_csv_exporter_requires_rows():
    with pytest.raises(ValueError):
        csv_exporter({"title": "no table"})


def test_audit_frame_keeps_columns_when_empty():
    frame = audit_frame(())

    assert list(frame.columns) == list(AUDIT_COLUMNS)
    assert frame.empty


def test_json_exporter_serialises_payload():
    events = build_audit_events()
    payload = {"title": "audit", "risk": RiskLevel.CRITICAL, "events": events[:1]}

    data = json.loads(json_exporter(payload))

    assert data["risk"] == "critical"
    assert data["events"][0]["id"] == events[0].id
    assert data["events"][0]["risk_level"] == "critical"
    assert data["events"][0]["event"]["unit_name"] == "TRUCK-01"


def test_markdown_exporter_renders_table_and_lists():
    payload = {
        "title": "Device lifecycle",
        "summary": {"unit_count": 1, "output": None},
        "columns": ["IMEI", "Note"],
        "rows": [{"IMEI": "A1", "Note": "a|b"}, {"IMEI": "A2", "Note": ""}],
    }

    rendered = markdown_exporter(payload)

    assert rendered.startswith("# Device lifecycle")
    assert "- **unit_count**: 1" in rendered
    assert "- **output**: -" in rendered
    assert "| IMEI | Note |" in rendered
    assert "| A1 | a\\|b |" in rendered
    assert "| A2 | - |" in rendered


def test_lifecycle_and_interval_rows():
    events = [build_raw_event("U1", ts, new_identifier=f"I{ts}") for ts in (0, 90061)]
    histories = build_unit_histories(events, clock=FixedClock(100000))

    (row,) = lifecycle_rows(histories)
    (interval,) = interval_rows(histories[0].history)

    assert row["Current IMEI"] == "I90061"
    assert row["Devices Used"] == 2
    assert row["Changes"] == 2
    assert row["Failure Rate (per year)"] == 20.0
    assert interval["Duration (s)"] == 90061
    assert interval["Duration"] == "1d 1h 1m"


def test_registry_lists_all_exporters():
    assert set(exporters_registry) == {"json", "csv", "markdown"}
