"""Example that exports the enriched swap audit of an inline stream to CSV."""

from __future__ import annotations

from imei_forensics import derive, parse_text
from imei_forensics.core import FixedClock
from imei_forensics.exporters import AUDIT_COLUMNS, audit_rows, csv_exporter

DATA = """\
{"unidad": "TRUCK-01", "unit_id": 10, "imei_ant": "", "imei_nuevo": "A1", "cambio_ts": 1700000000, "cambio_time": "2023-11-14T22:13:20Z", "status": "ok"}
{"unidad": "TRUCK-01", "unit_id": 10, "imei_ant": "A1", "imei_nuevo": "A2", "cambio_ts": 1700003600, "cambio_time": "2023-11-14T23:13:20Z", "status": "ok", "last": {"ts": 1700003000, "pwr_ext": 0.4, "iccid": "8952"}, "first_after": {"ts": 1700003900, "iccid": "8953"}}
{"unidad": "VAN-02", "unit_id": 20, "imei_ant": "B0", "imei_nuevo": "B1", "cambio_ts": 1700007200, "cambio_time": "2023-11-15T00:13:20Z", "status": "ok", "downtime_seconds": 120}
"""


def main() -> None:
    parsed = parse_text(DATA)
    result = derive(parsed.events, clock=FixedClock(1700086400))
    csv_output = csv_exporter({"columns": list(AUDIT_COLUMNS), "rows": audit_rows(result.enriched)})
    print(csv_output)


if __name__ == "__main__":
    main()
