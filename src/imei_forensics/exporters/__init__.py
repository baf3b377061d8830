"""Exporter registry for IMEI forensics reports.

Every exporter takes a report payload (a mapping) and returns text.  Tabular
exporters read the ``rows`` entry, a list of flat mappings, and the optional
``columns`` entry fixing the column order.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Protocol, Sequence

import pandas as pd

from ..core.models import EnrichedEvent, LifespanInterval, UnitHistory
from ..formatting import format_duration

AUDIT_COLUMNS: tuple[str, ...] = (
    "Unidad",
    "ID",
    "Date",
    "Old IMEI",
    "New IMEI",
    "Previous Lifespan (days)",
    "Downtime (s)",
    "Is Power Cut",
    "Is Sim Swap",
    "Voltage",
    "Signal",
    "ICCID",
)

LIFECYCLE_COLUMNS: tuple[str, ...] = (
    "Unidad",
    "Current IMEI",
    "Since",
    "Current Duration (s)",
    "Devices Used",
    "Changes",
    "Failure Rate (per year)",
)

INTERVAL_COLUMNS: tuple[str, ...] = ("IMEI", "Start", "End", "Duration (s)", "Duration")

_SECONDS_PER_DAY = 86400


class Exporter(Protocol):
    """Exporter callable protocol."""

    def __call__(self, results: Mapping[str, Any]) -> str:  # pragma: no cover - interface only
        ...


def _normalise(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {key: _normalise(item) for key, item in asdict(value).items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _normalise(item) for key, item in value.items()}
    return value


def _blank_number(value: Any) -> Any:
    """Falsy numbers render as blanks; integral floats lose their decimals."""

    if not value:
        return ""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _yes_no(flag: bool) -> str:
    return "YES" if flag else "NO"


def audit_row(event: EnrichedEvent) -> Dict[str, Any]:
    lifespan = event.previous_identifier_lifespan_seconds
    last = event.last_signal
    return {
        "Unidad": event.unit_name,
        "ID": event.unit_id,
        "Date": event.change_time_display,
        "Old IMEI": event.old_identifier,
        "New IMEI": event.new_identifier,
        "Previous Lifespan (days)": f"{lifespan / _SECONDS_PER_DAY:.2f}" if lifespan else "",
        "Downtime (s)": _blank_number(event.downtime_seconds),
        "Is Power Cut": _yes_no(event.is_power_cut),
        "Is Sim Swap": _yes_no(event.is_sim_change),
        "Voltage": _blank_number(last.external_voltage if last is not None else None),
        "Signal": _blank_number(last.gsm_signal if last is not None else None),
        "ICCID": event.derived_iccid,
    }


def audit_rows(events: Iterable[EnrichedEvent]) -> List[Dict[str, Any]]:
    """Flatten enriched events into audit table rows."""

    return [audit_row(event) for event in events]


def audit_frame(events: Iterable[EnrichedEvent]) -> pd.DataFrame:
    return pd.DataFrame(audit_rows(events), columns=list(AUDIT_COLUMNS))


def lifecycle_rows(histories: Iterable[UnitHistory]) -> List[Dict[str, Any]]:
    return [
        {
            "Unidad": history.unit_name,
            "Current IMEI": history.current_identifier,
            "Since": history.current_start_display,
            "Current Duration (s)": history.current_duration_seconds,
            "Devices Used": history.devices_used,
            "Changes": history.event_count,
            "Failure Rate (per year)": round(history.failure_rate_index, 2),
        }
        for history in histories
    ]


def interval_rows(intervals: Iterable[LifespanInterval]) -> List[Dict[str, Any]]:
    return [
        {
            "IMEI": interval.imei,
            "Start": interval.start_display,
            "End": interval.end_display,
            "Duration (s)": interval.duration_seconds,
            "Duration": format_duration(interval.duration_seconds),
        }
        for interval in intervals
    ]


def _table(results: Mapping[str, Any]) -> pd.DataFrame:
    rows = results.get("rows")
    if rows is None:
        raise ValueError("Tabular exporters expect a 'rows' entry in the payload")
    columns: Sequence[str] | None = results.get("columns")
    return pd.DataFrame(list(rows), columns=list(columns) if columns else None)


def json_exporter(results: Mapping[str, Any]) -> str:
    payload = _normalise(results)
    return json.dumps(payload, indent=2, sort_keys=True)


def csv_exporter(results: Mapping[str, Any]) -> str:
    return _table(results).to_csv(index=False, lineterminator="\n")


def _markdown_cell(value: Any) -> str:
    if value is None or (isinstance(value, str) and not value):
        return "-"
    return str(value).replace("|", "\\|")


def markdown_exporter(results: Mapping[str, Any]) -> str:
    """Render the payload title, summary counters and table as Markdown."""

    lines: List[str] = []
    title = results.get("title")
    if title:
        lines.append(f"# {title}")
        lines.append("")

    summary = results.get("summary")
    if isinstance(summary, Mapping) and summary:
        for key, value in _normalise(summary).items():
            lines.append(f"- **{key}**: {_markdown_cell(value)}")
        lines.append("")

    if results.get("rows") is not None:
        frame = _table(results)
        header = [str(column) for column in frame.columns]
        lines.append("| " + " | ".join(header) + " |")
        lines.append("| " + " | ".join("---" for _ in header) + " |")
        for record in frame.itertuples(index=False, name=None):
            lines.append("| " + " | ".join(_markdown_cell(value) for value in record) + " |")

    return "\n".join(lines).rstrip("\n")


exporters_registry: Dict[str, Exporter] = {
    "json": json_exporter,
    "csv": csv_exporter,
    "markdown": markdown_exporter,
}

__all__ = [
    "AUDIT_COLUMNS",
    "Exporter",
    "INTERVAL_COLUMNS",
    "LIFECYCLE_COLUMNS",
    "audit_frame",
    "audit_row",
    "audit_rows",
    "csv_exporter",
    "exporters_registry",
    "interval_rows",
    "json_exporter",
    "lifecycle_rows",
    "markdown_exporter",
]
