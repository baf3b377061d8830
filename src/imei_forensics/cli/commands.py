"""Handlers for the ``audit``, ``lifecycle``, ``metrics`` and ``map`` commands.

Each handler receives the parsed namespace plus the loaded configuration and
returns the rendered report; :func:`imei_forensics.cli.app.run_cli` writes it
to standard output.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

from ..analysis.filters import FilterState
from ..analysis.pipeline import ForensicsSession
from ..analysis.views import group_by_unit, longest_intervals, map_center, swap_locations
from ..exporters import (
    AUDIT_COLUMNS,
    INTERVAL_COLUMNS,
    LIFECYCLE_COLUMNS,
    audit_frame,
    audit_rows,
    interval_rows,
    lifecycle_rows,
)
from ..formatting import format_duration
from ..ingestion import ParseResult
from .common import build_session, render_payload, resolve_exports, resolve_filters
from .io import load_stream, persist_table

logger = logging.getLogger(__name__)

__all__ = [
    "handle_audit",
    "handle_lifecycle",
    "handle_map",
    "handle_metrics",
]


def _prepare(
    namespace: argparse.Namespace, config: Mapping[str, Any]
) -> Tuple[ParseResult, ForensicsSession, FilterState]:
    filters = resolve_filters(namespace, config)
    parsed = load_stream(Path(namespace.stream))
    session = build_session(namespace, config, parsed.events)
    return parsed, session, filters


def _ingestion_summary(parsed: ParseResult) -> Dict[str, Any]:
    return {"accepted_lines": parsed.accepted_count, "rejected_lines": parsed.error_count}


def handle_audit(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    """Render the enriched audit table, optionally grouped per unit."""

    parsed, session, filters = _prepare(namespace, config)
    enriched = session.enriched(filters)
    summary = session.summary(filters)

    payload: Dict[str, Any] = {
        "title": "IMEI swap audit",
        "filters": asdict(filters),
        "summary": {**asdict(summary), **_ingestion_summary(parsed)},
        "columns": list(AUDIT_COLUMNS),
        "rows": audit_rows(enriched),
    }
    if getattr(namespace, "grouped", False):
        payload["groups"] = [
            {
                "unit_name": group.unit_name,
                "unit_id": group.unit_id,
                "change_count": group.change_count,
                "power_cut_count": group.power_cut_count,
                "sim_swap_count": group.sim_swap_count,
                "latest_change": group.latest_change_display,
                "events": [event.id for event in group.events],
            }
            for group in group_by_unit(enriched)
        ]
        payload["columns"] = [
            "unit_name",
            "unit_id",
            "change_count",
            "power_cut_count",
            "sim_swap_count",
            "latest_change",
        ]
        payload["rows"] = [
            {key: group[key] for key in payload["columns"]} for group in payload["groups"]
        ]

    output = getattr(namespace, "output", None)
    if output is not None:
        destination = persist_table(audit_frame(enriched), Path(output))
        payload["summary"]["output"] = str(destination)
        logger.info(
            "Persisted audit table",
            extra={"event": "cli.audit_persisted", "destination": str(destination)},
        )
    return render_payload(payload, resolve_exports(namespace))


def handle_lifecycle(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    """Render unit histories plus the longest closed device intervals."""

    parsed, session, filters = _prepare(namespace, config)
    histories = session.histories(filters.search)
    longest = longest_intervals(histories, session.limits.longest_intervals)

    payload: Dict[str, Any] = {
        "title": "Device lifecycle",
        "summary": {"unit_count": len(histories), **_ingestion_summary(parsed)},
        "columns": list(LIFECYCLE_COLUMNS),
        "rows": lifecycle_rows(histories),
        "histories": histories,
        "longest_intervals": interval_rows(longest),
    }
    if getattr(namespace, "intervals", False):
        payload["columns"] = list(INTERVAL_COLUMNS)
        payload["rows"] = payload["longest_intervals"]
    return render_payload(payload, resolve_exports(namespace))


def handle_metrics(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    """Render aggregate downtime statistics and the dashboard counters."""

    parsed, session, filters = _prepare(namespace, config)
    stats = session.statistics(filters)
    summary = session.summary(filters)
    buckets = stats.buckets

    payload: Dict[str, Any] = {
        "title": "Swap metrics",
        "summary": {
            **asdict(summary),
            "total_events": stats.total_events,
            "events_with_downtime": stats.events_with_downtime,
            "p50_downtime": format_duration(stats.p50, compact=True),
            "p90_downtime": format_duration(stats.p90, compact=True),
            "power_cuts": stats.power_cuts,
            "sim_changes": stats.sim_changes,
            "under_5_minutes": buckets.under_5_minutes,
            "under_1_hour": buckets.under_1_hour,
            "under_24_hours": buckets.under_24_hours,
            "over_24_hours": buckets.over_24_hours,
            **_ingestion_summary(parsed),
        },
        "statistics": stats,
        "columns": ["Unidad", "Total Downtime (s)", "Total Downtime"],
        "rows": [
            {
                "Unidad": unit.unit_name,
                "Total Downtime (s)": unit.total_downtime_seconds,
                "Total Downtime": format_duration(unit.total_downtime_seconds, compact=True),
            }
            for unit in stats.top_units
        ],
    }
    return render_payload(payload, resolve_exports(namespace))


def handle_map(namespace: argparse.Namespace, *, config: Mapping[str, Any]) -> str:
    """Render the positions reported around every filtered swap."""

    parsed, session, filters = _prepare(namespace, config)
    locations = swap_locations(session.enriched(filters))
    latitude, longitude = map_center(locations)

    payload: Dict[str, Any] = {
        "title": "Swap locations",
        "summary": {"location_count": len(locations), **_ingestion_summary(parsed)},
        "center": {"latitude": latitude, "longitude": longitude},
        "locations": locations,
        "columns": ["Event", "Unidad", "Risk", "Power Cut", "Last Position", "First Position"],
        "rows": [
            {
                "Event": location.event_id,
                "Unidad": location.unit_name,
                "Risk": location.risk_level,
                "Power Cut": "YES" if location.is_power_cut else "NO",
                "Last Position": _position_label(location.last_position),
                "First Position": _position_label(location.first_position),
            }
            for location in locations
        ],
    }
    return render_payload(payload, resolve_exports(namespace))


def _position_label(position: Tuple[float, float] | None) -> str:
    if position is None:
        return ""
    return f"{position[0]:.5f},{position[1]:.5f}"
