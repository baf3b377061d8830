"""Convenience re-exports for test helpers."""

from __future__ import annotations

from .events import BASE_TS, build_raw_event, build_telemetry, event_payload, ndjson_lines

__all__ = [
    "BASE_TS",
    "build_raw_event",
    "build_telemetry",
    "event_payload",
    "ndjson_lines",
]
