"""Ingestion of newline-delimited swap event streams."""

from .ndjson import (
    ParseResult,
    RecordDecodeError,
    decode_event,
    decode_telemetry,
    iter_lines,
    load_events,
    parse_lines,
    parse_text,
)

__all__ = [
    "ParseResult",
    "RecordDecodeError",
    "decode_event",
    "decode_telemetry",
    "iter_lines",
    "load_events",
    "parse_lines",
    "parse_text",
]
