"""Top-level package for IMEI forensics.

Forensic derivations over IMEI/SIM swap event streams reported by vehicle
tracking units: device lifespans, filtering, per-event risk annotations,
unit lifecycles and aggregate downtime statistics.
"""

from ._version import __version__
from .analysis import (
    AggregateStatistics,
    DashboardSummary,
    FilterState,
    ForensicsResult,
    ForensicsSession,
    InvalidFilterError,
    build_unit_histories,
    compute_statistics,
    derive,
    enrich_events,
    filter_events,
    group_by_unit,
    longest_intervals,
    map_center,
    summarize,
    swap_locations,
)
from .core import (
    EnrichedEvent,
    FixedClock,
    ForensicThresholds,
    LifespanInterval,
    RawEvent,
    RiskLevel,
    SystemClock,
    Telemetry,
    UnitHistory,
    compute_lifespans,
)
from .exporters import exporters_registry
from .formatting import format_duration, format_lifespan
from .ingestion import ParseResult, load_events, parse_lines, parse_text

__all__ = [
    "AggregateStatistics",
    "DashboardSummary",
    "EnrichedEvent",
    "FilterState",
    "FixedClock",
    "ForensicThresholds",
    "ForensicsResult",
    "ForensicsSession",
    "InvalidFilterError",
    "LifespanInterval",
    "ParseResult",
    "RawEvent",
    "RiskLevel",
    "SystemClock",
    "Telemetry",
    "UnitHistory",
    "__version__",
    "build_unit_histories",
    "compute_lifespans",
    "compute_statistics",
    "derive",
    "enrich_events",
    "exporters_registry",
    "filter_events",
    "format_duration",
    "format_lifespan",
    "group_by_unit",
    "load_events",
    "longest_intervals",
    "map_center",
    "parse_lines",
    "parse_text",
    "summarize",
    "swap_locations",
]
