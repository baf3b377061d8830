"""Forensic derivation passes over parsed swap events."""

from .enrichment import classify_risk, enrich_events, resolve_iccid
from .filters import FilterState, InvalidFilterError, effective_downtime, filter_events
from .history import SECONDS_PER_YEAR, build_unit_histories
from .pipeline import ForensicsResult, ForensicsSession, StatisticsLimits, derive
from .statistics import AggregateStatistics, DowntimeBuckets, compute_statistics, percentile
from .views import (
    DashboardSummary,
    SwapLocation,
    UnitEventGroup,
    group_by_unit,
    longest_intervals,
    map_center,
    summarize,
    swap_locations,
)

__all__ = [
    "AggregateStatistics",
    "DashboardSummary",
    "DowntimeBuckets",
    "FilterState",
    "ForensicsResult",
    "ForensicsSession",
    "InvalidFilterError",
    "SECONDS_PER_YEAR",
    "StatisticsLimits",
    "SwapLocation",
    "UnitEventGroup",
    "build_unit_histories",
    "classify_risk",
    "compute_statistics",
    "derive",
    "effective_downtime",
    "enrich_events",
    "filter_events",
    "group_by_unit",
    "longest_intervals",
    "map_center",
    "percentile",
    "resolve_iccid",
    "summarize",
    "swap_locations",
]
