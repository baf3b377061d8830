"""Aggregate downtime and failure metrics over enriched swap events."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

from ..core.models import EnrichedEvent, UnitHistory

logger = logging.getLogger(__name__)

__all__ = [
    "AggregateStatistics",
    "DowntimeBuckets",
    "UnitDowntime",
    "compute_statistics",
    "count_power_cuts",
    "count_sim_changes",
    "downtime_buckets",
    "lemon_units",
    "percentile",
    "top_units_by_downtime",
]

FIVE_MINUTES = 300
ONE_HOUR = 3600
ONE_DAY = 86400


@dataclass(frozen=True, slots=True)
class DowntimeBuckets:
    """Histogram of known positive downtime values."""

    under_5_minutes: int = 0
    under_1_hour: int = 0
    under_24_hours: int = 0
    over_24_hours: int = 0

    @property
    def total(self) -> int:
        return (
            self.under_5_minutes
            + self.under_1_hour
            + self.under_24_hours
            + self.over_24_hours
        )


@dataclass(frozen=True, slots=True)
class UnitDowntime:
    unit_name: str
    total_downtime_seconds: int


@dataclass(frozen=True, slots=True)
class AggregateStatistics:
    """Metrics dashboard payload."""

    total_events: int
    events_with_downtime: int
    p50: int
    p90: int
    buckets: DowntimeBuckets
    top_units: Tuple[UnitDowntime, ...]
    power_cuts: int
    sim_changes: int
    lemons: Tuple[UnitHistory, ...]


def _positive_downtimes(events: Iterable[EnrichedEvent]) -> list[EnrichedEvent]:
    return [
        event
        for event in events
        if event.downtime_seconds is not None and event.downtime_seconds > 0
    ]


def percentile(values: Sequence[float], p: float) -> float:
    """Nearest-rank style percentile without interpolation.

    The values are sorted ascending and the element at ``floor(len * p)``
    (clamped to the last index) is returned.  An empty input yields ``0``.
    """

    if len(values) == 0:
        return 0
    ordered = np.sort(np.asarray(values))
    index = min(max(int(math.floor(len(ordered) * p)), 0), len(ordered) - 1)
    return ordered[index].item()


def downtime_buckets(events: Iterable[EnrichedEvent]) -> DowntimeBuckets:
    counts = [0, 0, 0, 0]
    for event in _positive_downtimes(events):
        seconds = event.downtime_seconds
        if seconds < FIVE_MINUTES:
            counts[0] += 1
        elif seconds < ONE_HOUR:
            counts[1] += 1
        elif seconds < ONE_DAY:
            counts[2] += 1
        else:
            counts[3] += 1
    return DowntimeBuckets(*counts)


def top_units_by_downtime(
    events: Iterable[EnrichedEvent], limit: int = 10
) -> Tuple[UnitDowntime, ...]:
    """Rank units by summed positive downtime; ties keep first-seen order."""

    totals: dict[str, int] = {}
    for event in _positive_downtimes(events):
        totals[event.unit_name] = totals.get(event.unit_name, 0) + event.downtime_seconds
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return tuple(UnitDowntime(name, total) for name, total in ranked[: max(limit, 0)])


def count_power_cuts(events: Iterable[EnrichedEvent]) -> int:
    return sum(1 for event in events if event.is_power_cut)


def count_sim_changes(events: Iterable[EnrichedEvent]) -> int:
    return sum(1 for event in events if event.is_sim_change)


def lemon_units(histories: Iterable[UnitHistory], limit: int = 5) -> Tuple[UnitHistory, ...]:
    """Units replacing devices most often, highest failure rate first."""

    ranked = sorted(histories, key=lambda history: history.failure_rate_index, reverse=True)
    return tuple(ranked[: max(limit, 0)])


def compute_statistics(
    events: Sequence[EnrichedEvent],
    histories: Sequence[UnitHistory],
    *,
    top_units: int = 10,
    lemons: int = 5,
) -> AggregateStatistics:
    """Compute the metrics dashboard from enriched events and unit histories."""

    events = tuple(events)
    with_downtime = _positive_downtimes(events)
    downtimes = [event.downtime_seconds for event in with_downtime]
    stats = AggregateStatistics(
        total_events=len(events),
        events_with_downtime=len(with_downtime),
        p50=int(percentile(downtimes, 0.5)),
        p90=int(percentile(downtimes, 0.9)),
        buckets=downtime_buckets(with_downtime),
        top_units=top_units_by_downtime(with_downtime, top_units),
        power_cuts=count_power_cuts(events),
        sim_changes=count_sim_changes(events),
        lemons=lemon_units(histories, lemons),
    )

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Computed aggregate statistics",
            extra={
                "total_events": stats.total_events,
                "events_with_downtime": stats.events_with_downtime,
                "history_count": len(histories),
            },
        )
    return stats
