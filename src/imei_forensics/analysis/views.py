"""Presentation-oriented views derived from enriched events and histories.

These projections back the audit table, the lifecycle ranking and the swap
map.  They are pure functions of their inputs and never reorder the tuples
they receive.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from ..core.models import EnrichedEvent, LifespanInterval, RawEvent, Telemetry, UnitHistory
from ..core.utils import group_by
from .filters import effective_downtime
from .history import flatten_intervals

__all__ = [
    "DEFAULT_MAP_CENTER",
    "DashboardSummary",
    "SwapLocation",
    "UnitEventGroup",
    "group_by_unit",
    "longest_intervals",
    "map_center",
    "summarize",
    "swap_locations",
]

#: Fallback map centre used when no event carries coordinates.
DEFAULT_MAP_CENTER: Tuple[float, float] = (21.14, -101.68)
MIN_PRECISION_RADIUS = 20.0


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    unique_units: int
    event_count: int
    average_downtime: int
    power_cut_count: int


@dataclass(frozen=True, slots=True)
class UnitEventGroup:
    """Enriched events of one unit, most recent first."""

    unit_name: str
    unit_id: int
    events: Tuple[EnrichedEvent, ...]
    power_cut_count: int
    sim_swap_count: int

    @property
    def change_count(self) -> int:
        return len(self.events)

    @property
    def latest_change_timestamp(self) -> int:
        return self.events[0].change_timestamp

    @property
    def latest_change_display(self) -> str:
        return self.events[0].change_time_display


@dataclass(frozen=True, slots=True)
class SwapLocation:
    """Positions reported around one swap.

    ``precision_radius`` is the uncertainty circle drawn around the last
    position, in metres, when the last reading reports an HDOP.
    """

    event_id: str
    unit_name: str
    risk_level: str
    is_power_cut: bool
    last_position: Optional[Tuple[float, float]]
    first_position: Optional[Tuple[float, float]]
    precision_radius: Optional[float]

    @property
    def coordinates(self) -> Tuple[Tuple[float, float], ...]:
        return tuple(
            position
            for position in (self.last_position, self.first_position)
            if position is not None
        )


def summarize(
    filtered: Sequence[RawEvent], enriched: Iterable[EnrichedEvent]
) -> DashboardSummary:
    """Header counters of the dashboard.

    ``average_downtime`` is the floored mean over every filtered event, an
    unknown downtime counting as zero.
    """

    total = sum(effective_downtime(event) or 0 for event in filtered)
    return DashboardSummary(
        unique_units=len({event.unit_name for event in filtered}),
        event_count=len(filtered),
        average_downtime=total // len(filtered) if filtered else 0,
        power_cut_count=sum(1 for event in enriched if event.is_power_cut),
    )


def group_by_unit(enriched: Iterable[EnrichedEvent]) -> Tuple[UnitEventGroup, ...]:
    """Group the audit rows per unit, most recently changed unit first.

    ``enriched`` is expected in the enricher's order (most recent first), so
    the first event of every group is its latest change.
    """

    groups = []
    for unit_name, events in group_by(enriched, lambda event: event.unit_name).items():
        groups.append(
            UnitEventGroup(
                unit_name=unit_name,
                unit_id=events[0].unit_id,
                events=tuple(events),
                power_cut_count=sum(1 for event in events if event.is_power_cut),
                sim_swap_count=sum(1 for event in events if event.is_sim_change),
            )
        )
    groups.sort(key=lambda group: group.latest_change_timestamp, reverse=True)
    return tuple(groups)


def longest_intervals(
    histories: Iterable[UnitHistory], limit: int = 20
) -> Tuple[LifespanInterval, ...]:
    ranked = sorted(
        flatten_intervals(histories),
        key=lambda interval: interval.duration_seconds,
        reverse=True,
    )
    return tuple(ranked[: max(limit, 0)])


def _position(telemetry: Optional[Telemetry]) -> Optional[Tuple[float, float]]:
    if telemetry is None or not telemetry.has_position:
        return None
    return (telemetry.latitude, telemetry.longitude)


def swap_locations(enriched: Iterable[EnrichedEvent]) -> Tuple[SwapLocation, ...]:
    """Map markers for every event with at least one usable position."""

    locations = []
    for event in enriched:
        last = _position(event.last_signal)
        first = _position(event.first_signal_after)
        if last is None and first is None:
            continue
        hdop = event.last_signal.hdop if last is not None else None
        locations.append(
            SwapLocation(
                event_id=event.id,
                unit_name=event.unit_name,
                risk_level=event.risk_level.value,
                is_power_cut=event.is_power_cut,
                last_position=last,
                first_position=first,
                precision_radius=max(hdop * 10, MIN_PRECISION_RADIUS) if hdop else None,
            )
        )
    return tuple(locations)


def map_center(locations: Iterable[SwapLocation]) -> Tuple[float, float]:
    for location in locations:
        coordinates = location.coordinates
        if coordinates:
            return coordinates[0]
    return DEFAULT_MAP_CENTER
