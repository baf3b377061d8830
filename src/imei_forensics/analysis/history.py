"""Per-unit device lifecycles reconstructed from swap events."""

from __future__ import annotations

import logging
from time import monotonic
from typing import Iterable, Sequence, Tuple

from ..core.clock import Clock, resolve_now
from ..core.models import LifespanInterval, RawEvent, UnitHistory
from ..core.utils import group_by, sorted_by_timestamp
from .filters import matches_search

logger = logging.getLogger(__name__)

__all__ = [
    "MIN_OBSERVATION_YEARS",
    "SECONDS_PER_YEAR",
    "build_unit_history",
    "build_unit_histories",
    "flatten_intervals",
]

SECONDS_PER_YEAR = 365 * 24 * 3600
#: Observation spans shorter than this are floored to keep the rate finite.
MIN_OBSERVATION_YEARS = 0.1


def _closed_intervals(ordered: Sequence[RawEvent]) -> list[LifespanInterval]:
    intervals = [
        LifespanInterval(
            imei=current.new_identifier,
            start_timestamp=current.change_timestamp,
            start_display=current.change_time_display,
            end_timestamp=following.change_timestamp,
            end_display=following.change_time_display,
            duration_seconds=following.change_timestamp - current.change_timestamp,
        )
        for current, following in zip(ordered, ordered[1:])
    ]
    intervals.reverse()
    return intervals


def build_unit_history(unit_name: str, events: Sequence[RawEvent], now: int) -> UnitHistory:
    """Build the lifecycle of a single unit.

    Parameters
    ----------
    unit_name:
        Name shared by every event in ``events``.
    events:
        Non-empty swap events of the unit, in any order.
    now:
        Reference timestamp for the open interval of the current device.
    """

    if not events:
        raise ValueError(f"Unit '{unit_name}' has no swap events")
    ordered = sorted_by_timestamp(events)
    first, latest = ordered[0], ordered[-1]
    years = max((now - first.change_timestamp) / SECONDS_PER_YEAR, MIN_OBSERVATION_YEARS)
    return UnitHistory(
        unit_name=unit_name,
        current_identifier=latest.new_identifier,
        current_start_timestamp=latest.change_timestamp,
        current_start_display=latest.change_time_display,
        current_duration_seconds=now - latest.change_timestamp,
        history=tuple(_closed_intervals(ordered)),
        event_count=len(ordered),
        failure_rate_index=len(ordered) / years,
    )


def build_unit_histories(
    events: Iterable[RawEvent],
    *,
    search: str = "",
    clock: Clock | None = None,
) -> Tuple[UnitHistory, ...]:
    """Reconstruct every unit lifecycle, longest-running current device first.

    Only the unit-name ``search`` narrows the input; the other filters never
    apply here because a lifecycle needs every swap of the unit.
    """

    started = monotonic()
    now = resolve_now(clock)
    selected = [event for event in events if matches_search(event, search)]
    groups = group_by(selected, lambda event: event.unit_name)
    histories = [
        build_unit_history(unit_name, unit_events, now)
        for unit_name, unit_events in groups.items()
    ]
    histories.sort(key=lambda history: history.current_duration_seconds, reverse=True)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Built unit histories",
            extra={
                "unit_count": len(histories),
                "event_count": len(selected),
                "duration": monotonic() - started,
            },
        )
    return tuple(histories)


def flatten_intervals(histories: Iterable[UnitHistory]) -> Tuple[LifespanInterval, ...]:
    """Concatenate the closed intervals of every history, keeping their order."""

    return tuple(interval for history in histories for interval in history.history)
