"""Predicate set narrowing the raw event collection to the working subset."""

from __future__ import annotations

import logging
from collections.abc import Mapping as ABCMapping
from dataclasses import dataclass, fields
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Tuple

from ..core.models import RawEvent
from ..core.thresholds import DEFAULT_THRESHOLDS, ForensicThresholds
from ..core.utils import is_number

logger = logging.getLogger(__name__)

__all__ = [
    "FilterState",
    "InvalidFilterError",
    "effective_downtime",
    "filter_events",
    "matches_search",
    "parse_calendar_timestamp",
    "unit_event_counts",
]


class InvalidFilterError(ValueError):
    """Raised when a filter configuration value cannot be interpreted."""


# camelCase spellings used by the dashboard front-end.
_FIELD_ALIASES: Mapping[str, str] = {
    "dateFrom": "date_from",
    "dateTo": "date_to",
    "minDowntime": "min_downtime",
    "maxDowntime": "max_downtime",
    "onlyWithDowntime": "only_with_downtime",
    "hideInstallations": "hide_installations",
    "onlyMultipleChanges": "only_multiple_changes",
    "onlyPowerCuts": "only_power_cuts",
    "unknownDowntimeAsZero": "unknown_downtime_as_zero",
}

_BOOLEAN_FIELDS = (
    "only_with_downtime",
    "hide_installations",
    "only_multiple_changes",
    "only_power_cuts",
    "unknown_downtime_as_zero",
)


def parse_calendar_timestamp(text: str | None) -> Optional[float]:
    """Parse an ISO-8601 calendar date/time into epoch seconds.

    Naive values are interpreted as UTC.  ``None`` is returned for empty or
    unparseable input.
    """

    if not text or not isinstance(text, str):
        return None
    candidate = text.strip()
    if not candidate:
        return None
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


def effective_downtime(event: RawEvent) -> Optional[int]:
    """Return the downtime of ``event`` in seconds, or ``None`` when unknown.

    A pre-computed ``downtime_seconds`` wins; otherwise the gap between the
    last reading of the old device and the first reading of the new one is
    used when both carry a timestamp.
    """

    if event.downtime_seconds is not None:
        return event.downtime_seconds
    last = event.last_signal
    first = event.first_signal_after
    if last is None or first is None:
        return None
    if last.timestamp is None or first.timestamp is None:
        return None
    return first.timestamp - last.timestamp


def matches_search(event: RawEvent, search: str) -> bool:
    """Case-insensitive substring match on the unit name."""

    if not search:
        return True
    return search.lower() in event.unit_name.lower()


def unit_event_counts(events: Iterable[RawEvent]) -> dict[str, int]:
    """Count events per unit over an unmodified collection."""

    counts: dict[str, int] = {}
    for event in events:
        counts[event.unit_name] = counts.get(event.unit_name, 0) + 1
    return counts


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off", ""}:
            return False
    if isinstance(value, int):
        return bool(value)
    raise InvalidFilterError(f"Filter '{name}' expects a boolean, got {value!r}")


def _coerce_bound(name: str, value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            parsed = None
        if is_number(parsed):
            return parsed
    raise InvalidFilterError(f"Filter '{name}' expects a number of seconds, got {value!r}")


def _coerce_date(name: str, value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        if not value.strip():
            return None
        if parse_calendar_timestamp(value) is None:
            raise InvalidFilterError(f"Filter '{name}' is not a calendar date: {value!r}")
        return value.strip()
    raise InvalidFilterError(f"Filter '{name}' expects a date string, got {value!r}")


@dataclass(frozen=True, slots=True)
class FilterState:
    """Active filter configuration.

    ``None`` bounds and empty strings are inactive.  ``unknown_downtime_as_zero``
    controls how an unknown downtime meets an active ``min_downtime`` or
    ``max_downtime`` bound: compared as ``0`` (the default) or excluded.
    """

    search: str = ""
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    min_downtime: Optional[float] = None
    max_downtime: Optional[float] = None
    only_with_downtime: bool = False
    hide_installations: bool = False
    only_multiple_changes: bool = False
    only_power_cuts: bool = False
    unknown_downtime_as_zero: bool = True

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "FilterState":
        """Build a filter state from configuration or UI values.

        Raises
        ------
        InvalidFilterError
            On unknown keys or values that cannot be coerced.
        """

        if payload is None:
            return cls()
        if not isinstance(payload, ABCMapping):
            raise InvalidFilterError("Filter configuration must be a mapping")

        known = {field.name for field in fields(cls)}
        values: dict[str, Any] = {}
        for raw_key, value in payload.items():
            key = _FIELD_ALIASES.get(str(raw_key), str(raw_key))
            if key not in known:
                raise InvalidFilterError(f"Unknown filter option '{raw_key}'")
            values[key] = value

        search = values.get("search")
        if search is not None and not isinstance(search, str):
            raise InvalidFilterError(f"Filter 'search' expects text, got {search!r}")

        kwargs: dict[str, Any] = {
            "search": search or "",
            "date_from": _coerce_date("date_from", values.get("date_from")),
            "date_to": _coerce_date("date_to", values.get("date_to")),
            "min_downtime": _coerce_bound("min_downtime", values.get("min_downtime")),
            "max_downtime": _coerce_bound("max_downtime", values.get("max_downtime")),
        }
        for name in _BOOLEAN_FIELDS:
            if name in values:
                kwargs[name] = _coerce_bool(name, values[name])
        return cls(**kwargs)

    @property
    def has_downtime_bounds(self) -> bool:
        return self.min_downtime is not None or self.max_downtime is not None

    @property
    def is_active(self) -> bool:
        return self != FilterState(unknown_downtime_as_zero=self.unknown_downtime_as_zero)


def _is_power_cut_candidate(event: RawEvent, thresholds: ForensicThresholds) -> bool:
    last = event.last_signal
    voltage = last.external_voltage if last is not None else None
    return voltage is not None and voltage < thresholds.power_cut_voltage


def _within_dates(
    event: RawEvent, lower: Optional[float], upper: Optional[float]
) -> bool:
    if lower is None and upper is None:
        return True
    moment = parse_calendar_timestamp(event.change_time_display)
    if moment is None:
        # Unparseable display times are never excluded by date bounds.
        return True
    if lower is not None and moment < lower:
        return False
    if upper is not None and moment > upper:
        return False
    return True


def _within_downtime(event: RawEvent, filters: FilterState) -> bool:
    downtime = effective_downtime(event)
    if filters.only_with_downtime and downtime is None:
        return False
    if not filters.has_downtime_bounds:
        return True
    if downtime is None:
        if not filters.unknown_downtime_as_zero:
            return False
        downtime = 0
    if filters.min_downtime is not None and downtime < filters.min_downtime:
        return False
    if filters.max_downtime is not None and downtime > filters.max_downtime:
        return False
    return True


def filter_events(
    events: Iterable[RawEvent],
    filters: FilterState | None = None,
    *,
    thresholds: ForensicThresholds | None = None,
    unit_counts: Mapping[str, int] | None = None,
) -> Tuple[RawEvent, ...]:
    """Return the events matching every active predicate, in input order.

    ``only_multiple_changes`` relies on per-unit event counts taken before any
    predicate is applied: ``unit_counts`` when given, otherwise counted on
    ``events`` itself.  Re-filtering a result with the same configuration and
    the counts of the original collection returns it unchanged.
    """

    source = tuple(events)
    filters = filters or FilterState()
    thresholds = thresholds or DEFAULT_THRESHOLDS
    if unit_counts is not None:
        counts: Mapping[str, int] = unit_counts
    elif filters.only_multiple_changes:
        counts = unit_event_counts(source)
    else:
        counts = {}
    lower = parse_calendar_timestamp(filters.date_from)
    upper = parse_calendar_timestamp(filters.date_to)

    selected = []
    for event in source:
        if not matches_search(event, filters.search):
            continue
        if filters.hide_installations and event.is_installation:
            continue
        if not _within_dates(event, lower, upper):
            continue
        if filters.only_multiple_changes and counts.get(event.unit_name, 0) <= 1:
            continue
        if filters.only_power_cuts and not _is_power_cut_candidate(event, thresholds):
            continue
        if not _within_downtime(event, filters):
            continue
        selected.append(event)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Filtered swap events",
            extra={"input_count": len(source), "output_count": len(selected)},
        )
    return tuple(selected)
