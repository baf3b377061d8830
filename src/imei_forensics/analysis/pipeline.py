"""Derivation pipeline tying the forensic passes together.

:func:`derive` runs every pass once over a collection.  :class:`ForensicsSession`
keeps one immutable snapshot of raw events and memoises each derived view per
:class:`~imei_forensics.analysis.filters.FilterState` so interactive callers
can toggle filters without recomputing unchanged views.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Tuple

from ..core.cache import LRUCache, resolve_cache_size
from ..core.clock import Clock, FixedClock, SystemClock
from ..core.lifespan import compute_lifespans
from ..core.models import EnrichedEvent, LifespanInterval, LifespanKey, RawEvent, UnitHistory
from ..core.thresholds import DEFAULT_THRESHOLDS, ForensicThresholds
from .enrichment import enrich_events
from .filters import FilterState, filter_events, unit_event_counts
from .history import build_unit_histories, flatten_intervals
from .statistics import AggregateStatistics, compute_statistics
from .views import DashboardSummary, summarize

logger = logging.getLogger(__name__)

__all__ = ["ForensicsResult", "ForensicsSession", "StatisticsLimits", "derive"]


@dataclass(frozen=True, slots=True)
class StatisticsLimits:
    """Ranking sizes used by the metrics and lifecycle views."""

    top_units: int = 10
    lemons: int = 5
    longest_intervals: int = 20

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None) -> "StatisticsLimits":
        """Read the ``statistics`` table, accepting the full config too."""

        section: Mapping[str, Any] = {}
        if isinstance(config, Mapping):
            nested = config.get("statistics")
            section = nested if isinstance(nested, Mapping) else config
        defaults = cls()
        values = {}
        for name in ("top_units", "lemons", "longest_intervals"):
            raw = section.get(name, getattr(defaults, name))
            try:
                values[name] = max(0, int(raw))
            except (TypeError, ValueError):
                values[name] = getattr(defaults, name)
        return cls(**values)


@dataclass(frozen=True, slots=True)
class ForensicsResult:
    """Every derived view for one filter configuration."""

    filters: FilterState
    filtered: Tuple[RawEvent, ...]
    enriched: Tuple[EnrichedEvent, ...]
    histories: Tuple[UnitHistory, ...]
    lifespan_intervals: Tuple[LifespanInterval, ...]
    statistics: AggregateStatistics
    summary: DashboardSummary


class ForensicsSession:
    """Memoised derivations over one snapshot of raw swap events.

    Parameters
    ----------
    events:
        Raw events; copied into an immutable tuple.
    thresholds:
        Forensic thresholds shared by the filter and enrichment passes.
    clock:
        Source of "now" for unit histories.  Histories are cached per
        reference timestamp so a moving clock always yields fresh durations.
    cache_size:
        Capacity of every per-view LRU cache; ``0`` disables memoisation.
    limits:
        Ranking sizes for the statistics view.
    """

    def __init__(
        self,
        events: Iterable[RawEvent] = (),
        *,
        thresholds: ForensicThresholds | None = None,
        clock: Clock | None = None,
        cache_size: int | None = None,
        limits: StatisticsLimits | None = None,
    ) -> None:
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self.clock: Clock = clock or SystemClock()
        self.limits = limits or StatisticsLimits()
        size = resolve_cache_size(cache_size)
        self._filtered: LRUCache[FilterState, Tuple[RawEvent, ...]] = LRUCache(maxsize=size)
        self._enriched: LRUCache[FilterState, Tuple[EnrichedEvent, ...]] = LRUCache(maxsize=size)
        self._histories: LRUCache[tuple[str, int], Tuple[UnitHistory, ...]] = LRUCache(
            maxsize=size
        )
        self._statistics: LRUCache[tuple[FilterState, int], AggregateStatistics] = LRUCache(
            maxsize=size
        )
        self._load(events)

    def _load(self, events: Iterable[RawEvent]) -> None:
        self._events: Tuple[RawEvent, ...] = tuple(events)
        self._lifespans: Mapping[LifespanKey, int] = compute_lifespans(self._events)
        self._unit_counts: Mapping[str, int] = unit_event_counts(self._events)
        logger.info(
            "Loaded swap event snapshot",
            extra={"event": "session.snapshot", "event_count": len(self._events)},
        )

    @property
    def events(self) -> Tuple[RawEvent, ...]:
        return self._events

    @property
    def lifespans(self) -> Mapping[LifespanKey, int]:
        return self._lifespans

    def replace_events(self, events: Iterable[RawEvent]) -> None:
        """Swap in a new snapshot, invalidating every cached view."""

        self._load(events)
        for cache in (self._filtered, self._enriched, self._histories, self._statistics):
            cache.clear()

    def filtered(self, filters: FilterState | None = None) -> Tuple[RawEvent, ...]:
        filters = filters or FilterState()
        return self._filtered.get_or_create(
            filters,
            lambda: filter_events(
                self._events,
                filters,
                thresholds=self.thresholds,
                unit_counts=self._unit_counts,
            ),
        )

    def enriched(self, filters: FilterState | None = None) -> Tuple[EnrichedEvent, ...]:
        filters = filters or FilterState()
        return self._enriched.get_or_create(
            filters,
            lambda: enrich_events(
                self.filtered(filters), self._lifespans, thresholds=self.thresholds
            ),
        )

    def histories(self, search: str = "", *, now: int | None = None) -> Tuple[UnitHistory, ...]:
        """Unit histories at ``now``, read from the session clock when omitted."""

        if now is None:
            now = self.clock.now()
        return self._histories.get_or_create(
            (search, now),
            lambda: build_unit_histories(self._events, search=search, clock=FixedClock(now)),
        )

    def lifespan_intervals(self, search: str = "") -> Tuple[LifespanInterval, ...]:
        return flatten_intervals(self.histories(search))

    def statistics(
        self, filters: FilterState | None = None, *, now: int | None = None
    ) -> AggregateStatistics:
        filters = filters or FilterState()
        if now is None:
            now = self.clock.now()
        return self._statistics.get_or_create(
            (filters, now),
            lambda: compute_statistics(
                self.enriched(filters),
                self.histories(filters.search, now=now),
                top_units=self.limits.top_units,
                lemons=self.limits.lemons,
            ),
        )

    def summary(self, filters: FilterState | None = None) -> DashboardSummary:
        filters = filters or FilterState()
        return summarize(self.filtered(filters), self.enriched(filters))

    def result(self, filters: FilterState | None = None) -> ForensicsResult:
        """Return every view for ``filters``."""

        filters = filters or FilterState()
        # Histories and lemons share one reading of the clock.
        now = self.clock.now()
        histories = self.histories(filters.search, now=now)
        return ForensicsResult(
            filters=filters,
            filtered=self.filtered(filters),
            enriched=self.enriched(filters),
            histories=histories,
            lifespan_intervals=flatten_intervals(histories),
            statistics=self.statistics(filters, now=now),
            summary=self.summary(filters),
        )


def derive(
    events: Iterable[RawEvent],
    filters: FilterState | None = None,
    *,
    clock: Clock | None = None,
    thresholds: ForensicThresholds | None = None,
    limits: StatisticsLimits | None = None,
) -> ForensicsResult:
    """One-shot derivation of every view over ``events``."""

    session = ForensicsSession(
        events, thresholds=thresholds, clock=clock, cache_size=0, limits=limits
    )
    return session.result(filters)
