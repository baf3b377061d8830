from __future__ import annotations

import pytest

from imei_forensics.analysis.history import (
    MIN_OBSERVATION_YEARS,
    SECONDS_PER_YEAR,
    build_unit_histories,
    build_unit_history,
    flatten_intervals,
)
from imei_forensics.core.clock import FixedClock
from tests.helpers import build_raw_event

NOW = 2_000_000_000


def test_single_event_uses_failure_rate_floor() -> None:
    event = build_raw_event("U1", NOW - 100, new_identifier="A")

    (history,) = build_unit_histories([event], clock=FixedClock(NOW))

    assert history.current_duration_seconds == 100
    assert history.history == ()
    assert history.current_identifier == "A"
    assert history.devices_used == 1
    assert history.failure_rate_index == pytest.approx(1 / MIN_OBSERVATION_YEARS)


def test_closed_intervals_are_most_recent_first() -> None:
    events = [
        build_raw_event("U1", 9000, new_identifier="C", display="c"),
        build_raw_event("U1", 1000, new_identifier="A", display="a"),
        build_raw_event("U1", 5000, new_identifier="B", display="b"),
    ]

    (history,) = build_unit_histories(events, clock=FixedClock(10000))

    assert [interval.imei for interval in history.history] == ["B", "A"]
    newest = history.history[0]
    assert (newest.start_timestamp, newest.end_timestamp) == (5000, 9000)
    assert (newest.start_display, newest.end_display) == ("b", "c")
    assert newest.duration_seconds == 4000
    assert history.current_identifier == "C"
    assert history.current_start_display == "c"
    assert history.current_duration_seconds == 1000
    assert history.event_count == 3


def test_failure_rate_is_annualised() -> None:
    now = 2 * SECONDS_PER_YEAR
    events = [build_raw_event("U1", ts) for ts in (0, SECONDS_PER_YEAR, now - 10, now - 5)]

    (history,) = build_unit_histories(events, clock=FixedClock(now))

    assert history.failure_rate_index == pytest.approx(2.0)


def test_histories_sorted_by_current_duration() -> None:
    events = [
        build_raw_event("recent", NOW - 10),
        build_raw_event("stale", NOW - 5000),
        build_raw_event("middle", NOW - 600),
    ]

    histories = build_unit_histories(events, clock=FixedClock(NOW))

    assert [history.unit_name for history in histories] == ["stale", "middle", "recent"]


def test_search_is_the_only_filter() -> None:
    events = [
        build_raw_event("North-1", NOW - 100, old_identifier=""),
        build_raw_event("North-1", NOW - 50),
        build_raw_event("South-1", NOW - 10),
    ]

    histories = build_unit_histories(events, search="NORTH", clock=FixedClock(NOW))

    assert [history.unit_name for history in histories] == ["North-1"]
    assert histories[0].event_count == 2


def test_flatten_intervals_keeps_history_order() -> None:
    events = [build_raw_event("U1", ts) for ts in (0, 10, 30)] + [
        build_raw_event("U2", ts) for ts in (5, 105)
    ]
    histories = build_unit_histories(events, clock=FixedClock(1000))

    durations = [interval.duration_seconds for interval in flatten_intervals(histories)]

    assert durations == [20, 10, 100]


def test_build_unit_history_requires_events() -> None:
    with pytest.raises(ValueError):
        build_unit_history("U1", [], NOW)
