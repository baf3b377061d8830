from __future__ import annotations

import pytest

from imei_forensics.cli.errors import CliError, build_error_payload
from imei_forensics.core.cache import DEFAULT_CACHE_SIZE, LRUCache, resolve_cache_size
from imei_forensics.core.clock import FixedClock, SystemClock, resolve_now
from imei_forensics.core.thresholds import DEFAULT_THRESHOLDS, ForensicThresholds
from imei_forensics.core.utils import group_by, is_number


def test_thresholds_from_full_config() -> None:
    thresholds = ForensicThresholds.from_config(
        {"thresholds": {"power_cut_voltage": "6.5", "hdop_limit": 3, "safe_downtime": 120}}
    )

    assert thresholds.power_cut_voltage == 6.5
    assert thresholds.hdop_limit == 3.0
    assert thresholds.safe_downtime == 120
    assert thresholds.warning_downtime == DEFAULT_THRESHOLDS.warning_downtime


def test_thresholds_fall_back_on_bad_values() -> None:
    thresholds = ForensicThresholds.from_config(
        {"power_cut_voltage": "high", "low_signal_ceiling": True, "safe_downtime": -5}
    )

    assert thresholds.power_cut_voltage == DEFAULT_THRESHOLDS.power_cut_voltage
    assert thresholds.low_signal_ceiling == DEFAULT_THRESHOLDS.low_signal_ceiling
    assert thresholds.safe_downtime == 0
    assert ForensicThresholds.from_config(None) == DEFAULT_THRESHOLDS


def test_warning_band_never_precedes_safe_band() -> None:
    thresholds = ForensicThresholds.from_config({"safe_downtime": 900, "warning_downtime": 60})

    assert thresholds.warning_downtime == 900
    assert thresholds.as_dict()["warning_downtime"] == 900


def test_lru_cache_evicts_least_recently_used() -> None:
    cache: LRUCache[str, int] = LRUCache(maxsize=2)
    calls: list[str] = []

    def factory(key: str):
        def _build() -> int:
            calls.append(key)
            return len(calls)

        return _build

    cache.get_or_create("a", factory("a"))
    cache.get_or_create("b", factory("b"))
    cache.get_or_create("a", factory("a"))
    cache.get_or_create("c", factory("c"))
    cache.get_or_create("b", factory("b"))

    assert calls == ["a", "b", "c", "b"]
    assert len(cache) == 2
    cache.clear()
    assert len(cache) == 0


def test_disabled_cache_always_builds() -> None:
    cache: LRUCache[str, object] = LRUCache(maxsize=0)

    assert cache.get_or_create("k", object) is not cache.get_or_create("k", object)
    assert len(cache) == 0
    with pytest.raises(ValueError):
        LRUCache(maxsize=-1)


def test_resolve_cache_size() -> None:
    assert resolve_cache_size(None) == DEFAULT_CACHE_SIZE
    assert resolve_cache_size(-3) == 0
    assert resolve_cache_size("8") == 8


def test_clocks() -> None:
    clock = FixedClock(100)
    clock.advance(5)

    assert clock.now() == 105
    assert resolve_now(clock) == 105
    assert isinstance(SystemClock().now(), int)
    assert resolve_now(None) > 0


def test_group_by_keeps_first_seen_order() -> None:
    groups = group_by(["b1", "a1", "b2"], lambda item: item[0])

    assert list(groups) == ["b", "a"]
    assert groups["b"] == ["b1", "b2"]


@pytest.mark.parametrize(
    ("value", "expected"),
    [(1, True), (2.5, True), (True, False), (float("nan"), False), ("3", False), (None, False)],
)
def test_is_number(value, expected) -> None:
    assert is_number(value) is expected


def test_error_payload_status_codes() -> None:
    assert build_error_payload("x", category="io").status_code == 3
    assert build_error_payload("x", category="mystery").status_code == 1

    error = CliError("bad flag", category="usage", context={"flag": object()})
    assert error.status_code == 2
    assert isinstance(error.context["flag"], str)
    assert error.payload.as_dict()["message"] == "bad flag"
