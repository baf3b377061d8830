from __future__ import annotations

import pytest

from imei_forensics.analysis.enrichment import (
    classify_risk,
    enrich_events,
    has_gps_precision_issue,
    is_low_signal,
    is_power_cut,
    resolve_iccid,
)
from imei_forensics.core.lifespan import compute_lifespans
from imei_forensics.core.models import RiskLevel
from imei_forensics.core.thresholds import ForensicThresholds
from tests.helpers import BASE_TS, build_raw_event, build_telemetry


def test_power_cut_overrides_downtime_tier() -> None:
    event = build_raw_event(downtime=10000, last=build_telemetry(external_voltage=3.2))

    (enriched,) = enrich_events([event], {})

    assert enriched.is_power_cut
    assert enriched.risk_level is RiskLevel.CRITICAL


@pytest.mark.parametrize(
    ("power_cut", "downtime", "expected"),
    [
        (True, 5, RiskLevel.CRITICAL),
        (True, None, RiskLevel.CRITICAL),
        (False, None, RiskLevel.UNKNOWN),
        (False, 0, RiskLevel.SAFE),
        (False, 299, RiskLevel.SAFE),
        (False, 300, RiskLevel.WARNING),
        (False, 3599, RiskLevel.WARNING),
        (False, 3600, RiskLevel.CRITICAL),
        (False, -20, RiskLevel.SAFE),
    ],
)
def test_classify_risk(power_cut: bool, downtime: int | None, expected: RiskLevel) -> None:
    assert classify_risk(power_cut, downtime) is expected


@pytest.mark.parametrize(
    ("voltage", "expected"),
    [(None, False), (-0.1, False), (0.0, True), (4.99, True), (5.0, False), (12.4, False)],
)
def test_power_cut_range(voltage: float | None, expected: bool) -> None:
    assert is_power_cut(build_telemetry(external_voltage=voltage)) is expected


@pytest.mark.parametrize(
    ("signal", "expected"),
    [(None, False), (0, False), (0.5, True), (9.9, True), (10, False)],
)
def test_low_signal_excludes_zero(signal: float | None, expected: bool) -> None:
    assert is_low_signal(build_telemetry(gsm_signal=signal)) is expected


@pytest.mark.parametrize(("hdop", "expected"), [(None, False), (2.5, False), (2.51, True)])
def test_gps_precision(hdop: float | None, expected: bool) -> None:
    assert has_gps_precision_issue(build_telemetry(hdop=hdop)) is expected


def test_flags_are_false_without_telemetry() -> None:
    assert not is_power_cut(None)
    assert not is_low_signal(None)
    assert not has_gps_precision_issue(None)


@pytest.mark.parametrize(
    ("telemetry", "expected"),
    [
        pytest.param(build_telemetry(iccid="8952140061"), "8952140061", id="direct"),
        pytest.param(
            build_telemetry(iccid="0000000000", iccid_part_a="89521", iccid_part_b="40061"),
            "8952140061",
            id="placeholder-falls-back",
        ),
        pytest.param(build_telemetry(iccid_part_a="89521"), "", id="single-fragment"),
        pytest.param(build_telemetry(iccid="000"), "", id="placeholder-only"),
        pytest.param(None, "", id="no-telemetry"),
    ],
)
def test_resolve_iccid(telemetry, expected: str) -> None:
    assert resolve_iccid(telemetry) == expected


def test_sim_change_needs_both_identifiers() -> None:
    swapped = build_raw_event(
        "U1",
        BASE_TS,
        last=build_telemetry(iccid="111"),
        first_after=build_telemetry(iccid="222"),
    )
    same = build_raw_event(
        "U2",
        BASE_TS,
        last=build_telemetry(iccid="111"),
        first_after=build_telemetry(iccid="111"),
    )
    unknown_new = build_raw_event("U3", BASE_TS, last=build_telemetry(iccid="111"))

    by_unit = {event.unit_name: event for event in enrich_events([swapped, same, unknown_new], {})}

    assert by_unit["U1"].is_sim_change
    assert by_unit["U1"].derived_iccid == "222"
    assert by_unit["U1"].previous_iccid == "111"
    assert not by_unit["U2"].is_sim_change
    assert not by_unit["U3"].is_sim_change
    assert by_unit["U3"].derived_iccid == "111"


def test_downtime_from_signal_gap_is_attached() -> None:
    event = build_raw_event(
        last=build_telemetry(timestamp=1000), first_after=build_telemetry(timestamp=1900)
    )

    (enriched,) = enrich_events([event], {})

    assert enriched.downtime_seconds == 900
    assert enriched.risk_level is RiskLevel.WARNING


def test_output_is_most_recent_first_with_positional_ids() -> None:
    events = [
        build_raw_event("U1", BASE_TS, unit_id=5),
        build_raw_event("U2", BASE_TS + 100, unit_id=6),
        build_raw_event("U3", BASE_TS, unit_id=7),
    ]

    enriched = enrich_events(events, {})

    assert [item.id for item in enriched] == ["6-1", "5-0", "7-2"]


def test_lifespan_comes_from_full_history() -> None:
    history = [
        build_raw_event("U1", 1000, new_identifier="A"),
        build_raw_event("U1", 5000, new_identifier="B"),
        build_raw_event("U1", 9000, new_identifier="C"),
    ]
    lifespans = compute_lifespans(history)

    enriched = enrich_events(history[1:], lifespans)

    assert [item.previous_identifier_lifespan_seconds for item in enriched] == [4000, 4000]
    assert enrich_events(history[:1], lifespans)[0].previous_identifier_lifespan_seconds is None


def test_thresholds_are_configurable() -> None:
    thresholds = ForensicThresholds(safe_downtime=10, warning_downtime=20, hdop_limit=1.0)
    event = build_raw_event(downtime=15, last=build_telemetry(hdop=1.5))

    (enriched,) = enrich_events([event], {}, thresholds=thresholds)

    assert enriched.risk_level is RiskLevel.WARNING
    assert enriched.has_gps_precision_issue


def test_inputs_are_not_mutated() -> None:
    events = [build_raw_event("U1", BASE_TS + 10), build_raw_event("U2", BASE_TS)]
    snapshot = list(events)

    enrich_events(events, {})

    assert events == snapshot
