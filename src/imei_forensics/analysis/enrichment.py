"""Per-event forensic annotations for filtered swap events."""

from __future__ import annotations

import logging
from time import monotonic
from typing import Iterable, Mapping, Optional, Tuple

from ..core.lifespan import lifespan_key
from ..core.models import EnrichedEvent, LifespanKey, RawEvent, RiskLevel, Telemetry
from ..core.thresholds import DEFAULT_THRESHOLDS, ForensicThresholds
from .filters import effective_downtime

logger = logging.getLogger(__name__)

__all__ = [
    "classify_risk",
    "enrich_event",
    "enrich_events",
    "has_gps_precision_issue",
    "is_low_signal",
    "is_placeholder_iccid",
    "is_power_cut",
    "resolve_iccid",
]


def is_placeholder_iccid(value: str) -> bool:
    """All-zero identifiers are reported by devices without a readable SIM."""

    stripped = value.strip()
    return bool(stripped) and set(stripped) == {"0"}


def resolve_iccid(telemetry: Optional[Telemetry]) -> str:
    """Return the SIM identifier carried by ``telemetry``.

    The direct identifier is preferred unless it is the all-zero placeholder;
    otherwise both identifier fragments are concatenated.  An empty string
    means the SIM could not be identified.
    """

    if telemetry is None:
        return ""
    if telemetry.iccid and not is_placeholder_iccid(telemetry.iccid):
        return telemetry.iccid
    if telemetry.iccid_part_a and telemetry.iccid_part_b:
        return f"{telemetry.iccid_part_a}{telemetry.iccid_part_b}"
    return ""


def is_power_cut(
    telemetry: Optional[Telemetry], thresholds: ForensicThresholds = DEFAULT_THRESHOLDS
) -> bool:
    voltage = telemetry.external_voltage if telemetry is not None else None
    return voltage is not None and 0 <= voltage < thresholds.power_cut_voltage


def is_low_signal(
    telemetry: Optional[Telemetry], thresholds: ForensicThresholds = DEFAULT_THRESHOLDS
) -> bool:
    # A zero reading means the modem did not report, not an actual zero signal.
    signal = telemetry.gsm_signal if telemetry is not None else None
    return signal is not None and 0 < signal < thresholds.low_signal_ceiling


def has_gps_precision_issue(
    telemetry: Optional[Telemetry], thresholds: ForensicThresholds = DEFAULT_THRESHOLDS
) -> bool:
    hdop = telemetry.hdop if telemetry is not None else None
    return hdop is not None and hdop > thresholds.hdop_limit


def classify_risk(
    power_cut: bool,
    downtime: Optional[int],
    thresholds: ForensicThresholds = DEFAULT_THRESHOLDS,
) -> RiskLevel:
    """Power cuts dominate; otherwise the downtime band decides."""

    if power_cut:
        return RiskLevel.CRITICAL
    if downtime is None:
        return RiskLevel.UNKNOWN
    if downtime < thresholds.safe_downtime:
        return RiskLevel.SAFE
    if downtime < thresholds.warning_downtime:
        return RiskLevel.WARNING
    return RiskLevel.CRITICAL


def enrich_event(
    event: RawEvent,
    index: int,
    lifespans: Mapping[LifespanKey, int],
    thresholds: ForensicThresholds = DEFAULT_THRESHOLDS,
) -> EnrichedEvent:
    """Annotate one event; ``index`` is its position in the filtered input."""

    previous_iccid = resolve_iccid(event.last_signal)
    new_iccid = resolve_iccid(event.first_signal_after)
    power_cut = is_power_cut(event.last_signal, thresholds)
    downtime = effective_downtime(event)

    return EnrichedEvent(
        event=event,
        id=f"{event.unit_id}-{index}",
        downtime_seconds=downtime,
        derived_iccid=new_iccid or previous_iccid,
        previous_iccid=previous_iccid,
        risk_level=classify_risk(power_cut, downtime, thresholds),
        is_installation=event.is_installation,
        is_power_cut=power_cut,
        is_sim_change=bool(previous_iccid) and bool(new_iccid) and previous_iccid != new_iccid,
        is_low_signal=is_low_signal(event.last_signal, thresholds),
        has_gps_precision_issue=has_gps_precision_issue(event.last_signal, thresholds),
        previous_identifier_lifespan_seconds=lifespans.get(lifespan_key(event)),
    )


def enrich_events(
    events: Iterable[RawEvent],
    lifespans: Mapping[LifespanKey, int],
    *,
    thresholds: ForensicThresholds | None = None,
) -> Tuple[EnrichedEvent, ...]:
    """Annotate filtered events, most recent swap first.

    ``lifespans`` must come from :func:`~imei_forensics.core.lifespan.compute_lifespans`
    over the unfiltered collection.  Ties on the change timestamp keep the
    input order.
    """

    started = monotonic()
    thresholds = thresholds or DEFAULT_THRESHOLDS
    enriched = [
        enrich_event(event, index, lifespans, thresholds)
        for index, event in enumerate(events)
    ]
    enriched.sort(key=lambda item: item.change_timestamp, reverse=True)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Enriched swap events",
            extra={"event_count": len(enriched), "duration": monotonic() - started},
        )
    return tuple(enriched)
