"""Immutable data structures shared by every forensic derivation.

The models mirror the records produced by the upstream swap exporter.  Every
telemetry value is optional: ``None`` means "not reported" and is never
replaced by a numeric zero, so downstream flags can tell a missing reading
apart from a genuine ``0``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional, Tuple

__all__ = [
    "EnrichedEvent",
    "LifespanInterval",
    "LifespanKey",
    "RawEvent",
    "RiskLevel",
    "Telemetry",
    "UnitHistory",
    "OK_STATUS",
]


OK_STATUS = "ok"


class RiskLevel(str, Enum):
    """Risk tier attached to every enriched swap event."""

    CRITICAL = "critical"
    WARNING = "warning"
    SAFE = "safe"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Telemetry:
    """Point reading reported by a tracking device around a swap."""

    timestamp: Optional[int] = None
    display_time: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    iccid: Optional[str] = None
    iccid_part_a: Optional[str] = None
    iccid_part_b: Optional[str] = None
    external_voltage: Optional[float] = None
    internal_voltage: Optional[float] = None
    gsm_signal: Optional[float] = None
    hdop: Optional[float] = None

    @property
    def has_position(self) -> bool:
        """Return ``True`` when both coordinates are usable for plotting."""

        return bool(self.latitude) and bool(self.longitude)


@dataclass(frozen=True, slots=True)
class RawEvent:
    """One device swap occurrence for one tracked unit."""

    unit_name: str
    unit_id: int
    old_identifier: str
    new_identifier: str
    change_timestamp: int
    change_time_display: str
    last_signal: Optional[Telemetry] = None
    first_signal_after: Optional[Telemetry] = None
    downtime_seconds: Optional[int] = None
    status: str = OK_STATUS

    @property
    def is_installation(self) -> bool:
        """An empty previous identifier marks a first installation."""

        return not self.old_identifier or not self.old_identifier.strip()


class LifespanKey(NamedTuple):
    """Composite key identifying the swap that retired a device."""

    unit_name: str
    change_timestamp: int
    new_identifier: str


@dataclass(frozen=True, slots=True)
class EnrichedEvent:
    """A :class:`RawEvent` annotated with derived forensic flags."""

    event: RawEvent
    id: str
    downtime_seconds: Optional[int]
    derived_iccid: str
    previous_iccid: str
    risk_level: RiskLevel
    is_installation: bool
    is_power_cut: bool
    is_sim_change: bool
    is_low_signal: bool
    has_gps_precision_issue: bool
    previous_identifier_lifespan_seconds: Optional[int]

    @property
    def unit_name(self) -> str:
        return self.event.unit_name

    @property
    def unit_id(self) -> int:
        return self.event.unit_id

    @property
    def change_timestamp(self) -> int:
        return self.event.change_timestamp

    @property
    def change_time_display(self) -> str:
        return self.event.change_time_display

    @property
    def old_identifier(self) -> str:
        return self.event.old_identifier

    @property
    def new_identifier(self) -> str:
        return self.event.new_identifier

    @property
    def last_signal(self) -> Optional[Telemetry]:
        return self.event.last_signal

    @property
    def first_signal_after(self) -> Optional[Telemetry]:
        return self.event.first_signal_after


@dataclass(frozen=True, slots=True)
class LifespanInterval:
    """Closed interval during which ``imei`` was the active device."""

    imei: str
    start_timestamp: int
    start_display: str
    end_timestamp: int
    end_display: str
    duration_seconds: int


@dataclass(frozen=True, slots=True)
class UnitHistory:
    """Lifecycle of a unit: the current device plus closed past intervals."""

    unit_name: str
    current_identifier: str
    current_start_timestamp: int
    current_start_display: str
    current_duration_seconds: int
    history: Tuple[LifespanInterval, ...]
    event_count: int
    failure_rate_index: float

    @property
    def devices_used(self) -> int:
        return len(self.history) + 1
