"""Threshold configuration for the forensic classifiers."""

from __future__ import annotations

from collections.abc import Mapping as ABCMapping
from dataclasses import dataclass
from typing import Any, Mapping

DEFAULT_POWER_CUT_VOLTAGE = 5.0
DEFAULT_LOW_SIGNAL_CEILING = 10.0
DEFAULT_HDOP_LIMIT = 2.5
DEFAULT_SAFE_DOWNTIME = 300
DEFAULT_WARNING_DOWNTIME = 3600


@dataclass(frozen=True, slots=True)
class ForensicThresholds:
    """Immutable thresholds parsed from the ``[thresholds]`` TOML table.

    ``power_cut_voltage`` is the external voltage under which a swap is
    flagged as a power cut, ``low_signal_ceiling`` the exclusive upper bound of
    a low GSM reading, ``hdop_limit`` the HDOP above which the GPS fix is
    considered imprecise, and ``safe_downtime``/``warning_downtime`` the
    exclusive upper bounds (in seconds) of the ``safe`` and ``warning`` risk
    tiers.
    """

    power_cut_voltage: float = DEFAULT_POWER_CUT_VOLTAGE
    low_signal_ceiling: float = DEFAULT_LOW_SIGNAL_CEILING
    hdop_limit: float = DEFAULT_HDOP_LIMIT
    safe_downtime: int = DEFAULT_SAFE_DOWNTIME
    warning_downtime: int = DEFAULT_WARNING_DOWNTIME

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any] | None = None
    ) -> "ForensicThresholds":
        """Coerce a configuration mapping into thresholds.

        Both the full project configuration (with a ``thresholds`` table) and
        the table itself are accepted.  Unknown keys are ignored and values
        that cannot be coerced fall back to the defaults.
        """

        def _as_mapping(value: Any) -> Mapping[str, Any]:
            if isinstance(value, ABCMapping):
                return value
            return {}

        def _coerce_float(value: Any, fallback: float) -> float:
            if value is None or isinstance(value, bool):
                return fallback
            try:
                return float(value)
            except (TypeError, ValueError):
                return fallback

        def _coerce_int(value: Any, fallback: int) -> int:
            if value is None or isinstance(value, bool):
                return fallback
            try:
                numeric = int(value)
            except (TypeError, ValueError):
                return fallback
            if numeric < 0:
                return 0
            return numeric

        payload = _as_mapping(config)
        section = _as_mapping(payload.get("thresholds")) if "thresholds" in payload else payload

        safe = _coerce_int(section.get("safe_downtime"), DEFAULT_SAFE_DOWNTIME)
        warning = _coerce_int(section.get("warning_downtime"), DEFAULT_WARNING_DOWNTIME)
        # The warning band must close after the safe band opens.
        if warning < safe:
            warning = safe

        return cls(
            power_cut_voltage=_coerce_float(
                section.get("power_cut_voltage"), DEFAULT_POWER_CUT_VOLTAGE
            ),
            low_signal_ceiling=_coerce_float(
                section.get("low_signal_ceiling"), DEFAULT_LOW_SIGNAL_CEILING
            ),
            hdop_limit=_coerce_float(section.get("hdop_limit"), DEFAULT_HDOP_LIMIT),
            safe_downtime=safe,
            warning_downtime=warning,
        )

    def as_dict(self) -> dict[str, float | int]:
        return {
            "power_cut_voltage": self.power_cut_voltage,
            "low_signal_ceiling": self.low_signal_ceiling,
            "hdop_limit": self.hdop_limit,
            "safe_downtime": self.safe_downtime,
            "warning_downtime": self.warning_downtime,
        }


DEFAULT_THRESHOLDS = ForensicThresholds()

__all__ = [
    "DEFAULT_HDOP_LIMIT",
    "DEFAULT_LOW_SIGNAL_CEILING",
    "DEFAULT_POWER_CUT_VOLTAGE",
    "DEFAULT_SAFE_DOWNTIME",
    "DEFAULT_THRESHOLDS",
    "DEFAULT_WARNING_DOWNTIME",
    "ForensicThresholds",
]
