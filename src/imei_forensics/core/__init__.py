"""Core models, thresholds and helpers of the forensic derivation engine."""

from .cache import LRUCache
from .clock import Clock, FixedClock, SystemClock
from .lifespan import compute_lifespans, lifespan_key
from .models import (
    EnrichedEvent,
    LifespanInterval,
    LifespanKey,
    RawEvent,
    RiskLevel,
    Telemetry,
    UnitHistory,
)
from .thresholds import DEFAULT_THRESHOLDS, ForensicThresholds

__all__ = [
    "Clock",
    "DEFAULT_THRESHOLDS",
    "EnrichedEvent",
    "FixedClock",
    "ForensicThresholds",
    "LRUCache",
    "LifespanInterval",
    "LifespanKey",
    "RawEvent",
    "RiskLevel",
    "SystemClock",
    "Telemetry",
    "UnitHistory",
    "compute_lifespans",
    "lifespan_key",
]
