"""Clock capabilities injected into time-dependent derivations."""

from __future__ import annotations

import time
from typing import Protocol

__all__ = ["Clock", "FixedClock", "SystemClock", "resolve_now"]


class Clock(Protocol):
    """Source of "now" expressed in whole seconds since the epoch."""

    def now(self) -> int:  # pragma: no cover - interface only
        ...


class SystemClock:
    """Wall-clock implementation backed by :func:`time.time`."""

    __slots__ = ()

    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Deterministic clock for tests and reproducible reports."""

    __slots__ = ("_timestamp",)

    def __init__(self, timestamp: int) -> None:
        self._timestamp = int(timestamp)

    def now(self) -> int:
        return self._timestamp

    def advance(self, seconds: int) -> None:
        self._timestamp += int(seconds)


def resolve_now(clock: Clock | None) -> int:
    """Return the current timestamp from ``clock`` or the system clock."""

    return (clock or SystemClock()).now()
