"""Lifespan of every replaced device, computed over full unit histories."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping

from .models import LifespanKey, RawEvent
from .utils import group_by, sorted_by_timestamp

logger = logging.getLogger(__name__)

__all__ = ["compute_lifespans", "lifespan_key"]


def lifespan_key(event: RawEvent) -> LifespanKey:
    """Return the lookup key of the swap that retired the previous device."""

    return LifespanKey(event.unit_name, event.change_timestamp, event.new_identifier)


def compute_lifespans(events: Iterable[RawEvent]) -> Mapping[LifespanKey, int]:
    """Map each swap to how long the device it replaced was active.

    Events are grouped per unit and sorted chronologically (ties keep their
    input order).  For consecutive events ``(prev, current)`` the device
    installed at ``prev`` lived ``current.change_timestamp -
    prev.change_timestamp`` seconds; the value is stored under the key of
    ``current``.  The first event of a unit has no entry.

    The map must be computed on the unfiltered collection so that lifespans
    stay correct whatever filters are applied later.
    """

    lifespans: dict[LifespanKey, int] = {}
    groups = group_by(events, lambda event: event.unit_name)
    for unit_events in groups.values():
        ordered = sorted_by_timestamp(unit_events)
        for previous, current in zip(ordered, ordered[1:]):
            lifespans[lifespan_key(current)] = (
                current.change_timestamp - previous.change_timestamp
            )

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Computed device lifespans",
            extra={"unit_count": len(groups), "lifespan_count": len(lifespans)},
        )
    return MappingProxyType(lifespans)
