"""Small helpers shared by the derivation passes."""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Iterable, List, TypeVar

_T = TypeVar("_T")

__all__ = ["group_by", "is_number", "sorted_by_timestamp"]


def is_number(value: Any) -> bool:
    """Return ``True`` for finite real numbers (booleans excluded)."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def group_by(items: Iterable[_T], key: Callable[[_T], str]) -> Dict[str, List[_T]]:
    """Group ``items`` by ``key`` preserving first-occurrence order.

    Both the group order and the order of items inside each group follow the
    input sequence, which keeps every downstream stable sort deterministic.
    """

    groups: Dict[str, List[_T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def sorted_by_timestamp(events: Iterable[_T], *, reverse: bool = False) -> List[_T]:
    """Stable sort of events on their ``change_timestamp`` attribute."""

    return sorted(events, key=lambda item: getattr(item, "change_timestamp"), reverse=reverse)
