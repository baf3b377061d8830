"""Human readable renderings of durations used by reports and exports."""

from __future__ import annotations

from typing import Optional

__all__ = ["format_duration", "format_lifespan"]

_MINUTE = 60
_HOUR = 3600
_DAY = 24 * _HOUR


def format_duration(seconds: Optional[int], compact: bool = False) -> str:
    """Render ``seconds`` as ``"1d 2h 3m"``.

    ``compact`` keeps only the two most significant units (``"1d 2h"``,
    ``"2h 5m"`` or ``"5m 7s"``).  ``None`` renders as ``"N/A"``.

    Examples
    --------
    >>> format_duration(93784)
    '1d 2h 3m'
    >>> format_duration(307, compact=True)
    '5m 7s'
    """

    if seconds is None:
        return "N/A"
    seconds = int(seconds)
    if seconds == 0:
        return "0s"

    days = seconds // _DAY
    hours = (seconds % _DAY) // _HOUR
    minutes = (seconds % _HOUR) // _MINUTE

    if compact:
        if days > 0:
            return f"{days}d {hours}h"
        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m {seconds % _MINUTE}s"

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if not parts:
        parts.append(f"{seconds}s")
    return " ".join(parts)


def format_lifespan(seconds: Optional[int]) -> Optional[str]:
    """Coarse lifespan label: years past a year, else days, else hours."""

    if not seconds:
        return None
    days = int(seconds) // _DAY
    if days > 365:
        return f"{days / 365:.1f}y"
    if days > 0:
        return f"{days}d"
    return f"{int(seconds) // _HOUR}h"
