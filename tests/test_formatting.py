from __future__ import annotations

import pytest

from imei_forensics.formatting import format_duration, format_lifespan


@pytest.mark.parametrize(
    ("seconds", "compact", "expected"),
    [
        (None, False, "N/A"),
        (0, False, "0s"),
        (45, False, "45s"),
        (60, False, "1m"),
        (3660, False, "1h 1m"),
        (93784, False, "1d 2h 3m"),
        (86400, False, "1d"),
        (93784, True, "1d 2h"),
        (7500, True, "2h 5m"),
        (307, True, "5m 7s"),
        (45, True, "0m 45s"),
        (0, True, "0s"),
    ],
)
def test_format_duration(seconds, compact, expected) -> None:
    assert format_duration(seconds, compact=compact) == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (None, None),
        (0, None),
        (1800, "0h"),
        (7200, "2h"),
        (3 * 86400, "3d"),
        (365 * 86400, "365d"),
        (730 * 86400, "2.0y"),
        (400 * 86400, "1.1y"),
    ],
)
def test_format_lifespan(seconds, expected) -> None:
    assert format_lifespan(seconds) == expected
