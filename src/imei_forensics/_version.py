"""Utilities for retrieving and validating the package version."""

from __future__ import annotations

import re
from importlib import metadata
from pathlib import Path

from packaging.version import InvalidVersion, Version

_DISTRIBUTION_NAME = "imei-forensics"


def _version_from_sources() -> str:
    """Return the version parsed from the repository changelog.

    This is a fallback for development checkouts where the distribution
    metadata has not been generated yet.
    """

    candidates = []
    parents = Path(__file__).resolve().parents
    if len(parents) >= 2:
        candidates.append(parents[1] / "CHANGELOG.md")
    if len(parents) >= 3:
        candidates.append(parents[2] / "CHANGELOG.md")

    for changelog in candidates:
        if not changelog.is_file():
            continue
        for line in changelog.read_text(encoding="utf-8").splitlines():
            match = re.match(r"^## v(?P<version>\d+\.\d+\.\d+)\b", line)
            if match:
                return match.group("version")

    raise RuntimeError(
        "Unable to determine the 'imei_forensics' version from package metadata or "
        "repository sources."
    )


def _validate(raw_version: str) -> str:
    try:
        parsed = Version(raw_version)
    except InvalidVersion as exc:
        raise RuntimeError(
            "Invalid version string for 'imei_forensics': "
            f"{raw_version!r}. Expected a semantic version."
        ) from exc

    if len(parsed.release) != 3:
        raise RuntimeError(
            "The 'imei_forensics' version must follow the MAJOR.MINOR.PATCH format. "
            f"Found: {raw_version!r}."
        )
    return raw_version


def _load_version() -> str:
    """Return the validated package version."""

    try:
        raw_version = metadata.version(_DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        raw_version = _version_from_sources()
    return _validate(raw_version)


__version__ = _load_version()

__all__ = ["__version__"]
