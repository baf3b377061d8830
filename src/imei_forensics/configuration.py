"""Helpers to load project-level configuration files."""

from __future__ import annotations

from collections.abc import Mapping as ABCMapping
from pathlib import Path
from typing import Any

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python < 3.11 fallback
    import tomli as tomllib  # type: ignore

from .analysis.filters import FilterState

PROJECT_FILENAME = "pyproject.toml"
TOOL_SECTION = "imei_forensics"

__all__ = [
    "PROJECT_FILENAME",
    "TOOL_SECTION",
    "filter_defaults",
    "load_project_config",
    "resolve_pyproject_path",
]


def _as_dict(payload: ABCMapping[str, Any]) -> dict[str, Any]:
    """Recursively coerce TOML mappings into regular dictionaries."""

    result: dict[str, Any] = {}
    for key, value in payload.items():
        key_str = str(key)
        if isinstance(value, ABCMapping):
            result[key_str] = _as_dict(value)
        elif isinstance(value, list):
            result[key_str] = [
                _as_dict(item) if isinstance(item, ABCMapping) else item for item in value
            ]
        else:
            result[key_str] = value
    return result


def resolve_pyproject_path(candidate: Path) -> Path | None:
    """Return the concrete ``pyproject.toml`` path for ``candidate`` if possible.

    A directory resolves to the ``pyproject.toml`` inside it; any other file
    name with a suffix is rejected.
    """

    candidate = candidate.expanduser()
    if candidate.name == PROJECT_FILENAME:
        return candidate
    if candidate.suffix:
        return None
    return candidate / PROJECT_FILENAME


def _load_toml_mapping(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    if isinstance(data, ABCMapping):
        return _as_dict(data)
    return None


def load_project_config(path: Path) -> tuple[dict[str, Any], Path] | None:
    """Load the ``[tool.imei_forensics]`` section from ``pyproject.toml``.

    Returns ``None`` when the file or the section does not exist.  A file
    that is not valid TOML raises :class:`tomllib.TOMLDecodeError`.
    """

    pyproject_path = resolve_pyproject_path(path)
    if pyproject_path is None:
        return None

    pyproject_path = pyproject_path.expanduser().resolve(strict=False)
    pyproject_payload = _load_toml_mapping(pyproject_path)
    if not pyproject_payload:
        return None

    tool_section = pyproject_payload.get("tool")
    if not isinstance(tool_section, ABCMapping):
        return None

    section = tool_section.get(TOOL_SECTION)
    if not isinstance(section, ABCMapping):
        return None

    return _as_dict(section), pyproject_path


def filter_defaults(config: ABCMapping[str, Any] | None) -> FilterState:
    """Build the default :class:`FilterState` from the ``filters`` table."""

    if not isinstance(config, ABCMapping):
        return FilterState()
    table = config.get("filters")
    if not isinstance(table, ABCMapping):
        return FilterState()
    return FilterState.from_mapping(table)
