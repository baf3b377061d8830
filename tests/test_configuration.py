from __future__ import annotations

from pathlib import Path

import pytest

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python < 3.11 fallback
    import tomli as tomllib  # type: ignore

from imei_forensics.analysis.filters import FilterState, InvalidFilterError
from imei_forensics.configuration import (
    filter_defaults,
    load_project_config,
    resolve_pyproject_path,
)
from tests.conftest import ROOT, write_pyproject


def test_resolve_pyproject_path(tmp_path: Path) -> None:
    assert resolve_pyproject_path(tmp_path) == tmp_path / "pyproject.toml"
    assert resolve_pyproject_path(tmp_path / "pyproject.toml") == tmp_path / "pyproject.toml"
    assert resolve_pyproject_path(tmp_path / "settings.ini") is None


def test_load_project_config_returns_tool_section(tmp_path: Path) -> None:
    path = write_pyproject(
        tmp_path,
        """
        [project]
        name = "fleet"

        [tool.imei_forensics.filters]
        hide_installations = true

        [tool.imei_forensics.statistics]
        top_units = 3
        """,
    )

    loaded = load_project_config(tmp_path)

    assert loaded is not None
    config, resolved = loaded
    assert resolved == path.resolve()
    assert config == {"filters": {"hide_installations": True}, "statistics": {"top_units": 3}}


@pytest.mark.parametrize(
    "contents",
    [
        pytest.param(None, id="missing-file"),
        pytest.param("[project]\nname = 'fleet'\n", id="no-tool-table"),
        pytest.param("[tool.other]\nvalue = 1\n", id="other-tool"),
    ],
)
def test_load_project_config_without_section(tmp_path: Path, contents: str | None) -> None:
    if contents is not None:
        write_pyproject(tmp_path, contents)

    assert load_project_config(tmp_path) is None


def test_invalid_toml_raises(tmp_path: Path) -> None:
    write_pyproject(tmp_path, "[tool.imei_forensics\n")

    with pytest.raises(tomllib.TOMLDecodeError):
        load_project_config(tmp_path)


def test_repository_defaults_match_builtin_filters() -> None:
    loaded = load_project_config(ROOT)

    assert loaded is not None
    config, _ = loaded
    assert filter_defaults(config) == FilterState()
    assert config["statistics"] == {"top_units": 10, "lemons": 5, "longest_intervals": 20}


def test_filter_defaults() -> None:
    assert filter_defaults(None) == FilterState()
    assert filter_defaults({"filters": "nope"}) == FilterState()
    assert filter_defaults({"filters": {"onlyPowerCuts": True}}) == FilterState(only_power_cuts=True)
    with pytest.raises(InvalidFilterError):
        filter_defaults({"filters": {"colour": "red"}})
