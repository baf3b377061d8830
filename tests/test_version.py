"""Tests for the package version metadata."""

from importlib import metadata

import pytest
from packaging.version import Version

import imei_forensics
from imei_forensics import _version as version_module


def test_version_is_semver_patch():
    version = Version(imei_forensics.__version__)

    assert len(version.release) == 3, (
        "imei_forensics.__version__ must contain exactly three release components"
    )


def test_version_falls_back_to_changelog(monkeypatch):
    def _missing(name):
        raise metadata.PackageNotFoundError(name)

    monkeypatch.setattr(version_module.metadata, "version", _missing)

    assert version_module._load_version() == "0.1.0"


def test_invalid_version_is_rejected():
    with pytest.raises(RuntimeError):
        version_module._validate("1.2")
    with pytest.raises(RuntimeError):
        version_module._validate("not-a-version")
