"""Tests for version utility helpers."""

import tomllib
from pathlib import Path

from anistream.utils.version import get_pyproject_version


def test_get_pyproject_version_matches_pyproject() -> None:
    """Test that get_pyproject_version matches the version in pyproject.toml."""
    with Path("pyproject.toml").open("rb") as f:
        pyproject = tomllib.load(f)

    expected_version = pyproject["project"]["version"]

    assert get_pyproject_version() == expected_version


def test_get_pyproject_version_unknown_without_file(tmp_path: Path) -> None:
    """A missing project file yields 'unknown'."""
    assert get_pyproject_version(tmp_path / "missing.toml") == "unknown"
