"""Shared pytest configuration and fixtures for the test suite."""

import atexit
import os
import shutil
import tempfile
from pathlib import Path

import pytest
import yaml

_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="as-tests-"))
os.environ["AS_DATA_PATH"] = str(_TEST_DATA_DIR)
_TEST_CONFIG_FILE = _TEST_DATA_DIR / "config.yaml"

_TEST_CONFIG_FILE.write_text(
    yaml.safe_dump(
        {
            "log_level": "DEBUG",
            "crunchyroll": {"access_token": "cr-access-token"},
            "hidive": {"token": "hidive-token", "client_id": "24i-app"},
            "tracker": {"token": "anilist-token"},
        },
        sort_keys=False,
    ),
    encoding="utf-8",
)

from anistream.config import settings as settings_module  # noqa: E402
from anistream.config.store import SettingsStore  # noqa: E402

settings_module.get_config.cache_clear()


@pytest.fixture
def store(tmp_path: Path) -> SettingsStore:
    """A settings store backed by a fresh temporary file."""
    return SettingsStore(tmp_path / "settings.yaml")


@atexit.register
def _cleanup_test_data_dir() -> None:
    """Remove the temporary test data directory after the test session."""
    shutil.rmtree(_TEST_DATA_DIR, ignore_errors=True)
