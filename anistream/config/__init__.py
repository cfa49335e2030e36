"""AniStream configuration and persisted settings."""

from anistream.config.settings import AniStreamConfig, get_config
from anistream.config.store import SettingsStore

__all__ = ["AniStreamConfig", "SettingsStore", "get_config"]
