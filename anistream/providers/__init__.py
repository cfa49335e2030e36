"""Streaming provider session clients."""

from anistream.providers.base import ProviderClient
from anistream.providers.crunchyroll import CrunchyrollClient
from anistream.providers.hidive import HidiveClient

__all__ = ["CrunchyrollClient", "HidiveClient", "ProviderClient"]
