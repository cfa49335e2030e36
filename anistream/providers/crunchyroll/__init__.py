"""Crunchyroll provider."""

from anistream.providers.crunchyroll.client import CrunchyrollClient, CrunchyrollSession

__all__ = ["CrunchyrollClient", "CrunchyrollSession"]
