"""Hidive provider."""

from anistream.providers.hidive.client import (
    HidiveClient,
    HidiveRequestType,
    HidiveSession,
)

__all__ = ["HidiveClient", "HidiveRequestType", "HidiveSession"]
