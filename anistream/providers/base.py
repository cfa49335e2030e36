"""Shared contract for streaming provider clients."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, ClassVar

import aiohttp

from anistream import __version__
from anistream.config.store import SettingsStore
from anistream.models.episode import Episode, Provider, Stream

__all__ = ["ProviderClient"]


class ProviderClient(ABC):
    """Base class for a provider session client.

    Each client owns its provider's authentication state for its whole lifetime
    and a single aiohttp session. Only one client per provider is expected to
    exist per application instance.
    """

    PROVIDER: ClassVar[Provider]

    def __init__(self, store: SettingsStore) -> None:
        """Initialize the client.

        Args:
            store (SettingsStore): Durable store for credentials and tokens.
        """
        self.store = store
        self._session: aiohttp.ClientSession | None = None

    def _default_headers(self) -> dict[str, str]:
        return {"User-Agent": f"AniStream/{__version__}"}

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session.

        Returns:
            aiohttp.ClientSession: The active session for making HTTP requests.
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self._default_headers())
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether a user account is linked to this provider."""

    @abstractmethod
    async def create_session(self) -> Any:
        """Establish the provider session; never raises on provider failure."""

    @abstractmethod
    async def connect(self, user: str, password: str) -> Any:
        """Authenticate a user and persist the resulting identifiers.

        Returns:
            Any: The connected user, or None when authentication failed.
        """

    @abstractmethod
    async def fetch_episodes(
        self, anime_id: int, provider_ref: int | str
    ) -> Sequence[Episode] | None:
        """Resolve a provider title reference into canonical episodes."""

    @abstractmethod
    async def fetch_stream(self, episode_ref: int | str) -> Stream | None:
        """Resolve an episode reference into a playable stream."""

    @abstractmethod
    async def set_progress(self, episode_ref: int | str, seconds: int) -> None:
        """Report the playback position of an episode to the provider."""
