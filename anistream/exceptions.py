"""AniStream exception classes."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from anistream.models.crunchyroll import CrunchyrollErrorCode


class AniStreamError(Exception):
    """Base class for all AniStream exceptions."""


# Configuration errors
class ConfigError(AniStreamError):
    """Base class for configuration-related errors."""


class SettingsStoreError(ConfigError, OSError):
    """The durable settings store could not be read or written."""


# Provider errors
class ProviderError(AniStreamError):
    """Base class for streaming provider failures."""


class ProviderUnavailableError(ProviderError, ConnectionError):
    """The provider could not be reached (transport failure)."""


class ProviderOperationUnsupportedError(ProviderError, NotImplementedError):
    """The provider does not support the requested operation."""


class StreamUnavailableError(ProviderError):
    """The provider returned no playable stream for an episode."""


class ScrapeError(ProviderError):
    """A provider web page could not be fetched for scraping."""


class CrunchyrollRequestError(ProviderError):
    """Crunchyroll rejected a request with an error envelope."""

    def __init__(self, code: CrunchyrollErrorCode, message: str) -> None:
        """Initialize the error.

        Args:
            code (CrunchyrollErrorCode): Error code reported by Crunchyroll.
            message (str): Human readable error message.
        """
        super().__init__(message)
        self.code = code
        self.message = message


class CrunchyrollSessionError(CrunchyrollRequestError):
    """The Crunchyroll session is no longer valid and has been re-created."""


# List errors
class ListError(AniStreamError):
    """Base class for list-tracking failures."""


class ListRequestError(ListError, ConnectionError):
    """The list-tracking service could not be reached after retrying."""


class ListMutationError(ListError):
    """The list-tracking service rejected a mutation or query."""

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        """Initialize the error.

        Args:
            message (str): Summary of the failure.
            errors (list[dict] | None): Raw GraphQL errors, if any.
        """
        super().__init__(message)
        self.errors = errors or []


class ProgressValidationError(ListError, ValueError):
    """A progress value was rejected before being sent."""
