"""Canonical episode and stream models shared by all providers."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Provider(StrEnum):
    """Supported streaming providers."""

    CRUNCHYROLL = "CRUNCHYROLL"
    HIDIVE = "HIDIVE"


class _CanonicalModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Episode(_CanonicalModel):
    """A single episode as exposed to the rest of the application.

    Episodes are built by the provider normalizers and never mutated; identity
    is ``(provider, id)``.
    """

    id: str
    provider: Provider
    anime_id: int
    title: str
    episode_number: int | float
    index: int
    duration: int | None = None  # seconds
    progress: int | None = None  # seconds
    url: str
    subtitles: list[tuple[str, str]] = Field(default_factory=list)
    thumbnail: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> tuple[Provider, str]:
        """Identity of the episode across providers."""
        return (self.provider, self.id)


class Stream(_CanonicalModel):
    """A playable stream for one episode, resolved per playback request."""

    url: str
    subtitles: list[tuple[str, str]] = Field(default_factory=list)
    progress: int | None = None


class EpisodeProgress(_CanonicalModel):
    """Marks ``episode_number`` as the latest watched episode of an anime."""

    provider: Provider
    anime_id: int
    episode_number: int
