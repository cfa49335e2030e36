"""AniStream data models."""

from anistream.models.anilist import EditListEntryOptions, ListEntry, MediaListStatus
from anistream.models.episode import Episode, EpisodeProgress, Provider, Stream

__all__ = [
    "EditListEntryOptions",
    "Episode",
    "EpisodeProgress",
    "ListEntry",
    "MediaListStatus",
    "Provider",
    "Stream",
]
