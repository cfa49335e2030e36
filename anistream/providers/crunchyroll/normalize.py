"""Mapping of Crunchyroll media payloads onto canonical episodes.

Crunchyroll numbers episodes with free-form strings: specials are ``SP`` or
empty, recaps use fractional numbers such as ``12.5``, and later seasons often
continue the numbering of the previous one. Only whole, non-special episodes
are kept, and each collection is renumbered to start at episode 1.
"""

import math
import re
from collections.abc import Iterable, Sequence

from anistream.models.crunchyroll import CrunchyrollMedia
from anistream.models.episode import Episode, Provider

__all__ = [
    "fix_episode_numbers",
    "get_episode_number",
    "is_real_episode",
    "media_to_episode",
    "normalize_collection",
]

MEDIA_FIELDS = (
    "most_likely_media",
    "media",
    "media.name",
    "media.description",
    "media.episode_number",
    "media.duration",
    "media.playhead",
    "media.screenshot_image",
    "media.media_id",
    "media.series_id",
    "media.series_name",
    "media.collection_id",
    "media.url",
)

_NOT_NUMBER_PATTERN = re.compile(r"[^\d.]")


def get_episode_number(value: str | int | float) -> int | float:
    """Parse a raw episode number, ignoring anything but digits and dots.

    Args:
        value (str | int | float): Raw episode number, e.g. ``"12"`` or ``"E5"``.

    Returns:
        int | float: The number (an int when whole); ``0`` for an empty value and
            NaN when the remaining characters are not a number.
    """
    cleaned = _NOT_NUMBER_PATTERN.sub("", str(value))
    if not cleaned:
        return 0
    try:
        number = float(cleaned)
    except ValueError:
        return math.nan
    return int(number) if number.is_integer() else number


def _is_half_episode(media: CrunchyrollMedia) -> bool:
    number = get_episode_number(media.episode_number)
    return math.isnan(number) or number % 1 != 0


def _is_special_episode(media: CrunchyrollMedia) -> bool:
    return media.episode_number in ("SP", "")


def is_real_episode(media: CrunchyrollMedia) -> bool:
    """Whether a media is a regular episode (not a special or a recap)."""
    return not (_is_half_episode(media) or _is_special_episode(media))


def media_to_episode(
    anime_id: int, media: CrunchyrollMedia, index: int
) -> Episode:
    """Map one Crunchyroll media onto a canonical episode.

    Args:
        anime_id (int): AniList id of the anime the media belongs to.
        media (CrunchyrollMedia): Raw media payload.
        index (int): Position of the media in its collection.

    Returns:
        Episode: The canonical episode, with its raw episode number parsed.
    """
    thumbnail = media.screenshot_image.full_url if media.screenshot_image else None

    return Episode(
        id=media.media_id,
        provider=Provider.CRUNCHYROLL,
        anime_id=anime_id,
        title=media.name,
        episode_number=get_episode_number(media.episode_number),
        index=index,
        duration=int(media.duration) if media.duration is not None else None,
        progress=media.playhead or None,
        url=media.url,
        subtitles=[],
        thumbnail=thumbnail,
    )


def fix_episode_numbers(episodes: Sequence[Episode]) -> list[Episode]:
    """Shift episode numbers so that the first episode is number 1.

    ``new = raw - max(0, first_raw - 1)``; relative order and gaps are kept.

    Args:
        episodes (Sequence[Episode]): Episodes in collection order.

    Returns:
        list[Episode]: Renumbered copies, or an empty list for no episodes.
    """
    if not episodes:
        return []

    offset = max(0, episodes[0].episode_number - 1)
    if offset == 0:
        return list(episodes)

    return [
        episode.model_copy(update={"episode_number": episode.episode_number - offset})
        for episode in episodes
    ]


def normalize_collection(
    anime_id: int, medias: Iterable[CrunchyrollMedia]
) -> list[Episode]:
    """Filter, map and renumber the media of one collection."""
    episodes = [
        media_to_episode(anime_id, media, index)
        for index, media in enumerate(m for m in medias if is_real_episode(m))
    ]
    return fix_episode_numbers(episodes)
