"""Mapping of Hidive payloads onto canonical episodes and streams."""

import re

from anistream.models.episode import Episode, Provider, Stream
from anistream.models.hidive import HidiveTitle, HidiveVideos

__all__ = [
    "convert_name",
    "parse_episode_id",
    "pick_video_key",
    "title_to_episodes",
    "videos_to_stream",
]

PREFERRED_AUDIO = "Japanese"


def convert_name(name: str) -> str:
    """Turn a title name into the slug used in hidive.com URLs.

    ``"Made in Abyss: Dawn!"`` becomes ``"made-in-abyss-dawn"``.
    """
    slug = re.sub(r"[^a-zA-Z\d]", "-", name)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-").lower()


def _as_number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def title_to_episodes(anime_id: int, title: HidiveTitle) -> list[Episode]:
    """Map every episode of a title onto canonical episodes.

    Episode ids are ``"<title id>-<video key>"``, the reference `fetch_stream`
    expects.
    """
    slug = convert_name(title.name)

    return [
        Episode(
            id=f"{title.id}-{ep.video_key}",
            provider=Provider.HIDIVE,
            anime_id=anime_id,
            title=ep.name,
            episode_number=_as_number(ep.episode_number_value),
            index=index,
            duration=title.run_time * 60,
            progress=None,
            url=f"https://hidive.com/tv/{slug}/{ep.video_key}",
            subtitles=[],
            thumbnail=re.sub(r"^//", "https://", ep.screen_shot_small_url) or None,
        )
        for index, ep in enumerate(title.episodes)
    ]


def parse_episode_id(episode_id: str) -> tuple[str, str]:
    """Split an episode id into its title id and video key.

    Raises:
        ValueError: If the id does not contain a ``-`` separator.
    """
    title_id, sep, video_key = episode_id.rpartition("-")
    if not sep:
        raise ValueError(f"Invalid Hidive episode id: {episode_id!r}")
    return title_id, video_key


def pick_video_key(videos: HidiveVideos) -> str | None:
    """Choose the audio track, preferring the original Japanese audio."""
    keys = list(videos.video_urls)
    if not keys:
        return None
    return next((key for key in keys if PREFERRED_AUDIO in key), keys[0])


def videos_to_stream(videos: HidiveVideos) -> Stream | None:
    """Build a stream from a ``GetVideos`` payload.

    Returns:
        Stream | None: The stream, or None when no HLS playlist is available.
    """
    key = pick_video_key(videos)
    if key is None or not videos.video_urls[key].hls:
        return None

    return Stream(
        url=videos.video_urls[key].hls[0],
        subtitles=[
            (lang, videos.caption_vtt_urls[lang])
            for lang in videos.caption_languages
            if lang in videos.caption_vtt_urls
        ],
        progress=int(videos.current_time) if videos.current_time is not None else None,
    )
