"""Crunchyroll API payload models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from anistream.models.episode import Episode


class CrunchyrollErrorCode(StrEnum):
    """Closed set of error codes returned in Crunchyroll error envelopes."""

    BAD_REQUEST = "bad_request"
    BAD_SESSION = "bad_session"
    OBJECT_NOT_FOUND = "object_not_found"
    FORBIDDEN = "forbidden"

    @classmethod
    def parse(cls, value: Any) -> "CrunchyrollErrorCode":
        """Map a raw code onto the enum, treating unknown codes as bad requests."""
        try:
            return cls(value)
        except ValueError:
            return cls.BAD_REQUEST


class CrunchyrollModel(BaseModel):
    """Base for Crunchyroll payloads; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class CrunchyrollEnvelope(CrunchyrollModel):
    """Wrapper around every Crunchyroll response body."""

    code: str = "ok"
    error: bool = False
    message: str | None = None
    data: Any = None

    @property
    def error_code(self) -> CrunchyrollErrorCode:
        """The error code as a closed enum member."""
        return CrunchyrollErrorCode.parse(self.code)


class ImageSet(CrunchyrollModel):
    """Set of differently sized variants of one image."""

    thumb_url: str | None = None
    small_url: str | None = None
    medium_url: str | None = None
    large_url: str | None = None
    full_url: str | None = None
    wide_url: str | None = None
    widestar_url: str | None = None
    fwide_url: str | None = None
    fwidestar_url: str | None = None


class CrunchyrollUser(CrunchyrollModel):
    """Account details returned on login."""

    user_id: int
    username: str
    email: str | None = None
    access_type: str | None = None
    premium: str | None = None


class LoginData(CrunchyrollModel):
    """Payload of a successful ``login`` request."""

    user: CrunchyrollUser
    auth: str
    expires: str | None = None


class SessionData(CrunchyrollModel):
    """Payload of a successful ``start_session`` request."""

    session_id: str
    country_code: str | None = None


class Locale(CrunchyrollModel):
    """A locale supported for streams and subtitles."""

    locale_id: str
    label: str


class CrunchyrollMedia(CrunchyrollModel):
    """A single media (episode) object."""

    media_id: str
    collection_id: str | None = None
    series_id: str | None = None
    series_name: str | None = None
    episode_number: str = ""
    name: str = ""
    description: str | None = None
    duration: float | None = None
    screenshot_image: ImageSet | None = None
    url: str = ""
    playhead: int | None = None


class CrunchyrollSeries(CrunchyrollModel):
    """A series, the parent of one or more collections."""

    series_id: str
    name: str
    description: str | None = None
    url: str | None = None
    media_count: int | None = None
    landscape_image: ImageSet | None = None
    portrait_image: ImageSet | None = None


class CrunchyrollCollection(CrunchyrollModel):
    """A collection (season) of a series."""

    collection_id: str
    series_id: str | None = None
    name: str = ""
    description: str | None = None
    season: str | None = None
    complete: bool | None = None
    landscape_image: ImageSet | None = None
    portrait_image: ImageSet | None = None


class StreamVariant(CrunchyrollModel):
    """One quality variant of a stream."""

    quality: str | None = None
    expires: str | None = None
    url: str


class StreamData(CrunchyrollModel):
    """Stream variants for one audio/hardsub combination."""

    hardsub_lang: str | None = None
    audio_lang: str | None = None
    format: str | None = None
    streams: list[StreamVariant] = []


class StreamInfo(CrunchyrollModel):
    """Stream information and saved playhead for a media."""

    playhead: int | None = None
    stream_data: StreamData | None = None


class AutocompleteResult(CrunchyrollModel):
    """A series suggested by the ``autocomplete`` request."""

    series_id: str
    name: str
    description: str | None = None
    url: str | None = None
    landscape_image: ImageSet | None = None
    portrait_image: ImageSet | None = None


class SearchResult(BaseModel):
    """A series search hit in application terms."""

    id: int
    title: str
    description: str | None = None
    url: str | None = None
    portrait_image: str | None = None
    landscape_image: str | None = None


class CollectionWithEpisodes(CrunchyrollCollection):
    """A collection together with its normalized episodes."""

    episodes: list[Episode] = []


class SeriesWithCollections(BaseModel):
    """A series and every collection with its episodes."""

    id: int
    series_id: int
    title: str
    description: str | None = None
    url: str | None = None
    landscape_image: str | None = None
    portrait_image: str | None = None
    collections: list[CollectionWithEpisodes] = []
