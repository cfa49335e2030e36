"""Hidive API payload models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal


class HidiveResponseCode(StrEnum):
    """Closed set of response codes returned by the Hidive API."""

    SUCCESS = "Success"
    INVALID_NONCE = "InvalidNonce"
    INVALID_SIGNATURE = "InvalidSignature"
    INVALID_VISIT_ID = "InvalidVisitId"
    INVALID_EMAIL = "InvalidEmail"
    REGION_RESTRICTED = "RegionRestricted"
    PREMIUM_CONTENT_RESTRICTED = "PremiumContentRestricted"
    UNKNOWN = "Unknown"

    @classmethod
    def from_numeric(cls, code: int | None) -> "HidiveResponseCode":
        """Map the numeric ``Code`` field of a response envelope."""
        if code is None:
            return cls.UNKNOWN
        return _NUMERIC_CODES.get(code, cls.UNKNOWN)


_NUMERIC_CODES: dict[int, HidiveResponseCode] = {
    0: HidiveResponseCode.SUCCESS,
    5: HidiveResponseCode.INVALID_NONCE,
    6: HidiveResponseCode.INVALID_SIGNATURE,
    8: HidiveResponseCode.INVALID_VISIT_ID,
    29: HidiveResponseCode.INVALID_EMAIL,
    54: HidiveResponseCode.REGION_RESTRICTED,
    55: HidiveResponseCode.PREMIUM_CONTENT_RESTRICTED,
}


class HidiveModel(BaseModel):
    """Base for Hidive payloads, whose keys are PascalCase."""

    model_config = ConfigDict(
        alias_generator=to_pascal, populate_by_name=True, extra="ignore"
    )


class HidiveEnvelope(HidiveModel):
    """Wrapper around every Hidive response body."""

    code: int | None = None
    status: str | None = None
    message: str | None = None
    data: Any = None
    ip_address: str = Field(default="", alias="IPAddress")
    timestamp: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the provider reported success."""
        return self.code == 0

    @property
    def response_code(self) -> HidiveResponseCode:
        """The response code as a closed enum member.

        The textual ``Status`` is preferred; the numeric ``Code`` is used when
        the status is missing or not recognized.
        """
        try:
            return HidiveResponseCode(self.status)
        except ValueError:
            return HidiveResponseCode.from_numeric(self.code)


class InitDeviceData(HidiveModel):
    """Payload of a successful ``InitDevice`` request."""

    device_id: str
    visit_id: str


class HidiveProfile(HidiveModel):
    """A viewing profile of a Hidive account."""

    id: int
    nickname: str
    primary: bool = False
    pin_enabled: bool = False
    avatar_png_url: str | None = Field(default=None, alias="AvatarPNGUrl")


class HidiveAccount(HidiveModel):
    """Account details returned on authentication."""

    id: int
    email: str | None = None
    country_code: str | None = None
    service_level: str | None = None


class AuthenticateData(HidiveModel):
    """Payload of a successful ``Authenticate`` request."""

    profiles: list[HidiveProfile] = []
    user: HidiveAccount


class HidiveEpisode(HidiveModel):
    """An episode entry inside a title."""

    id: int
    title_id: int | None = None
    name: str = ""
    number: float | None = None
    episode_number_value: float
    season_number_value: float | None = None
    video_key: str
    screen_shot_small_url: str = ""
    summary: str | None = None


class HidiveTitle(HidiveModel):
    """A title (one season of a show) with its episodes."""

    id: int
    name: str
    episode_count: int | None = None
    episodes: list[HidiveEpisode] = []
    run_time: int = 0  # minutes
    short_synopsis: str | None = None
    key_art_url: str | None = None


class GetTitleData(HidiveModel):
    """Payload of a successful ``GetTitle`` request."""

    title: HidiveTitle


class VideoUrls(HidiveModel):
    """HLS playlists for one audio/subtitle combination."""

    hls: list[str] = Field(default_factory=list, alias="hls")


class HidiveVideos(HidiveModel):
    """Payload of a successful ``GetVideos`` request."""

    caption_languages: list[str] = []
    caption_vtt_urls: dict[str, str] = {}
    current_time: float | None = None
    run_time: int | None = None
    video_language: str | None = None
    video_languages: list[str] = []
    video_urls: dict[str, VideoUrls] = {}
