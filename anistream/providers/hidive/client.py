"""Hidive session client."""

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import aiohttp

from anistream import log
from anistream.config.settings import HidiveConfig
from anistream.config.store import SettingsStore
from anistream.exceptions import (
    ProviderOperationUnsupportedError,
    ProviderUnavailableError,
    ScrapeError,
)
from anistream.models.episode import Episode, Provider, Stream
from anistream.models.hidive import (
    AuthenticateData,
    GetTitleData,
    HidiveAccount,
    HidiveEnvelope,
    HidiveResponseCode,
    HidiveVideos,
    InitDeviceData,
)
from anistream.providers.base import ProviderClient
from anistream.providers.hidive.normalize import (
    parse_episode_id,
    title_to_episodes,
    videos_to_stream,
)
from anistream.providers.hidive.signing import (
    generate_nonce,
    generate_signature,
    serialize_body,
)
from anistream.utils.cache import gattl_cache

__all__ = ["HidiveClient", "HidiveRequestType", "HidiveSession"]

TITLE_ID_PATTERN = re.compile(r"data-json='\{\"titleID\":\s+?(\d+),")


class HidiveRequestType(StrEnum):
    """Hidive API operations used by the client."""

    PING = "Ping"
    INIT_DEVICE = "InitDevice"
    AUTHENTICATE = "Authenticate"
    GET_TITLE = "GetTitle"
    GET_VIDEOS = "GetVideos"


@dataclass
class HidiveSession:
    """Visit state established by the Ping/InitDevice handshake."""

    device_id: str = ""
    visit_id: str = ""
    ip_address: str = ""


class HidiveClient(ProviderClient):
    """Client for the signed Hidive API.

    Requests are POSTed with the application, device, visit and profile
    identifiers in headers, plus a per-minute nonce and a signature over those
    identifiers and the body.
    """

    PROVIDER = Provider.HIDIVE

    API_URL = "https://api.hidive.com/api/v1"
    DEVICE_NAME = "Android"

    def __init__(self, store: SettingsStore, config: HidiveConfig) -> None:
        """Initialize the Hidive client.

        Args:
            store (SettingsStore): Durable store for the login and profile.
            config (HidiveConfig): Application id and signing token.
        """
        super().__init__(store)
        self.config = config
        self.session = HidiveSession()

    @property
    def is_connected(self) -> bool:
        """Whether a Hidive account is linked."""
        return "hidive.user" in self.store

    @property
    def profile(self) -> tuple[int, int]:
        """The ``(user id, profile id)`` pair sent with every request."""
        return (
            int(self.store.get("hidive.user.id", 0)),
            int(self.store.get("hidive.user.profile", 0)),
        )

    def _signed_headers(self, body: Any) -> dict[str, str]:
        token = self.config.token.get_secret_value()
        user_id, profile_id = self.profile
        nonce = generate_nonce(token)
        signature = generate_signature(
            ip_address=self.session.ip_address,
            app_id=self.config.client_id,
            device_id=self.session.device_id,
            visit_id=self.session.visit_id,
            user_id=user_id,
            profile_id=profile_id,
            body=body,
            nonce=nonce,
            token=token,
        )

        return {
            "X-ApplicationId": self.config.client_id,
            "X-DeviceId": self.session.device_id,
            "X-VisitId": self.session.visit_id,
            "X-UserId": str(user_id),
            "X-ProfileId": str(profile_id),
            "X-Nonce": nonce,
            "X-Signature": signature,
        }

    async def request(
        self, request_type: HidiveRequestType, body: dict[str, Any] | None = None
    ) -> HidiveEnvelope:
        """Send a signed API request.

        The body is sent exactly as it was serialized for the signature.

        Args:
            request_type (HidiveRequestType): The API operation.
            body (dict[str, Any] | None): JSON body, if any.

        Returns:
            HidiveEnvelope: The parsed envelope, successful or not.

        Raises:
            ProviderUnavailableError: If Hidive cannot be reached or the body is
                not JSON.
        """
        headers = self._signed_headers(body)
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = serialize_body(body).encode("utf-8")

        url = f"{self.API_URL}/{request_type}"
        session = await self._get_session()
        log.debug(f"Requesting $$'{request_type}'$$")

        try:
            async with session.post(url, data=data, headers=headers) as response:
                payload = await response.json(content_type=None)
        except (TimeoutError, aiohttp.ClientError, ValueError) as e:
            log.error(f"Request $$'{request_type}'$$ failed: {e}")
            raise ProviderUnavailableError("Could not reach Hidive") from e

        return HidiveEnvelope.model_validate(payload or {})

    async def _handle_rejection(
        self, request_type: HidiveRequestType, envelope: HidiveEnvelope
    ) -> None:
        """Log a rejected request and refresh the visit when it expired."""
        code = envelope.response_code
        log.warning(
            f"$$'{request_type}'$$ was rejected $${{code: {code}, "
            f"message: {envelope.message}}}$$"
        )

        if code in (
            HidiveResponseCode.INVALID_VISIT_ID,
            HidiveResponseCode.INVALID_NONCE,
        ):
            await self.create_session()

    async def create_session(self) -> HidiveSession | None:
        """Start a visit: Ping, then InitDevice, then re-authenticate.

        Failures are logged and never raised.

        Returns:
            HidiveSession | None: The visit, or None if it could not be created.
        """
        try:
            ping = await self.request(HidiveRequestType.PING)
            if not ping.ok:
                log.warning(f"Ping was rejected: {ping.response_code}")
                return None
            self.session.ip_address = ping.ip_address

            init = await self.request(
                HidiveRequestType.INIT_DEVICE, {"DeviceName": self.DEVICE_NAME}
            )
            if not init.ok:
                log.warning(f"InitDevice was rejected: {init.response_code}")
                return None
        except ProviderUnavailableError as e:
            log.error(f"Could not create visit: {e}")
            return None

        device = InitDeviceData.model_validate(init.data)
        self.session.device_id = device.device_id
        self.session.visit_id = device.visit_id
        log.debug(f"Created visit $${{visit_id: {device.visit_id}}}$$")

        if self.is_connected:
            user = self.store.get("hidive.login.user", "")
            password = self.store.get("hidive.login.password", "")
            try:
                if await self._authenticate(user, password) is None:
                    await self.disconnect()
            except ProviderUnavailableError as e:
                log.error(f"Could not re-authenticate: {e}")

        return self.session

    async def _authenticate(self, user: str, password: str) -> AuthenticateData | None:
        envelope = await self.request(
            HidiveRequestType.AUTHENTICATE, {"Email": user, "Password": password}
        )
        if not envelope.ok:
            log.warning(f"Authentication was rejected: {envelope.response_code}")
            return None
        return AuthenticateData.model_validate(envelope.data)

    async def connect(self, user: str, password: str) -> HidiveAccount | None:
        """Authenticate and persist the login and primary profile.

        Returns:
            HidiveAccount | None: The account, or None on failure.
        """
        try:
            data = await self._authenticate(user, password)
        except ProviderUnavailableError as e:
            log.error(f"Could not authenticate: {e}")
            return None

        if data is None or not data.profiles:
            return None

        primary = data.profiles[0]
        self.store.set("hidive.login", {"user": user, "password": password})
        self.store.set(
            "hidive.profiles", [profile.model_dump() for profile in data.profiles]
        )
        self.store.set(
            "hidive.user",
            {
                "id": data.user.id,
                "name": primary.nickname,
                "profile": primary.id,
                "url": None,
            },
        )

        log.success(f"Connected as $$'{primary.nickname}'$$")
        return data.user

    async def disconnect(self) -> None:
        """Forget the stored login and drop back to an anonymous visit."""
        for key in ("hidive.login", "hidive.profiles", "hidive.user"):
            self.store.delete(key)

        try:
            await self._authenticate("", "")
        except ProviderUnavailableError as e:
            log.debug(f"Anonymous authentication failed: {e}")

        log.info("Disconnected")

    @gattl_cache(ttl=3600, cache_none=False)
    async def resolve_title_id(self, url: str) -> int | None:
        """Scrape the title id embedded in a hidive.com show page.

        Raises:
            ScrapeError: If the page could not be fetched.
        """
        session = await self._get_session()
        try:
            async with session.get(url) as response:
                if not response.ok:
                    raise ScrapeError("Could not scrape info from Hidive.")
                text = await response.text()
        except (TimeoutError, aiohttp.ClientError) as e:
            raise ScrapeError("Could not scrape info from Hidive.") from e

        match = TITLE_ID_PATTERN.search(text)
        if not match:
            log.debug(f"No title id found on $$'{url}'$$")
            return None
        return int(match.group(1))

    async def fetch_episodes_by_url(
        self, anime_id: int, url: str
    ) -> list[Episode] | None:
        """Fetch a title's episodes from its show page URL."""
        title_id = await self.resolve_title_id(url)
        if title_id is None:
            return None
        return await self.fetch_episodes_by_id(anime_id, title_id)

    async def fetch_episodes_by_id(
        self, anime_id: int, title_id: int
    ) -> list[Episode] | None:
        """Fetch a title's episodes by its numeric id."""
        envelope = await self.request(HidiveRequestType.GET_TITLE, {"Id": title_id})
        if not envelope.ok:
            await self._handle_rejection(HidiveRequestType.GET_TITLE, envelope)
            return None

        title = GetTitleData.model_validate(envelope.data).title
        return title_to_episodes(anime_id, title)

    async def fetch_episodes(
        self, anime_id: int, provider_ref: int | str
    ) -> list[Episode] | None:
        """Fetch episodes by title id, or by scraping the show page URL.

        Returns:
            list[Episode] | None: The episodes, or None when the title could not
                be resolved or Hidive rejected the request.
        """
        if isinstance(provider_ref, int) or provider_ref.strip().isdigit():
            return await self.fetch_episodes_by_id(anime_id, int(provider_ref))
        return await self.fetch_episodes_by_url(anime_id, provider_ref)

    async def fetch_stream(self, episode_ref: int | str) -> Stream | None:
        """Fetch the stream of an episode id (``"<title id>-<video key>"``).

        Returns:
            Stream | None: The stream, or None when Hidive rejected the request or
                offered no playlist.
        """
        title_id, video_key = parse_episode_id(str(episode_ref))
        envelope = await self.request(
            HidiveRequestType.GET_VIDEOS, {"TitleId": title_id, "VideoKey": video_key}
        )
        if not envelope.ok:
            await self._handle_rejection(HidiveRequestType.GET_VIDEOS, envelope)
            return None

        return videos_to_stream(HidiveVideos.model_validate(envelope.data))

    async def set_progress(self, episode_ref: int | str, seconds: int) -> None:
        """Hidive progress reporting is not supported."""
        raise ProviderOperationUnsupportedError(
            "Hidive does not support reporting episode progress"
        )
