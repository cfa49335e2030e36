"""Crunchyroll session client."""

import asyncio
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, NoReturn

import aiohttp

from anistream import log
from anistream.config.settings import CrunchyrollConfig
from anistream.config.store import SettingsStore
from anistream.exceptions import (
    CrunchyrollRequestError,
    CrunchyrollSessionError,
    ProviderError,
    ProviderUnavailableError,
    StreamUnavailableError,
)
from anistream.models.crunchyroll import (
    AutocompleteResult,
    CollectionWithEpisodes,
    CrunchyrollCollection,
    CrunchyrollEnvelope,
    CrunchyrollErrorCode,
    CrunchyrollMedia,
    CrunchyrollSeries,
    CrunchyrollUser,
    Locale,
    LoginData,
    SearchResult,
    SeriesWithCollections,
    SessionData,
    StreamInfo,
)
from anistream.models.episode import Episode, Provider, Stream
from anistream.providers.base import ProviderClient
from anistream.providers.crunchyroll.normalize import (
    MEDIA_FIELDS,
    normalize_collection,
)

__all__ = ["CrunchyrollClient", "CrunchyrollSession"]

_MEDIA_ID_PATTERN = re.compile(r"(\d+)/?(?:[?#].*)?$")


@dataclass
class CrunchyrollSession:
    """Authentication state of the Crunchyroll client."""

    device_id: str
    session_id: str = ""
    country_code: str | None = None
    locales: list[Locale] = field(default_factory=list)


class CrunchyrollClient(ProviderClient):
    """Client for the Crunchyroll JSON API.

    Every request is a GET carrying the session id, locale and device
    identifiers. Responses are wrapped in an envelope whose ``error`` flag and
    ``code`` distinguish failures; a ``bad_session`` code re-creates the session
    in place before the error reaches the caller.
    """

    PROVIDER = Provider.CRUNCHYROLL

    API_URL = "https://api.crunchyroll.com"
    API_VERSION = "0"
    DEFAULT_LOCALE = "enUS"
    DEVICE_TYPE = "com.crunchyroll.windows.desktop"
    SESSION_VERSION = "1.1"
    LOCALE_RETRY_DELAY = 1.5
    COOKIE_DOMAIN = "crunchyroll.com"

    def __init__(self, store: SettingsStore, config: CrunchyrollConfig) -> None:
        """Initialize the Crunchyroll client.

        Args:
            store (SettingsStore): Durable store for tokens and the user.
            config (CrunchyrollConfig): Access token and session options.
        """
        super().__init__(store)
        self.config = config

        device_id = store.get("device_id")
        if not device_id:
            device_id = str(uuid.uuid4())
            store.set("device_id", device_id)

        self.session = CrunchyrollSession(
            device_id=device_id,
            session_id=store.get("crunchyroll.session_id", ""),
            country_code=store.get("crunchyroll.country"),
        )

    @property
    def is_connected(self) -> bool:
        """Whether a Crunchyroll account is linked."""
        return "crunchyroll.user" in self.store

    @property
    def locales(self) -> list[Locale]:
        """Locales available to the current session."""
        return self.session.locales

    @property
    def locale(self) -> str:
        """The user's preferred locale for streams."""
        return self.store.get("crunchyroll.locale", self.config.locale)

    def _url(self, request_type: str) -> str:
        return f"{self.API_URL}/{request_type}.{self.API_VERSION}.json"

    async def _get(self, url: str, params: dict[str, Any]) -> CrunchyrollEnvelope:
        """Send a GET request and parse the response envelope.

        Args:
            url (str): Absolute request URL.
            params (dict[str, Any]): Query parameters; None values are dropped.

        Returns:
            CrunchyrollEnvelope: The parsed envelope, successful or not.

        Raises:
            ProviderUnavailableError: If Crunchyroll cannot be reached or the body
                is not JSON.
        """
        query = {k: str(v) for k, v in params.items() if v is not None}
        session = await self._get_session()

        try:
            async with session.get(url, params=query) as response:
                body = await response.json(content_type=None)
        except (TimeoutError, aiohttp.ClientError, ValueError) as e:
            log.error(f"Request to $$'{url}'$$ failed: {e}")
            raise ProviderUnavailableError("Could not reach Crunchyroll") from e

        return CrunchyrollEnvelope.model_validate(body or {})

    async def _request(
        self,
        request_type: str,
        params: dict[str, Any] | None = None,
        use_custom_locale: bool = False,
    ) -> CrunchyrollEnvelope:
        """Send an API request with the session and device parameters attached."""
        query: dict[str, Any] = {
            "session_id": self.session.session_id or None,
            "locale": self.locale if use_custom_locale else self.DEFAULT_LOCALE,
            "device_id": self.session.device_id,
            "device_type": self.DEVICE_TYPE,
            **(params or {}),
        }
        log.debug(f"Requesting $$'{request_type}'$$ $${{params: {params}}}$$")
        return await self._get(self._url(request_type), query)

    async def _raise_for_error(self, envelope: CrunchyrollEnvelope) -> NoReturn:
        """Raise the error carried by ``envelope``, reloading bad sessions first."""
        code = envelope.error_code
        message = envelope.message or str(code)

        match code:
            case CrunchyrollErrorCode.BAD_SESSION:
                log.warning("Session is no longer valid, creating a new one")
                self.session.session_id = ""
                await self.create_session()
                raise CrunchyrollSessionError(code, message)
            case (
                CrunchyrollErrorCode.BAD_REQUEST
                | CrunchyrollErrorCode.OBJECT_NOT_FOUND
                | CrunchyrollErrorCode.FORBIDDEN
            ):
                raise CrunchyrollRequestError(code, message)

    async def _create_session_from_url(
        self, url: str, auth: str | None = None
    ) -> SessionData:
        envelope = await self._get(
            url,
            {
                "access_token": self.config.access_token.get_secret_value(),
                "device_type": self.DEVICE_TYPE,
                "device_id": self.session.device_id,
                "version": self.SESSION_VERSION,
                "auth": auth or self.store.get("crunchyroll.refresh_token"),
            },
        )
        if envelope.error:
            raise CrunchyrollRequestError(
                envelope.error_code, envelope.message or "Could not create session"
            )

        data = SessionData.model_validate(envelope.data)
        self.session.session_id = data.session_id
        self.session.country_code = data.country_code

        self.store.set("crunchyroll.session_id", data.session_id)
        self.store.set("crunchyroll.country", data.country_code)

        return data

    async def create_session(self, auth: str | None = None) -> SessionData | None:
        """Create a Crunchyroll session, through the unblocker when enabled.

        Failures are logged and never raised, so an unreachable Crunchyroll
        does not prevent the application from starting.

        Args:
            auth (str | None): Login auth token; defaults to the stored refresh
                token.

        Returns:
            SessionData | None: The new session, or None if it could not be created.
        """
        data: SessionData | None = None

        if self.config.unblocker:
            try:
                data = await self._create_session_from_url(
                    self.config.unblocker_url, auth
                )
            except ProviderError as e:
                if self.is_connected:
                    log.warning(f"Could not create US session: {e}")
                else:
                    log.debug(f"Could not create US session: {e}")

        if data is None:
            try:
                data = await self._create_session_from_url(
                    self._url("start_session"), auth
                )
            except ProviderError as e:
                log.error(f"Could not create session: {e}")
                return None

        log.debug(
            f"Created session $${{country: {data.country_code}, "
            f"unblocked: {self.config.unblocker}}}$$"
        )

        if self.is_connected:
            try:
                self.session.locales = await self.fetch_locales()
            except ProviderError as e:
                log.warning(f"Could not fetch locales: {e}")

        return data

    async def fetch_locales(self) -> list[Locale]:
        """Fetch the available locales, retrying once after a short delay.

        Raises:
            CrunchyrollRequestError: If both attempts are rejected.
        """
        envelope = await self._request("list_locales")

        if envelope.error:
            await asyncio.sleep(self.LOCALE_RETRY_DELAY)
            envelope = await self._request("list_locales")
            if envelope.error:
                raise CrunchyrollRequestError(
                    envelope.error_code, envelope.message or "Could not fetch locales"
                )

        return [Locale.model_validate(item) for item in envelope.data or []]

    async def connect(self, user: str, password: str) -> CrunchyrollUser | None:
        """Log in and persist the resulting user and tokens.

        Args:
            user (str): Account name or e-mail.
            password (str): Account password.

        Returns:
            CrunchyrollUser | None: The logged in user, or None on failure.
        """
        form = aiohttp.FormData()
        form.add_field("account", user)
        form.add_field("password", password)
        form.add_field("session_id", self.session.session_id)

        session = await self._get_session()
        try:
            async with session.post(self._url("login"), data=form) as response:
                body = await response.json(content_type=None)
        except (TimeoutError, aiohttp.ClientError, ValueError) as e:
            log.error(f"Could not log in: {e}")
            return None
        finally:
            session.cookie_jar.clear_domain(self.COOKIE_DOMAIN)

        envelope = CrunchyrollEnvelope.model_validate(body or {})
        if envelope.error:
            log.error(f"Could not log in: {envelope.message}")
            return None

        login = LoginData.model_validate(envelope.data)
        new_session = await self.create_session(auth=login.auth)
        session_id = new_session.session_id if new_session else ""

        self.session.session_id = session_id
        self.store.set("crunchyroll.session_id", session_id)
        self.store.set("crunchyroll.refresh_token", login.auth)
        self.store.set(
            "crunchyroll.user",
            {
                "id": int(login.user.user_id),
                "name": login.user.username,
                "url": f"https://www.crunchyroll.com/user/{login.user.username}",
            },
        )

        log.success(f"Logged in as $$'{login.user.username}'$$")
        return login.user

    async def log_out(self) -> None:
        """Drop the account link and fall back to an anonymous session.

        The user is removed only after the new session exists, so it does not
        look logged out before then.
        """
        self.store.set("crunchyroll.session_id", None)
        self.store.set("crunchyroll.refresh_token", None)
        self.session.session_id = ""

        session = await self._get_session()
        session.cookie_jar.clear_domain(self.COOKIE_DOMAIN)

        await self.create_session()

        self.store.delete("crunchyroll.user")
        log.info("Logged out")

    async def set_locale(self, locale: str) -> None:
        """Persist the preferred locale and re-create the session with it."""
        self.store.set("crunchyroll.locale", locale)
        await self.create_session()

    async def fetch_series_and_collections(
        self, anime_id: int, series_id: int
    ) -> SeriesWithCollections:
        """Fetch a series with every collection and its episodes."""
        envelope = await self._request("info", {"series_id": series_id})
        if envelope.error:
            await self._raise_for_error(envelope)

        series = CrunchyrollSeries.model_validate(envelope.data)
        collections = await self.fetch_collections_and_episodes(anime_id, series_id)

        return SeriesWithCollections(
            id=anime_id,
            series_id=series_id,
            title=series.name,
            description=series.description,
            url=series.url,
            landscape_image=(
                series.landscape_image.full_url if series.landscape_image else None
            ),
            portrait_image=(
                series.portrait_image.full_url if series.portrait_image else None
            ),
            collections=collections,
        )

    async def fetch_episode(self, media_id: str) -> CrunchyrollMedia | None:
        """Fetch a single media.

        Returns:
            CrunchyrollMedia | None: The media, or None when it does not exist or
                is not available to this session.
        """
        envelope = await self._request(
            "info", {"media_id": media_id, "fields": ",".join(MEDIA_FIELDS)}
        )

        if envelope.error:
            match envelope.error_code:
                case (
                    CrunchyrollErrorCode.OBJECT_NOT_FOUND
                    | CrunchyrollErrorCode.FORBIDDEN
                ):
                    return None
                case (
                    CrunchyrollErrorCode.BAD_SESSION | CrunchyrollErrorCode.BAD_REQUEST
                ):
                    await self._raise_for_error(envelope)

        return CrunchyrollMedia.model_validate(envelope.data)

    async def fetch_collections_and_episodes(
        self, anime_id: int, series_id: int
    ) -> list[CollectionWithEpisodes]:
        """Fetch every collection of a series together with its episodes."""
        envelope = await self._request("list_collections", {"series_id": series_id})
        if envelope.error:
            await self._raise_for_error(envelope)

        collections = [
            CrunchyrollCollection.model_validate(item) for item in envelope.data or []
        ]
        episodes = await asyncio.gather(
            *(
                self.fetch_episodes_of_collection(anime_id, c.collection_id)
                for c in collections
            )
        )

        return [
            CollectionWithEpisodes(**collection.model_dump(), episodes=eps)
            for collection, eps in zip(collections, episodes, strict=True)
        ]

    async def fetch_episodes_of_collection(
        self, anime_id: int, collection_id: str
    ) -> list[Episode]:
        """Fetch and normalize the episodes of one collection."""
        envelope = await self._request(
            "list_media",
            {
                "collection_id": collection_id,
                "limit": 1000,
                "fields": ",".join(MEDIA_FIELDS),
            },
        )
        if envelope.error:
            await self._raise_for_error(envelope)

        medias = [CrunchyrollMedia.model_validate(item) for item in envelope.data or []]
        return normalize_collection(anime_id, medias)

    async def fetch_season_from_episode(
        self, anime_id: int, media_id: str
    ) -> list[Episode]:
        """Fetch the episodes of the collection a media belongs to."""
        media = await self.fetch_episode(media_id)
        if media is None or not media.collection_id:
            return []

        return await self.fetch_episodes_of_collection(anime_id, media.collection_id)

    @staticmethod
    def resolve_media_id(provider_ref: int | str) -> str | None:
        """Extract a media id from a numeric reference or an episode URL.

        Episode URLs end in the media id, e.g.
        ``https://www.crunchyroll.com/show/episode-1-title-123456``.
        """
        if isinstance(provider_ref, int):
            return str(provider_ref)

        ref = provider_ref.strip()
        if ref.isdigit():
            return ref

        match = _MEDIA_ID_PATTERN.search(ref)
        return match.group(1) if match else None

    async def fetch_episodes(
        self, anime_id: int, provider_ref: int | str
    ) -> list[Episode] | None:
        """Fetch the season containing the referenced episode.

        Args:
            anime_id (int): AniList id the episodes belong to.
            provider_ref (int | str): Media id or episode URL.

        Returns:
            list[Episode] | None: The normalized season, or None when the reference
                cannot be resolved to a media id.
        """
        media_id = self.resolve_media_id(provider_ref)
        if media_id is None:
            log.warning(f"Could not find a media id in $$'{provider_ref}'$$")
            return None

        return await self.fetch_season_from_episode(anime_id, media_id)

    async def fetch_stream(self, episode_ref: int | str) -> Stream:
        """Fetch the stream of a media in the user's locale.

        Raises:
            StreamUnavailableError: If Crunchyroll returned no stream.
        """
        envelope = await self._request(
            "info",
            {
                "media_id": str(episode_ref),
                "fields": "media.stream_data,media.playhead",
            },
            use_custom_locale=True,
        )
        if envelope.error:
            await self._raise_for_error(envelope)

        info = StreamInfo.model_validate(envelope.data)
        streams = info.stream_data.streams if info.stream_data else []

        if not streams:
            raise StreamUnavailableError(
                "Did not receive stream data from Crunchyroll."
            )

        return Stream(url=streams[0].url, subtitles=[], progress=info.playhead)

    async def set_progress(self, episode_ref: int | str, seconds: int) -> None:
        """Report the playhead of a media.

        Raises:
            ProviderError: If Crunchyroll rejected the update.
        """
        envelope = await self._request(
            "log",
            {
                "event": "playback_status",
                "media_id": episode_ref,
                "playhead": seconds,
            },
        )
        if envelope.error:
            raise ProviderError("Could not update progress of episode!")

    async def search(self, query: str) -> list[SearchResult]:
        """Search anime series by name."""
        envelope = await self._request(
            "autocomplete", {"q": query, "media_types": "anime", "limit": 10}
        )
        if envelope.error:
            await self._raise_for_error(envelope)

        results = []
        for item in envelope.data or []:
            result = AutocompleteResult.model_validate(item)
            portrait = result.portrait_image
            landscape = result.landscape_image
            results.append(
                SearchResult(
                    id=int(result.series_id),
                    title=result.name,
                    description=result.description,
                    url=result.url,
                    portrait_image=(
                        (portrait.large_url or portrait.medium_url)
                        if portrait
                        else None
                    ),
                    landscape_image=(
                        (
                            landscape.full_url
                            or landscape.large_url
                            or landscape.medium_url
                        )
                        if landscape
                        else None
                    ),
                )
            )
        return results
