"""List-tracking service client."""

import asyncio

import aiohttp
from limiter import Limiter
from pydantic import ValidationError

from anistream import __version__, log
from anistream.exceptions import ListMutationError, ListRequestError
from anistream.list.documents import (
    DELETE_FROM_LIST,
    LIST_COLLECTION_QUERY,
    LIST_ENTRY_QUERY,
    VIEWER_QUERY,
)
from anistream.models.anilist import ListEntry

__all__ = ["ListServiceClient"]

# The rate limit for the AniList API *should* be 90 requests per minute, but in practice
# it seems to be around 30 requests per minute
list_limiter = Limiter(rate=30 / 60, capacity=3, jitter=False)


class ListServiceClient:
    """Client for the AniList GraphQL API.

    Sends list mutations and the queries used to hydrate the local list cache.
    All requests share a single aiohttp session and obey a conservative rate
    limit.
    """

    API_URL = "https://graphql.anilist.co"

    def __init__(self, token: str | None, api_url: str | None = None) -> None:
        """Initialize the list client.

        Args:
            token (str | None): AniList access token. Mutations require one;
                without it only public queries succeed.
            api_url (str | None): GraphQL endpoint, defaults to AniList.
        """
        self.token = token
        self.api_url = api_url or self.API_URL
        self._session: aiohttp.ClientSession | None = None
        self._viewer_id: int | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session.

        Returns:
            aiohttp.ClientSession: The active session for making HTTP requests.
        """
        if self._session is None or self._session.closed:
            headers = {
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": f"AniStream/{__version__}",
            }
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"

            self._session = aiohttp.ClientSession(headers=headers)

        return self._session

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def execute(self, query: str, variables: dict | None = None) -> dict:
        """Run a GraphQL document and return its ``data`` object.

        Raises:
            ListMutationError: If the service answered with GraphQL errors.
            ListRequestError: If the service could not be reached.
        """
        response = await self._make_request(query, variables)

        if response.get("errors"):
            errors = response["errors"]
            message = "; ".join(str(error.get("message", error)) for error in errors)
            log.error(f"AniList rejected the request: {message}")
            raise ListMutationError(message, errors)

        return response.get("data") or {}

    async def save_entry(
        self, operation: str, document: str, variables: dict
    ) -> ListEntry:
        """Send a ``SaveMediaListEntry`` based mutation.

        Args:
            operation (str): Alias the document returns its entry under.
            document (str): The mutation document.
            variables (dict): Mutation variables.

        Returns:
            ListEntry: The authoritative entry returned by the service.
        """
        log.debug(f"Sending $$'{operation}'$$ with $${variables}$$")
        data = await self.execute(document, variables)

        payload = data.get(operation)
        if not payload:
            raise ListMutationError(f"{operation} returned no list entry")
        return self._parse_entry(operation, payload)

    async def delete_entry(self, entry_id: int) -> bool:
        """Delete a list entry by its (list entry, not media) id."""
        log.debug(f"Sending $$'DeleteFromList'$$ with $${{id: {entry_id}}}$$")
        data = await self.execute(DELETE_FROM_LIST, {"id": entry_id})
        return bool((data.get("DeleteFromList") or {}).get("deleted"))

    async def fetch_entry(self, media_id: int) -> ListEntry | None:
        """Fetch the viewer's entry for a media, None if it is not on the list."""
        data = await self.execute(LIST_ENTRY_QUERY, {"mediaId": media_id})
        payload = (data.get("Media") or {}).get("mediaListEntry")
        return self._parse_entry("Media", payload) if payload else None

    async def viewer_id(self) -> int:
        """Id of the user the token belongs to."""
        if self._viewer_id is None:
            data = await self.execute(VIEWER_QUERY)
            self._viewer_id = int(data["Viewer"]["id"])
        return self._viewer_id

    async def fetch_entries(self, user_id: int | None = None) -> list[ListEntry]:
        """Fetch every entry of a user's anime list, excluding custom lists.

        Args:
            user_id (int | None): The user, defaults to the viewer.
        """
        if user_id is None:
            user_id = await self.viewer_id()

        data = await self.execute(LIST_COLLECTION_QUERY, {"userId": user_id})
        lists = (data.get("MediaListCollection") or {}).get("lists") or []
        return [
            self._parse_entry("MediaListCollection", entry)
            for list_data in lists
            if not list_data.get("isCustomList")
            for entry in list_data.get("entries") or []
        ]

    @staticmethod
    def _parse_entry(operation: str, payload: dict) -> ListEntry:
        try:
            return ListEntry.model_validate(payload)
        except ValidationError as e:
            raise ListMutationError(
                f"{operation} returned a malformed list entry: {e}"
            ) from e

    @list_limiter()
    async def _make_request(
        self, query: str, variables: dict | None = None, retry_count: int = 0
    ) -> dict:
        """Makes a rate-limited request to the AniList GraphQL API.

        Handles rate limiting, authentication, and automatic retries for
        rate limit exceeded responses.

        Args:
            query (str): GraphQL query string
            variables (dict | None): Variables for the GraphQL query
            retry_count (int): Number of retries attempted (used for temporary errors)

        Returns:
            dict: JSON response from the API, including any GraphQL ``errors``

        Raises:
            ListRequestError: If the request still fails after 3 tries

        Note:
            - Implements rate limiting of 30 requests per minute
            - Automatically retries after waiting if rate limit is exceeded
            - Responses carrying GraphQL errors are returned, not retried
        """
        if retry_count >= 3:
            raise ListRequestError("Failed to make request after 3 tries")

        if variables is None:
            variables = {}

        session = await self._get_session()

        try:
            async with session.post(
                self.api_url, json={"query": query, "variables": variables}
            ) as response:
                if response.status == 429:  # Handle rate limit retries
                    retry_after = int(response.headers.get("Retry-After", 60))
                    log.warning(f"Rate limit exceeded, waiting {retry_after} seconds")
                    await asyncio.sleep(retry_after + 1)
                    return await self._make_request(
                        query=query, variables=variables, retry_count=retry_count + 1
                    )
                elif response.status == 502:  # Bad Gateway
                    log.warning("Received 502 Bad Gateway, retrying")
                    await asyncio.sleep(1)
                    return await self._make_request(
                        query=query, variables=variables, retry_count=retry_count + 1
                    )

                payload = await response.json(content_type=None)
                if isinstance(payload, dict) and payload.get("errors"):
                    return payload

                try:
                    response.raise_for_status()
                except aiohttp.ClientResponseError as e:
                    log.error("Failed to make request to AniList API")
                    log.error(f"\t\t{payload}")
                    raise ListRequestError(str(e)) from e

                return payload

        except (TimeoutError, aiohttp.ClientError, ValueError):
            log.error("Connection error while making request to AniList API")
            await asyncio.sleep(1)
            return await self._make_request(
                query=query, variables=variables, retry_count=retry_count + 1
            )
