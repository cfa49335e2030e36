"""Tests for the list-tracking service client."""

from types import SimpleNamespace
from typing import Any

import aiohttp
import pytest

from anistream.exceptions import ListMutationError, ListRequestError
from anistream.list import client as client_module
from anistream.list.client import ListServiceClient
from anistream.list.documents import ADD_TO_LIST, LIST_ENTRY_FIELDS
from anistream.models.anilist import MediaListStatus


def _patch_make_request(
    monkeypatch: pytest.MonkeyPatch, responses: list[dict]
) -> list[tuple[str, dict | None]]:
    calls: list[tuple[str, dict | None]] = []

    async def fake_make_request(
        self: ListServiceClient, query: str, variables: dict | None = None
    ) -> dict:
        calls.append((query, variables))
        return responses.pop(0)

    monkeypatch.setattr(ListServiceClient, "_make_request", fake_make_request)
    return calls


def test_list_entry_selection_aliases_repeat() -> None:
    """The rewatch count is selected from AniList's ``repeat`` field."""
    assert "rewatched: repeat" in LIST_ENTRY_FIELDS
    assert "mediaId" in LIST_ENTRY_FIELDS
    assert "AddToList: SaveMediaListEntry" in ADD_TO_LIST


@pytest.mark.asyncio
async def test_execute_raises_graphql_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    """GraphQL errors become a ListMutationError carrying the raw errors."""
    errors = [{"message": "Invalid token", "status": 400}]
    _patch_make_request(monkeypatch, [{"data": None, "errors": errors}])
    client = ListServiceClient(token="token")

    with pytest.raises(ListMutationError) as excinfo:
        await client.execute("query { Viewer { id } }")

    assert str(excinfo.value) == "Invalid token"
    assert excinfo.value.errors == errors


@pytest.mark.asyncio
async def test_save_entry_returns_aliased_payload(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """The entry is read from the operation's alias."""
    calls = _patch_make_request(
        monkeypatch,
        [
            {
                "data": {
                    "UpdateStatus": {
                        "id": 99,
                        "mediaId": 1,
                        "status": "COMPLETED",
                        "score": 0,
                        "progress": 12,
                        "rewatched": 1,
                    }
                }
            }
        ],
    )
    client = ListServiceClient(token="token")

    entry = await client.save_entry("UpdateStatus", "mutation", {"mediaId": 1})

    assert entry.id == 99
    assert entry.media_id == 1
    assert entry.status == MediaListStatus.COMPLETED
    assert entry.rewatched == 1
    assert calls == [("mutation", {"mediaId": 1})]


@pytest.mark.asyncio
async def test_save_entry_without_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    """A response without the aliased entry is a mutation error."""
    _patch_make_request(monkeypatch, [{"data": {"UpdateStatus": None}}])

    with pytest.raises(ListMutationError):
        await ListServiceClient(token="token").save_entry(
            "UpdateStatus", "mutation", {"mediaId": 1}
        )


@pytest.mark.asyncio
async def test_malformed_entries_are_mutation_errors(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Entries missing required fields raise ListMutationError, not pydantic's."""
    _patch_make_request(
        monkeypatch,
        [
            {"data": {"UpdateStatus": {"id": 7, "status": "COMPLETED"}}},
            {"data": {"Media": {"mediaListEntry": {"id": 7, "status": "BOGUS"}}}},
            {
                "data": {
                    "MediaListCollection": {
                        "lists": [{"isCustomList": False, "entries": [{"id": 1}]}]
                    }
                }
            },
        ],
    )
    client = ListServiceClient(token="token")

    with pytest.raises(ListMutationError, match="UpdateStatus"):
        await client.save_entry("UpdateStatus", "mutation", {"mediaId": 1})
    with pytest.raises(ListMutationError):
        await client.fetch_entry(7)
    with pytest.raises(ListMutationError):
        await client.fetch_entries(user_id=1)


@pytest.mark.asyncio
async def test_delete_and_fetch_entry(monkeypatch: pytest.MonkeyPatch) -> None:
    """Deletion reports the service's flag; missing entries resolve to None."""
    calls = _patch_make_request(
        monkeypatch,
        [
            {"data": {"DeleteFromList": {"deleted": True}}},
            {"data": {"Media": {"mediaListEntry": None}}},
        ],
    )
    client = ListServiceClient(token="token")

    assert await client.delete_entry(70) is True
    assert await client.fetch_entry(7) is None
    assert calls[0][1] == {"id": 70}
    assert calls[1][1] == {"mediaId": 7}


@pytest.mark.asyncio
async def test_fetch_entries_skips_custom_lists(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Entries of custom lists are not returned; the viewer id is cached."""
    collection = {
        "data": {
            "MediaListCollection": {
                "lists": [
                    {
                        "isCustomList": False,
                        "entries": [{"id": 1, "mediaId": 10, "status": "CURRENT"}],
                    },
                    {
                        "isCustomList": True,
                        "entries": [{"id": 1, "mediaId": 10, "status": "CURRENT"}],
                    },
                    {
                        "isCustomList": False,
                        "entries": [{"id": 2, "mediaId": 20, "status": "PLANNING"}],
                    },
                ]
            }
        }
    }
    calls = _patch_make_request(
        monkeypatch,
        [{"data": {"Viewer": {"id": 5, "name": "user"}}}, collection, collection],
    )
    client = ListServiceClient(token="token")

    entries = await client.fetch_entries()
    await client.fetch_entries()

    assert [entry.media_id for entry in entries] == [10, 20]
    assert len(calls) == 3
    assert calls[1][1] == {"userId": 5}


class FakeResponse:
    def __init__(self, status: int, payload: Any = None, headers=None) -> None:
        self.status = status
        self.payload = payload
        self.headers = headers or {}

    async def json(self, content_type=None):
        return self.payload

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=SimpleNamespace(  # type: ignore[arg-type]
                    real_url="https://graphql.anilist.co"
                ),
                history=(),
                status=self.status,
            )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    closed = False

    def __init__(self, responses: list[Any]) -> None:
        self.responses = responses
        self.posts: list[dict] = []

    def post(self, url: str, json: dict):
        self.posts.append(json)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    delays: list[float] = []

    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(client_module, "asyncio", SimpleNamespace(sleep=fake_sleep))
    return delays


@pytest.mark.asyncio
async def test_make_request_retries_rate_limit(no_sleep: list[float]) -> None:
    """429 responses wait for Retry-After before trying again."""
    client = ListServiceClient(token="token")
    client._session = FakeSession(  # type: ignore[assignment]
        [
            FakeResponse(429, headers={"Retry-After": "2"}),
            FakeResponse(200, {"data": {"ok": True}}),
        ]
    )

    assert await client._make_request("query") == {"data": {"ok": True}}
    assert no_sleep == [3]


@pytest.mark.asyncio
async def test_make_request_returns_graphql_errors(no_sleep: list[float]) -> None:
    """Error bodies are returned as-is even with an error status."""
    client = ListServiceClient(token="token")
    payload = {"data": None, "errors": [{"message": "Invalid token"}]}
    session = FakeSession([FakeResponse(400, payload)])
    client._session = session  # type: ignore[assignment]

    assert await client._make_request("query") == payload
    assert no_sleep == []


@pytest.mark.asyncio
async def test_make_request_http_error(no_sleep: list[float]) -> None:
    """HTTP errors without GraphQL errors raise ListRequestError."""
    client = ListServiceClient(token="token")
    client._session = FakeSession(  # type: ignore[assignment]
        [FakeResponse(500, {"message": "boom"})]
    )

    with pytest.raises(ListRequestError):
        await client._make_request("query")


@pytest.mark.asyncio
async def test_make_request_gives_up_after_three_tries(no_sleep: list[float]) -> None:
    """Connection errors are retried until the third attempt fails."""
    client = ListServiceClient(token="token")
    session = FakeSession([aiohttp.ClientConnectionError("down") for _ in range(3)])
    client._session = session  # type: ignore[assignment]

    with pytest.raises(ListRequestError):
        await client._make_request("query", {"mediaId": 1})

    assert len(session.posts) == 3
    assert session.posts[0] == {"query": "query", "variables": {"mediaId": 1}}
    assert no_sleep == [1, 1, 1]
