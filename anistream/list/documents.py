"""GraphQL documents for the list-tracking service.

Every mutation aliases AniList's ``SaveMediaListEntry`` (or
``DeleteMediaListEntry``) result under its own operation name, so the payload
of ``UpdateStatus`` is found at ``data["UpdateStatus"]``.
"""

from textwrap import dedent

from anistream.models.anilist import ListEntry

__all__ = [
    "ADD_TO_LIST",
    "DELETE_FROM_LIST",
    "EDIT_LIST_ENTRY",
    "LIST_COLLECTION_QUERY",
    "LIST_ENTRY_QUERY",
    "START_REWATCHING",
    "UPDATE_PROGRESS",
    "UPDATE_SCORE",
    "UPDATE_STATUS",
    "VIEWER_QUERY",
]

LIST_ENTRY_FIELDS = ListEntry.model_dump_graphql()

ADD_TO_LIST = dedent(f"""
mutation AddToList($mediaId: Int) {{
    AddToList: SaveMediaListEntry(mediaId: $mediaId, status: PLANNING) {{
{LIST_ENTRY_FIELDS}
    }}
}}
""").strip()

DELETE_FROM_LIST = dedent("""
mutation DeleteFromList($id: Int) {
    DeleteFromList: DeleteMediaListEntry(id: $id) {
        deleted
    }
}
""").strip()

EDIT_LIST_ENTRY = dedent(f"""
mutation EditListEntry(
    $mediaId: Int, $status: MediaListStatus, $score: Float, $progress: Int, $repeat: Int
) {{
    EditListEntry: SaveMediaListEntry(
        mediaId: $mediaId, status: $status, score: $score, progress: $progress,
        repeat: $repeat
    ) {{
{LIST_ENTRY_FIELDS}
    }}
}}
""").strip()

UPDATE_STATUS = dedent(f"""
mutation UpdateStatus($mediaId: Int, $status: MediaListStatus) {{
    UpdateStatus: SaveMediaListEntry(mediaId: $mediaId, status: $status) {{
{LIST_ENTRY_FIELDS}
    }}
}}
""").strip()

UPDATE_SCORE = dedent(f"""
mutation UpdateScore($mediaId: Int, $score: Float) {{
    UpdateScore: SaveMediaListEntry(mediaId: $mediaId, score: $score) {{
{LIST_ENTRY_FIELDS}
    }}
}}
""").strip()

UPDATE_PROGRESS = dedent(f"""
mutation UpdateProgress($mediaId: Int, $progress: Int) {{
    UpdateProgress: SaveMediaListEntry(mediaId: $mediaId, progress: $progress) {{
{LIST_ENTRY_FIELDS}
    }}
}}
""").strip()

START_REWATCHING = dedent(f"""
mutation StartRewatching($mediaId: Int) {{
    StartRewatching: SaveMediaListEntry(
        mediaId: $mediaId, status: REPEATING, progress: 0
    ) {{
{LIST_ENTRY_FIELDS}
    }}
}}
""").strip()

LIST_ENTRY_QUERY = dedent(f"""
query ListEntryQuery($mediaId: Int) {{
    Media(id: $mediaId, type: ANIME) {{
        mediaListEntry {{
{LIST_ENTRY_FIELDS}
        }}
    }}
}}
""").strip()

LIST_COLLECTION_QUERY = dedent(f"""
query ListCollectionQuery($userId: Int) {{
    MediaListCollection(userId: $userId, type: ANIME) {{
        lists {{
            isCustomList
            entries {{
{LIST_ENTRY_FIELDS}
            }}
        }}
    }}
}}
""").strip()

VIEWER_QUERY = dedent("""
query {
    Viewer {
        id
        name
    }
}
""").strip()
