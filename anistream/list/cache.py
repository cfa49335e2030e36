"""In-process projection of the user's list.

The cache is single-threaded and synchronous; every helper completes before
control returns to the event loop, so no locking is needed.
"""

from dataclasses import dataclass, field

from anistream import log
from anistream.models.anilist import ListEntry, MediaListStatus
from anistream.models.episode import EpisodeProgress, Provider

__all__ = ["CacheSnapshot", "ListCache"]

_MISSING = object()


@dataclass(frozen=True)
class CacheSnapshot:
    """Everything the cache knows about one media, captured before a mutation."""

    media_id: int
    entry: ListEntry | None
    status: MediaListStatus | None
    position: int
    anime_view: object
    episode_pointers: dict[tuple[int, Provider], int] = field(default_factory=dict)


class ListCache:
    """Entries by media id, grouped into one ordered bucket per status.

    A media id is in at most one bucket at a time. The cache also tracks the
    list entry shown on each cached anime view and the current episode of each
    ``(anime id, provider)`` pair.
    """

    def __init__(self) -> None:
        self.entries: dict[int, ListEntry] = {}
        self.buckets: dict[MediaListStatus, list[int]] = {
            status: [] for status in MediaListStatus
        }
        self.anime_views: dict[int, ListEntry | None] = {}
        self.episode_progress: dict[tuple[int, Provider], int] = {}

    def get_entry(self, media_id: int) -> ListEntry | None:
        return self.entries.get(media_id)

    def write_entry(self, entry: ListEntry) -> None:
        """Replace the cached entry without touching the buckets."""
        self.entries[entry.media_id] = entry

    def bucket(self, status: MediaListStatus) -> list[ListEntry]:
        """Entries listed under ``status``, in insertion order."""
        return [self.entries[media_id] for media_id in self.buckets[status]]

    def bucket_of(self, media_id: int) -> MediaListStatus | None:
        """The status bucket currently holding ``media_id``, if any."""
        for status, media_ids in self.buckets.items():
            if media_id in media_ids:
                return status
        return None

    def add_to_cache_list(self, entry: ListEntry) -> None:
        """Insert an entry into the bucket of its status.

        Any occurrence in another bucket is removed first.
        """
        self.remove_from_cache_list(entry.media_id)
        self.write_entry(entry)
        self.buckets[entry.status].append(entry.media_id)
        log.debug(f"Added $$'{entry.media_id}'$$ to $$'{entry.status}'$$")

    def remove_from_cache_list(self, media_id: int) -> None:
        """Remove a media from whichever bucket holds it; no-op when absent."""
        status = self.bucket_of(media_id)
        if status is None:
            return
        self.buckets[status].remove(media_id)
        log.debug(f"Removed $$'{media_id}'$$ from $$'{status}'$$")

    def remove_entry(self, media_id: int) -> None:
        """Forget a media entirely."""
        self.remove_from_cache_list(media_id)
        self.entries.pop(media_id, None)

    def write_episode_progress_to_cache(self, progress: EpisodeProgress) -> None:
        """Point the current episode of an anime/provider pair at ``progress``."""
        key = (progress.anime_id, progress.provider)
        self.episode_progress[key] = progress.episode_number

    def get_current_episode(self, anime_id: int, provider: Provider) -> int | None:
        return self.episode_progress.get((anime_id, provider))

    def get_anime_view_entry(self, media_id: int) -> ListEntry | None:
        return self.anime_views.get(media_id)

    def set_anime_view_entry(self, media_id: int, entry: ListEntry) -> None:
        self.anime_views[media_id] = entry

    def clear_anime_view_entry(self, media_id: int) -> None:
        """Drop the list entry of a cached anime view; no-op if not cached."""
        if self.anime_views.get(media_id) is not None:
            self.anime_views[media_id] = None

    def load(self, entries: list[ListEntry]) -> None:
        """Replace the whole list with ``entries``."""
        self.entries.clear()
        for media_ids in self.buckets.values():
            media_ids.clear()
        for entry in entries:
            self.add_to_cache_list(entry)
        log.debug(f"Loaded $$'{len(entries)}'$$ list entries")

    def snapshot(self, media_id: int) -> CacheSnapshot:
        """Capture the cached state of one media so it can be restored."""
        status = self.bucket_of(media_id)
        return CacheSnapshot(
            media_id=media_id,
            entry=self.entries.get(media_id),
            status=status,
            position=(
                self.buckets[status].index(media_id) if status is not None else -1
            ),
            anime_view=self.anime_views.get(media_id, _MISSING),
            episode_pointers={
                key: value
                for key, value in self.episode_progress.items()
                if key[0] == media_id
            },
        )

    def restore(self, snapshot: CacheSnapshot) -> None:
        """Put one media back into the state captured by `snapshot`."""
        media_id = snapshot.media_id
        self.remove_entry(media_id)

        if snapshot.entry is not None:
            self.write_entry(snapshot.entry)
        if snapshot.status is not None:
            self.buckets[snapshot.status].insert(snapshot.position, media_id)

        if snapshot.anime_view is _MISSING:
            self.anime_views.pop(media_id, None)
        else:
            self.anime_views[media_id] = snapshot.anime_view  # type: ignore[assignment]

        for key in [key for key in self.episode_progress if key[0] == media_id]:
            del self.episode_progress[key]
        self.episode_progress.update(snapshot.episode_pointers)
