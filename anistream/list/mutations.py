"""Optimistic list mutations.

Each mutation runs in three phases:

1. Stage: snapshot the cached state of the media, then write the projected
   entry (last cached entry, or sentinel defaults, overlaid with the change)
   into the cache, moving it between status buckets when its status changes.
2. Dispatch the GraphQL mutation.
3. Commit the entry returned by the service the same way.

When dispatch fails the staged projection is kept unless ``revert_on_error`` is
set, in which case the snapshot is restored. The error is raised either way.
"""

from collections.abc import Callable
from typing import Any

from anistream import log
from anistream.exceptions import ListError, ProgressValidationError
from anistream.list.cache import CacheSnapshot, ListCache
from anistream.list.client import ListServiceClient
from anistream.list.documents import (
    ADD_TO_LIST,
    EDIT_LIST_ENTRY,
    START_REWATCHING,
    UPDATE_PROGRESS,
    UPDATE_SCORE,
    UPDATE_STATUS,
)
from anistream.models.anilist import EditListEntryOptions, ListEntry, MediaListStatus
from anistream.models.episode import EpisodeProgress, Provider

__all__ = ["ListMutations"]

# AniList calls the rewatch counter ``repeat``
_VARIABLE_NAMES = {"rewatched": "repeat"}


class ListMutations:
    """List mutations applied optimistically to a `ListCache`."""

    def __init__(
        self,
        client: ListServiceClient,
        cache: ListCache,
        revert_on_error: bool = False,
    ) -> None:
        """Initialize the mutation layer.

        Args:
            client (ListServiceClient): Client the mutations are sent with.
            cache (ListCache): The local list projection to keep in sync.
            revert_on_error (bool): Restore the pre-mutation cache state when a
                mutation fails, instead of keeping the optimistic write.
        """
        self.client = client
        self.cache = cache
        self.revert_on_error = revert_on_error

    def project(self, media_id: int, changes: dict[str, Any]) -> ListEntry:
        """The entry the cache would hold if ``changes`` succeeded."""
        base = self.cache.get_entry(media_id) or ListEntry(media_id=media_id)
        return base.model_copy(update=changes)

    def _apply(self, entry: ListEntry, move: bool) -> None:
        if move:
            self.cache.remove_from_cache_list(entry.media_id)
            self.cache.add_to_cache_list(entry)
        else:
            self.cache.write_entry(entry)

    async def _mutate(
        self,
        operation: str,
        document: str,
        media_id: int,
        changes: dict[str, Any],
        *,
        always_move: bool = False,
        on_apply: Callable[[ListEntry], None] | None = None,
        variables: dict[str, Any] | None = None,
    ) -> ListEntry:
        """Stage, dispatch and commit a ``SaveMediaListEntry`` mutation.

        Args:
            operation (str): Operation name the result is aliased under.
            document (str): The mutation document.
            media_id (int): The media being changed.
            changes (dict[str, Any]): Changed `ListEntry` fields.
            always_move (bool): Re-insert the entry into its status bucket even
                when the status did not change.
            on_apply (Callable[[ListEntry], None] | None): Extra cache writes
                performed on both the projection and the committed entry.
            variables (dict[str, Any] | None): Mutation variables, built from
                ``media_id`` and ``changes`` when omitted.

        Returns:
            ListEntry: The committed entry.
        """
        snapshot = self.cache.snapshot(media_id)
        old_status = self.project(media_id, {}).status

        projected = self.project(media_id, changes)
        self._apply(projected, always_move or projected.status != old_status)
        if on_apply:
            on_apply(projected)

        if variables is None:
            variables = {"mediaId": media_id}
            for name, value in changes.items():
                variables[_VARIABLE_NAMES.get(name, name)] = value

        try:
            entry = await self.client.save_entry(operation, document, variables)
        except ListError as e:
            self._handle_failure(operation, media_id, snapshot, e)
            raise

        self._apply(entry, always_move or entry.status != old_status)
        if on_apply:
            on_apply(entry)

        log.info(f"{operation} succeeded for $$'{media_id}'$$: {entry}")
        return entry

    def _handle_failure(
        self, operation: str, media_id: int, snapshot: CacheSnapshot, error: Exception
    ) -> None:
        log.error(f"{operation} failed for $$'{media_id}'$$: {error}")
        if self.revert_on_error:
            self.cache.restore(snapshot)
            log.debug(f"Reverted cached entry of $$'{media_id}'$$")

    async def add_to_list(self, media_id: int) -> ListEntry:
        """Add a media to the list, as planned unless it already has an entry.

        The committed entry also becomes the list entry of the cached anime view.
        """
        entry = await self._mutate(
            "AddToList",
            ADD_TO_LIST,
            media_id,
            {},
            always_move=True,
            variables={"mediaId": media_id},
        )
        self.cache.set_anime_view_entry(media_id, entry)
        return entry

    async def delete_from_list(self, media_id: int) -> bool:
        """Remove a media from the list.

        Returns:
            bool: Whether the service reported the entry as deleted. False when
                the media was not on the list.
        """
        snapshot = self.cache.snapshot(media_id)
        cached = self.cache.get_entry(media_id)
        entry_id = cached.id if cached else -1

        self.cache.remove_from_cache_list(media_id)
        self.cache.clear_anime_view_entry(media_id)

        try:
            if entry_id < 0:
                remote = await self.client.fetch_entry(media_id)
                if remote is None:
                    log.info(f"$$'{media_id}'$$ is not on the list")
                    self.cache.remove_entry(media_id)
                    return False
                entry_id = remote.id

            deleted = await self.client.delete_entry(entry_id)
        except ListError as e:
            self._handle_failure("DeleteFromList", media_id, snapshot, e)
            raise

        self.cache.remove_entry(media_id)
        log.info(f"DeleteFromList succeeded for $$'{media_id}'$$")
        return deleted

    async def edit_list_entry(
        self, media_id: int, options: EditListEntryOptions
    ) -> ListEntry:
        """Change any combination of status, score, progress and rewatch count."""
        return await self._mutate(
            "EditListEntry", EDIT_LIST_ENTRY, media_id, options.changes()
        )

    async def update_status(self, media_id: int, status: MediaListStatus) -> ListEntry:
        """Change the status of an entry, moving it to the matching bucket."""
        return await self._mutate(
            "UpdateStatus",
            UPDATE_STATUS,
            media_id,
            {"status": status},
            always_move=True,
        )

    async def update_score(self, media_id: int, score: float) -> ListEntry:
        return await self._mutate(
            "UpdateScore", UPDATE_SCORE, media_id, {"score": score}
        )

    async def update_progress(self, progress: EpisodeProgress) -> ListEntry:
        """Mark an episode as the latest watched one.

        Also moves the cached current-episode pointer of the anime/provider pair.

        Raises:
            ProgressValidationError: If the episode number is negative. Nothing is
                sent and the cache is left untouched.
        """
        if progress.episode_number < 0:
            log.error(
                f"Refusing to set progress of $$'{progress.anime_id}'$$ to "
                f"$$'{progress.episode_number}'$$"
            )
            raise ProgressValidationError(
                f"Tried to set progress to {progress.episode_number}"
            )

        return await self._mutate(
            "UpdateProgress",
            UPDATE_PROGRESS,
            progress.anime_id,
            {"progress": progress.episode_number},
            on_apply=lambda _: self.cache.write_episode_progress_to_cache(progress),
        )

    set_progress = update_progress

    async def start_rewatching(self, media_id: int) -> ListEntry:
        """Start a rewatch: status ``REPEATING``, progress reset to 0.

        Episode 0 becomes the current episode of the anime so progress views
        start from the beginning.
        """

        def write_episode_zero(entry: ListEntry) -> None:
            self.cache.write_episode_progress_to_cache(
                EpisodeProgress(
                    provider=Provider.CRUNCHYROLL,
                    anime_id=entry.media_id,
                    episode_number=0,
                )
            )

        return await self._mutate(
            "StartRewatching",
            START_REWATCHING,
            media_id,
            {"status": MediaListStatus.REPEATING, "progress": 0},
            always_move=True,
            on_apply=write_episode_zero,
            variables={"mediaId": media_id},
        )
