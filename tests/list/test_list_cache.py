"""Tests for the local list cache."""

from anistream.list.cache import ListCache
from anistream.models.anilist import ListEntry, MediaListStatus
from anistream.models.episode import EpisodeProgress, Provider


def _entry(media_id: int, status: MediaListStatus, **kwargs) -> ListEntry:
    return ListEntry(id=media_id * 10, media_id=media_id, status=status, **kwargs)


def test_add_to_cache_list_appends_to_status_bucket() -> None:
    """Entries are appended to the bucket of their status in insertion order."""
    cache = ListCache()

    cache.add_to_cache_list(_entry(1, MediaListStatus.CURRENT))
    cache.add_to_cache_list(_entry(2, MediaListStatus.CURRENT))

    assert [e.media_id for e in cache.bucket(MediaListStatus.CURRENT)] == [1, 2]
    assert cache.bucket(MediaListStatus.PLANNING) == []


def test_add_to_cache_list_keeps_media_in_one_bucket() -> None:
    """Re-adding under another status moves the media instead of duplicating it."""
    cache = ListCache()
    cache.add_to_cache_list(_entry(1, MediaListStatus.PLANNING))

    cache.add_to_cache_list(_entry(1, MediaListStatus.COMPLETED))

    assert cache.bucket_of(1) == MediaListStatus.COMPLETED
    assert cache.bucket(MediaListStatus.PLANNING) == []
    assert sum(1 in ids for ids in cache.buckets.values()) == 1


def test_remove_from_cache_list_absent_is_noop() -> None:
    """Removing a media that is not listed leaves the cache unchanged."""
    cache = ListCache()
    cache.add_to_cache_list(_entry(1, MediaListStatus.CURRENT))

    cache.remove_from_cache_list(99)

    assert cache.bucket_of(1) == MediaListStatus.CURRENT


def test_remove_from_cache_list_keeps_entry() -> None:
    """Unlisting a media does not forget its last known entry."""
    cache = ListCache()
    cache.add_to_cache_list(_entry(1, MediaListStatus.CURRENT))

    cache.remove_from_cache_list(1)

    assert cache.bucket_of(1) is None
    assert cache.get_entry(1) is not None

    cache.remove_entry(1)
    assert cache.get_entry(1) is None


def test_episode_progress_pointer() -> None:
    """Progress pointers are kept per anime and provider."""
    cache = ListCache()

    cache.write_episode_progress_to_cache(
        EpisodeProgress(provider=Provider.CRUNCHYROLL, anime_id=1, episode_number=4)
    )
    cache.write_episode_progress_to_cache(
        EpisodeProgress(provider=Provider.HIDIVE, anime_id=1, episode_number=7)
    )

    assert cache.get_current_episode(1, Provider.CRUNCHYROLL) == 4
    assert cache.get_current_episode(1, Provider.HIDIVE) == 7
    assert cache.get_current_episode(2, Provider.HIDIVE) is None


def test_clear_anime_view_entry_only_when_cached() -> None:
    """Clearing an uncached view does not create one."""
    cache = ListCache()
    cache.clear_anime_view_entry(1)
    assert 1 not in cache.anime_views

    cache.set_anime_view_entry(1, _entry(1, MediaListStatus.CURRENT))
    cache.clear_anime_view_entry(1)
    assert 1 in cache.anime_views
    assert cache.get_anime_view_entry(1) is None


def test_load_replaces_list() -> None:
    """Loading drops everything cached before."""
    cache = ListCache()
    cache.add_to_cache_list(_entry(1, MediaListStatus.DROPPED))

    cache.load(
        [_entry(2, MediaListStatus.CURRENT), _entry(3, MediaListStatus.COMPLETED)]
    )

    assert cache.get_entry(1) is None
    assert cache.bucket_of(1) is None
    assert [e.media_id for e in cache.bucket(MediaListStatus.CURRENT)] == [2]
    assert [e.media_id for e in cache.bucket(MediaListStatus.COMPLETED)] == [3]


def test_restore_snapshot_puts_media_back_in_place() -> None:
    """A snapshot restores the entry, bucket position, view and pointers."""
    cache = ListCache()
    for media_id in (1, 2, 3):
        cache.add_to_cache_list(_entry(media_id, MediaListStatus.CURRENT, progress=5))
    cache.set_anime_view_entry(2, cache.get_entry(2))
    cache.write_episode_progress_to_cache(
        EpisodeProgress(provider=Provider.CRUNCHYROLL, anime_id=2, episode_number=5)
    )

    snapshot = cache.snapshot(2)

    cache.add_to_cache_list(_entry(2, MediaListStatus.COMPLETED, progress=12))
    cache.clear_anime_view_entry(2)
    cache.write_episode_progress_to_cache(
        EpisodeProgress(provider=Provider.CRUNCHYROLL, anime_id=2, episode_number=12)
    )
    cache.write_episode_progress_to_cache(
        EpisodeProgress(provider=Provider.HIDIVE, anime_id=2, episode_number=1)
    )

    cache.restore(snapshot)

    assert [e.media_id for e in cache.bucket(MediaListStatus.CURRENT)] == [1, 2, 3]
    assert cache.bucket(MediaListStatus.COMPLETED) == []
    assert cache.get_entry(2).progress == 5
    assert cache.get_anime_view_entry(2) is not None
    assert cache.get_current_episode(2, Provider.CRUNCHYROLL) == 5
    assert cache.get_current_episode(2, Provider.HIDIVE) is None


def test_restore_snapshot_of_unknown_media_forgets_it() -> None:
    """Restoring a snapshot taken before a media was cached removes it again."""
    cache = ListCache()
    snapshot = cache.snapshot(5)

    cache.add_to_cache_list(_entry(5, MediaListStatus.PLANNING))
    cache.set_anime_view_entry(5, cache.get_entry(5))
    cache.restore(snapshot)

    assert cache.get_entry(5) is None
    assert cache.bucket_of(5) is None
    assert 5 not in cache.anime_views
