"""List tracking: GraphQL client, local list cache and optimistic mutations."""

from anistream.list.cache import CacheSnapshot, ListCache
from anistream.list.client import ListServiceClient
from anistream.list.mutations import ListMutations

__all__ = ["CacheSnapshot", "ListCache", "ListMutations", "ListServiceClient"]
