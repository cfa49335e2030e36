"""Cache Utilities Module."""

from functools import wraps
from typing import Any

import aiocache


def gattl_cache(ttl: int = 60, cache_none: bool = True):
    """Cache the results of an async function in memory for ``ttl`` seconds.

    The cache key is built with `generic_hash`, so unhashable arguments (lists,
    dicts, client instances) are accepted.

    Args:
        ttl (int): Time-to-live for cached items in seconds. Defaults to 60.
        cache_none (bool): Whether a ``None`` result is cached. When False the
            next call runs the function again.
    """

    def decorator(func):
        cache_alias = f"gattl_{func.__module__}.{func.__qualname__}_{id(func)}"

        aiocache.caches.add(cache_alias, {"cache": aiocache.Cache.MEMORY, "ttl": ttl})

        def key_builder_adapter(f, *args, **kwargs):
            return generic_hash(*args, **kwargs)

        skip = {} if cache_none else {"skip_cache_func": _is_none}

        @wraps(func)
        @aiocache.cached(alias=cache_alias, key_builder=key_builder_adapter, **skip)
        async def wrapper(*args, **kwargs):
            return await func(*args, **kwargs)

        return wrapper

    return decorator


def _is_none(result: Any) -> bool:
    return result is None


def generic_hash(*args, **kwargs) -> int:
    """Recursively computes a hash for any Python object(s).

    A single positional argument is hashed on its own; otherwise positional and
    keyword arguments are combined. Unhashable containers are hashed by content,
    dict ordering does not matter and reference cycles are tolerated.
    """
    visited_ids: set[int] = set()

    if not kwargs and len(args) == 1:
        return _generic_hash(args[0], visited_ids)

    args_hash = _generic_hash(args, visited_ids)
    kwargs_hash = _generic_hash(tuple(sorted(kwargs.items())), visited_ids)
    return hash((args_hash, kwargs_hash))


def _generic_hash(obj: Any, _visited_ids: set[int]) -> int:
    obj_id = id(obj)
    if obj_id in _visited_ids:
        return hash("<cycle>")

    _visited_ids.add(obj_id)
    try:
        return hash(obj)
    except TypeError:
        if isinstance(obj, list | tuple):
            return hash(tuple(_generic_hash(item, _visited_ids) for item in obj))
        if isinstance(obj, set):
            return hash(frozenset(_generic_hash(item, _visited_ids) for item in obj))
        if isinstance(obj, dict):
            return hash(
                tuple(
                    sorted(
                        (_generic_hash(k, _visited_ids), _generic_hash(v, _visited_ids))
                        for k, v in obj.items()
                    )
                )
            )
        if hasattr(obj, "__dict__"):
            return _generic_hash(obj.__dict__, _visited_ids)
        return hash(str(obj))
    finally:
        _visited_ids.discard(obj_id)
