"""
Cache utilities for the tipping application

Query results are cached per namespace ("leaderboard", ...). Each namespace
keeps an index of the keys written under it so a write can drop exactly
those entries, on any Flask-Caching backend.
"""

import functools

from flask import current_app

from tipping import cache


def _index_key(namespace):
    return f"keys_{namespace}"


def make_query_key(namespace, func_name, *args, **kwargs):
    """Build a cache key from the namespace, function and its arguments"""
    args_str = "_".join(repr(arg) for arg in args)
    kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
    return f"query_{namespace}_{func_name}_{args_str}_{kwargs_str}".replace(" ", "")


def _remember_key(namespace, cache_key):
    index = cache.get(_index_key(namespace)) or []
    if cache_key not in index:
        index.append(cache_key)
        cache.set(_index_key(namespace), index, timeout=0)


def cached_query(namespace, timeout=300):
    """
    Decorator for caching database query results

    Positional arguments (including ``self`` on methods) take part in the
    key through ``repr``, so instances with different settings never share
    an entry.

    Args:
        namespace: Cache namespace, also the unit of invalidation
        timeout: Cache timeout in seconds
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            cache_key = make_query_key(namespace, f.__name__, *args, **kwargs)

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Query cache hit: {cache_key}")
                return result

            result = f(*args, **kwargs)
            cache.set(cache_key, result, timeout=timeout)
            _remember_key(namespace, cache_key)
            current_app.logger.debug(f"Query cache set: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_model_cache(namespace):
    """
    Drop every cached query of a namespace

    Failures are logged and swallowed; a stale entry expires on its own
    timeout.
    """
    try:
        keys = cache.get(_index_key(namespace)) or []
        cache.delete_many(*keys, _index_key(namespace))
        current_app.logger.info(f"Cache invalidated for {namespace}: {len(keys)} keys")
    except Exception as e:
        current_app.logger.error(f"Failed to invalidate {namespace} cache: {e}")
