from __future__ import annotations

import time
from datetime import timedelta
from functools import wraps
from typing import Any, Callable, Hashable, Optional, TypeVar

from timed_cache.services.cache import Clock, TimedCache


R = TypeVar("R")


def _default_key(*args: Any, **kwargs: Any) -> Hashable:
    return (args, tuple(sorted(kwargs.items())))


def timed_memoize(
    time_to_keep: timedelta | int | float,
    *,
    key: Optional[Callable[..., Hashable]] = None,
    clock: Clock = time.monotonic,
    name: str | None = None,
) -> Callable[[Callable[..., R]], Callable[..., R]]:
    """Cache a function's results per argument set for time_to_keep.

    Each decorated function gets its own TimedCache, reachable as `.cache`.
    Arguments must be hashable unless a custom key function is given.
    """
    make_key = key or _default_key

    def decorator(func: Callable[..., R]) -> Callable[..., R]:
        cache: TimedCache[Hashable, R] = TimedCache(
            time_to_keep,
            clock=clock,
            name=name or func.__qualname__,
        )

        @wraps(func)
        def wrapped(*args: Any, **kwargs: Any) -> R:
            return cache.get(make_key(*args, **kwargs), lambda: func(*args, **kwargs))

        wrapped.cache = cache  # type: ignore[attr-defined]
        return wrapped

    return decorator
