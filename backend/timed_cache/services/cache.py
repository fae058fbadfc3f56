from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Callable, Generic, Hashable, Optional, TypeVar

from timed_cache.config import CacheSettings
from timed_cache.schemas.cache import CacheStats
from timed_cache.services.entry import Entry
from timed_cache.utils.durations import to_seconds


logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


class _Flight(Generic[V]):
    """A compute in progress for one key. Other threads wait on it for the result."""

    def __init__(self, owner: int):
        self.owner = owner
        self._done = threading.Event()
        self._value: Optional[V] = None
        self._error: BaseException | None = None

    def resolve(self, value: V) -> None:
        self._value = value
        self._done.set()

    def fail(self, error: BaseException) -> None:
        self._error = error
        self._done.set()

    def wait(self) -> V:
        self._done.wait()
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]


class BaseTimedCache(ABC, Generic[K, V]):
    """Storage, expiry and bookkeeping shared by the sync and async caches.

    The store is only ever written by a get() call. There is no delete; a key's
    entry lives until a later compute overwrites it.
    """

    def __init__(
        self,
        time_to_keep: timedelta | int | float,
        *,
        clock: Clock = time.monotonic,
        name: str = "timed_cache",
        log_events: bool = False,
    ):
        self.name = name
        self._time_to_keep = to_seconds(time_to_keep)
        self._clock = clock
        self._log_events = log_events
        self._store: dict[K, Entry[V]] = {}
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._stale_hits = 0
        self._forced_refreshes = 0
        self._shared_waits = 0
        self._compute_failures = 0

    @classmethod
    def with_time_to_keep(
        cls,
        time_to_keep: timedelta | int | float,
        *,
        clock: Clock = time.monotonic,
        name: str = "timed_cache",
        log_events: bool = False,
    ):
        """Create an empty cache whose entries go stale after time_to_keep."""
        return cls(time_to_keep, clock=clock, name=name, log_events=log_events)

    @classmethod
    def from_settings(cls, settings: CacheSettings, *, clock: Clock = time.monotonic):
        return cls(
            settings.time_to_keep_seconds,
            clock=clock,
            name=settings.name,
            log_events=settings.log_events,
        )

    @property
    def time_to_keep(self) -> float:
        return self._time_to_keep

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        """True if a fresh entry exists for key. Never triggers a compute."""
        with self._lock:
            entry = self._store.get(key)  # type: ignore[call-overload]
            return entry is not None and entry.is_fresh(self._time_to_keep, self._clock())

    @abstractmethod
    def _in_flight_count(self) -> int:
        """Number of computes currently running. Caller holds the lock."""

    def stats(self) -> CacheStats:
        """Get cache counters for monitoring."""
        with self._lock:
            return CacheStats(
                name=self.name,
                time_to_keep_seconds=self._time_to_keep,
                size=len(self._store),
                hits=self._hits,
                misses=self._misses,
                stale_hits=self._stale_hits,
                forced_refreshes=self._forced_refreshes,
                shared_waits=self._shared_waits,
                compute_failures=self._compute_failures,
                in_flight=self._in_flight_count(),
            )

    def _fresh_entry(self, key: K, force_refresh: bool) -> Optional[Entry[V]]:
        """Return the stored entry if it can be served as a hit. Caller holds the lock."""
        entry = self._store.get(key)
        fresh = entry is not None and entry.is_fresh(self._time_to_keep, self._clock())
        if fresh and not force_refresh:
            self._hits += 1
            self._log_event("hit", key)
            return entry

        if entry is None:
            self._misses += 1
            self._log_event("miss", key)
        elif fresh:
            self._forced_refreshes += 1
            self._log_event("forced refresh", key)
        else:
            self._stale_hits += 1
            self._log_event("stale", key)
        return None

    def _store_value(self, key: K, value: V) -> None:
        """Caller holds the lock. Timestamp is taken after compute finished."""
        self._store[key] = Entry(value=value, written_at=self._clock())

    def _record_failure(self, key: K, error: BaseException) -> None:
        logger.warning("Cache '%s' compute failed for key %r: %s", self.name, key, error)

    def _log_event(self, event: str, key: object) -> None:
        if self._log_events:
            logger.debug("Cache '%s' %s for key %r", self.name, event, key)


class TimedCache(BaseTimedCache[K, V]):
    """Thread-safe keyed TTL cache with single-flight recompute.

    At most one compute runs per key at a time. Threads that miss on a key
    while its compute is running wait for it and get the same value (or the
    same exception). Compute never runs under the internal lock, so a compute
    may call get() on this cache for other keys. A nested get() for the same
    key from inside its own compute computes directly instead of waiting on
    itself.

    Re-entry is recognised by thread id only. A compute that hands a get() for
    its own key to another thread and waits for it will deadlock, and so will
    a cross-key cycle (A's compute gets B while B's compute gets A on another
    thread).
    """

    def __init__(
        self,
        time_to_keep: timedelta | int | float,
        *,
        clock: Clock = time.monotonic,
        name: str = "timed_cache",
        log_events: bool = False,
    ):
        super().__init__(time_to_keep, clock=clock, name=name, log_events=log_events)
        self._in_flight: dict[K, _Flight[V]] = {}

    def _in_flight_count(self) -> int:
        return len(self._in_flight)

    def get(self, key: K, compute: Callable[[], V], force_refresh: bool = False) -> V:
        """Return the fresh value for key, calling compute on a miss or stale entry.

        Exceptions raised by compute propagate unchanged and nothing is stored,
        so the previous entry (if any) is left as it was.
        """
        me = threading.get_ident()
        with self._lock:
            entry = self._fresh_entry(key, force_refresh)
            if entry is not None:
                return entry.value

            flight = self._in_flight.get(key)
            if flight is None:
                flight = _Flight(owner=me)
                self._in_flight[key] = flight
                return_shared = False
            elif flight.owner == me:
                # Re-entered from this key's own compute: run unshared
                flight = None
                return_shared = False
            else:
                self._shared_waits += 1
                self._log_event("wait", key)
                return_shared = True

        if return_shared:
            return flight.wait()

        return self._compute_and_store(key, compute, owned=flight)

    def _compute_and_store(self, key: K, compute: Callable[[], V], owned: Optional[_Flight[V]]) -> V:
        """Run compute outside the lock, then publish the result.

        owned is the flight this call registered, or None for a nested call.
        The flight is always removed and woken, even when compute raises.
        """
        try:
            value = compute()
        except BaseException as e:
            with self._lock:
                self._compute_failures += 1
                if owned is not None:
                    self._in_flight.pop(key, None)
            self._record_failure(key, e)
            if owned is not None:
                owned.fail(e)
            raise

        with self._lock:
            self._store_value(key, value)
            if owned is not None:
                self._in_flight.pop(key, None)

        if owned is not None:
            owned.resolve(value)
        return value
