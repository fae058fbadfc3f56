from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from timed_cache.services.cache import BaseTimedCache, Clock, K, V


logger = logging.getLogger(__name__)


class AsyncTimedCache(BaseTimedCache[K, V]):
    """Keyed TTL cache for coroutine computes, single-flight per key.

    Meant to be used from one event loop. Concurrent misses on a key share a
    single future. A waiter that gets cancelled does not cancel the compute
    other callers are waiting on. If the task running the compute is
    cancelled instead, the waiters that were not cancelled themselves retry
    the lookup and one of them runs its own compute.

    Re-entry is recognised by task identity only. A compute that awaits a
    get() for its own key from a separate task will deadlock, and so will a
    cross-key cycle between two tasks.
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
        self._in_flight: dict[K, tuple[asyncio.Future[V], Optional[asyncio.Task]]] = {}

    def _in_flight_count(self) -> int:
        return len(self._in_flight)

    async def get(
        self,
        key: K,
        compute: Callable[[], Awaitable[V]],
        force_refresh: bool = False,
    ) -> V:
        """Return the fresh value for key, awaiting compute() on a miss or stale entry.

        Exceptions raised by compute propagate unchanged and nothing is stored.
        """
        task = asyncio.current_task()

        while True:
            shared: Optional[asyncio.Future[V]] = None
            owned: Optional[asyncio.Future[V]] = None

            with self._lock:
                entry = self._fresh_entry(key, force_refresh)
                if entry is not None:
                    return entry.value

                flight = self._in_flight.get(key)
                if flight is None:
                    owned = asyncio.get_running_loop().create_future()
                    self._in_flight[key] = (owned, task)
                elif flight[1] is not task:
                    shared = flight[0]
                    self._shared_waits += 1
                    self._log_event("wait", key)
                # else: re-entered from this key's own compute, run unshared

            if shared is None:
                return await self._compute_and_store(key, compute, owned)

            try:
                return await asyncio.shield(shared)
            except asyncio.CancelledError:
                # Only the leader was cancelled, not this caller: take over
                if shared.cancelled() and task is not None and task.cancelling() == 0:
                    logger.debug("Cache '%s' compute for key %r was cancelled, retrying", self.name, key)
                    continue
                raise

    async def _compute_and_store(
        self,
        key: K,
        compute: Callable[[], Awaitable[V]],
        owned: Optional[asyncio.Future[V]],
    ) -> V:
        """Await compute, then publish the result to the flight owned by this call."""
        try:
            value = await compute()
        except Exception as e:
            with self._lock:
                self._compute_failures += 1
                if owned is not None:
                    self._in_flight.pop(key, None)
            self._record_failure(key, e)
            if owned is not None:
                owned.set_exception(e)
                # Nobody may be waiting; mark the exception as retrieved
                owned.exception()
            raise
        except BaseException:
            # Cancellation or interpreter exit
            with self._lock:
                if owned is not None:
                    self._in_flight.pop(key, None)
            logger.debug("Cache '%s' compute interrupted for key %r", self.name, key)
            if owned is not None:
                owned.cancel()
            raise

        with self._lock:
            self._store_value(key, value)
            if owned is not None:
                self._in_flight.pop(key, None)
        if owned is not None:
            owned.set_result(value)
        return value
