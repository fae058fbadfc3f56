"""Tests for the timed_memoize decorator."""

import pytest

from timed_cache.services.cache import TimedCache
from timed_cache.services.memoize import timed_memoize


class TestTimedMemoize:
    """Test per-argument caching of decorated functions."""

    def test_caches_per_arguments(self, clock):
        calls = []

        @timed_memoize(30, clock=clock)
        def lookup(user_id, *, verbose=False):
            calls.append((user_id, verbose))
            return f"user-{user_id}-{verbose}"

        assert lookup(1) == "user-1-False"
        assert lookup(1) == "user-1-False"
        assert lookup(2) == "user-2-False"
        assert lookup(1, verbose=True) == "user-1-True"
        assert calls == [(1, False), (2, False), (1, True)]

    def test_expires_after_time_to_keep(self, clock):
        calls = []

        @timed_memoize(30, clock=clock)
        def fetch():
            calls.append(1)
            return len(calls)

        assert fetch() == 1
        clock.advance(30)
        assert fetch() == 2

    def test_exposes_cache_and_metadata(self, clock):
        @timed_memoize(30, clock=clock)
        def fetch_token():
            """Get a session token."""
            return "token"

        assert isinstance(fetch_token.cache, TimedCache)
        assert fetch_token.cache.name.endswith("fetch_token")
        assert fetch_token.__name__ == "fetch_token"
        assert fetch_token.__doc__ == "Get a session token."

    def test_custom_key_function(self, clock):
        calls = []

        @timed_memoize(30, clock=clock, key=lambda payload: payload["id"])
        def handle(payload):
            calls.append(payload["id"])
            return payload["id"]

        handle({"id": 7, "extra": [1]})
        handle({"id": 7, "extra": [2]})
        assert calls == [7]

    def test_exceptions_not_cached(self, clock):
        attempts = []

        @timed_memoize(30, clock=clock)
        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise TimeoutError("first call fails")
            return "ok"

        with pytest.raises(TimeoutError):
            flaky()
        assert flaky() == "ok"
        assert flaky() == "ok"
        assert len(attempts) == 2
