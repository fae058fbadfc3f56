"""Tests for Entry and duration helpers."""

import math
from datetime import timedelta

import pytest

from timed_cache.services.entry import Entry
from timed_cache.utils.durations import to_seconds


class TestEntry:
    """Test Entry freshness checks."""

    def test_valid_within_duration(self):
        entry = Entry(value=5, written_at=100.0)
        assert entry.is_fresh(10.0, now=105.0)
        assert entry.age(105.0) == 5.0

    def test_not_valid_after_duration(self):
        entry = Entry(value=5, written_at=100.0)
        assert not entry.is_fresh(10.0, now=110.0)
        assert not entry.is_fresh(10.0, now=200.0)

    def test_zero_duration_never_fresh(self):
        entry = Entry(value=5, written_at=100.0)
        assert not entry.is_fresh(0.0, now=100.0)

    def test_entry_is_immutable(self):
        entry = Entry(value=5, written_at=100.0)
        with pytest.raises(AttributeError):
            entry.written_at = 200.0


class TestToSeconds:
    """Test duration normalization."""

    @pytest.mark.parametrize(
        "duration, expected",
        [
            (timedelta(minutes=1), 60.0),
            (timedelta(milliseconds=5), 0.005),
            (3, 3.0),
            (0.25, 0.25),
            (0, 0.0),
        ],
    )
    def test_accepted_values(self, duration, expected):
        assert to_seconds(duration) == pytest.approx(expected)

    @pytest.mark.parametrize("duration", [-1, -0.5, timedelta(seconds=-1), math.nan, math.inf])
    def test_rejected_values(self, duration):
        with pytest.raises(ValueError):
            to_seconds(duration)

    @pytest.mark.parametrize("duration", ["60", None, True])
    def test_rejected_types(self, duration):
        with pytest.raises(TypeError):
            to_seconds(duration)
