from __future__ import annotations

import math
from datetime import timedelta


def to_seconds(duration: timedelta | int | float) -> float:
    """Normalize a time-to-keep value into non-negative seconds.

    - Accepts a timedelta or a plain number of seconds
    - Rejects negative, NaN and infinite values
    """
    if isinstance(duration, bool):
        raise TypeError("Duration must be a timedelta or number of seconds, not bool")

    if isinstance(duration, timedelta):
        seconds = duration.total_seconds()
    elif isinstance(duration, (int, float)):
        seconds = float(duration)
    else:
        raise TypeError(
            f"Duration must be a timedelta or number of seconds, got {type(duration).__name__}"
        )

    if not math.isfinite(seconds):
        raise ValueError(f"Duration must be finite, got {seconds}")

    if seconds < 0:
        raise ValueError(f"Duration cannot be negative, got {seconds}s")

    return seconds
