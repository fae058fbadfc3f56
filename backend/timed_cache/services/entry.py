from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar


V = TypeVar("V")


@dataclass(frozen=True)
class Entry(Generic[V]):
    """A cached value together with the monotonic time it was computed."""

    value: V
    written_at: float

    def age(self, now: float) -> float:
        return now - self.written_at

    def is_fresh(self, time_to_keep: float, now: float) -> bool:
        # An entry exactly time_to_keep old is already stale.
        return self.age(now) < time_to_keep
