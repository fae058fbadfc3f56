from __future__ import annotations

from pydantic import BaseModel


class CacheStats(BaseModel):
    name: str
    time_to_keep_seconds: float
    size: int = 0
    hits: int = 0
    misses: int = 0
    stale_hits: int = 0
    forced_refreshes: int = 0
    shared_waits: int = 0
    compute_failures: int = 0
    in_flight: int = 0
