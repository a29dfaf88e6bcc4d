from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from storefront.core.errors import RateLimited
from storefront.core.time import now_ts

@dataclass
class _Bucket:
    start: float
    count: int

class RateLimiter:
    """Fixed-window request counter per key, held in process memory."""

    def __init__(self, max_n: int, window_seconds: float, clock: Callable[[], float] = now_ts) -> None:
        self.max_n = max_n
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: Dict[str, _Bucket] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def hit(self, key: str) -> Tuple[bool, float]:
        """Count one request; returns (allowed, seconds until the window resets)."""
        now = self._clock()
        b = self._buckets.get(key)
        if b is None or (now - b.start) >= self.window_seconds:
            b = _Bucket(start=now, count=0)
            self._buckets[key] = b
        retry_after = max(0.0, b.start + self.window_seconds - now)
        if b.count >= self.max_n:
            return False, retry_after
        b.count += 1
        return True, retry_after

    def sweep(self) -> int:
        now = self._clock()
        stale = [k for k, b in self._buckets.items() if (now - b.start) >= self.window_seconds]
        for k in stale:
            del self._buckets[k]
        return len(stale)

def rate_limit_or_429(limiter: RateLimiter, key: str) -> None:
    allowed, retry_after = limiter.hit(key)
    if not allowed:
        raise RateLimited(headers={"Retry-After": str(max(1, math.ceil(retry_after)))})
