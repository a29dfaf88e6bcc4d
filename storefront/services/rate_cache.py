from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

from storefront.core.time import now_ts
from storefront.models import FormattedRate

logger = logging.getLogger(__name__)

CacheKey = Tuple[int, str]


@dataclass(frozen=True)
class CachedRates:
    rates: Tuple[FormattedRate, ...]
    expires_at: float


def round_half_up(value: float) -> int:
    # Halves round toward +inf (2.5 -> 3), unlike round()'s banker's rounding.
    return int(math.floor(value + 0.5))


def cache_key(weight_oz: float, zip_code: str) -> CacheKey:
    return (round_half_up(weight_oz), zip_code)


class RateCache:
    """
    In-memory rate quotes keyed by (rounded ounces, ZIP).

    Reads never delete; expired entries are only dropped by sweep(), which
    the app runs on a timer. When full, the entry closest to expiry is
    evicted to make room.
    """

    def __init__(
        self,
        ttl_seconds: float = 15 * 60,
        max_entries: int = 10000,
        clock: Callable[[], float] = now_ts,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max(1, int(max_entries))
        self._clock = clock
        self._entries: Dict[CacheKey, CachedRates] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, weight_oz: float, zip_code: str) -> Optional[CachedRates]:
        entry = self._entries.get(cache_key(weight_oz, zip_code))
        if entry is None or self._clock() >= entry.expires_at:
            return None
        return entry

    def set(self, weight_oz: float, zip_code: str, rates: Sequence[FormattedRate]) -> CachedRates:
        key = cache_key(weight_oz, zip_code)
        entry = CachedRates(rates=tuple(rates), expires_at=self._clock() + self.ttl_seconds)
        # Re-insert so dict order tracks expiry order (TTL is constant).
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = entry
        return entry

    def sweep(self) -> int:
        now = self._clock()
        expired = [k for k, v in self._entries.items() if v.expires_at <= now]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.info("Swept %d expired shipping rate entries (%d remain)", len(expired), len(self._entries))
        return len(expired)
