from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from storefront.metrics import record_cache_size

logger = logging.getLogger(__name__)


class Sweepable(Protocol):
    def sweep(self) -> int: ...

    def __len__(self) -> int: ...


async def run_sweeper(interval_seconds: float, cache: Sweepable, *others: Sweepable) -> None:
    """Periodically drop expired cache entries and stale limiter windows.

    Runs until cancelled; a failing pass is logged and the loop continues.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            cache.sweep()
            for other in others:
                other.sweep()
            record_cache_size(len(cache))
        except Exception:
            logger.exception("Shipping cache sweep failed")
