from __future__ import annotations

import time

def now_ts() -> float:
    return time.time()
