"""Wall-clock helpers.  Transaction timestamps are integer milliseconds."""

from __future__ import annotations

import time


def now_ms() -> int:
    """Current Unix time in milliseconds."""
    return time.time_ns() // 1_000_000
