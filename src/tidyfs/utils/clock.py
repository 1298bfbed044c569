"""High-resolution clock readings used for identifiers and suffixes."""

from __future__ import annotations

import threading
import time
from datetime import UTC, datetime

_lock = threading.Lock()
_last_ns = 0


def now_utc() -> datetime:
    """Return current time as tz-aware UTC datetime."""
    return datetime.now(UTC)


def unique_ns() -> int:
    """Return a nanosecond clock reading that is strictly increasing in-process.

    Platforms with a coarse ``time_ns`` can hand out the same value twice in a
    row; the reading is bumped by one in that case.
    """
    global _last_ns
    with _lock:
        now = time.time_ns()
        if now <= _last_ns:
            now = _last_ns + 1
        _last_ns = now
        return now
