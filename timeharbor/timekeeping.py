"""Elapsed-time arithmetic shared by tickets and clock events.

Timestamps are epoch milliseconds, durations are whole seconds.
"""

import math
import time

SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60


def current_millis() -> int:
    return time.time_ns() // 1_000_000


def elapsed_seconds(start_timestamp: int, now: int) -> int:
    """Whole seconds between two epoch-ms stamps, floored at zero for clock skew."""
    return max(0, (now - start_timestamp) // 1000)


def total_seconds(
    accumulated_time: int | None,
    start_timestamp: int | None,
    now: int,
    end_time: int | None = None,
) -> int:
    total = accumulated_time or 0
    if start_timestamp is not None and end_time is None:
        total += elapsed_seconds(start_timestamp, now)
    return total


def seconds_from_parts(hours: int = 0, minutes: int = 0, seconds: int = 0) -> int:
    return hours * SECONDS_PER_HOUR + minutes * SECONDS_PER_MINUTE + seconds


def format_time(value: object) -> str:
    """Render seconds as ``H:MM:SS``; anything that is not a usable number is ``0:00:00``."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return "0:00:00"
    if not math.isfinite(value) or value < 0:
        return "0:00:00"

    whole = int(value)
    hours, remainder = divmod(whole, SECONDS_PER_HOUR)
    minutes, seconds = divmod(remainder, SECONDS_PER_MINUTE)
    return f"{hours}:{minutes:02d}:{seconds:02d}"
