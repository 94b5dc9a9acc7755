"""Wall-clock arithmetic used by billing and conflict detection.

Times are handled as minutes since midnight. A session whose end is
"before" its start is an overnight session that crosses midnight once.
"""
import math
from datetime import time

from services.errors import InvalidTimeFormat

MINUTES_PER_DAY = 24 * 60


def parse_clock(value) -> int:
    """Convert ``HH:MM`` (seconds tolerated) or a ``datetime.time`` to minutes of day.

    >>> parse_clock("09:30")
    570
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Invalid time {value!r}. Use HH:MM")

    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isascii() and p.isdigit() for p in parts):
        raise InvalidTimeFormat(f"Invalid time {value!r}. Use HH:MM")

    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 23 or minutes > 59 or (len(parts) == 3 and int(parts[2]) > 59):
        raise InvalidTimeFormat(f"Invalid time {value!r}. Use HH:MM")
    return hours * 60 + minutes


def to_time(value) -> time:
    minutes = parse_clock(value)
    return time(minutes // 60, minutes % 60)


def format_clock(value) -> str:
    if value is None:
        return None
    return value.strftime("%H:%M")


def elapsed_minutes(start, end) -> int:
    """
    22:00 -> 02:00 is 240, never negative.
    """
    total = parse_clock(end) - parse_clock(start)
    if total < 0:
        total += MINUTES_PER_DAY
    return total


def round_to_half_hour(minutes) -> float:
    # ties go up (75 minutes -> 1.5h)
    return max(0.0, math.floor(minutes / 30 + 0.5) * 0.5)

