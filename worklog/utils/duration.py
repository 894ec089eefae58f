"""Duration helpers shared by the timer and the activity log."""
from datetime import datetime

from worklog.models.time_entry import TimeEntry


def seconds_between(later: datetime, earlier: datetime) -> int:
    """
    Whole seconds from earlier to later, truncated toward zero.

    Args:
        later: End instant
        earlier: Start instant

    Returns:
        Signed number of whole seconds

    Example:
        >>> seconds_between(datetime(2025, 1, 1, 0, 0, 10), datetime(2025, 1, 1))
        10
    """
    return int((later - earlier).total_seconds())


def duration_parts(seconds: int) -> tuple[int, int, int]:
    """Split seconds into (hours, minutes, seconds)."""
    seconds = max(0, int(seconds))
    return seconds // 3600, (seconds % 3600) // 60, seconds % 60


def format_duration_label(seconds: int) -> str:
    """
    Format seconds as a short label.

    Example:
        >>> format_duration_label(3723)
        '1h 2m 3s'
    """
    hours, minutes, secs = duration_parts(seconds)
    return f"{hours}h {minutes}m {secs}s"


def format_duration_clock(seconds: int) -> str:
    """
    Format seconds as a zero-padded clock.

    Example:
        >>> format_duration_clock(3723)
        '01:02:03'
    """
    hours, minutes, secs = duration_parts(seconds)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_hours(seconds: int) -> str:
    """Decimal hours with two places, e.g. 5400 -> '1.50'."""
    return f"{seconds / 3600:.2f}"


def entry_duration_seconds(entry: TimeEntry) -> int:
    """Stored duration if positive, else end minus start, else 0."""
    if entry.duration and entry.duration > 0:
        return entry.duration
    if entry.end_time is not None:
        return max(0, seconds_between(entry.end_time, entry.start_time))
    return 0
