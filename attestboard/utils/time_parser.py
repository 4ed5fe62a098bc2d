"""
Time parsing utilities for workout durations and split times.

Handles conversion between clock strings and seconds for time-based tags.
"""

import math


def parse_duration(time_str: str) -> float:
    """
    Parse a workout duration string into total seconds.

    Supported formats:
    - HH:MM:SS (e.g., 1:23:45)
    - MM:SS (e.g., 28:30)

    Fractional seconds are accepted (e.g., 28:30.5).

    Args:
        time_str: Time string to parse

    Returns:
        Total seconds as float

    Raises:
        ValueError: If the format is invalid
    """
    if not isinstance(time_str, str):
        raise ValueError(f"Invalid time format: {time_str!r}")
    time_str = time_str.strip()

    if time_str.startswith('-'):
        raise ValueError("Negative time values are not allowed")

    parts = time_str.split(':')
    if len(parts) not in (2, 3):
        raise ValueError("Invalid time format. Use HH:MM:SS or MM:SS")

    try:
        if len(parts) == 2:  # MM:SS
            hours = 0
            minutes = int(parts[0])
            seconds = float(parts[1])
        else:  # HH:MM:SS
            hours = int(parts[0])
            minutes = int(parts[1])
            seconds = float(parts[2])
            if minutes >= 60:
                raise ValueError(f"Invalid minutes component: {minutes}")
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid time format: {time_str}") from e

    if hours < 0 or minutes < 0 or seconds < 0 or seconds >= 60:
        raise ValueError(f"Invalid time components: {time_str}")

    total = hours * 3600 + minutes * 60 + seconds
    if math.isnan(total) or math.isinf(total):
        raise ValueError("Invalid time value")
    # Round to avoid floating point edge cases
    return round(total, 3)


def format_seconds_to_time(seconds: float) -> str:
    """
    Format seconds into a clock string.

    Args:
        seconds: Total seconds

    Returns:
        Formatted time string (e.g., "28:30" or "1:23:45")
    """
    if seconds < 0:
        raise ValueError("Negative seconds not allowed")

    total_seconds = int(seconds)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_hours_minutes(seconds: float) -> str:
    """Format seconds as e.g. '2h 15m'."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{hours}h {minutes}m"
