"""Shared utility functions for migration scripts"""

# Constants for time conversions
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400

# Canonical byte size constants
BYTES_PER_KIB = 1024
BYTES_PER_MIB = 1024**2
BYTES_PER_GIB = 1024**3
BYTES_PER_TIB = 1024**4


def format_duration(seconds: float) -> str:
    """Format seconds to human readable duration"""
    if seconds < SECONDS_PER_MINUTE:
        return f"{int(seconds)}s"
    if seconds < SECONDS_PER_HOUR:
        minutes = int(seconds / SECONDS_PER_MINUTE)
        secs = int(seconds % SECONDS_PER_MINUTE)
        return f"{minutes}m {secs}s"
    if seconds < SECONDS_PER_DAY:
        hours = int(seconds / SECONDS_PER_HOUR)
        minutes = int((seconds % SECONDS_PER_HOUR) / SECONDS_PER_MINUTE)
        return f"{hours}h {minutes}m"
    days = int(seconds / SECONDS_PER_DAY)
    hours = int((seconds % SECONDS_PER_DAY) / SECONDS_PER_HOUR)
    return f"{days}d {hours}h"


def format_size(num_bytes: int | None, decimal_places: int = 2) -> str:
    """
    Format byte count as human-readable string with binary units.

    Examples:
        >>> format_size(1024)
        '1.00 KiB'
        >>> format_size(5 * 1024 * 1024)
        '5.00 MiB'
        >>> format_size(None)
        'n/a'
    """
    if num_bytes is None:
        return "n/a"
    units = ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]
    value = float(num_bytes)
    for unit in units:
        if value < BYTES_PER_KIB or unit == units[-1]:
            return f"{value:.{decimal_places}f} {unit}"
        value /= BYTES_PER_KIB
    return f"{value:.{decimal_places}f} PiB"


def parse_size(value: str) -> int:
    """
    Parse human-readable size strings (e.g., 5M, 1G) into bytes.

    Args:
        value: Size string like "8M", "5242880", "1.5G"

    Returns:
        Number of bytes as integer

    Raises:
        ValueError: If the size string is invalid

    Examples:
        >>> parse_size("5M")
        5242880
        >>> parse_size("1024")
        1024
    """
    raw = value.strip()
    if not raw:
        raise ValueError("Size cannot be empty")

    multipliers = {
        "k": BYTES_PER_KIB,
        "m": BYTES_PER_MIB,
        "g": BYTES_PER_GIB,
        "t": BYTES_PER_TIB,
    }

    suffix = raw[-1].lower()
    if suffix in multipliers:
        try:
            base = float(raw[:-1])
        except ValueError as exc:
            raise ValueError(f"Invalid size value: {value}") from exc
        return int(base * multipliers[suffix])

    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid size value: {value}") from exc


def format_throughput(num_bytes: int, elapsed: float) -> str:
    """Format a transfer rate, or 'n/a' when no time has elapsed"""
    if elapsed <= 0:
        return "n/a"
    return f"{format_size(int(num_bytes / elapsed))}/s"
