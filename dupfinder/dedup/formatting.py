"""Human-readable sizes (binary units, integer steps) and timestamps."""

from __future__ import annotations

import re
from datetime import datetime

from dupfinder.config.exceptions import ConfigurationError

_SIZE_PATTERN = re.compile(r"^(\d+)([KMGTkmgt]?)$")

_UNITS = {
    "": 1,
    "k": 1024,
    "m": 1024**2,
    "g": 1024**3,
    "t": 1024**4,
}


def parse_size(size_str: str) -> int:
    """
    Parse a size like "100", "10K", "1M", "2g" into bytes.

    Raises:
        ConfigurationError: if the string is not <digits>[KMGT]
    """
    match = _SIZE_PATTERN.match(size_str.strip())
    if not match:
        raise ConfigurationError(
            f"Invalid size '{size_str}' (expected e.g. 100, 10K, 1M, 2G)"
        )
    number, unit = match.groups()
    return int(number) * _UNITS[unit.lower()]


def format_size(size_bytes: int) -> str:
    """Format bytes as 512B, 3KB, 12MB, 2GB (truncating division)."""
    if size_bytes < 1024:
        return f"{size_bytes}B"
    elif size_bytes < 1024**2:
        return f"{size_bytes // 1024}KB"
    elif size_bytes < 1024**3:
        return f"{size_bytes // 1024**2}MB"
    return f"{size_bytes // 1024**3}GB"


def format_timestamp(mod_time: float) -> str:
    """Local time as YYYY-MM-DD HH:MM:SS ("Unknown date" if out of range)."""
    try:
        return datetime.fromtimestamp(mod_time).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return "Unknown date"
