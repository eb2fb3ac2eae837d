"""Byte and duration formatting in PostgreSQL notation.

PostgreSQL byte settings use 1024-based units written as a number with an
optional ``kB``, ``MB``, ``GB`` or ``TB`` suffix, e.g. ``512MB``.
"""

import math
import re
from datetime import timedelta

from tstune.core.exceptions import ValidationError

KILOBYTE = 1 << 10
MEGABYTE = 1 << 20
GIGABYTE = 1 << 30
TERABYTE = 1 << 40

UNIT_SIZES = {
    "": 1,
    "kB": KILOBYTE,
    "MB": MEGABYTE,
    "GB": GIGABYTE,
    "TB": TERABYTE,
}

_SMALLER_UNIT = {"TB": "GB", "GB": "MB", "MB": "kB"}

# Strict integer form used for user input such as --memory
_PG_BYTES_PATTERN = re.compile(r"^'?([0-9]+)((?:k|M|G|T)B)?'?$")


def _to_float_units(num_bytes: int) -> tuple[float, str]:
    if num_bytes <= 0:
        raise ValueError(f"bytes must be at least 1 byte (got {num_bytes})")
    for units in ("TB", "GB", "MB", "kB"):
        size = UNIT_SIZES[units]
        if num_bytes >= size:
            return num_bytes / size, units
    return float(num_bytes), ""


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.floor(value + 0.5)) if value >= 0 else -int(math.floor(-value + 0.5))


def bytes_to_pg_format(num_bytes: int) -> str:
    """Convert a byte count to a PostgreSQL setting string.

    Values below 1kB are raised to 1kB. Fractional values in MB and
    above are expressed in the next smaller unit.

    Example:
        >>> bytes_to_pg_format(1536 * MEGABYTE)
        '1536MB'
    """
    value, units = _to_float_units(num_bytes)
    if units == "":
        value, units = 1.0, "kB"
    elif units == "kB":
        value = float(round_half_up(value))
    elif value - int(value) > 0.001:
        value *= 1024
        units = _SMALLER_UNIT[units]
    return f"{int(value)}{units}"


def pg_format_to_bytes(value: str) -> int:
    """Parse a PostgreSQL byte string such as ``8GB`` into bytes.

    Raises:
        ValidationError: If the value is not in PostgreSQL byte format
    """
    match = _PG_BYTES_PATTERN.match(value)
    if match is None:
        raise ValidationError(
            f"incorrect PostgreSQL bytes format: '{value}'",
            hint="Use a whole number with an optional kB, MB, GB or TB suffix, e.g. 8GB",
        )
    return int(match.group(1)) * UNIT_SIZES[match.group(2) or ""]


def bytes_to_decimal_format(num_bytes: int) -> str:
    """Format a byte count with two decimals, e.g. ``8.00 GB``."""
    value, units = _to_float_units(num_bytes)
    return f"{value:0.2f} {units}"


def pretty_duration(delta: timedelta) -> str:
    """Describe a duration so it reads well before "ago"."""
    seconds = delta.total_seconds()
    if seconds < 60:
        return "less than a minute"
    if seconds < 3600:
        minutes = int(seconds // 60)
        return f"{minutes} minute{'s' if minutes > 1 else ''}"
    if seconds < 48 * 3600:
        hours = int(seconds // 3600)
        return f"{hours} hour{'s' if hours > 1 else ''}"
    return f"{int(seconds // 3600) // 24} days"
