"""Input validation utilities.

Provides validation for:
- PostgreSQL major versions
- Byte strings in PostgreSQL notation (memory, WAL disk size)
- Resource counts (CPUs, connections, background workers)
- Paths (with shell metacharacter rejection)

All validators return the validated value or raise ValidationError.
"""

from typing import Optional

from tstune.core.exceptions import ValidationError
from tstune.services.units import pg_format_to_bytes
from tstune.services.tuning import MAX_BACKGROUND_WORKERS_DEFAULT

# Major versions recommendations can be generated for
VALID_PG_VERSIONS: tuple[str, ...] = ("17", "16", "15", "14", "13", "12", "11", "10", "9.6")


def validate_pg_version(value: str) -> str:
    """Validate a PostgreSQL major version.

    Raises:
        ValidationError: If the version is not supported
    """
    value = value.strip()
    if value not in VALID_PG_VERSIONS:
        raise ValidationError(
            f"unsupported PostgreSQL major version: {value}",
            hint=f"Valid values: {', '.join(VALID_PG_VERSIONS)}",
        )
    return value


def validate_bytes(value: str, name: str = "value") -> int:
    """Validate a PostgreSQL byte string and return it in bytes.

    Args:
        value: Byte string such as ``8GB``
        name: Setting name used in error messages

    Raises:
        ValidationError: If the format is wrong or the size is zero
    """
    num_bytes = pg_format_to_bytes(value.strip())
    if num_bytes <= 0:
        raise ValidationError(
            f"{name} must be greater than zero: {value}",
            hint="Use a size such as 4GB",
        )
    return num_bytes


def validate_cpus(value: int) -> int:
    """Validate a CPU count."""
    if value < 1:
        raise ValidationError(
            f"Invalid CPU count: {value}",
            hint="CPU count must be at least 1",
        )
    return value


def validate_max_conns(value: int) -> int:
    """Validate a max_connections value."""
    if value < 1:
        raise ValidationError(
            f"Invalid connection count: {value}",
            hint="max connections must be at least 1",
        )
    return value


def validate_max_bg_workers(value: int) -> int:
    """Validate the number of TimescaleDB background workers."""
    if value < MAX_BACKGROUND_WORKERS_DEFAULT:
        raise ValidationError(
            f"Invalid background worker count: {value}",
            hint=f"Background workers must be at least {MAX_BACKGROUND_WORKERS_DEFAULT}",
        )
    return value


def validate_path(value: str, must_be_absolute: bool = False) -> str:
    """Validate a file path.

    Args:
        value: Path to validate
        must_be_absolute: Require absolute path

    Raises:
        ValidationError: If validation fails
    """
    dangerous_patterns = [
        "`",            # Command substitution
        "|",            # Pipe
        ";",            # Command separator
        "\n",           # Newline injection
        "\r",           # Carriage return
        "\x00",         # Null byte
    ]

    for pattern in dangerous_patterns:
        if pattern in value:
            raise ValidationError(
                f"Path contains dangerous pattern: {repr(pattern)}",
                hint="Use a simple path without special characters",
            )

    if must_be_absolute and not value.startswith("/"):
        raise ValidationError(
            f"Path must be absolute: {value}",
            hint=f"Use /{value}",
        )

    return value


def validate_optional_path(value: Optional[str]) -> Optional[str]:
    """Validate a path that may be unset."""
    if value is None:
        return None
    return validate_path(value)
