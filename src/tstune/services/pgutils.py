"""PostgreSQL version detection via pg_config."""

import re
import subprocess
from collections.abc import Callable
from typing import Optional

from tstune.core.exceptions import PrerequisiteError, ValidationError
from tstune.core.validation import validate_pg_version

DEFAULT_PG_CONFIG = "pg_config"

_PG_VERSION_PATTERN = re.compile(r"^PostgreSQL ([0-9]+)\.?([0-9]+)?")

ExecFn = Callable[[list[str]], str]


def _run(args: list[str]) -> str:
    result = subprocess.run(args, capture_output=True, text=True, check=True)
    return result.stdout


def to_pg_major_version(version: str) -> str:
    """Extract the major version from ``pg_config --version`` output.

    From PostgreSQL 10 on, the major version is the first number; before
    that it is the first two.

    Example:
        >>> to_pg_major_version("PostgreSQL 10.3")
        '10'
        >>> to_pg_major_version("PostgreSQL 9.6.4")
        '9.6'

    Raises:
        ValidationError: If the version string cannot be parsed
    """
    match = _PG_VERSION_PATTERN.match(version.strip())
    if match is None:
        raise ValidationError(f"unable to parse PG version string: {version.strip()}")

    major, minor = match.groups()
    if int(major) >= 10:
        return major
    if minor is None or int(major) < 7:
        raise ValidationError(f"unknown major PG version: {version.strip()}")
    return f"{major}.{minor}"


class PgConfigProbe:
    """Runs pg_config to learn about the installed PostgreSQL."""

    def __init__(self, exec_fn: Optional[ExecFn] = None) -> None:
        self._exec = exec_fn or _run

    def get_version(self, pg_config: str = DEFAULT_PG_CONFIG) -> str:
        """Raw output of ``pg_config --version``.

        Raises:
            PrerequisiteError: If pg_config cannot be executed
        """
        try:
            return self._exec([pg_config, "--version"])
        except (OSError, subprocess.CalledProcessError) as e:
            raise PrerequisiteError(
                f"could not execute `{pg_config} --version`",
                hint="Pass --pg-version or the path to pg_config with --pg-config",
                details=[str(e)],
            ) from e

    def get_major_version(self, pg_config: str = DEFAULT_PG_CONFIG) -> str:
        """Supported major version reported by pg_config.

        Raises:
            PrerequisiteError: If pg_config cannot be executed
            ValidationError: If the version is unknown or unsupported
        """
        return validate_pg_version(to_pg_major_version(self.get_version(pg_config)))
