"""Finding postgresql.conf on the local system."""

import os
import stat
import sys
from collections.abc import Callable
from typing import Optional

from tstune.core.exceptions import PrerequisiteError

CONF_FILENAME = "postgresql.conf"

FILE_NAME_MAC = "/usr/local/var/postgres/postgresql.conf"
FILE_NAME_DEBIAN_FMT = "/etc/postgresql/{version}/main/postgresql.conf"
FILE_NAME_RPM_FMT = "/var/lib/pgsql/{version}/data/postgresql.conf"
FILE_NAME_ARCH = "/var/lib/postgres/data/postgresql.conf"

StatFn = Callable[[str], os.stat_result]


class ConfigPathLocator:
    """Locates postgresql.conf using per-platform path heuristics.

    Args:
        stat_fn: Function used to test paths (os.stat by default)
        platform: Platform name as in sys.platform
    """

    def __init__(self, stat_fn: Optional[StatFn] = None, platform: str = sys.platform) -> None:
        self._stat = stat_fn or os.stat
        self.platform = platform

    def _exists(self, path: str) -> bool:
        try:
            self._stat(path)
        except OSError:
            return False
        return True

    def is_dir(self, path: str) -> bool:
        try:
            return stat.S_ISDIR(self._stat(path).st_mode)
        except OSError:
            return False

    def candidates(self, pg_version: str) -> list[str]:
        """Paths tried for a PostgreSQL major version, in order."""
        if self.platform == "darwin":
            return [FILE_NAME_MAC]
        if self.platform.startswith("linux"):
            return [
                FILE_NAME_DEBIAN_FMT.format(version=pg_version),
                FILE_NAME_RPM_FMT.format(version=pg_version),
                FILE_NAME_ARCH,
            ]
        return []

    def find(self, pg_version: str) -> str:
        """Return the first candidate path that exists.

        Raises:
            PrerequisiteError: If no candidate exists
        """
        tried = self.candidates(pg_version)
        for path in tried:
            if self._exists(path):
                return path
        raise PrerequisiteError(
            "could not find postgresql.conf at any of these locations:\n" + "\n".join(tried),
            hint="Pass the path to postgresql.conf with --conf-path",
        )

    def resolve(self, path: str) -> str:
        """Turn a directory path into the postgresql.conf inside it."""
        if self.is_dir(path):
            return os.path.join(path, CONF_FILENAME)
        return path
