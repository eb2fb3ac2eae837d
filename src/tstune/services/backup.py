"""Backups of postgresql.conf taken before tuning, and restoring them."""

import glob
import os
import tempfile
from collections.abc import Callable
from datetime import datetime
from typing import IO, Optional

from tstune.conffile.patterns import PatternRegistry
from tstune.conffile.state import LINE_ENCODING, LINE_ERRORS, ConfigFileState
from tstune.core.exceptions import BackupError, ConfigFileError

BACKUP_FILE_PREFIX = "timescaledb_tune.backup"
BACKUP_DATE_FMT = "%Y%m%d%H%M"

CreateFn = Callable[[str], IO]
GlobFn = Callable[[str], list[str]]
NowFn = Callable[[], datetime]


def _create(path: str) -> IO:
    return open(path, "w", encoding=LINE_ENCODING, errors=LINE_ERRORS)


class BackupManager:
    """Creates, lists and restores timestamped config file backups.

    Backups are named ``timescaledb_tune.backup<YYYYmmddHHMM>`` and live in
    a single directory, the system temp directory by default.
    """

    def __init__(
        self,
        backup_dir: Optional[str] = None,
        create_fn: Optional[CreateFn] = None,
        glob_fn: Optional[GlobFn] = None,
        now_fn: Optional[NowFn] = None,
    ) -> None:
        self.backup_dir = backup_dir or tempfile.gettempdir()
        self._create = create_fn or _create
        self._glob = glob_fn or glob.glob
        self._now = now_fn or datetime.now

    def backup_path(self, when: Optional[datetime] = None) -> str:
        name = BACKUP_FILE_PREFIX + (when or self._now()).strftime(BACKUP_DATE_FMT)
        return os.path.join(self.backup_dir, name)

    def create(self, state: ConfigFileState) -> str:
        """Write the state to a new backup file and return its path.

        Raises:
            BackupError: If the backup cannot be written
        """
        path = self.backup_path()
        try:
            with self._create(path) as f:
                state.write_to(f)
        except (OSError, ConfigFileError) as e:
            raise BackupError(
                f"could not create backup at {path}",
                hint="Check that the backup directory is writable",
                details=[str(e)],
            ) from e
        return path

    def list_backups(self) -> list[str]:
        """Paths of all backups, oldest first.

        Files that match the prefix but do not end in a valid timestamp
        are ignored.
        """
        prefix = os.path.join(self.backup_dir, BACKUP_FILE_PREFIX)
        backups = []
        for path in self._glob(prefix + "*"):
            if parse_backup_time(path) is not None:
                backups.append(path)
        return sorted(backups)

    def restore(self, backup_path: str, conf_path: str) -> None:
        """Overwrite the config file with the contents of a backup.

        Raises:
            BackupError: If the backup cannot be read or written over conf_path
        """
        try:
            with open(backup_path, encoding=LINE_ENCODING, errors=LINE_ERRORS) as f:
                state = ConfigFileState.from_stream(f, PatternRegistry())
            with open(conf_path, "r+", encoding=LINE_ENCODING, errors=LINE_ERRORS) as f:
                state.write_to(f)
        except (OSError, ConfigFileError) as e:
            raise BackupError(
                f"could not restore {backup_path} to {conf_path}",
                details=[str(e)],
            ) from e


def parse_backup_time(path: str) -> Optional[datetime]:
    """Timestamp encoded in a backup file name, or None if malformed."""
    name = os.path.basename(path)
    if not name.startswith(BACKUP_FILE_PREFIX):
        return None
    date_part = name[len(BACKUP_FILE_PREFIX):]
    if len(date_part) != len("YYYYmmddHHMM") or not date_part.isdigit():
        return None
    try:
        return datetime.strptime(date_part, BACKUP_DATE_FMT)
    except ValueError:
        return None
