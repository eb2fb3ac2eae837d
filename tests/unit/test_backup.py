"""Unit tests for config file backups."""

from datetime import datetime
from pathlib import Path

import pytest

from tstune.conffile.patterns import PatternRegistry
from tstune.conffile.state import ConfigFileState
from tstune.core.exceptions import BackupError
from tstune.services.backup import (
    BACKUP_FILE_PREFIX,
    BackupManager,
    parse_backup_time,
)


BACKUP_TIME = datetime(2024, 1, 2, 3, 4)


@pytest.fixture
def manager(tmp_path: Path) -> BackupManager:
    """Backup manager writing to a temp directory at a fixed time."""
    return BackupManager(str(tmp_path), now_fn=lambda: BACKUP_TIME)


@pytest.fixture
def state() -> ConfigFileState:
    return ConfigFileState.from_string("shared_buffers = 128MB\n#work_mem = 4MB\n", PatternRegistry())


class TestBackupPath:
    """Tests for backup naming."""

    def test_name_has_timestamp(self, manager: BackupManager, tmp_path: Path):
        assert manager.backup_path() == str(tmp_path / "timescaledb_tune.backup202401020304")

    def test_default_directory(self):
        """Backups default to the system temp directory."""
        assert BackupManager().backup_dir


class TestCreate:
    """Tests for creating backups."""

    def test_writes_state(self, manager: BackupManager, state: ConfigFileState):
        path = manager.create(state)

        assert Path(path).read_text() == "shared_buffers = 128MB\n#work_mem = 4MB\n"

    def test_create_failure(self, state: ConfigFileState, tmp_path: Path):
        def failing_create(path: str):
            raise PermissionError(f"Permission denied: '{path}'")

        manager = BackupManager(str(tmp_path), create_fn=failing_create)

        with pytest.raises(BackupError) as exc:
            manager.create(state)
        assert "could not create backup" in str(exc.value)
        assert exc.value.exit_code == 12

    def test_missing_directory(self, state: ConfigFileState, tmp_path: Path):
        manager = BackupManager(str(tmp_path / "nope"))

        with pytest.raises(BackupError):
            manager.create(state)


class TestListBackups:
    """Tests for listing backups."""

    def test_sorted_oldest_first(self, tmp_path: Path):
        for stamp in ("202403010000", "202401010000", "202402010000"):
            (tmp_path / f"{BACKUP_FILE_PREFIX}{stamp}").write_text("x\n")
        manager = BackupManager(str(tmp_path))

        names = [Path(p).name for p in manager.list_backups()]

        assert names == [
            f"{BACKUP_FILE_PREFIX}202401010000",
            f"{BACKUP_FILE_PREFIX}202402010000",
            f"{BACKUP_FILE_PREFIX}202403010000",
        ]

    def test_malformed_names_ignored(self, tmp_path: Path):
        (tmp_path / f"{BACKUP_FILE_PREFIX}202401010000").write_text("x\n")
        (tmp_path / f"{BACKUP_FILE_PREFIX}latest").write_text("x\n")
        (tmp_path / f"{BACKUP_FILE_PREFIX}20240101").write_text("x\n")
        (tmp_path / "postgresql.conf").write_text("x\n")
        manager = BackupManager(str(tmp_path))

        assert len(manager.list_backups()) == 1

    def test_injected_glob(self):
        manager = BackupManager("/backups", glob_fn=lambda pattern: [
            "/backups/timescaledb_tune.backup202401010000",
        ])

        assert manager.list_backups() == ["/backups/timescaledb_tune.backup202401010000"]

    def test_empty(self, tmp_path: Path):
        assert BackupManager(str(tmp_path)).list_backups() == []


class TestRestore:
    """Tests for restoring backups."""

    def test_overwrites_config(self, tmp_path: Path):
        backup = tmp_path / f"{BACKUP_FILE_PREFIX}202401010000"
        backup.write_text("shared_buffers = 128MB\n")
        conf = tmp_path / "postgresql.conf"
        conf.write_text("shared_buffers = 2GB\nwork_mem = 26214kB\nmax_connections = 20\n")

        BackupManager(str(tmp_path)).restore(str(backup), str(conf))

        assert conf.read_text() == "shared_buffers = 128MB\n"

    def test_non_utf8_bytes_restored_exactly(self, tmp_path: Path):
        """Backups round trip bytes that are not UTF-8."""
        original = b"# Gr\xf6\xdfe\nshared_buffers = 128MB\n"
        conf = tmp_path / "postgresql.conf"
        conf.write_bytes(original)
        manager = BackupManager(str(tmp_path), now_fn=lambda: BACKUP_TIME)

        with open(conf, "rb") as f:
            backup = manager.create(ConfigFileState.from_stream(f, PatternRegistry()))
        conf.write_bytes(b"shared_buffers = 2GB\n")
        manager.restore(backup, str(conf))

        assert Path(backup).read_bytes() == original
        assert conf.read_bytes() == original

    def test_missing_backup(self, tmp_path: Path):
        conf = tmp_path / "postgresql.conf"
        conf.write_text("a = 1\n")

        with pytest.raises(BackupError):
            BackupManager(str(tmp_path)).restore(str(tmp_path / "missing"), str(conf))
        assert conf.read_text() == "a = 1\n"

    def test_missing_config(self, tmp_path: Path):
        backup = tmp_path / f"{BACKUP_FILE_PREFIX}202401010000"
        backup.write_text("a = 1\n")

        with pytest.raises(BackupError):
            BackupManager(str(tmp_path)).restore(str(backup), str(tmp_path / "missing.conf"))


class TestParseBackupTime:
    """Tests for parse_backup_time."""

    def test_valid(self):
        assert parse_backup_time("/tmp/timescaledb_tune.backup202401020304") == BACKUP_TIME

    @pytest.mark.parametrize("path", [
        "/tmp/timescaledb_tune.backup",
        "/tmp/timescaledb_tune.backup2024010203041",
        "/tmp/timescaledb_tune.backup202413020304",
        "/tmp/other202401020304",
    ])
    def test_invalid(self, path: str):
        assert parse_backup_time(path) is None
