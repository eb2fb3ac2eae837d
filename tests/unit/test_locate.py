"""Unit tests for finding postgresql.conf."""

import os
import stat
from pathlib import Path

import pytest

from tstune.core.exceptions import PrerequisiteError
from tstune.services.locate import (
    FILE_NAME_ARCH,
    FILE_NAME_MAC,
    ConfigPathLocator,
)


def fake_stat(existing: set[str]):
    """stat function that only knows the given regular files."""
    def stat_fn(path: str) -> os.stat_result:
        if path not in existing:
            raise FileNotFoundError(path)
        return os.stat_result((stat.S_IFREG | 0o644, 0, 0, 1, 0, 0, 0, 0, 0, 0))
    return stat_fn


class TestCandidates:
    """Tests for per-platform candidate paths."""

    def test_linux(self):
        locator = ConfigPathLocator(platform="linux")

        assert locator.candidates("16") == [
            "/etc/postgresql/16/main/postgresql.conf",
            "/var/lib/pgsql/16/data/postgresql.conf",
            FILE_NAME_ARCH,
        ]

    def test_macos(self):
        assert ConfigPathLocator(platform="darwin").candidates("16") == [FILE_NAME_MAC]

    def test_other_platform(self):
        assert ConfigPathLocator(platform="win32").candidates("16") == []


class TestFind:
    """Tests for ConfigPathLocator.find."""

    def test_debian_path(self):
        path = "/etc/postgresql/14/main/postgresql.conf"
        locator = ConfigPathLocator(stat_fn=fake_stat({path}), platform="linux")

        assert locator.find("14") == path

    def test_first_existing_wins(self):
        rpm = "/var/lib/pgsql/9.6/data/postgresql.conf"
        locator = ConfigPathLocator(stat_fn=fake_stat({rpm, FILE_NAME_ARCH}), platform="linux")

        assert locator.find("9.6") == rpm

    def test_not_found(self):
        locator = ConfigPathLocator(stat_fn=fake_stat(set()), platform="linux")

        with pytest.raises(PrerequisiteError) as exc:
            locator.find("16")
        assert "/etc/postgresql/16/main/postgresql.conf" in str(exc.value)
        assert "--conf-path" in exc.value.hint

    def test_unsupported_platform(self):
        locator = ConfigPathLocator(stat_fn=fake_stat({FILE_NAME_MAC}), platform="win32")

        with pytest.raises(PrerequisiteError):
            locator.find("16")


class TestResolve:
    """Tests for ConfigPathLocator.resolve."""

    def test_directory(self, tmp_path: Path):
        locator = ConfigPathLocator()

        assert locator.resolve(str(tmp_path)) == str(tmp_path / "postgresql.conf")

    def test_file(self, tmp_path: Path):
        conf = tmp_path / "custom.conf"
        conf.write_text("")

        assert ConfigPathLocator().resolve(str(conf)) == str(conf)

    def test_missing_path_unchanged(self, tmp_path: Path):
        missing = str(tmp_path / "missing.conf")

        assert ConfigPathLocator().resolve(missing) == missing
