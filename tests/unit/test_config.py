"""Unit tests for tstune's configuration file and environment overrides."""

import stat
from pathlib import Path

import pytest
import yaml

from tstune.core.config import (
    AppConfig,
    TuneConfig,
    get_example_config,
    init_config,
)
from tstune.core.exceptions import ConfigurationError
from tstune.services.tuning import TuneProfile


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make sure no TSTUNE_* variables leak in from the environment."""
    for name in ("TSTUNE_CONF_PATH", "TSTUNE_PG_CONFIG", "TSTUNE_MEMORY", "TSTUNE_CPUS"):
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestTuneConfigLoad:
    """Tests for loading the YAML file."""

    def test_valid_file(self, tmp_path: Path):
        path = write_config(tmp_path, """
tuning:
  memory: 8GB
  cpus: 4
  pg_version: 9.6
  profile: promscale
paths:
  conf_path: /etc/postgresql/16/main/postgresql.conf
  backup_dir: /var/backups/tstune
audit:
  enabled: false
""")
        config = TuneConfig.load(path)

        assert config.tuning.memory == "8GB"
        assert config.tuning.cpus == 4
        assert config.tuning.pg_version == "9.6"
        assert config.tuning.profile == TuneProfile.PROMSCALE
        assert config.paths.backup_dir == "/var/backups/tstune"
        assert config.audit.enabled is False

    def test_empty_file_uses_defaults(self, tmp_path: Path):
        config = TuneConfig.load(write_config(tmp_path, ""))

        assert config.tuning.max_bg_workers == 8
        assert config.paths.pg_config == "pg_config"
        assert config.paths.backup_dir

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError) as exc:
            TuneConfig.load(tmp_path / "missing.yaml")
        assert "tstune config init" in exc.value.hint

    def test_invalid_yaml(self, tmp_path: Path):
        with pytest.raises(ConfigurationError) as exc:
            TuneConfig.load(write_config(tmp_path, "tuning: [unclosed\n"))
        assert "Invalid YAML" in str(exc.value)

    def test_not_a_mapping(self, tmp_path: Path):
        with pytest.raises(ConfigurationError):
            TuneConfig.load(write_config(tmp_path, "- a\n- b\n"))

    @pytest.mark.parametrize("text", [
        "tuning:\n  memory: lots\n",
        "tuning:\n  cpus: 0\n",
        "tuning:\n  max_bg_workers: 2\n",
        "tuning:\n  pg_version: 8.4\n",
        "tuning:\n  profile: oltp\n",
        "paths:\n  conf_path: /tmp/a;rm\n",
    ])
    def test_invalid_values(self, tmp_path: Path, text: str):
        with pytest.raises(ConfigurationError):
            TuneConfig.load(write_config(tmp_path, text))

    def test_load_or_default(self, tmp_path: Path):
        config = TuneConfig.load_or_default(tmp_path / "missing.yaml")

        assert config.tuning.memory is None

    def test_to_yaml(self):
        data = yaml.safe_load(TuneConfig().to_yaml())

        assert data["tuning"]["profile"] == "default"
        assert "memory" not in data["tuning"]


class TestAppConfig:
    """Tests for environment overrides."""

    def test_file_values(self, tmp_path: Path):
        path = write_config(tmp_path, "tuning:\n  memory: 8GB\n  cpus: 4\n")
        config = AppConfig(config_path=path)

        assert config.memory == "8GB"
        assert config.cpus == 4
        assert config.conf_path is None

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("TSTUNE_MEMORY", "4GB")
        monkeypatch.setenv("TSTUNE_CPUS", "2")
        monkeypatch.setenv("TSTUNE_CONF_PATH", "/srv/pg/postgresql.conf")
        monkeypatch.setenv("TSTUNE_PG_CONFIG", "/usr/pgsql-16/bin/pg_config")
        path = write_config(tmp_path, "tuning:\n  memory: 8GB\n  cpus: 4\n")

        config = AppConfig(config_path=path)

        assert config.memory == "4GB"
        assert config.cpus == 2
        assert config.conf_path == "/srv/pg/postgresql.conf"
        assert config.pg_config == "/usr/pgsql-16/bin/pg_config"

    def test_invalid_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("TSTUNE_CPUS", "many")

        with pytest.raises(ConfigurationError):
            AppConfig(config_path=tmp_path / "missing.yaml")

    def test_preloaded_config(self):
        config = AppConfig(config=TuneConfig(tuning={"cpus": 16}))

        assert config.cpus == 16


class TestInitConfig:
    """Tests for config file initialization."""

    def test_creates_file(self, tmp_path: Path):
        path = tmp_path / "etc" / "config.yaml"

        init_config(path)

        assert path.read_text() == get_example_config()
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_existing_file(self, tmp_path: Path):
        path = write_config(tmp_path, "tuning: {}\n")

        with pytest.raises(ConfigurationError):
            init_config(path)
        init_config(path, force=True)
        assert path.read_text() == get_example_config()

    def test_example_is_valid(self, tmp_path: Path):
        config = TuneConfig.load(write_config(tmp_path, get_example_config()))

        assert config.tuning.profile == TuneProfile.DEFAULT
        assert config.audit.enabled is True
