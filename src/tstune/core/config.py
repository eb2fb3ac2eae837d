"""Configuration management using Pydantic.

Provides:
- Typed configuration models with validation
- YAML file loading with defaults
- Environment variable overrides
- Configuration initialization and display
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from tstune.core.exceptions import ConfigurationError, TuneError
from tstune.core.validation import (
    validate_bytes,
    validate_cpus,
    validate_max_bg_workers,
    validate_max_conns,
    validate_optional_path,
    validate_pg_version,
)
from tstune.services.tuning import (
    MAX_BACKGROUND_WORKERS_DEFAULT,
    TuneProfile,
)


# Default configuration paths
DEFAULT_CONFIG_PATH = Path("/etc/tstune/config.yaml")
DEFAULT_LOG_DIR = Path("/var/log/tstune")


def _check(validator, value):
    """Run a tstune validator inside a pydantic field validator."""
    try:
        return validator(value)
    except TuneError as e:
        raise ValueError(e.message) from e


class TuningConfig(BaseModel):
    """Defaults for the resources recommendations are based on."""

    memory: Optional[str] = None
    cpus: Optional[int] = None
    wal_disk_size: Optional[str] = None
    max_conns: Optional[int] = None
    max_bg_workers: int = MAX_BACKGROUND_WORKERS_DEFAULT
    pg_version: Optional[str] = None
    profile: TuneProfile = TuneProfile.DEFAULT

    @field_validator("memory", "wal_disk_size")
    @classmethod
    def validate_bytes(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            _check(validate_bytes, v)
        return v

    @field_validator("cpus")
    @classmethod
    def validate_cpus(cls, v: Optional[int]) -> Optional[int]:
        if v is not None:
            _check(validate_cpus, v)
        return v

    @field_validator("max_conns")
    @classmethod
    def validate_max_conns(cls, v: Optional[int]) -> Optional[int]:
        if v is not None:
            _check(validate_max_conns, v)
        return v

    @field_validator("max_bg_workers")
    @classmethod
    def validate_max_bg_workers(cls, v: int) -> int:
        return _check(validate_max_bg_workers, v)

    @field_validator("pg_version", mode="before")
    @classmethod
    def validate_pg_version(cls, v: Optional[object]) -> Optional[str]:
        if v is None:
            return None
        # YAML reads 9.6 as a float
        return _check(validate_pg_version, str(v))


class PathsConfig(BaseModel):
    """File locations."""

    conf_path: Optional[str] = None
    out_path: Optional[str] = None
    pg_config: str = "pg_config"
    backup_dir: str = Field(default_factory=tempfile.gettempdir)

    @field_validator("conf_path", "out_path")
    @classmethod
    def validate_paths(cls, v: Optional[str]) -> Optional[str]:
        return _check(validate_optional_path, v)


class AuditConfig(BaseModel):
    """Audit log settings."""

    enabled: bool = True
    log_path: Path = DEFAULT_LOG_DIR / "audit.log"


class TuneConfig(BaseModel):
    """Root configuration model.

    This is the configuration loaded from /etc/tstune/config.yaml.
    """

    tuning: TuningConfig = Field(default_factory=TuningConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    @classmethod
    def load(cls, path: Path) -> "TuneConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            Loaded configuration

        Raises:
            ConfigurationError: If file not found or invalid
        """
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                hint="Create it with: tstune config init",
            )

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {path}",
                details=[str(e)],
            ) from e
        except PermissionError:
            raise ConfigurationError(
                f"Cannot read configuration file: {path}",
                hint="Check file permissions or run with sudo",
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Invalid configuration: expected a mapping in {path}",
            )

        try:
            return cls(**data)
        except Exception as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                details=[str(e)],
            ) from e

    @classmethod
    def load_or_default(cls, path: Optional[Path] = None) -> "TuneConfig":
        """Load configuration, falling back to defaults if file doesn't exist."""
        if path is None:
            path = DEFAULT_CONFIG_PATH

        if path.exists():
            return cls.load(path)
        return cls()

    def to_yaml(self) -> str:
        """Convert configuration to YAML string."""
        data = self.model_dump(mode="json", exclude_none=True)
        return yaml.dump(data, default_flow_style=False, sort_keys=False)


class EnvOverrides(BaseSettings):
    """Overrides read from TSTUNE_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="TSTUNE_", extra="ignore")

    conf_path: Optional[str] = None
    pg_config: Optional[str] = None
    memory: Optional[str] = None
    cpus: Optional[int] = None


class AppConfig:
    """Application configuration combining config file and environment.

    Environment overrides take precedence over the file; CLI flags take
    precedence over both and are applied by the commands.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config: Optional[TuneConfig] = None,
    ) -> None:
        """Initialize application configuration.

        Args:
            config_path: Path to config file (uses default if None)
            config: Pre-loaded config (skips file loading if provided)
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = config or TuneConfig.load_or_default(self.config_path)
        try:
            self._env = EnvOverrides()
        except PydanticValidationError as e:
            raise ConfigurationError(
                "Invalid TSTUNE_* environment variable",
                details=[str(e)],
            ) from e

    @property
    def config(self) -> TuneConfig:
        return self._config

    @property
    def env(self) -> EnvOverrides:
        return self._env

    @property
    def tuning(self) -> TuningConfig:
        return self._config.tuning

    @property
    def paths(self) -> PathsConfig:
        return self._config.paths

    @property
    def audit(self) -> AuditConfig:
        return self._config.audit

    @property
    def conf_path(self) -> Optional[str]:
        return self._env.conf_path or self.paths.conf_path

    @property
    def pg_config(self) -> str:
        return self._env.pg_config or self.paths.pg_config

    @property
    def memory(self) -> Optional[str]:
        return self._env.memory or self.tuning.memory

    @property
    def cpus(self) -> Optional[int]:
        return self._env.cpus or self.tuning.cpus


def get_example_config() -> str:
    """Generate example configuration file content."""
    return """# tstune configuration
# Command line flags take precedence over these values, and
# TSTUNE_CONF_PATH, TSTUNE_PG_CONFIG, TSTUNE_MEMORY and TSTUNE_CPUS
# take precedence over the file.

# Resources to base recommendations on (detected when unset)
tuning:
  # memory: 8GB
  # cpus: 4
  # wal_disk_size: 100GB
  # max_conns: 50
  max_bg_workers: 8
  # pg_version: "16"
  profile: default  # default, promscale

# File locations
paths:
  # conf_path: /etc/postgresql/16/main/postgresql.conf
  # out_path: /etc/postgresql/16/main/postgresql.conf
  pg_config: pg_config
  # backup_dir: /var/backups/tstune

# Audit log of config changes
audit:
  enabled: true
  log_path: /var/log/tstune/audit.log
"""


def init_config(path: Path, force: bool = False) -> None:
    """Initialize a new configuration file.

    Args:
        path: Path to create config file
        force: Overwrite if exists

    Raises:
        ConfigurationError: If file exists and force is False
    """
    if path.exists() and not force:
        raise ConfigurationError(
            f"Configuration file already exists: {path}",
            hint="Use --force to overwrite",
        )

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(get_example_config())
    os.chmod(path, 0o600)
