"""Custom exceptions for the TimescaleDB tuning CLI.

All exceptions provide:
- Clear error messages
- Optional hints for resolution
- Optional details for debugging
- Exit codes for proper shell integration
"""

from typing import Optional


class TuneError(Exception):
    """Base exception for all tstune errors.

    Attributes:
        message: Human-readable error description
        hint: Suggested action to resolve the error
        details: Additional context for debugging
        exit_code: Shell exit code (1-127)
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or []

    def __str__(self) -> str:
        return self.message


class ConfigurationError(TuneError):
    """tstune's own configuration file or settings errors.

    Raised when:
    - Config file not found or unreadable
    - Invalid YAML syntax
    - Invalid configuration values
    """
    exit_code = 2


class ValidationError(TuneError):
    """Input validation errors.

    Raised when:
    - Invalid byte strings (e.g. --memory)
    - Unsupported PostgreSQL version
    - Out-of-range CPU, connection or worker counts
    """
    exit_code = 3


class PrerequisiteError(TuneError):
    """Missing prerequisites.

    Raised when:
    - pg_config not found or unusable
    - postgresql.conf cannot be located
    - Unsupported OS
    """
    exit_code = 6


class ConfigFileError(TuneError):
    """postgresql.conf read/write failures.

    Raised when:
    - The stream cannot be read or decoded
    - The output cannot be truncated or rewound
    - A write to the output fails
    """
    exit_code = 8


class RecommenderError(TuneError):
    """Recommender contract violations.

    Raised when:
    - A recommended value cannot be parsed by its float parser
    - A recommender is constructed with unusable inputs
    """
    exit_code = 9


class BackupError(TuneError):
    """Backup/restore errors.

    Raised when:
    - Backup file cannot be created or written
    - No backups are available to restore
    - Restoring a backup over the config file fails
    """
    exit_code = 12


class PromptDeclined(TuneError):
    """The operator answered no or quit at a prompt.

    The message explains what the declined step means; an empty
    message is used when declining is a normal way to end a step.
    """
    exit_code = 1


class PatternInvariantError(TuneError):
    """A setting pattern matched with the wrong number of groups.

    This is an internal error: compiled setting patterns always have
    exactly four capture groups.
    """
    exit_code = 70
