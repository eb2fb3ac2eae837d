"""Core framework components for tstune."""

from tstune.core.exceptions import (
    TuneError,
    ConfigurationError,
    ValidationError,
    PrerequisiteError,
    ConfigFileError,
    RecommenderError,
    BackupError,
    PromptDeclined,
    PatternInvariantError,
)
from tstune.core.output import console, Console, Verbosity

__all__ = [
    # Exceptions
    "TuneError",
    "ConfigurationError",
    "ValidationError",
    "PrerequisiteError",
    "ConfigFileError",
    "RecommenderError",
    "BackupError",
    "PromptDeclined",
    "PatternInvariantError",
    # Output
    "console",
    "Console",
    "Verbosity",
]
