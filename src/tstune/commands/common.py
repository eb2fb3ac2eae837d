"""Options and helpers shared by all commands."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from tstune.core.config import DEFAULT_CONFIG_PATH
from tstune.core.exceptions import TuneError
from tstune.core.output import console as app_console


# Type aliases for common options
DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        help="Show the changes without overwriting the configuration file.",
        is_flag=True,
    ),
]

YesOption = Annotated[
    bool,
    typer.Option(
        "--yes",
        "-y",
        help="Answer 'yes' to every prompt.",
        is_flag=True,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase output verbosity. Can be repeated (-v, -vv).",
    ),
]

QuietOption = Annotated[
    bool,
    typer.Option(
        "--quiet",
        "-q",
        help="Show only the recommendations and a single confirmation.",
        is_flag=True,
    ),
]

NoColorOption = Annotated[
    bool,
    typer.Option(
        "--no-color",
        help="Disable colored output.",
        is_flag=True,
    ),
]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help=f"Path to tstune configuration file. Default: {DEFAULT_CONFIG_PATH}",
        exists=False,
        file_okay=True,
        dir_okay=False,
    ),
]

ConfPathOption = Annotated[
    Optional[str],
    typer.Option(
        "--conf-path",
        help="Path to postgresql.conf (or its directory). If blank, heuristics are used to find it.",
    ),
]

PgVersionOption = Annotated[
    Optional[str],
    typer.Option(
        "--pg-version",
        help="Major version of PostgreSQL to base recommendations on. Default is determined via pg_config.",
    ),
]

PgConfigOption = Annotated[
    Optional[str],
    typer.Option(
        "--pg-config",
        help="Path to the pg_config binary.",
    ),
]


def handle_error(error: TuneError) -> None:
    """Handle a TuneError by printing formatted error and exiting."""
    app_console.error("error", error.message)

    if error.details:
        for detail in error.details:
            app_console.verbose(f"  {detail}")

    if error.hint:
        app_console.hint(error.hint)

    raise typer.Exit(error.exit_code)
