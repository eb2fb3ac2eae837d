"""Main CLI entry point using Typer.

This module defines the root CLI application and global options.
Command groups are registered from submodules.
"""

import platform
import sys
from typing import Annotated

import typer
from rich.console import Console

from tstune import __version__
from tstune.commands.common import (
    ConfigOption,
    NoColorOption,
    VerboseOption,
    handle_error,
)
from tstune.core.config import AppConfig, TuneConfig, get_example_config, init_config
from tstune.core.context import create_context
from tstune.core.exceptions import TuneError


# Create the main Typer app
app = typer.Typer(
    name="tstune",
    help="Tune PostgreSQL configuration for TimescaleDB.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)

config_app = typer.Typer(
    name="config",
    help="tstune configuration management.",
    no_args_is_help=True,
)

# Import sub-commands
from tstune.commands.tune import app as tune_app
from tstune.commands.restore import app as restore_app

# Register command groups
app.add_typer(tune_app, name="tune")
app.add_typer(restore_app, name="restore")
app.add_typer(config_app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console = Console()
        console.print(f"tstune {__version__} ({sys.platform} {platform.machine()})")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Tune PostgreSQL configuration for TimescaleDB.

    Recommends memory, parallelism, WAL and other settings for
    postgresql.conf based on the machine's resources, and makes sure
    the timescaledb extension is preloaded.

    [bold]Features:[/bold]
    - Every line it does not change is kept as-is
    - A backup is written before each change
    - Dry-run mode to preview changes

    [bold]Examples:[/bold]
        tstune tune
        tstune tune --quiet --yes
        tstune tune --conf-path /etc/postgresql/16/main --dry-run
        tstune restore
        tstune config show
    """
    pass


# ============================================================================
# Config commands
# ============================================================================

@config_app.command("show")
def config_show(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Show current configuration.

    Displays the loaded configuration file and the TSTUNE_*
    environment overrides.
    """
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)

    try:
        app_config = ctx.config

        ctx.console.print()
        ctx.console.print(f"[bold]Configuration file:[/bold] {ctx.config_path}")
        ctx.console.print(f"[bold]File exists:[/bold] {ctx.config_path.exists()}")
        ctx.console.print()

        ctx.console.yaml(app_config.config.to_yaml(), title="Configuration")

        env = app_config.env
        ctx.console.summary("Environment overrides", {
            "TSTUNE_CONF_PATH": env.conf_path or "Not set",
            "TSTUNE_PG_CONFIG": env.pg_config or "Not set",
            "TSTUNE_MEMORY": env.memory or "Not set",
            "TSTUNE_CPUS": env.cpus or "Not set",
        })

    except TuneError as e:
        handle_error(e)


@config_app.command("init")
def config_init(
    config: ConfigOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing file.", is_flag=True),
    ] = False,
    no_color: NoColorOption = False,
) -> None:
    """Initialize a new configuration file.

    Creates a configuration file with defaults and comments.
    """
    ctx = create_context(no_color=no_color, config=config)

    try:
        init_config(ctx.config_path, force=force)
        ctx.console.success(f"Configuration file created: {ctx.config_path}")
        ctx.console.hint("Edit the file to set defaults for tstune tune")

    except TuneError as e:
        handle_error(e)


@config_app.command("validate")
def config_validate(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Validate configuration file.

    Checks that the configuration file exists, is valid YAML,
    and all values pass validation.
    """
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)

    try:
        # Raises ConfigurationError if missing or invalid
        loaded = TuneConfig.load(ctx.config_path)
        app_config = AppConfig(config_path=ctx.config_path, config=loaded)
        ctx.console.success(f"Configuration is valid: {ctx.config_path}")

        if ctx.is_verbose:
            ctx.console.yaml(app_config.config.to_yaml())

    except TuneError as e:
        handle_error(e)


@config_app.command("example")
def config_example(no_color: NoColorOption = False) -> None:
    """Print example configuration file."""
    ctx = create_context(no_color=no_color)
    ctx.console.line(get_example_config())


# Entry point
if __name__ == "__main__":
    app()
