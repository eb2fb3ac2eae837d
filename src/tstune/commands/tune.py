"""Tune postgresql.conf for TimescaleDB.

Commands:
- tstune tune (interactive)
- tstune tune --quiet --yes (non-interactive)
- tstune tune --dry-run (show recommendations only)
"""

from enum import Enum
from typing import Annotated, Optional

import typer

from tstune.commands.common import (
    ConfigOption,
    ConfPathOption,
    DryRunOption,
    NoColorOption,
    PgConfigOption,
    PgVersionOption,
    QuietOption,
    VerboseOption,
    YesOption,
    handle_error,
)
from tstune.core.audit import configure_audit_logger
from tstune.core.config import AppConfig
from tstune.core.context import create_context
from tstune.core.exceptions import TuneError
from tstune.core.validation import (
    validate_cpus,
    validate_max_bg_workers,
    validate_max_conns,
    validate_optional_path,
)
from tstune.services.backup import BackupManager
from tstune.services.tuner import TuneOutcome, Tuner, TunerFlags
from tstune.services.tuning import TuneProfile


class ProfileChoice(str, Enum):
    """CLI profile choices."""

    DEFAULT = "default"
    PROMSCALE = "promscale"


app = typer.Typer(
    name="tune",
    help="Tune postgresql.conf for TimescaleDB.",
    no_args_is_help=False,  # Allow running without args
)


def build_flags(
    app_config: AppConfig,
    *,
    memory: Optional[str] = None,
    cpus: Optional[int] = None,
    pg_version: Optional[str] = None,
    wal_disk_size: Optional[str] = None,
    max_conns: Optional[int] = None,
    max_bg_workers: Optional[int] = None,
    profile: Optional[ProfileChoice] = None,
    conf_path: Optional[str] = None,
    out_path: Optional[str] = None,
    pg_config: Optional[str] = None,
    quiet: bool = False,
) -> TunerFlags:
    """Merge command line options over the configuration file.

    Raises:
        ValidationError: If an option value is out of range
    """
    tuning = app_config.tuning
    if cpus is not None:
        validate_cpus(cpus)
    if max_conns is not None:
        validate_max_conns(max_conns)
    if max_bg_workers is not None:
        validate_max_bg_workers(max_bg_workers)
    validate_optional_path(conf_path)
    validate_optional_path(out_path)

    return TunerFlags(
        conf_path=conf_path or app_config.conf_path,
        out_path=out_path or app_config.paths.out_path,
        pg_config=pg_config or app_config.pg_config,
        pg_version=pg_version or tuning.pg_version,
        memory=memory or app_config.memory,
        cpus=cpus or app_config.cpus,
        wal_disk_size=wal_disk_size or tuning.wal_disk_size,
        max_conns=max_conns or tuning.max_conns,
        max_bg_workers=max_bg_workers or tuning.max_bg_workers,
        profile=TuneProfile(profile.value) if profile else tuning.profile,
        quiet=quiet,
    )


def _display_outcome(console, outcome: TuneOutcome) -> None:
    console.summary("Tuning Summary", {
        "Config file": outcome.conf_path,
        "PostgreSQL": outcome.pg_version,
        "Backup": outcome.backup_path or "-",
        "shared_preload_libraries updated": outcome.shared_lib_updated,
        "Updated groups": ", ".join(outcome.updated_groups) or "none",
        "Skipped groups": ", ".join(outcome.skipped_groups) or "none",
        "Written to": outcome.out_path or "-",
    })
    if outcome.written:
        console.hint("Restart PostgreSQL for the changes to take effect")


@app.callback(invoke_without_command=True)
def tune(
    memory: Annotated[Optional[str], typer.Option(
        "--memory",
        help="Memory to base recommendations on, e.g. 4GB. Default is all system memory.",
    )] = None,
    cpus: Annotated[Optional[int], typer.Option(
        "--cpus",
        help="Number of CPU cores to base recommendations on. Default is all cores.",
    )] = None,
    pg_version: PgVersionOption = None,
    wal_disk_size: Annotated[Optional[str], typer.Option(
        "--wal-disk-size",
        help="Size of the disk holding the WAL, e.g. 100GB. Helps tune WAL settings.",
    )] = None,
    max_conns: Annotated[Optional[int], typer.Option(
        "--max-conns",
        help="Max number of connections for the database.",
    )] = None,
    max_bg_workers: Annotated[Optional[int], typer.Option(
        "--max-bg-workers",
        help="Max number of TimescaleDB background workers (at least 8).",
    )] = None,
    profile: Annotated[Optional[ProfileChoice], typer.Option(
        "--profile",
        help="Workload profile: default, or promscale for Promscale ingest.",
        case_sensitive=False,
    )] = None,
    conf_path: ConfPathOption = None,
    out_path: Annotated[Optional[str], typer.Option(
        "--out-path",
        help="Path to write the new configuration file. Default is the file read from.",
    )] = None,
    pg_config: PgConfigOption = None,
    quiet: QuietOption = False,
    yes: YesOption = False,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Tune postgresql.conf for TimescaleDB.

    Reads postgresql.conf, makes sure timescaledb is in
    shared_preload_libraries, and recommends memory, parallelism,
    WAL and other settings based on the system's resources.

    Examples:

        # Interactive tuning
        tstune tune

        # Accept every recommendation without prompts
        tstune tune --quiet --yes

        # Show recommendations for a smaller machine without writing
        tstune tune --memory 4GB --cpus 2 --dry-run

    A backup of the original file is written before any change and can be
    restored with: tstune restore
    """
    ctx = create_context(
        dry_run=dry_run,
        yes=yes,
        verbose=verbose,
        quiet=quiet,
        no_color=no_color,
        config=config,
    )

    try:
        app_config = ctx.config
        flags = build_flags(
            app_config,
            memory=memory,
            cpus=cpus,
            pg_version=pg_version,
            wal_disk_size=wal_disk_size,
            max_conns=max_conns,
            max_bg_workers=max_bg_workers,
            profile=profile,
            conf_path=conf_path,
            out_path=out_path,
            pg_config=pg_config,
            quiet=quiet,
        )
        audit = configure_audit_logger(
            log_path=app_config.audit.log_path,
            enabled=app_config.audit.enabled,
        )
        tuner = Tuner(
            ctx,
            flags,
            backups=BackupManager(app_config.paths.backup_dir),
            audit=audit,
        )
        outcome = tuner.run()
        _display_outcome(ctx.console, outcome)
    except TuneError as e:
        handle_error(e)
