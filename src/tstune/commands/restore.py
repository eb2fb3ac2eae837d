"""Restore postgresql.conf from a backup taken by tstune tune."""

import typer

from tstune.commands.common import (
    ConfigOption,
    ConfPathOption,
    DryRunOption,
    NoColorOption,
    PgConfigOption,
    PgVersionOption,
    VerboseOption,
    YesOption,
    handle_error,
)
from tstune.core.audit import configure_audit_logger
from tstune.core.context import create_context
from tstune.core.exceptions import TuneError
from tstune.services.backup import BackupManager
from tstune.services.tuner import Tuner, TunerFlags


app = typer.Typer(
    name="restore",
    help="Restore postgresql.conf from a backup.",
    no_args_is_help=False,
)


@app.callback(invoke_without_command=True)
def restore(
    conf_path: ConfPathOption = None,
    pg_version: PgVersionOption = None,
    pg_config: PgConfigOption = None,
    yes: YesOption = False,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Restore postgresql.conf from a previous backup.

    Lists the backups written by tstune tune, most recent first, and
    writes the chosen one over postgresql.conf. With --yes the most
    recent backup is restored.
    """
    ctx = create_context(
        dry_run=dry_run,
        yes=yes,
        verbose=verbose,
        no_color=no_color,
        config=config,
    )

    try:
        app_config = ctx.config
        flags = TunerFlags(
            conf_path=conf_path or app_config.conf_path,
            pg_config=pg_config or app_config.pg_config,
            pg_version=pg_version or app_config.tuning.pg_version,
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
        tuner.restore()
    except TuneError as e:
        handle_error(e)
