"""Interactive tuning of postgresql.conf for TimescaleDB.

Provides:
- Locating and confirming the config file
- Backing it up before changes
- Updating shared_preload_libraries
- Walking the operator through each settings group
- Writing the result, or just showing it in dry-run mode
- Restoring a previous backup
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from tstune import __version__
from tstune.conffile.diff import compute_visible_keys
from tstune.conffile.parsers import (
    TunableParseResult,
    parse_shared_lib_line,
    update_shared_lib_line,
)
from tstune.conffile.patterns import PatternRegistry
from tstune.conffile.state import (
    LINE_ENCODING,
    LINE_ERRORS,
    ConfigFileState,
    get_remove_dupe_processors,
)
from tstune.core.audit import AuditEventType, AuditLogger, get_audit_logger
from tstune.core.context import ExecutionContext
from tstune.core.exceptions import BackupError, ConfigFileError, PromptDeclined
from tstune.core.prompts import (
    PROMPT_SKIP,
    PROMPT_YES_NO,
    NumberedListChecker,
    PromptChecker,
    PromptSkipped,
    SkipChecker,
    YesNoChecker,
    prompt_until_valid,
)
from tstune.core.validation import validate_bytes, validate_pg_version
from tstune.services.backup import BackupManager, parse_backup_time
from tstune.services.locate import ConfigPathLocator
from tstune.services.pgutils import DEFAULT_PG_CONFIG, PgConfigProbe
from tstune.services.tuning import (
    ALL_TUNABLE_KEYS,
    MAX_BACKGROUND_WORKERS_DEFAULT,
    MAX_CONNECTIONS_DEFAULT,
    Recommender,
    SettingsGroup,
    SystemInfo,
    TuneProfile,
    get_cpu_count,
    get_settings_groups,
    get_total_memory,
)
from tstune.services.units import bytes_to_decimal_format, pretty_duration

CURRENT_LABEL = "Current:"
RECOMMEND_LABEL = "Recommended:"
PROMPT_OKAY = "Is this okay? "

ERR_SHARED_LIB_NEEDED = (
    "`timescaledb` needs to be added to shared_preload_libraries in order for it to work"
)
PLAIN_SHARED_LIB_LINE = "shared_preload_libraries = 'timescaledb'\t# (change requires restart)"

LAST_TUNED_KEY = "timescaledb.last_tuned"
LAST_TUNED_VERSION_KEY = "timescaledb.last_tuned_version"
FMT_LAST_TUNED = "{key} = '{value}'"
FMT_TUNABLE_PARAM = "{key} = {value}{extra}"


@dataclass
class TunerFlags:
    """Options controlling a tuning or restore run.

    Resource values left as None are detected from the system.
    """

    conf_path: Optional[str] = None
    out_path: Optional[str] = None
    pg_config: str = DEFAULT_PG_CONFIG
    pg_version: Optional[str] = None
    memory: Optional[str] = None
    cpus: Optional[int] = None
    wal_disk_size: Optional[str] = None
    max_conns: Optional[int] = None
    max_bg_workers: int = MAX_BACKGROUND_WORKERS_DEFAULT
    profile: TuneProfile = TuneProfile.DEFAULT
    quiet: bool = False


@dataclass
class TuneOutcome:
    """What a tuning run did."""

    conf_path: str
    pg_version: str
    out_path: Optional[str] = None
    backup_path: Optional[str] = None
    shared_lib_updated: bool = False
    updated_groups: list[str] = field(default_factory=list)
    skipped_groups: list[str] = field(default_factory=list)
    written: bool = False


def format_setting(key: str, value: str, extra: str = "") -> str:
    """Render a setting line as written to the config file."""
    return FMT_TUNABLE_PARAM.format(key=key, value=value, extra=extra)


def tunable_registry() -> PatternRegistry:
    """Patterns for every key any settings group can tune."""
    return PatternRegistry(ALL_TUNABLE_KEYS)


class Tuner:
    """Runs the tuning and restore workflows.

    Args:
        ctx: Execution context (dry-run, yes, console)
        flags: Tuning options
        locator: Finds postgresql.conf when no path is given
        probe: Reads the PostgreSQL version from pg_config
        backups: Creates and restores backups
        audit: Audit logger for config changes
        memory_fn: Detects total memory in bytes
        cpu_fn: Detects the CPU count
        now_fn: Current time, for bookkeeping and backup ages
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        flags: TunerFlags,
        *,
        locator: Optional[ConfigPathLocator] = None,
        probe: Optional[PgConfigProbe] = None,
        backups: Optional[BackupManager] = None,
        audit: Optional[AuditLogger] = None,
        memory_fn: Callable[[], int] = get_total_memory,
        cpu_fn: Callable[[], int] = get_cpu_count,
        now_fn: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.ctx = ctx
        self.console = ctx.console
        self.flags = flags
        self.locator = locator or ConfigPathLocator()
        self.probe = probe or PgConfigProbe()
        self.backups = backups or BackupManager()
        self.audit = audit or get_audit_logger()
        self._memory_fn = memory_fn
        self._cpu_fn = cpu_fn
        self._now = now_fn or (lambda: datetime.now().astimezone())
        self.state: Optional[ConfigFileState] = None

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def _prompt(self, message: str, checker: PromptChecker) -> None:
        prompt_until_valid(self.console, message, checker, yes_always=self.ctx.yes)

    def resolve_pg_version(self) -> str:
        """PostgreSQL major version from the flags or pg_config."""
        if self.flags.pg_version:
            return validate_pg_version(self.flags.pg_version)
        return self.probe.get_major_version(self.flags.pg_config)

    def resolve_conf_path(self, pg_version: Optional[str]) -> str:
        """Find the config file and confirm it with the operator.

        A path given in the flags is used as-is (a directory is resolved to
        the postgresql.conf inside it). A discovered path must be confirmed.
        """
        if self.flags.conf_path:
            path = self.locator.resolve(self.flags.conf_path)
            discovered = False
        else:
            if pg_version is None:
                pg_version = self.resolve_pg_version()
            path = self.locator.find(pg_version)
            discovered = True

        self.console.statement("Using postgresql.conf at this path:")
        self.console.line(path)
        self.console.blank()
        if discovered:
            checker = YesNoChecker(
                "please pass in the correct path to postgresql.conf using the --conf-path flag"
            )
            self._prompt("Is this the correct path? " + PROMPT_YES_NO, checker)
        return path

    def load_state(self, path: str) -> ConfigFileState:
        """Read and parse the config file."""
        try:
            with open(path, "rb") as f:
                return ConfigFileState.from_stream(f, tunable_registry())
        except OSError as e:
            raise ConfigFileError(
                f"could not open config file for reading: {path}",
                hint="Check the path and file permissions, or run with sudo",
                details=[str(e)],
            ) from e

    def system_info(self, pg_version: str) -> SystemInfo:
        """Resources to base recommendations on, from flags or detection."""
        flags = self.flags
        total_memory = (
            validate_bytes(flags.memory, "memory") if flags.memory else self._memory_fn()
        )
        wal_disk_size = (
            validate_bytes(flags.wal_disk_size, "WAL disk size") if flags.wal_disk_size else 0
        )
        return SystemInfo(
            total_memory=total_memory,
            cpus=flags.cpus or self._cpu_fn(),
            pg_version=pg_version,
            wal_disk_size=wal_disk_size,
            max_conns=flags.max_conns or MAX_CONNECTIONS_DEFAULT,
            max_bg_workers=flags.max_bg_workers,
        )

    # -------------------------------------------------------------------------
    # Tuning
    # -------------------------------------------------------------------------

    def run(self) -> TuneOutcome:
        """Tune the config file.

        Returns:
            Outcome describing what changed

        Raises:
            TuneError: On any failure, or when the operator declines a
                required step
        """
        pg_version = self.resolve_pg_version()
        conf_path = self.resolve_conf_path(pg_version)
        outcome = TuneOutcome(conf_path=conf_path, pg_version=pg_version)

        info = self.system_info(pg_version)
        self.state = self.load_state(conf_path)

        if not self.ctx.dry_run:
            outcome.backup_path = self.backups.create(self.state)
            self.console.statement(f"Writing backup to: {outcome.backup_path}")
            self.console.blank()
            self.audit.log_success(
                AuditEventType.CONFIG_BACKUP,
                conf_path,
                message=f"Backup written to {outcome.backup_path}",
            )

        if self.flags.quiet:
            self.process_quiet(info, outcome)
        else:
            outcome.shared_lib_updated = self.process_shared_lib_line()
            self.console.blank()
            try:
                self._prompt(
                    "Tune memory/parallelism/WAL and other settings? " + PROMPT_YES_NO,
                    YesNoChecker(),
                )
            except PromptDeclined as e:
                if e.message:
                    raise
            else:
                self.process_tunables(info, outcome, quiet=False)

        self.update_last_tuned()
        self.write(conf_path, outcome)
        return outcome

    def _intro(self, info: SystemInfo) -> None:
        self.console.statement(
            f"Recommendations based on {bytes_to_decimal_format(info.total_memory)} "
            f"of available memory and {info.cpus} CPUs for PostgreSQL {info.pg_version}"
        )

    def process_shared_lib_line(self) -> bool:
        """Make sure shared_preload_libraries loads timescaledb.

        Returns:
            True if the line was changed or appended
        """
        state = self.state
        result = state.shared_lib
        if result is None:
            self.console.statement("Unable to find shared_preload_libraries in configuration file")
            self._prompt("Append to end? " + PROMPT_YES_NO, YesNoChecker(ERR_SHARED_LIB_NEEDED))
            self._append_shared_lib_line()
            self.console.success(
                "appending shared_preload_libraries = 'timescaledb' to end of configuration file"
            )
            return True

        current = state.lines[result.index].content
        new_line = update_shared_lib_line(current, result)
        if new_line == current:
            self.console.success("shared_preload_libraries is set correctly")
            return False

        self.console.statement("shared_preload_libraries needs to be updated")
        # Trailing comments are left out of the display
        current_short = f"{result.comment_group}shared_preload_libraries = '{result.libs}'"
        self.console.statement(CURRENT_LABEL)
        self.console.line(current_short)
        self.console.statement(RECOMMEND_LABEL)
        self.console.line(update_shared_lib_line(current_short, result))

        self._prompt(PROMPT_OKAY + PROMPT_YES_NO, YesNoChecker(ERR_SHARED_LIB_NEEDED))
        state.replace_line(result.index, new_line)
        self.console.success("shared_preload_libraries will be updated")
        return True

    def _append_shared_lib_line(self) -> None:
        state = self.state
        index = state.append_line(PLAIN_SHARED_LIB_LINE)
        state.shared_lib = parse_shared_lib_line(PLAIN_SHARED_LIB_LINE)
        state.shared_lib.index = index

    def process_tunables(self, info: SystemInfo, outcome: TuneOutcome, quiet: bool) -> None:
        """Go through every available settings group in order."""
        if not quiet:
            self._intro(info)
        for group in get_settings_groups(info):
            recommender = group.get_recommender(self.flags.profile)
            if not recommender.is_available():
                continue
            try:
                changed = self.process_settings_group(group, recommender, quiet)
            except PromptSkipped:
                self.console.warn(f"{group.label} settings left alone, but still need tuning")
                outcome.skipped_groups.append(group.label)
                continue
            if changed:
                outcome.updated_groups.append(group.label)

    def process_settings_group(
        self,
        group: SettingsGroup,
        recommender: Recommender,
        quiet: bool,
    ) -> bool:
        """Show and apply recommendations for one settings group.

        Returns:
            True if lines were changed

        Raises:
            PromptSkipped: If the operator skips the group
            PromptDeclined: If the operator quits
        """
        label = group.label
        if not quiet:
            self.console.blank()
            self.console.statement(f"{label[:1].upper()}{label[1:]} settings recommendations")

        keys = group.keys()
        visible = compute_visible_keys(keys, self.state.tunables, recommender)
        if not visible:
            if not quiet:
                self.console.success(f"{label} settings are already tuned")
            return False

        results = [self._result_for(key) for key in keys if key in visible]

        if not quiet:
            self.console.statement(CURRENT_LABEL)
            for r in results:
                if r.missing:
                    self.console.error("missing", r.key)
                else:
                    prefix = "#" if r.commented else ""
                    self.console.line(prefix + format_setting(r.key, r.value))
            self.console.statement(RECOMMEND_LABEL)

        for r in results:
            self.console.line(format_setting(r.key, recommender.recommend(r.key)))

        if not quiet:
            checker = SkipChecker(
                f"{label} settings still need to be tuned, please re-run or do so manually"
            )
            self._prompt(PROMPT_OKAY + PROMPT_SKIP, checker)
            self.console.success(f"{label} settings will be updated")

        for r in results:
            line = format_setting(r.key, recommender.recommend(r.key), r.extra)
            if r.missing:
                self.state.append_line(line)
            else:
                self.state.replace_line(r.index, line)
        return True

    def _result_for(self, key: str) -> TunableParseResult:
        result = self.state.tunables.get(key)
        if result is None:
            return TunableParseResult(index=-1, commented=False, missing=True, key=key, value="")
        return result

    def process_quiet(self, info: SystemInfo, outcome: TuneOutcome) -> None:
        """Apply everything, printing only the new lines, then confirm once."""
        self._intro(info)
        state = self.state
        if state.shared_lib is None:
            self.console.line(PLAIN_SHARED_LIB_LINE)
            self._append_shared_lib_line()
            outcome.shared_lib_updated = True
        else:
            index = state.shared_lib.index
            current = state.lines[index].content
            new_line = update_shared_lib_line(current, state.shared_lib)
            if new_line != current:
                self.console.line(new_line)
                state.replace_line(index, new_line)
                outcome.shared_lib_updated = True

        self.process_tunables(info, outcome, quiet=True)
        checker = YesNoChecker("not using these settings could lead to suboptimal performance")
        self._prompt("Use these recommendations? " + PROMPT_YES_NO, checker)

    def update_last_tuned(self) -> None:
        """Record when and by which version the file was tuned.

        Fresh lines are appended and any earlier ones removed.
        """
        state = self.state
        state.append_line(FMT_LAST_TUNED.format(
            key=LAST_TUNED_KEY,
            value=self._now().replace(microsecond=0).isoformat(),
        ))
        state.append_line(FMT_LAST_TUNED.format(key=LAST_TUNED_VERSION_KEY, value=__version__))
        state.process_lines(*get_remove_dupe_processors([LAST_TUNED_KEY, LAST_TUNED_VERSION_KEY]))

    def write(self, conf_path: str, outcome: TuneOutcome) -> None:
        """Write the state to the output path, unless in dry-run mode."""
        if self.ctx.dry_run:
            self.console.statement("Success, but not writing due to --dry-run flag")
            self.audit.log_dry_run(
                AuditEventType.CONFIG_TUNE,
                conf_path,
                message=f"Groups: {', '.join(outcome.updated_groups) or 'none'}",
            )
            return

        out_path = self.flags.out_path or os.path.abspath(conf_path)
        self.console.statement(f"Saving changes to: {out_path}")
        mode = "r+" if os.path.exists(out_path) else "w"
        try:
            with open(out_path, mode, encoding=LINE_ENCODING, errors=LINE_ERRORS) as f:
                self.state.write_to(f)
        except OSError as e:
            self.audit.log_failure(AuditEventType.CONFIG_TUNE, out_path, str(e))
            raise ConfigFileError(
                f"could not open {out_path} for writing",
                details=[str(e)],
            ) from e
        except ConfigFileError as e:
            self.audit.log_failure(AuditEventType.CONFIG_TUNE, out_path, e.message)
            raise

        outcome.out_path = out_path
        outcome.written = True
        self.audit.log_success(
            AuditEventType.CONFIG_TUNE,
            out_path,
            message="postgresql.conf tuned",
            parameters={
                "source": conf_path,
                "backup": outcome.backup_path,
                "groups": outcome.updated_groups,
                "shared_preload_libraries": outcome.shared_lib_updated,
                "profile": self.flags.profile.value,
            },
        )

    # -------------------------------------------------------------------------
    # Restore
    # -------------------------------------------------------------------------

    def restore(self) -> str:
        """Let the operator pick a backup and restore it over the config file.

        Returns:
            Path of the restored backup

        Raises:
            BackupError: If there are no backups or restoring fails
            PromptDeclined: If the operator quits
        """
        pg_version = None if self.flags.conf_path else self.resolve_pg_version()
        conf_path = self.resolve_conf_path(pg_version)

        backups = self.backups.list_backups()
        if not backups:
            raise BackupError(
                f"no backups found in {self.backups.backup_dir}",
                hint="Backups are written each time tstune tune saves changes",
            )

        newest_first = list(reversed(backups))
        now = self._now().replace(tzinfo=None)
        self.console.statement("Available backups (most recent first):")
        for i, path in enumerate(newest_first, start=1):
            taken = parse_backup_time(path)
            age = pretty_duration(now - taken)
            self.console.line(f"{i}) {os.path.basename(path)} ({age} ago)")
        self.console.blank()

        checker = NumberedListChecker(len(newest_first), "no backup chosen")
        self._prompt("Use which backup? Number or (q)uit: ", checker)
        chosen = newest_first[(checker.choice or 1) - 1]

        self.console.statement(f"Restoring '{os.path.basename(chosen)}'...")
        if self.ctx.dry_run:
            self.console.statement("Success, but not writing due to --dry-run flag")
            self.audit.log_dry_run(AuditEventType.CONFIG_RESTORE, conf_path, message=chosen)
            return chosen

        try:
            self.backups.restore(chosen, conf_path)
        except BackupError as e:
            self.audit.log_failure(AuditEventType.CONFIG_RESTORE, conf_path, e.message)
            raise
        self.audit.log_success(
            AuditEventType.CONFIG_RESTORE,
            conf_path,
            message=f"Restored from {chosen}",
        )
        self.console.success("restored successfully")
        return chosen
