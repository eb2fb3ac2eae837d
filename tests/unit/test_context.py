"""Unit tests for the execution context."""

from pathlib import Path

from tstune.core.config import DEFAULT_CONFIG_PATH
from tstune.core.context import ExecutionContext, create_context
from tstune.core.output import Verbosity


class TestCreateContext:
    """Tests for building a context from CLI options."""

    def test_defaults(self):
        ctx = create_context()

        assert ctx.dry_run is False
        assert ctx.yes is False
        assert ctx.verbosity == Verbosity.NORMAL
        assert ctx.config_path == DEFAULT_CONFIG_PATH
        assert ctx.is_verbose is False

    def test_quiet_wins_over_verbose(self):
        ctx = create_context(quiet=True, verbose=2)

        assert ctx.verbosity == Verbosity.QUIET

    def test_verbose_capped(self):
        ctx = create_context(verbose=5)

        assert ctx.verbosity == Verbosity.DEBUG
        assert ctx.is_verbose is True

    def test_config_path(self, tmp_path: Path):
        ctx = create_context(config=tmp_path / "config.yaml")

        assert ctx.config_path == tmp_path / "config.yaml"

    def test_yes_and_quiet_come_from_fields(self):
        """Prompting and quiet output are driven by yes and verbosity alone."""
        ctx = ExecutionContext(yes=True, verbosity=Verbosity.QUIET)

        assert not hasattr(ctx, "should_confirm")
        assert not hasattr(ctx, "is_quiet")
        assert ctx.console.verbosity == Verbosity.QUIET
