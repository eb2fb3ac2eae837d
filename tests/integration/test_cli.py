"""Integration tests for the root CLI and config commands."""

from pathlib import Path

import yaml
from typer.testing import CliRunner

from tstune import __version__
from tstune.cli import app


runner = CliRunner()


class TestRootCommand:
    """Tests for the root command."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"tstune {__version__}" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])

        assert "tune" in result.output
        assert "restore" in result.output

    def test_tune_help(self):
        result = runner.invoke(app, ["tune", "--help"])

        assert result.exit_code == 0
        assert "--memory" in result.output
        assert "--dry-run" in result.output


class TestConfigCommands:
    """Tests for the config command group."""

    def test_example(self):
        result = runner.invoke(app, ["config", "example"])

        assert result.exit_code == 0
        assert "tuning:" in result.output
        assert "backup_dir" in result.output

    def test_init_then_validate(self, tmp_path: Path):
        path = tmp_path / "tstune" / "config.yaml"

        init = runner.invoke(app, ["config", "init", "-c", str(path)])
        validate = runner.invoke(app, ["config", "validate", "-c", str(path)])

        assert init.exit_code == 0, init.output
        assert path.exists()
        assert validate.exit_code == 0, validate.output
        assert "Configuration is valid" in validate.output

    def test_init_existing(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("tuning: {}\n")

        result = runner.invoke(app, ["config", "init", "-c", str(path)])

        assert result.exit_code == 2
        assert "--force" in result.output

    def test_validate_missing(self, tmp_path: Path):
        result = runner.invoke(app, ["config", "validate", "-c", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 2

    def test_validate_invalid(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"tuning": {"cpus": 0}}))

        result = runner.invoke(app, ["config", "validate", "-c", str(path)])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_show(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("tuning:\n  memory: 8GB\n")

        result = runner.invoke(app, ["config", "show", "-c", str(path)])

        assert result.exit_code == 0, result.output
        assert "8GB" in result.output
        assert "TSTUNE_MEMORY" in result.output
