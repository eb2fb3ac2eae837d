"""Unit tests for the audit log."""

import json
from pathlib import Path

from tstune.core.audit import (
    AuditEventType,
    AuditLogger,
    configure_audit_logger,
    get_audit_logger,
)


def read_events(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_success_event(self, tmp_path: Path):
        log_path = tmp_path / "audit.log"
        logger = AuditLogger(log_path=log_path)

        logger.log_success(
            AuditEventType.CONFIG_TUNE,
            "/etc/postgresql/16/main/postgresql.conf",
            message="postgresql.conf tuned",
            parameters={"groups": ["memory"]},
        )

        (event,) = read_events(log_path)
        assert event["event_type"] == "config.tune"
        assert event["result"] == "success"
        assert event["target"] == "/etc/postgresql/16/main/postgresql.conf"
        assert event["parameters"] == {"groups": ["memory"]}
        assert event["session_id"] == logger.session_id

    def test_failure_and_dry_run(self, tmp_path: Path):
        log_path = tmp_path / "audit.log"
        logger = AuditLogger(log_path=log_path)

        logger.log_failure(AuditEventType.CONFIG_RESTORE, "/tmp/pg.conf", "disk full")
        logger.log_dry_run(AuditEventType.CONFIG_TUNE, "/tmp/pg.conf", message="Groups: none")

        failure, dry_run = read_events(log_path)
        assert failure["result"] == "failure"
        assert failure["error"] == "disk full"
        assert dry_run["result"] == "dry_run"

    def test_disabled(self, tmp_path: Path):
        log_path = tmp_path / "audit.log"

        AuditLogger(log_path=log_path, enabled=False).log_success(
            AuditEventType.CONFIG_BACKUP, "/tmp/pg.conf"
        )

        assert not log_path.exists()

    def test_unwritable_log_ignored(self, tmp_path: Path):
        """A log that cannot be written should not stop the caller."""
        blocker = tmp_path / "file"
        blocker.write_text("")
        logger = AuditLogger(log_path=blocker / "audit.log")

        logger.log_success(AuditEventType.CONFIG_TUNE, "/tmp/pg.conf")

    def test_rotation(self, tmp_path: Path):
        log_path = tmp_path / "audit.log"
        logger = AuditLogger(log_path=log_path, max_size_mb=0, backup_count=2)

        logger.log_success(AuditEventType.CONFIG_TUNE, "/tmp/a.conf")
        logger.log_success(AuditEventType.CONFIG_TUNE, "/tmp/b.conf")

        assert log_path.exists()
        assert log_path.read_text() == ""
        assert read_events(tmp_path / "audit.1")[0]["target"] == "/tmp/b.conf"
        assert read_events(tmp_path / "audit.2")[0]["target"] == "/tmp/a.conf"


class TestGlobalLogger:
    """Tests for the global audit logger."""

    def test_configure(self, tmp_path: Path):
        logger = configure_audit_logger(log_path=tmp_path / "audit.log", enabled=False)

        assert get_audit_logger() is logger
        assert logger.enabled is False
