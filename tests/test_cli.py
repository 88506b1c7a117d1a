"""Tests for the typer CLI."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from typer.testing import CliRunner

from confaudit import cli
from confaudit.config import DEFAULT_CONFIG_TEMPLATE
from confaudit.errors import CloneError
from confaudit.models import AuditResult

runner = CliRunner()

VALID = """\
[bitbucket]
username = "auditor"
password = "secret"
owner = "acme"

[audit]
clone_dir = "repos"
pattern = "conf"
"""


class TestInit:
    def test_creates_template(self, tmp_path):
        result = runner.invoke(cli.app, ["init", "--path", str(tmp_path)])
        assert result.exit_code == 0
        assert (tmp_path / "confaudit.toml").read_text() == DEFAULT_CONFIG_TEMPLATE

    def test_refuses_to_overwrite(self, tmp_path):
        (tmp_path / "confaudit.toml").write_text("keep me")
        result = runner.invoke(cli.app, ["init", "--path", str(tmp_path)])
        assert result.exit_code == 1
        assert (tmp_path / "confaudit.toml").read_text() == "keep me"


class TestRun:
    def test_missing_config_exits_nonzero(self, tmp_path):
        result = runner.invoke(cli.app, ["run", "--config", str(tmp_path / "nope.toml")])
        assert result.exit_code == 1

    def test_success(self, tmp_path, monkeypatch):
        config_path = tmp_path / "confaudit.toml"
        config_path.write_text(VALID)
        started = datetime(2026, 3, 15, tzinfo=timezone.utc)

        def fake_run_audit(config):
            return AuditResult(
                started_at=started,
                checkpoint=started,
                report_path=Path(config.result_path / "2026-03-15.txt"),
            )

        monkeypatch.setattr("confaudit.pipeline.run_audit", fake_run_audit)
        result = runner.invoke(cli.app, ["run", "--config", str(config_path)])
        assert result.exit_code == 0
        assert "Scanned 0 repositories" in result.output
        assert (tmp_path / ".confaudit.log").exists()

    def test_audit_failure_exits_nonzero(self, tmp_path, monkeypatch):
        config_path = tmp_path / "confaudit.toml"
        config_path.write_text(VALID)

        def failing_run_audit(config):
            raise CloneError("cloning https://bitbucket.org/acme/app.git failed")

        monkeypatch.setattr("confaudit.pipeline.run_audit", failing_run_audit)
        result = runner.invoke(cli.app, ["run", "--config", str(config_path)])
        assert result.exit_code == 1
