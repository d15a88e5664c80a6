"""Tests for the run and log commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from viamail.cli import cli
from viamail.infrastructure.store import Store
from viamail.services.audit import CommandLogService

ADMIN = "jefe@example.com"


@pytest.fixture
def initialized(cli_runner: CliRunner, workdir: Path) -> Path:
    """Working directory with a database and one Admin user."""
    result = cli_runner.invoke(cli, ["init", "--admin-email", ADMIN, "--admin-ci", "1234567"])
    assert result.exit_code == 0, result.output
    return workdir


@pytest.mark.usefixtures("initialized")
class TestRunCommand:
    def test_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["run", "HELP", "--sender", ADMIN])
        assert result.exit_code == 0, result.output
        assert "EXITOSO" in result.stdout
        assert "INSUSU" in result.stdout

    def test_command_then_listing(self, cli_runner: CliRunner) -> None:
        created = cli_runner.invoke(cli, ["run", 'INSRUT["Santa Cruz",Comarapa]', "-s", ADMIN])
        assert created.exit_code == 0, created.output

        result = cli_runner.invoke(cli, ["--json", "run", "LISRUT", "-s", ADMIN])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["command_name"] == "LISRUT"
        assert data["status"] == "EXITOSO"
        assert "Santa Cruz" in data["payload"]
        assert data["error_detail"] is None

    def test_unknown_sender_is_rejected(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["run", 'INSRUT["A","B"]', "-s", "extra@example.com"])
        assert result.exit_code == 1
        assert "INSRUT" in result.stderr
        assert "ERROR" in result.stderr

    def test_parse_failure_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "run", "hola", "-s", ADMIN])
        assert result.exit_code == 1
        # stderr also carries the command.rejected log line
        assert '"command_name": "COMANDO_INVALIDO"' in result.stderr
        assert '"error_kind": "parse"' in result.stderr

    def test_sender_is_required(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["run", "HELP"])
        assert result.exit_code == 2
        assert "--sender" in result.output


class TestLogCommand:
    def test_empty_log(self, cli_runner: CliRunner, initialized: Path) -> None:
        result = cli_runner.invoke(cli, ["log"])
        assert result.exit_code == 0
        assert "No hay registros" in result.stdout

    def test_empty_log_json(self, cli_runner: CliRunner, initialized: Path) -> None:
        result = cli_runner.invoke(cli, ["--json", "log"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == []

    def test_rows_newest_first(self, cli_runner: CliRunner, initialized: Path) -> None:
        store = Store(f"sqlite:///{initialized / 'viamail.db'}")
        try:
            audit = CommandLogService(store)
            audit.record(sender=ADMIN, command="HELP", status="EXITOSO", elapsed_ms=3)
            audit.record(
                sender="x@example.com",
                command="INSRUT",
                parameters=("A", "B"),
                status="ERROR",
                error="No autorizado",
            )
        finally:
            store.close()

        result = cli_runner.invoke(cli, ["--json", "log", "-n", "1"])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert len(rows) == 1
        assert rows[0]["command"] == "INSRUT"
        assert rows[0]["parameters"] == "A, B"

        table = cli_runner.invoke(cli, ["log"])
        assert table.exit_code == 0
        assert "HELP" in table.stdout
        assert "No autorizado" in table.stdout
