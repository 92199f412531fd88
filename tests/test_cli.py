"""Tests for rexec.cli."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from rexec.cli import app
from rexec.exec import SessionError
from rexec.testkit.fakes import FakeChannel, FakeSessionFactory

runner = CliRunner()


class TestExecCommand:
    def test_streams_remote_output(self, sample_config_file: Path) -> None:
        channel = FakeChannel(stdout=b"load average: 0.1\n")
        factory = FakeSessionFactory(channel)

        with patch("rexec.cli.open_session", factory):
            result = runner.invoke(
                app,
                ["exec", "build-box", "uptime", "-c", str(sample_config_file)],
            )

        assert result.exit_code == 0, result.output
        assert "load average: 0.1" in result.stdout
        assert channel.command == "uptime"
        assert [p.slug for p in factory.calls[0][1]] == ["bastion"]

    def test_options_shape_request(self, sample_config_file: Path) -> None:
        channel = FakeChannel(exit_status=2)

        with patch("rexec.cli.open_session", FakeSessionFactory(channel)):
            result = runner.invoke(
                app,
                [
                    "exec",
                    "build-box",
                    "ls",
                    "-c",
                    str(sample_config_file),
                    "-e",
                    "LANG=C",
                    "--pty",
                    "-x",
                    "0",
                    "-x",
                    "2",
                    "--",
                    "-la",
                    "my dir",
                ],
            )

        assert result.exit_code == 0, result.output
        assert channel.command == "ls -la 'my dir'"
        assert channel.environment == {"LANG": "C"}
        assert channel.pty is True

    def test_unexpected_exit_status(self, sample_config_file: Path) -> None:
        channel = FakeChannel(exit_status=3)

        with patch("rexec.cli.open_session", FakeSessionFactory(channel)):
            result = runner.invoke(
                app,
                ["exec", "build-box", "false", "-c", str(sample_config_file)],
            )

        assert result.exit_code == 3
        assert channel.disconnects == 1

    def test_session_error(self, sample_config_file: Path) -> None:
        channel = FakeChannel(failures={"connect": OSError("reset")})

        with patch("rexec.cli.open_session", FakeSessionFactory(channel)):
            result = runner.invoke(
                app,
                ["exec", "build-box", "ls", "-c", str(sample_config_file)],
            )

        assert result.exit_code == 1

    def test_bad_env_entry(self, sample_config_file: Path) -> None:
        with patch("rexec.cli.open_session", FakeSessionFactory()):
            result = runner.invoke(
                app,
                [
                    "exec",
                    "build-box",
                    "ls",
                    "-c",
                    str(sample_config_file),
                    "-e",
                    "NOEQUALS",
                ],
            )

        assert result.exit_code == 2

    def test_blank_command(self, sample_config_file: Path) -> None:
        factory = FakeSessionFactory()

        with patch("rexec.cli.open_session", factory):
            result = runner.invoke(
                app,
                ["exec", "-c", str(sample_config_file), "build-box", " "],
            )

        assert result.exit_code == 2
        assert isinstance(result.exception, SystemExit)
        assert "command cannot be blank" in result.output
        assert factory.calls == []

    def test_unknown_endpoint(self, sample_config_file: Path) -> None:
        with patch("rexec.cli.open_session", FakeSessionFactory()):
            result = runner.invoke(
                app,
                ["exec", "nowhere", "ls", "-c", str(sample_config_file)],
            )

        assert result.exit_code == 2

    def test_json_output(self, sample_config_file: Path) -> None:
        channel = FakeChannel(stdout=b"hello\n", stderr=b"warn\n")

        with patch("rexec.cli.open_session", FakeSessionFactory(channel)):
            result = runner.invoke(
                app,
                [
                    "exec",
                    "build-box",
                    "echo",
                    "-c",
                    str(sample_config_file),
                    "-o",
                    "json",
                    "--",
                    "hello",
                ],
            )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data == [
            {
                "name": "build-box",
                "command": "echo hello",
                "success": True,
                "exit_status": 0,
                "accepted_exit_codes": [0],
                "error_kind": None,
                "error": None,
                "stdout": "hello\n",
                "stderr": "warn\n",
            }
        ]


class TestRunCommand:
    def test_runs_tasks_in_order(self, sample_config_file: Path) -> None:
        first = FakeChannel(exit_status=0)
        second = FakeChannel(exit_status=3)
        factory = FakeSessionFactory(first, second)

        with patch("rexec.cli.open_session", factory):
            result = runner.invoke(
                app,
                [
                    "run",
                    "uptime",
                    "deploy",
                    "-c",
                    str(sample_config_file),
                    "-o",
                    "json",
                ],
            )

        assert result.exit_code == 0, result.output
        assert first.command == "uptime"
        assert second.command == "/opt/deploy.sh --env 'staging area'"
        data = json.loads(result.stdout)
        assert [d["name"] for d in data] == ["uptime", "deploy"]
        assert [d["exit_status"] for d in data] == [0, 3]

    def test_stops_at_first_failure(self, sample_config_file: Path) -> None:
        failing = FakeChannel(exit_status=5)
        factory = FakeSessionFactory(failing)

        with patch("rexec.cli.open_session", factory):
            result = runner.invoke(
                app,
                [
                    "run",
                    "uptime",
                    "deploy",
                    "-c",
                    str(sample_config_file),
                    "-o",
                    "json",
                ],
            )

        assert result.exit_code == 5
        assert len(factory.sessions) == 1
        data = json.loads(result.stdout)
        assert data[0]["error_kind"] == "unexpected-exit-status"
        assert data[0]["exit_status"] == 5

    def test_session_failure_human(self, sample_config_file: Path) -> None:
        channel = FakeChannel(
            failures={"exit_status": SessionError("stream lost")}
        )

        with patch("rexec.cli.open_session", FakeSessionFactory(channel)):
            result = runner.invoke(
                app, ["run", "uptime", "-c", str(sample_config_file)]
            )

        assert result.exit_code == 1
        assert "stream lost" in result.output

    def test_unknown_task(self, sample_config_file: Path) -> None:
        with patch("rexec.cli.open_session", FakeSessionFactory()):
            result = runner.invoke(
                app, ["run", "nope", "-c", str(sample_config_file)]
            )

        assert result.exit_code == 2
        assert "nope" in result.output


class TestTasksCommand:
    def test_human(self, sample_config_file: Path) -> None:
        result = runner.invoke(
            app, ["tasks", "-c", str(sample_config_file)]
        )

        assert result.exit_code == 0, result.output
        assert "uptime" in result.output
        assert "deploy" in result.output

    def test_json(self, sample_config_file: Path) -> None:
        result = runner.invoke(
            app, ["tasks", "-c", str(sample_config_file), "-o", "json"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [t["slug"] for t in data] == ["uptime", "deploy"]
        assert data[1]["exit-codes"] == [0, 3]

    def test_config_error(self, tmp_path: Path) -> None:
        p = tmp_path / "config.yaml"
        p.write_text("tasks:\n  t:\n    endpoint: missing\n    command: x\n")

        result = runner.invoke(app, ["tasks", "-c", str(p)])

        assert result.exit_code == 2
        assert "Config error" in result.output
