"""Typer CLI: exec, run and tasks commands."""

from __future__ import annotations

import io
import json
import sys
from typing import Annotated, Any, Optional

import typer
from loguru import logger
from pydantic import ValidationError

from .config import Config, ConfigError, load_config
from .exec import (
    ExecRequest,
    ExecResult,
    InvalidRequest,
    RemoteExecError,
    UnexpectedExitStatus,
    close_shield,
)
from .output import (
    Outcome,
    OutputFormat,
    outcome_of,
    print_config_error,
    print_exec_error,
    print_human_outcomes,
    print_human_tasks,
)
from .remote import open_session
from .runner import build_task_registry, request_for_task, run_on_endpoint
from .tasks import NoSuchTask, TaskError

app = typer.Typer(
    name="rexec",
    help="Run commands on remote hosts over SSH",
    no_args_is_help=True,
)

ConfigOption = Annotated[
    Optional[str],
    typer.Option("--config", "-c", help="Path to config file"),
]
OutputOption = Annotated[
    OutputFormat,
    typer.Option("--output", "-o", help="Output format"),
]
VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Log execution events to stderr",
    ),
]


class _Capture:
    """Remote stdout/stderr sinks for one CLI invocation.

    Human output streams straight to the terminal; JSON output
    captures the bytes so they can be embedded in the report.
    """

    def __init__(self, output_format: OutputFormat) -> None:
        self.capturing = output_format is OutputFormat.JSON
        if self.capturing:
            self._out = io.BytesIO()
            self._err = io.BytesIO()
        else:
            self._out = sys.stdout.buffer
            self._err = sys.stderr.buffer

    def sinks(self) -> tuple[Any, Any]:
        return close_shield(self._out), close_shield(self._err)

    def report(self, outcome: Outcome) -> dict[str, Any]:
        data = outcome.model_dump()
        if self.capturing:
            data["stdout"] = self._out.getvalue().decode(errors="replace")
            data["stderr"] = self._err.getvalue().decode(errors="replace")
            self._out.seek(0)
            self._out.truncate()
            self._err.seek(0)
            self._err.truncate()
        return data


@app.command("exec")
def exec_command(
    endpoint: Annotated[
        str, typer.Argument(help="SSH endpoint slug from the config")
    ],
    command: Annotated[str, typer.Argument(help="Remote command")],
    arguments: Annotated[
        Optional[list[str]],
        typer.Argument(help="Command arguments (use -- before options)"),
    ] = None,
    config: ConfigOption = None,
    env: Annotated[
        Optional[list[str]],
        typer.Option("--env", "-e", help="Environment entry NAME=VALUE"),
    ] = None,
    pty: Annotated[
        bool, typer.Option("--pty", help="Allocate a pseudo-terminal")
    ] = False,
    merge_error: Annotated[
        bool,
        typer.Option("--merge-error", help="Send stderr to stdout"),
    ] = False,
    exit_code: Annotated[
        Optional[list[int]],
        typer.Option(
            "--exit-code", "-x", help="Accepted exit code (default: 0)"
        ),
    ] = None,
    stdin: Annotated[
        bool,
        typer.Option("--stdin", help="Forward local stdin"),
    ] = False,
    output: OutputOption = OutputFormat.HUMAN,
    verbose: VerboseOption = 0,
) -> None:
    """Run a single command on an endpoint."""
    _configure_logging(verbose)
    cfg = _load_config_or_exit(config)
    capture = _Capture(output)
    out, err = capture.sinks()
    try:
        request = ExecRequest(
            command=command,
            arguments=tuple(arguments or ()),
            environment=_parse_env(env or []) or None,
            pty=pty,
            merge_error=merge_error,
            exit_codes=frozenset(exit_code or [0]),
            input=sys.stdin.buffer if stdin else None,
            output=out,
            error=err,
        )
    except ValidationError as e:
        print_exec_error(_invalid_request(e))
        raise typer.Exit(2)

    try:
        result = run_on_endpoint(
            cfg, endpoint, request, session_factory=open_session
        )
    except ConfigError as e:
        print_config_error(e)
        raise typer.Exit(2)
    except RemoteExecError as e:
        outcome = outcome_of(endpoint, request, error=e)
        _report([capture.report(outcome)], output)
        if output is OutputFormat.HUMAN:
            print_exec_error(e)
        raise typer.Exit(_exit_code_for(e))

    _report([capture.report(outcome_of(endpoint, request, result))], output)


@app.command()
def run(
    task: Annotated[list[str], typer.Argument(help="Task name(s) to run")],
    config: ConfigOption = None,
    output: OutputOption = OutputFormat.HUMAN,
    verbose: VerboseOption = 0,
) -> None:
    """Run configured tasks in order, stopping at the first failure."""
    _configure_logging(verbose)
    cfg = _load_config_or_exit(config)
    capture = _Capture(output)
    out, err = capture.sinks()
    registry = build_task_registry(
        cfg, output=out, error=err, session_factory=open_session
    )

    reports: list[dict[str, Any]] = []
    outcomes: list[Outcome] = []
    for name in task:
        try:
            result: ExecResult = registry.run(name)
        except NoSuchTask as e:
            print_exec_error(e)
            raise typer.Exit(2)
        except (RemoteExecError, TaskError) as e:
            outcome = outcome_of(
                name, request_for_task(cfg.tasks[name]), error=e
            )
            outcomes.append(outcome)
            reports.append(capture.report(outcome))
            _finish(outcomes, reports, output)
            if output is OutputFormat.HUMAN:
                print_exec_error(e)
            raise typer.Exit(_exit_code_for(e))
        outcome = outcome_of(name, result.request, result)
        outcomes.append(outcome)
        reports.append(capture.report(outcome))

    _finish(outcomes, reports, output)


@app.command()
def tasks(
    config: ConfigOption = None,
    output: OutputOption = OutputFormat.HUMAN,
) -> None:
    """List configured tasks."""
    cfg = _load_config_or_exit(config)
    match output:
        case OutputFormat.HUMAN:
            print_human_tasks(cfg)
        case OutputFormat.JSON:
            data = [t.model_dump(by_alias=True) for t in cfg.tasks.values()]
            typer.echo(json.dumps(data, indent=2))


def _configure_logging(verbose: int) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose > 0 else "WARNING")


def _load_config_or_exit(config_path: str | None) -> Config:
    """Load config or exit with code 2 on error."""
    try:
        return load_config(config_path)
    except ConfigError as e:
        print_config_error(e)
        raise typer.Exit(2)


def _parse_env(entries: list[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for entry in entries:
        name, sep, value = entry.partition("=")
        if not sep or not name:
            raise typer.BadParameter(
                f"Expected NAME=VALUE, got {entry!r}", param_hint="--env"
            )
        env[name] = value
    return env


def _invalid_request(e: ValidationError) -> InvalidRequest:
    return InvalidRequest("; ".join(err["msg"] for err in e.errors()))


def _exit_code_for(e: Exception) -> int:
    """Mirror the remote exit status when it fits a process exit code."""
    if isinstance(e, UnexpectedExitStatus) and 0 < e.actual < 256:
        return e.actual
    return 1


def _report(reports: list[dict[str, Any]], output: OutputFormat) -> None:
    if output is OutputFormat.JSON:
        typer.echo(json.dumps(reports, indent=2))


def _finish(
    outcomes: list[Outcome],
    reports: list[dict[str, Any]],
    output: OutputFormat,
) -> None:
    match output:
        case OutputFormat.HUMAN:
            print_human_outcomes(outcomes)
        case OutputFormat.JSON:
            _report(reports, output)


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
