"""CLI output formatting."""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import Config, ConfigError
from .exec import (
    ExecRequest,
    ExecResult,
    InvalidRequest,
    SessionError,
    UnexpectedExitStatus,
    build_command_line,
)


class OutputFormat(str, enum.Enum):
    """Output format for CLI commands."""

    HUMAN = "human"
    JSON = "json"


class Outcome(BaseModel):
    """Serializable summary of one execution."""

    name: str
    command: str
    success: bool
    exit_status: Optional[int] = None
    accepted_exit_codes: list[int]
    error_kind: Optional[str] = None
    error: Optional[str] = None


def _error_kind(e: Exception) -> str:
    match e:
        case UnexpectedExitStatus():
            return "unexpected-exit-status"
        case SessionError():
            return "session-error"
        case InvalidRequest():
            return "invalid-request"
        case _:
            return "task-error"


def outcome_of(
    name: str,
    request: ExecRequest,
    result: ExecResult | None = None,
    error: Exception | None = None,
) -> Outcome:
    """Summarize a result or a failure of *request*."""
    exit_status: int | None = None
    if result is not None:
        exit_status = result.exit_status
    elif isinstance(error, UnexpectedExitStatus):
        exit_status = error.actual
    return Outcome(
        name=name,
        command=build_command_line(request.command, request.arguments),
        success=error is None,
        exit_status=exit_status,
        accepted_exit_codes=sorted(request.exit_codes),
        error_kind=_error_kind(error) if error is not None else None,
        error=str(error) if error is not None else None,
    )


def print_human_outcomes(
    outcomes: list[Outcome],
    *,
    console: Console | None = None,
) -> None:
    """Print a table of execution outcomes."""
    if console is None:
        console = Console(stderr=True)

    table = Table(title="Results:")
    table.add_column("Name", style="bold")
    table.add_column("Command")
    table.add_column("Status")
    table.add_column("Details")

    for o in outcomes:
        if o.success:
            status = Text("OK", style="green")
        else:
            status = Text("FAILED", style="red")
        details: list[str] = []
        if o.exit_status is not None:
            details.append(f"exit {o.exit_status}")
        if o.error:
            details.append(o.error)
        table.add_row(o.name, o.command, status, "\n".join(details))

    console.print(table)


def print_human_tasks(
    config: Config,
    *,
    console: Console | None = None,
) -> None:
    """Print configured tasks."""
    if console is None:
        console = Console()

    table = Table(title="Tasks:")
    table.add_column("Name", style="bold")
    table.add_column("Endpoint")
    table.add_column("Command")
    table.add_column("Exit codes")
    table.add_column("Description")

    for slug, task in config.tasks.items():
        endpoint = config.ssh_endpoints[task.endpoint]
        host = (
            f"{endpoint.user}@{endpoint.host}"
            if endpoint.user
            else endpoint.host
        )
        table.add_row(
            slug,
            f"{task.endpoint} ({host})",
            build_command_line(task.command, task.arguments),
            ", ".join(str(c) for c in task.exit_codes),
            task.description or "",
        )

    console.print(table)


def print_exec_error(
    e: Exception,
    *,
    console: Console | None = None,
) -> None:
    """Print an execution or task failure as a Rich panel to stderr."""
    if console is None:
        console = Console(stderr=True)
    title = _error_kind(e).replace("-", " ").capitalize()
    console.print(Panel(str(e), title=title, style="red"))


def print_config_error(
    e: ConfigError,
    *,
    console: Console | None = None,
) -> None:
    """Print a ConfigError as a Rich panel to stderr."""
    if console is None:
        console = Console(stderr=True)
    cause = e.__cause__
    match cause:
        case ValidationError():
            lines: list[str] = []
            for err in cause.errors():
                loc = " → ".join(str(p) for p in err["loc"])
                msg = err["msg"]
                if msg.startswith("Value error, "):
                    msg = msg[len("Value error, ") :]
                if loc:
                    lines.append(f"{loc}: {msg}")
                else:
                    lines.append(msg)
            body = "\n".join(lines)
        case _:
            body = str(e)
    console.print(Panel(body, title="Config error", style="red"))
