"""Remote command execution over an established session."""

from __future__ import annotations

import enum
import threading
from typing import Any, Optional, Sequence

import paramiko  # type: ignore[import-untyped]

from ..events import EventSink, loguru_sink
from .errors import InvalidRequest, SessionError, UnexpectedExitStatus
from .protocol import Channel, Session
from .request import ExecRequest
from .result import ExecResult
from .streams import DiscardSink, InterruptibleReader, StreamCompletion

_TRANSPORT_ERRORS = (paramiko.SSHException, OSError, EOFError)


class ExecState(str, enum.Enum):
    """Lifecycle of a single execution."""

    IDLE = "idle"
    CHANNEL_OPEN = "channel-open"
    CONFIGURED = "configured"
    RUNNING = "running"
    STREAMS_COMPLETE = "streams-complete"
    STATUS_CHECKED = "status-checked"
    CLOSED = "closed"


def build_command_line(command: str, arguments: Sequence[str]) -> str:
    """Join *command* and *arguments* into a single command line.

    Arguments containing a space are wrapped in single quotes. Nothing
    else is escaped: embedded quotes and shell metacharacters are
    passed through to the remote shell as-is.
    """
    parts = [command]
    for arg in arguments:
        if " " in arg:
            parts.append(f"'{arg}'")
        else:
            parts.append(arg)
    return " ".join(parts)


def execute(
    session: Optional[Session],
    request: ExecRequest,
    *,
    events: Optional[EventSink] = None,
    cancel: Optional[threading.Event] = None,
) -> ExecResult:
    """Run *request* on *session* and return its validated result.

    Blocks until the remote process has closed its output streams.
    Setting *cancel* from another thread aborts the wait with a
    ``SessionError``. The channel is disconnected on every path.
    """
    emit = events or loguru_sink

    def transition(state: ExecState) -> None:
        emit("exec.state", {"state": state.value})

    if session is None or not session.is_active():
        transition(ExecState.CLOSED)
        raise InvalidRequest("ssh session must be established first")
    if not request.command or not request.command.strip():
        transition(ExecState.CLOSED)
        raise InvalidRequest("ssh command cannot be empty")

    stdin_cancelled = threading.Event()
    channel: Optional[Channel] = None
    try:
        channel = session.open_channel()
        transition(ExecState.CHANNEL_OPEN)

        completion = _configure(channel, request, stdin_cancelled, emit)
        transition(ExecState.CONFIGURED)

        command_line = build_command_line(request.command, request.arguments)
        emit("exec.command", {"command": command_line})
        channel.set_command(command_line)
        channel.connect()
        transition(ExecState.RUNNING)

        try:
            completion.wait(cancel)
        except KeyboardInterrupt as e:
            raise SessionError(
                "Interrupted while waiting for remote streams"
            ) from e
        transition(ExecState.STREAMS_COMPLETE)

        exit_status = channel.exit_status()
        emit("exec.exit", {"exit_status": exit_status})
        if exit_status not in request.exit_codes:
            raise UnexpectedExitStatus(request.exit_codes, exit_status)
        transition(ExecState.STATUS_CHECKED)
        return ExecResult(request=request, exit_status=exit_status)
    except _TRANSPORT_ERRORS as e:
        raise SessionError(str(e) or type(e).__name__) from e
    finally:
        stdin_cancelled.set()
        if channel is not None:
            _disconnect(channel, emit)
        transition(ExecState.CLOSED)


def _configure(
    channel: Channel,
    request: ExecRequest,
    stdin_cancelled: threading.Event,
    emit: EventSink,
) -> StreamCompletion:
    """Apply pty, environment and stream bindings to *channel*."""
    if request.pty:
        channel.request_pty()

    for name, value in (request.environment or {}).items():
        emit("exec.env", {"name": name, "value": value})
        try:
            channel.set_environment(name, value)
        except _TRANSPORT_ERRORS as e:
            raise SessionError(
                f"Unable to set environment variable {name}: {e}"
            ) from e

    if request.input is not None:
        channel.set_input(
            InterruptibleReader(request.input, cancelled=stdin_cancelled)
        )

    completion = StreamCompletion()

    output: Any
    if request.output is not None:
        output = completion.wrap_output(request.output)
    else:
        output = DiscardSink()
        completion.output.set()
    channel.set_output(output)

    if request.merge_error:
        # Same sink object: the transport folds stderr into stdout.
        channel.set_error(output)
        completion.error.set()
    elif request.error is not None:
        channel.set_error(completion.wrap_error(request.error))
    else:
        channel.set_error(DiscardSink())
        completion.error.set()

    return completion


def _disconnect(channel: Channel, emit: EventSink) -> None:
    try:
        channel.disconnect()
    except Exception as e:  # noqa: BLE001
        # The outcome of the execution is already decided.
        emit("exec.disconnect_failed", {"error": repr(e)})
