"""Remote execution engine."""

from .engine import ExecState, build_command_line, execute
from .errors import (
    InvalidRequest,
    RemoteExecError,
    SessionError,
    UnexpectedExitStatus,
)
from .protocol import Channel, Session
from .request import ExecRequest
from .result import ExecResult
from .streams import (
    DiscardSink,
    InterruptibleReader,
    SignalingSink,
    StreamCompletion,
    close_shield,
)

__all__ = [
    "Channel",
    "DiscardSink",
    "ExecRequest",
    "ExecResult",
    "ExecState",
    "InterruptibleReader",
    "InvalidRequest",
    "RemoteExecError",
    "Session",
    "SessionError",
    "SignalingSink",
    "StreamCompletion",
    "UnexpectedExitStatus",
    "build_command_line",
    "close_shield",
    "execute",
]
