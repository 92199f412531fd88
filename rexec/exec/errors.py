"""Failures raised by the remote execution engine."""

from __future__ import annotations

from typing import Iterable


class RemoteExecError(Exception):
    """Base class for every failure raised by ``execute``."""


class InvalidRequest(RemoteExecError):
    """Raised when the request or the session cannot be used."""


class SessionError(RemoteExecError):
    """Raised on channel or transport failure.

    Also covers interruption while waiting for the remote streams and
    failures negotiating a pty or environment entries.
    """


class UnexpectedExitStatus(RemoteExecError):
    """Raised when the remote exit status is not an accepted one."""

    def __init__(self, accepted: Iterable[int], actual: int) -> None:
        self.accepted = frozenset(accepted)
        self.actual = actual
        super().__init__(
            "Process exited with unexpected value "
            f"{actual} (accepted: {sorted(self.accepted)})"
        )
