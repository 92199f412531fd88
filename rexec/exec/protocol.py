"""Capabilities the engine consumes from a remote-execution transport."""

from __future__ import annotations

from typing import Any, Protocol


class Channel(Protocol):
    """One remote command over a session.

    Configuration calls happen before ``connect()``, which starts the
    remote process and stream delivery. Output sinks are closed by the
    transport once the corresponding remote stream reaches its end.
    """

    def request_pty(self) -> None: ...

    def set_environment(self, name: str, value: str) -> None: ...

    def set_input(self, source: Any) -> None: ...

    def set_output(self, sink: Any) -> None: ...

    def set_error(self, sink: Any) -> None: ...

    def set_command(self, command: str) -> None: ...

    def connect(self) -> None: ...

    def exit_status(self) -> int: ...

    def disconnect(self) -> None: ...


class Session(Protocol):
    """A connected, authenticated session able to open channels."""

    def is_active(self) -> bool: ...

    def open_channel(self) -> Channel: ...
