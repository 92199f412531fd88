"""Scripted session and channel doubles for exercising the engine."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator

from ..config import SshEndpoint


class FakeChannel:
    """Scripted channel delivering canned output on its own thread."""

    def __init__(
        self,
        stdout: bytes = b"",
        stderr: bytes = b"",
        exit_status: int = 0,
        hold_streams: bool = False,
        echo_stdin: bool = False,
        failures: dict[str, BaseException] | None = None,
    ) -> None:
        self.calls: list[str] = []
        self.environment: dict[str, str] = {}
        self.pty = False
        self.command: str | None = None
        self.input: Any = None
        self.output: Any = None
        self.error: Any = None
        self.disconnects = 0
        self.stdin_received = bytearray()
        self.stdin_done = threading.Event()
        self.output_closed_at_exit: bool | None = None
        self.release = threading.Event()
        if not hold_streams:
            self.release.set()
        self._stdout = stdout
        self._stderr = stderr
        self._exit_status = exit_status
        self._echo_stdin = echo_stdin
        self._failures = failures or {}

    def _call(self, name: str) -> None:
        self.calls.append(name)
        failure = self._failures.get(name)
        if failure is not None:
            raise failure

    def request_pty(self) -> None:
        self._call("request_pty")
        self.pty = True

    def set_environment(self, name: str, value: str) -> None:
        self._call("set_environment")
        self.environment[name] = value

    def set_input(self, source: Any) -> None:
        self._call("set_input")
        self.input = source

    def set_output(self, sink: Any) -> None:
        self._call("set_output")
        self.output = sink

    def set_error(self, sink: Any) -> None:
        self._call("set_error")
        self.error = sink

    def set_command(self, command: str) -> None:
        self._call("set_command")
        self.command = command

    def connect(self) -> None:
        self._call("connect")
        threading.Thread(target=self._deliver, daemon=True).start()
        if self.input is not None:
            threading.Thread(target=self._feed, daemon=True).start()

    def _deliver(self) -> None:
        self.release.wait(5)
        merged = self.error is self.output
        if self._echo_stdin:
            self.stdin_done.wait(5)
            self.output.write(bytes(self.stdin_received))
        self.output.write(self._stdout)
        if self._stderr:
            (self.output if merged else self.error).write(self._stderr)
        self.output.close()
        if not merged:
            self.error.close()

    def _feed(self) -> None:
        while True:
            data = self.input.read(1024)
            if not data:
                break
            self.stdin_received += data
        self.stdin_done.set()

    def exit_status(self) -> int:
        self._call("exit_status")
        self.output_closed_at_exit = getattr(self.output, "closed", None)
        return self._exit_status

    def disconnect(self) -> None:
        self.disconnects += 1
        self.release.set()
        self._call("disconnect")


class FakeSession:
    def __init__(
        self,
        channel: FakeChannel | None = None,
        active: bool = True,
        open_error: BaseException | None = None,
    ) -> None:
        self.channel = channel or FakeChannel()
        self.active = active
        self.open_error = open_error
        self.opened = 0

    def is_active(self) -> bool:
        return self.active

    def open_channel(self) -> FakeChannel:
        self.opened += 1
        if self.open_error is not None:
            raise self.open_error
        return self.channel


class FakeSessionFactory:
    """Stand-in for ``open_session`` yielding scripted sessions."""

    def __init__(self, *channels: FakeChannel) -> None:
        self.channels = list(channels)
        self.calls: list[tuple[SshEndpoint, list[SshEndpoint]]] = []
        self.sessions: list[FakeSession] = []

    @contextmanager
    def __call__(
        self, endpoint: SshEndpoint, proxy_chain: list[SshEndpoint]
    ) -> Iterator[FakeSession]:
        self.calls.append((endpoint, proxy_chain))
        channel = self.channels.pop(0) if self.channels else FakeChannel()
        session = FakeSession(channel)
        self.sessions.append(session)
        yield session
