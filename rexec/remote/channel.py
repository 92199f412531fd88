"""Paramiko implementation of the engine's session and channel."""

from __future__ import annotations

import threading
from typing import Any, Optional

import paramiko  # type: ignore[import-untyped]

from ..exec.errors import SessionError

_BUFFER_SIZE = 32768


class SshChannel:
    """An exec channel with pump threads for the bound streams.

    ``connect()`` runs the command and starts one daemon thread per
    stream. Output pumps read until end of stream and always close
    their sink. The stdin pump half-closes the channel once its
    source is exhausted or cancelled.
    """

    def __init__(self, channel: paramiko.Channel) -> None:
        self._channel = channel
        self._command: Optional[str] = None
        self._input: Any = None
        self._output: Any = None
        self._error: Any = None
        self._threads: list[threading.Thread] = []
        self._failure: Optional[BaseException] = None

    def request_pty(self) -> None:
        self._channel.get_pty()

    def set_environment(self, name: str, value: str) -> None:
        self._channel.set_environment_variable(name, value)

    def set_input(self, source: Any) -> None:
        self._input = source

    def set_output(self, sink: Any) -> None:
        self._output = sink

    def set_error(self, sink: Any) -> None:
        self._error = sink

    def set_command(self, command: str) -> None:
        self._command = command

    def connect(self) -> None:
        if self._command is None:
            raise SessionError("No command set on channel")
        merged = self._error is not None and self._error is self._output
        if merged:
            self._channel.set_combine_stderr(True)
        self._channel.exec_command(self._command)

        if self._output is not None:
            self._start(
                "stdout",
                self._pump_out,
                self._channel.recv,
                self._output,
            )
        if self._error is not None and not merged:
            self._start(
                "stderr",
                self._pump_out,
                self._channel.recv_stderr,
                self._error,
            )
        if self._input is not None:
            self._start("stdin", self._pump_in)

    def _start(self, name: str, target: Any, *args: Any) -> None:
        thread = threading.Thread(
            target=target,
            args=args,
            name=f"rexec-{name}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()

    def _pump_out(self, recv: Any, sink: Any) -> None:
        try:
            while True:
                data = recv(_BUFFER_SIZE)
                if not data:
                    break
                sink.write(data)
        except Exception as e:  # noqa: BLE001
            self._fail(e)
            # Nothing drains the stream past this point.
            self._channel.close()
        finally:
            try:
                sink.close()
            except Exception as e:  # noqa: BLE001
                self._fail(e)

    def _fail(self, e: BaseException) -> None:
        if self._failure is None:
            self._failure = e

    def _pump_in(self) -> None:
        try:
            while True:
                data = self._input.read(_BUFFER_SIZE)
                if not data:
                    break
                self._channel.sendall(data)
            self._channel.shutdown_write()
        except (OSError, paramiko.SSHException):
            # Remote process stopped reading stdin.
            return

    def exit_status(self) -> int:
        if self._failure is not None:
            raise SessionError(
                f"Stream transfer failed: {self._failure}"
            ) from self._failure
        return self._channel.recv_exit_status()

    def disconnect(self) -> None:
        self._channel.close()
        for thread in self._threads:
            thread.join(timeout=1.0)


class SshSession:
    """A connected Paramiko transport."""

    def __init__(self, transport: paramiko.Transport) -> None:
        self.transport = transport

    def is_active(self) -> bool:
        return self.transport is not None and self.transport.is_active()

    def open_channel(self) -> SshChannel:
        return SshChannel(self.transport.open_session())
