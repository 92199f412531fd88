"""Stream adapters: completion signalling sinks and a cancellable reader."""

from __future__ import annotations

import select
import threading
import time
from typing import Any, Optional

from .errors import SessionError


class DiscardSink:
    """A sink that drops everything written to it."""

    def write(self, data: bytes) -> int:
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


class _CloseShield:
    def __init__(self, sink: Any) -> None:
        self._sink = sink

    def write(self, data: bytes) -> Any:
        return self._sink.write(data)

    def flush(self) -> None:
        self._sink.flush()

    def close(self) -> None:
        self._sink.flush()


def close_shield(sink: Any) -> Any:
    """Wrap *sink* so that ``close()`` only flushes it.

    Used for process-wide streams such as ``sys.stdout.buffer``
    which must survive the end of a remote execution.
    """
    return _CloseShield(sink)


class SignalingSink:
    """Forward writes to *sink* and set *signal* once it is closed."""

    def __init__(self, sink: Any, signal: threading.Event) -> None:
        self._sink = sink
        self._signal = signal
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._signal.is_set()

    def write(self, data: bytes) -> Any:
        # Output and error pumps may share one sink when merged.
        with self._lock:
            return self._sink.write(data)

    def flush(self) -> None:
        with self._lock:
            self._sink.flush()

    def close(self) -> None:
        if self._signal.is_set():
            return
        try:
            with self._lock:
                self._sink.close()
        finally:
            self._signal.set()


class StreamCompletion:
    """Two one-shot signals: output-complete and error-complete.

    The transport reports that a remote process has finished
    delivering data by closing its output sinks, so completion is
    observed as closure rather than as an explicit exit event.
    """

    def __init__(self) -> None:
        self.output = threading.Event()
        self.error = threading.Event()

    @property
    def done(self) -> bool:
        return self.output.is_set() and self.error.is_set()

    def wrap_output(self, sink: Any) -> SignalingSink:
        return SignalingSink(sink, self.output)

    def wrap_error(self, sink: Any) -> SignalingSink:
        return SignalingSink(sink, self.error)

    def wait(
        self,
        cancel: Optional[threading.Event] = None,
        poll_interval: float = 0.05,
    ) -> None:
        """Block until both signals are set.

        Raises ``SessionError`` if *cancel* is set first.
        """
        for signal in (self.output, self.error):
            while not signal.wait(poll_interval):
                if cancel is not None and cancel.is_set():
                    raise SessionError(
                        "Interrupted while waiting for remote streams"
                    )


class InterruptibleReader:
    """Cancellable, poll-based reader over a byte source.

    A transport pumping stdin performs a blocking ``read()`` on its
    own thread. If the source never reaches end of stream that thread
    would block forever. This reader never blocks on the source:
    it checks availability, sleeps briefly when nothing is ready and
    returns ``b""`` as soon as it is cancelled.
    """

    def __init__(
        self,
        source: Any,
        cancelled: Optional[threading.Event] = None,
        poll_interval: float = 0.01,
    ) -> None:
        self._source = source
        self._cancelled = cancelled or threading.Event()
        self.poll_interval = poll_interval

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def available(self) -> bool:
        """Return whether a read on the source would not block."""
        source = self._source
        if hasattr(source, "available"):
            return bool(source.available())
        try:
            fd = source.fileno()
        except (AttributeError, OSError, ValueError):
            # In-memory buffers never block.
            return True
        try:
            readable, _, _ = select.select([fd], [], [], 0)
        except (OSError, ValueError):
            return True
        return bool(readable)

    def read(self, size: int = -1) -> bytes:
        while True:
            if self._cancelled.is_set():
                return b""
            if self.available():
                read = getattr(self._source, "read1", self._source.read)
                return read(size)
            time.sleep(self.poll_interval)

    def close(self) -> None:
        self.cancel()
        self._source.close()
