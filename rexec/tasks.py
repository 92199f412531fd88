"""Named task registry."""

from __future__ import annotations

from typing import Any, Callable, Optional

from .events import EventSink, loguru_sink
from .exec.errors import RemoteExecError

TaskHandler = Callable[[], Any]


class TaskError(Exception):
    """Raised when a task fails outside the remote execution errors."""


class NoSuchTask(TaskError):
    """Raised when no task is registered under a name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No such task '{name}'")


class TaskRegistry:
    """Map task names to zero-argument handlers.

    ``run`` lets ``RemoteExecError`` and ``TaskError`` raised by a
    handler propagate unchanged and wraps anything else in
    ``TaskError``.
    """

    def __init__(self, events: Optional[EventSink] = None) -> None:
        self._handlers: dict[str, TaskHandler] = {}
        self._emit = events or loguru_sink

    def register(self, name: str, handler: TaskHandler) -> None:
        if name in self._handlers:
            raise ValueError(f"Task '{name}' is already registered")
        self._handlers[name] = handler

    def task(
        self, name: Optional[str] = None
    ) -> Callable[[TaskHandler], TaskHandler]:
        """Decorator registering a function, by default under its name."""

        def decorator(fn: TaskHandler) -> TaskHandler:
            self.register(name or fn.__name__, fn)
            return fn

        return decorator

    def names(self) -> list[str]:
        return list(self._handlers)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def run(self, name: str) -> Any:
        handler = self._handlers.get(name)
        if handler is None:
            raise NoSuchTask(name)

        self._emit("task.run", {"task": name})
        try:
            return handler()
        except (RemoteExecError, TaskError):
            raise
        except Exception as e:
            raise TaskError(f"Unable to execute task '{name}'") from e
