"""Structured event sinks injected into the execution engine."""

from __future__ import annotations

from typing import Any, Callable

from loguru import logger

EventSink = Callable[[str, dict[str, Any]], None]


def loguru_sink(event: str, fields: dict[str, Any]) -> None:
    """Emit *event* through Loguru at DEBUG level."""
    logger.bind(**fields).debug(
        "{} {}",
        event,
        " ".join(f"{k}={v}" for k, v in fields.items()),
    )


def null_sink(event: str, fields: dict[str, Any]) -> None:
    """Discard every event."""


class RecordingSink:
    """Collect events in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, event: str, fields: dict[str, Any]) -> None:
        self.events.append((event, dict(fields)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]
