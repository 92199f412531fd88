"""Run commands and configured tasks against configured endpoints."""

from __future__ import annotations

import threading
from typing import Any, Callable, ContextManager, Optional

from .config import Config, ConfigError, SshEndpoint, TaskConfig
from .events import EventSink
from .exec import ExecRequest, ExecResult, Session, execute
from .remote import open_session
from .tasks import TaskRegistry

SessionFactory = Callable[
    [SshEndpoint, list[SshEndpoint]], ContextManager[Session]
]


def request_for_task(
    task: TaskConfig,
    input: Any = None,
    output: Any = None,
    error: Any = None,
) -> ExecRequest:
    """Build the execution request for a configured task."""
    return ExecRequest(
        command=task.command,
        arguments=tuple(task.arguments),
        environment=dict(task.environment) or None,
        pty=task.pty,
        merge_error=task.merge_error,
        exit_codes=frozenset(task.exit_codes),
        input=input,
        output=output,
        error=error,
    )


def run_on_endpoint(
    config: Config,
    endpoint_slug: str,
    request: ExecRequest,
    session_factory: SessionFactory = open_session,
    events: Optional[EventSink] = None,
    cancel: Optional[threading.Event] = None,
) -> ExecResult:
    """Open a session to a configured endpoint and run *request*."""
    endpoint = config.ssh_endpoints.get(endpoint_slug)
    if endpoint is None:
        raise ConfigError(f"Unknown endpoint '{endpoint_slug}'")
    proxy_chain = config.resolve_proxy_chain(endpoint)
    with session_factory(endpoint, proxy_chain) as session:
        return execute(session, request, events=events, cancel=cancel)


def build_task_registry(
    config: Config,
    output: Any = None,
    error: Any = None,
    session_factory: SessionFactory = open_session,
    events: Optional[EventSink] = None,
) -> TaskRegistry:
    """Register one handler per configured task."""
    registry = TaskRegistry(events=events)

    def make_handler(task: TaskConfig) -> Callable[[], ExecResult]:
        def handler() -> ExecResult:
            request = request_for_task(task, output=output, error=error)
            return run_on_endpoint(
                config,
                task.endpoint,
                request,
                session_factory=session_factory,
                events=events,
            )

        return handler

    for slug, task in config.tasks.items():
        registry.register(slug, make_handler(task))
    return registry
