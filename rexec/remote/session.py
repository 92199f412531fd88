"""Fabric-based SSH session establishment."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import paramiko  # type: ignore[import-untyped]
from fabric import Connection  # type: ignore[import-untyped]

from ..config import SshEndpoint
from ..exec.errors import SessionError
from .channel import SshSession


def _build_single_connection(
    server: SshEndpoint,
    gateway: Connection | None = None,
) -> Connection:
    """Build a single Fabric Connection with optional gateway."""
    opts = server.connection_options
    connect_kwargs: dict[str, object] = {
        "allow_agent": opts.allow_agent,
        "look_for_keys": opts.look_for_keys,
        "compress": opts.compress,
    }
    if opts.banner_timeout is not None:
        connect_kwargs["banner_timeout"] = opts.banner_timeout
    if opts.auth_timeout is not None:
        connect_kwargs["auth_timeout"] = opts.auth_timeout
    if opts.channel_timeout is not None:
        connect_kwargs["channel_timeout"] = opts.channel_timeout
    if opts.disabled_algorithms is not None:
        connect_kwargs["disabled_algorithms"] = opts.disabled_algorithms
    if server.key:
        connect_kwargs["key_filename"] = server.key

    conn = Connection(
        host=server.host,
        port=server.port,
        user=server.user,
        connect_kwargs=connect_kwargs,
        connect_timeout=opts.connect_timeout,
        forward_agent=opts.forward_agent,
        gateway=gateway,
    )

    if not opts.strict_host_key_checking:
        conn.client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    return conn


def build_connections(
    server: SshEndpoint,
    proxy_chain: list[SshEndpoint] | None = None,
) -> list[Connection]:
    """Build Fabric Connections for the proxy chain and the target.

    Each connection uses the previous one as its gateway; the target
    connection is last.
    """
    connections: list[Connection] = []
    gateway: Connection | None = None
    for proxy in proxy_chain or []:
        gateway = _build_single_connection(proxy, gateway)
        connections.append(gateway)
    connections.append(_build_single_connection(server, gateway))
    return connections


def _close_all(connections: list[Connection]) -> None:
    for conn in reversed(connections):
        conn.close()


@contextmanager
def open_session(
    server: SshEndpoint,
    proxy_chain: list[SshEndpoint] | None = None,
) -> Iterator[SshSession]:
    """Connect to *server* and yield a session for running commands.

    The connection, including any gateways, is closed on exit.
    """
    connections = build_connections(server, proxy_chain)
    conn = connections[-1]
    try:
        conn.open()
    except (OSError, EOFError, paramiko.SSHException) as e:
        _close_all(connections)
        raise SessionError(
            f"Unable to connect to {server.host}:{server.port}: {e}"
        ) from e
    try:
        if server.connection_options.server_alive_interval is not None:
            conn.transport.set_keepalive(
                server.connection_options.server_alive_interval
            )
        yield SshSession(conn.transport)
    finally:
        _close_all(connections)
