"""SSH session establishment and the Paramiko channel adapter."""

from .channel import SshChannel, SshSession
from .session import build_connections, open_session

__all__ = [
    "SshChannel",
    "SshSession",
    "build_connections",
    "open_session",
]
