"""Configuration types and loading."""

from .loader import ConfigError, find_config_file, load_config, parse_config
from .protocol import (
    Config,
    Slug,
    SshConnectionOptions,
    SshEndpoint,
    TaskConfig,
)

__all__ = [
    "Config",
    "ConfigError",
    "Slug",
    "SshConnectionOptions",
    "SshEndpoint",
    "TaskConfig",
    "find_config_file",
    "load_config",
    "parse_config",
]
