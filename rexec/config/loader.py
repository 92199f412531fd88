"""YAML configuration loading, parsing, and validation."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from .protocol import Config

CONFIG_ENV_VAR = "REXEC_CONFIG"


class ConfigError(Exception):
    """Raised when configuration is invalid."""


def _candidate_paths() -> list[Path]:
    xdg = os.environ.get(
        "XDG_CONFIG_HOME",
        os.path.expanduser("~/.config"),
    )
    return [
        Path(xdg) / "rexec" / "config.yaml",
        Path("/etc/rexec/config.yaml"),
    ]


def find_config_file(config_path: str | None = None) -> Path:
    """Find the configuration file using search order.

    Order: explicit path > $REXEC_CONFIG > XDG_CONFIG_HOME > /etc/rexec/
    """
    explicit = config_path or os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        p = Path(explicit)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return p

    candidates = _candidate_paths()
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    searched = ", ".join(str(c) for c in candidates)
    raise ConfigError(f"No config file found. Searched: {searched}")


def parse_config(text: str, source: str = "<string>") -> Config:
    """Parse and validate configuration from YAML *text*."""
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {source}: {e}") from e

    if raw is None:
        return Config()
    elif not isinstance(raw, dict):
        raise ConfigError("Config file must be a YAML mapping")
    else:
        try:
            return Config.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(str(e)) from e


def load_config(config_path: str | None = None) -> Config:
    """Load and validate configuration from a YAML file."""
    path = find_config_file(config_path)
    return parse_config(path.read_text(), str(path))
