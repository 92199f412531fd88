"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from rexec.config import (
    Config,
    SshConnectionOptions,
    SshEndpoint,
    TaskConfig,
)

SAMPLE_YAML = """\
ssh-endpoints:
  bastion:
    host: bastion.example.com
    user: admin
  build-box:
    host: build.example.com
    port: 5022
    user: ci
    key: ~/.ssh/key
    proxy-jump: bastion
    connection-options:
      connect-timeout: 30

tasks:
  uptime:
    endpoint: build-box
    command: uptime
    description: Show load
  deploy:
    endpoint: build-box
    command: /opt/deploy.sh
    arguments: [--env, "staging area"]
    environment:
      LANG: C
    exit-codes: [0, 3]
"""


@pytest.fixture()
def sample_config_file(tmp_path: Path) -> Path:
    """Write sample YAML config to a temp file."""
    p = tmp_path / "config.yaml"
    p.write_text(SAMPLE_YAML)
    return p


@pytest.fixture()
def ssh_endpoint() -> SshEndpoint:
    return SshEndpoint(
        slug="build-box",
        host="build.example.com",
        port=5022,
        user="ci",
        key="~/.ssh/key",
    )


@pytest.fixture()
def ssh_endpoint_minimal() -> SshEndpoint:
    return SshEndpoint(
        slug="build-box-2",
        host="build2.example.com",
    )


@pytest.fixture()
def sample_config(ssh_endpoint: SshEndpoint) -> Config:
    bastion = SshEndpoint(
        slug="bastion",
        host="bastion.example.com",
        user="admin",
        connection_options=SshConnectionOptions(
            strict_host_key_checking=False
        ),
    )
    endpoint = ssh_endpoint.model_copy(update={"proxy_jump": "bastion"})
    return Config(
        ssh_endpoints={"bastion": bastion, "build-box": endpoint},
        tasks={
            "uptime": TaskConfig(
                slug="uptime", endpoint="build-box", command="uptime"
            ),
            "deploy": TaskConfig(
                slug="deploy",
                endpoint="build-box",
                command="/opt/deploy.sh",
                arguments=["--env", "staging area"],
                environment={"LANG": "C"},
                exit_codes=[0, 3],
            ),
        },
    )
