from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)


def _to_kebab(name: str) -> str:
    return name.replace("_", "-")


class _BaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_kebab,
        populate_by_name=True,
    )


Slug = Annotated[
    str,
    Field(
        min_length=1,
        max_length=50,
        pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$",
    ),
]


class SshConnectionOptions(_BaseModel):
    """SSH connection options.

    These fields map to parameters across two layers:
    - Paramiko: SSHClient.connect() kwargs
      https://docs.paramiko.org/en/stable/api/client.html
    - Fabric: Connection() constructor
      https://docs.fabfile.org/en/stable/api/connection.html
    """

    model_config = ConfigDict(frozen=True)

    # Connection
    # Fabric: connect_timeout
    connect_timeout: int = Field(default=10, ge=1)
    # Paramiko: compress
    compress: bool = False
    # Paramiko: transport.set_keepalive()
    server_alive_interval: Optional[int] = Field(default=None, ge=1)

    # Authentication
    # Paramiko: allow_agent: use SSH agent for key lookup
    allow_agent: bool = True
    # Paramiko: look_for_keys: search ~/.ssh/ for keys
    look_for_keys: bool = True

    # Timeouts
    # Paramiko: banner_timeout: wait for SSH banner
    banner_timeout: Optional[float] = Field(default=None, ge=0)
    # Paramiko: auth_timeout: wait for auth response
    auth_timeout: Optional[float] = Field(default=None, ge=0)
    # Paramiko: channel_timeout: wait for channel open
    channel_timeout: Optional[float] = Field(default=None, ge=0)

    # Host key verification
    # Paramiko: SSHClient.set_missing_host_key_policy()
    strict_host_key_checking: bool = True

    # Forwarding
    # Fabric: forward_agent
    forward_agent: bool = False

    # Algorithm restrictions
    # Paramiko: disabled_algorithms: disable specific algorithms
    disabled_algorithms: Optional[Dict[str, List[str]]] = None


class SshEndpoint(_BaseModel):
    """An SSH server commands are run on."""

    model_config = ConfigDict(frozen=True)
    slug: Slug
    host: str = Field(..., min_length=1)
    port: int = Field(default=22, ge=1, le=65535)
    user: Optional[str] = None
    key: Optional[str] = None
    connection_options: SshConnectionOptions = Field(
        default_factory=lambda: SshConnectionOptions()
    )
    proxy_jump: Optional[str] = None


class TaskConfig(_BaseModel):
    """A named remote command."""

    model_config = ConfigDict(frozen=True)
    slug: Slug
    endpoint: str = Field(..., min_length=1)
    command: str = Field(..., min_length=1)
    arguments: List[str] = Field(default_factory=list)
    environment: Dict[str, str] = Field(default_factory=dict)
    pty: bool = False
    merge_error: bool = False
    exit_codes: List[int] = Field(default_factory=lambda: [0], min_length=1)
    description: Optional[str] = None


def _inject_slugs(v: Any) -> Any:
    return {
        slug: (
            {**data, "slug": slug}
            if isinstance(data, dict) and "slug" not in data
            else data
        )
        for slug, data in v.items()
    }


class Config(_BaseModel):
    """Top-level rexec configuration."""

    ssh_endpoints: Dict[str, SshEndpoint] = Field(default_factory=dict)

    # The slug is the key in the dict,
    # but we also want it as a field in the objects.
    @field_validator("ssh_endpoints", mode="before")
    @classmethod
    def inject_endpoint_slugs(cls, v: Any, info: ValidationInfo) -> Any:
        return _inject_slugs(v)

    tasks: Dict[str, TaskConfig] = Field(default_factory=dict)

    @field_validator("tasks", mode="before")
    @classmethod
    def inject_task_slugs(cls, v: Any, info: ValidationInfo) -> Any:
        return _inject_slugs(v)

    def resolve_proxy_chain(self, endpoint: SshEndpoint) -> list[SshEndpoint]:
        """Return the jump hosts for *endpoint*, outermost first."""
        chain: list[SshEndpoint] = []
        current = endpoint.proxy_jump
        while current is not None:
            proxy = self.ssh_endpoints[current]
            chain.append(proxy)
            current = proxy.proxy_jump
        chain.reverse()
        return chain

    @model_validator(mode="after")
    def validate_cross_references(self) -> Config:
        for slug, server in self.ssh_endpoints.items():
            if server.proxy_jump is not None:
                if server.proxy_jump not in self.ssh_endpoints:
                    raise ValueError(
                        f"Endpoint '{slug}' references "
                        f"unknown proxy-jump endpoint "
                        f"'{server.proxy_jump}'"
                    )
                visited: set[str] = {slug}
                current: str | None = server.proxy_jump
                while current is not None:
                    if current in visited:
                        raise ValueError(
                            f"Circular proxy-jump chain "
                            f"detected starting from "
                            f"endpoint '{slug}'"
                        )
                    visited.add(current)
                    current = self.ssh_endpoints[current].proxy_jump

        for task_slug, task in self.tasks.items():
            if task.endpoint not in self.ssh_endpoints:
                raise ValueError(
                    f"Task '{task_slug}' references "
                    f"unknown endpoint '{task.endpoint}'"
                )
        return self
