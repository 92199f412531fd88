"""Immutable description of a remote execution."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, FrozenSet, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExecRequest(BaseModel):
    """A command to run remotely, with its stream bindings.

    ``input`` is any object with ``read(n) -> bytes``; ``output`` and
    ``error`` are objects with ``write(bytes)`` and ``close()``.
    Unbound output streams are discarded.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    command: str = Field(..., min_length=1)
    arguments: Tuple[str, ...] = ()
    environment: Optional[Mapping[str, str]] = None
    pty: bool = False
    input: Optional[Any] = None
    output: Optional[Any] = None
    error: Optional[Any] = None
    merge_error: bool = False
    exit_codes: FrozenSet[int] = Field(
        default_factory=lambda: frozenset({0}), min_length=1
    )

    @field_validator("command")
    @classmethod
    def command_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("command cannot be blank")
        return v

    @field_validator("environment", mode="before")
    @classmethod
    def copy_environment(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return dict(v)
        return v

    @field_validator("environment")
    @classmethod
    def freeze_environment(
        cls, v: Optional[Mapping[str, str]]
    ) -> Optional[Mapping[str, str]]:
        if v is None:
            return None
        return MappingProxyType(dict(v))

    def __hash__(self) -> int:
        env = tuple(sorted((self.environment or {}).items()))
        return hash(
            (
                self.command,
                self.arguments,
                env,
                self.pty,
                self.input,
                self.output,
                self.error,
                self.merge_error,
                self.exit_codes,
            )
        )

    def _replace(self, **update: Any) -> ExecRequest:
        return ExecRequest(**{**dict(self), **update})

    def with_args(self, *args: str) -> ExecRequest:
        return self._replace(arguments=self.arguments + args)

    def with_env(self, name: str, value: str) -> ExecRequest:
        env = dict(self.environment or {})
        env[name] = value
        return self._replace(environment=env)

    def with_exit_codes(self, *codes: int) -> ExecRequest:
        return self._replace(exit_codes=frozenset(codes))
