"""Result of a successful remote execution."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator

from .request import ExecRequest


class ExecResult(BaseModel):
    """Originating request and its accepted exit status."""

    model_config = ConfigDict(frozen=True)

    request: ExecRequest
    exit_status: int

    @model_validator(mode="after")
    def exit_status_accepted(self) -> ExecResult:
        if self.exit_status not in self.request.exit_codes:
            raise ValueError(
                f"Exit status {self.exit_status} is not one of "
                f"{sorted(self.request.exit_codes)}"
            )
        return self
