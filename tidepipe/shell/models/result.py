"""Run outcome models returned by the engine and rendered by the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tidepipe.shell.models.enums import ErrorType, RunStatus
from tidepipe.shell.models.pipeline import ApprovalRequest, Item, as_approval_request

# -- Engine result -----------------------------------------------------------


@dataclass(frozen=True)
class HaltState:
    """Position of the stage that halted the run (0-based)."""

    index: int

    @property
    def resume_at_index(self) -> int:
        return self.index + 1


@dataclass
class RunResult:
    """Outcome of a completed or halted pipeline run."""

    items: list[Item] = field(default_factory=list)
    rendered: bool = False
    """True when the terminal stage presented its output itself."""

    halted: bool = False
    halted_at: HaltState | None = None

    @property
    def approval(self) -> ApprovalRequest | None:
        """The approval request that halted the run, if any."""
        if not self.halted or len(self.items) != 1:
            return None
        return as_approval_request(self.items[0])


# -- Tool-mode envelope ------------------------------------------------------


class ErrorInfo(BaseModel):
    type: ErrorType
    message: str


class ApprovalPayload(BaseModel):
    """Approval request as presented to the caller, with its resume token."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = "approval_request"
    items: list[Any] = Field(default_factory=list)
    prompt: str = ""
    resume_token: str = Field(alias="resumeToken")


class ToolEnvelope(BaseModel):
    """The single JSON object written per tool-mode invocation.

    Only explicitly set fields are serialized, so failures carry just
    ``ok`` and ``error`` while successes carry ``status``, ``output`` and
    ``requiresApproval`` (possibly ``null``).
    """

    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    status: RunStatus | None = None
    output: list[Any] | None = None
    error: ErrorInfo | None = None
    requires_approval: ApprovalPayload | None = Field(default=None, alias="requiresApproval")

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, by_alias=True, exclude_unset=True)
