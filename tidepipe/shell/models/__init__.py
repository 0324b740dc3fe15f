"""Data models for the shell runtime."""

from tidepipe.shell.models.enums import ErrorType, RunStatus, ShellMode
from tidepipe.shell.models.pipeline import (
    POSITIONAL_KEY,
    TOKEN_VERSION,
    ApprovalRequest,
    Invocation,
    Item,
    Pipeline,
    ResumeContinuation,
    as_approval_request,
)
from tidepipe.shell.models.result import (
    ApprovalPayload,
    ErrorInfo,
    HaltState,
    RunResult,
    ToolEnvelope,
)

__all__ = [
    "POSITIONAL_KEY",
    "TOKEN_VERSION",
    # Envelope
    "ApprovalPayload",
    # Pipeline
    "ApprovalRequest",
    "ErrorInfo",
    # Enums
    "ErrorType",
    # Result
    "HaltState",
    "Invocation",
    "Item",
    "Pipeline",
    "ResumeContinuation",
    "RunResult",
    "RunStatus",
    "ShellMode",
    "ToolEnvelope",
    "as_approval_request",
]
