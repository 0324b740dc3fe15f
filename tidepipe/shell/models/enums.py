"""Shared enumerations used across the shell."""

from __future__ import annotations

from enum import StrEnum

# -- Execution ---------------------------------------------------------------


class ShellMode(StrEnum):
    """How the result of a run is presented."""

    HUMAN = "human"
    TOOL = "tool"


class RunStatus(StrEnum):
    """Status reported in the tool-mode envelope."""

    OK = "ok"
    NEEDS_APPROVAL = "needs_approval"
    CANCELLED = "cancelled"


# -- Errors ------------------------------------------------------------------


class ErrorType(StrEnum):
    """Error kinds surfaced in the tool-mode envelope."""

    PARSE_ERROR = "parse_error"
    RUNTIME_ERROR = "runtime_error"
