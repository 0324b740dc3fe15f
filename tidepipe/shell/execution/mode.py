"""Mode adapter -- turns a run outcome into what the process emits.

- **tool** mode: exactly one ``ToolEnvelope`` per invocation, written with a
  single call, whatever the outcome (completed, halted, cancelled, failed).
- **human** mode: the items as indented JSON, unless the terminal stage
  already rendered them.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, TextIO

import click
from pydantic_core import to_jsonable_python

from tidepipe.shell.execution.engine import build_continuation
from tidepipe.shell.execution.token import encode_token
from tidepipe.shell.models.enums import ErrorType, RunStatus
from tidepipe.shell.models.result import ApprovalPayload, ErrorInfo, RunResult, ToolEnvelope

if TYPE_CHECKING:
    from tidepipe.shell.models.pipeline import Pipeline


def jsonable(items: list[Any]) -> list[Any]:
    """Convert items (which may include models) to plain JSON values."""
    return to_jsonable_python(items)


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


def result_envelope(pipeline: Pipeline, result: RunResult, *, token_key: bytes | None = None) -> ToolEnvelope:
    """Envelope for a run that completed or halted.

    *pipeline* is the pipeline that produced *result*; a halt is encoded
    against it so the token resumes at the right stage.
    """
    approval = result.approval
    if approval is not None:
        token = encode_token(build_continuation(pipeline, result), key=token_key)
        return ToolEnvelope(
            ok=True,
            status=RunStatus.NEEDS_APPROVAL,
            output=[],
            requires_approval=ApprovalPayload(
                type=approval.type,
                items=jsonable(approval.items),
                prompt=approval.prompt,
                resume_token=token,
            ),
        )
    return ToolEnvelope(
        ok=True,
        status=RunStatus.OK,
        output=jsonable(result.items),
        requires_approval=None,
    )


def cancelled_envelope() -> ToolEnvelope:
    return ToolEnvelope(ok=True, status=RunStatus.CANCELLED, output=[], requires_approval=None)


def error_envelope(error_type: ErrorType, exc: BaseException | str) -> ToolEnvelope:
    message = exc if isinstance(exc, str) else (str(exc) or type(exc).__name__)
    return ToolEnvelope(ok=False, error=ErrorInfo(type=error_type, message=message))


def write_envelope(envelope: ToolEnvelope, stream: TextIO | None = None) -> None:
    click.echo(envelope.to_json(), file=stream)


# ---------------------------------------------------------------------------
# Human output
# ---------------------------------------------------------------------------


def render_human(result: RunResult, stream: TextIO | None = None) -> None:
    """Print the items unless the terminal stage rendered them itself."""
    if result.rendered:
        return
    click.echo(json.dumps(jsonable(result.items), indent=2, ensure_ascii=False), file=stream)
