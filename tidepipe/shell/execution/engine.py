"""Runtime engine -- drives a parsed pipeline stage by stage.

Each stage's output stream becomes the next stage's input stream.  Streams
are async iterators, so a downstream stage pulls items as soon as upstream
yields them; nothing runs in parallel and there is no buffering window
beyond what a command does itself.

A run ends in one of three ways:

1. **Completed**: the final stream is drained into ``RunResult.items``.
2. **Halted**: a stage produced a single ``ApprovalRequest``.  Later stages
   are not invoked; the caller may encode a ``ResumeContinuation`` and pick
   up at ``halted_at.index + 1`` later.
3. **Failed**: any exception from a lookup or a command propagates as is.
   No partial output is returned and nothing is retried.

Halt detection happens in two places:

- after a stage that returns ``halt=True`` (``approve`` in tool mode), whose
  output is drained immediately so later stages never start;
- on the terminal stream, where a sole approval request also halts.

An approval request that arrives together with other items is not a halt;
it is passed along as an ordinary value.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tidepipe.shell.context import CommandContext
from tidepipe.shell.execution.streams import collect, empty, from_items
from tidepipe.shell.models.pipeline import ApprovalRequest, Item, Pipeline, ResumeContinuation, as_approval_request
from tidepipe.shell.models.result import HaltState, RunResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from tidepipe.shell.registry import CommandRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class UnknownCommandError(LookupError):
    """A stage names a command the registry does not know."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown command: {name}")
        self.command_name = name


class NotHaltedError(ValueError):
    """A continuation was requested for a run that did not halt."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sole_approval(items: list[Item]) -> ApprovalRequest | None:
    if len(items) != 1:
        return None
    return as_approval_request(items[0])


def _halted(index: int, approval: ApprovalRequest) -> RunResult:
    return RunResult(items=[approval], halted=True, halted_at=HaltState(index=index))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def run_pipeline(
    pipeline: Pipeline,
    registry: CommandRegistry,
    *,
    ctx: CommandContext | None = None,
    input: AsyncIterator[Item] | None = None,  # noqa: A002
) -> RunResult:
    """Execute *pipeline* and return its result.

    Parameters
    ----------
    pipeline:
        Parsed invocations, in execution order.
    registry:
        Command lookup.  Never mutated.
    ctx:
        Context shared by all stages (environment, mode, streams).
    input:
        Input stream for stage 0.  Defaults to an empty stream.

    Raises
    ------
    UnknownCommandError:
        When a stage names an unregistered command.
    Exception:
        Whatever a command raises, unchanged.
    """
    ctx = ctx or CommandContext()
    stream: AsyncIterator[Item] = input if input is not None else empty()
    rendered = False

    for index, stage in enumerate(pipeline):
        command = registry.get(stage.name)
        if command is None:
            raise UnknownCommandError(stage.name)

        logger.debug("Stage %d: %s %s", index, stage.name, dict(stage.args))
        result = await command.run(input=stream, args=stage.args_dict(), ctx=ctx)
        stream = result.output
        rendered = result.rendered

        if result.halt:
            items = await collect(stream)
            approval = _sole_approval(items)
            if approval is not None:
                logger.info("Pipeline halted for approval at stage %d (%s)", index, stage.name)
                return _halted(index, approval)
            stream = from_items(items)

    items = await collect(stream)
    approval = _sole_approval(items) if pipeline else None
    if approval is not None:
        index = len(pipeline) - 1
        logger.info("Pipeline halted for approval at terminal stage %d", index)
        return _halted(index, approval)

    logger.debug("Pipeline completed with %d item(s), rendered=%s", len(items), rendered)
    return RunResult(items=items, rendered=rendered)


def build_continuation(pipeline: Pipeline, result: RunResult) -> ResumeContinuation:
    """Capture everything needed to resume a halted run.

    Raises ``NotHaltedError`` if *result* is not a halted run.
    """
    approval = result.approval
    if approval is None or result.halted_at is None:
        msg = "Run did not halt on an approval request"
        raise NotHaltedError(msg)
    return ResumeContinuation(
        pipeline=pipeline,
        resume_at_index=result.halted_at.resume_at_index,
        items=list(approval.items),
        prompt=approval.prompt,
    )


async def resume_pipeline(
    continuation: ResumeContinuation,
    registry: CommandRegistry,
    *,
    ctx: CommandContext | None = None,
) -> tuple[Pipeline, RunResult]:
    """Re-enter the engine where a halted run stopped.

    The stages after the halt point run with the approved items as their
    input.  Completed stages are never re-executed.

    Returns
    -------
    tuple of (Pipeline, RunResult)
        The remaining pipeline (indices in the result are relative to it)
        and the outcome of running it.
    """
    remaining = continuation.remaining
    logger.info(
        "Resuming %d remaining stage(s) with %d replayed item(s)",
        len(remaining),
        len(continuation.items),
    )
    result = await run_pipeline(remaining, registry, ctx=ctx, input=from_items(continuation.items))
    return remaining, result
