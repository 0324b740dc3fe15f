"""``approve`` -- gate the rest of a pipeline behind human confirmation.

In tool mode the command cannot ask anyone, so it collects its input into a
single ``ApprovalRequest`` and asks the engine to halt.  The caller shows
the prompt to a human and resumes with the token from the envelope.

In human mode it asks on the terminal and, once confirmed, passes its input
through unchanged.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

import click
from anyio import to_thread

from tidepipe.shell.commands.base import CommandError, CommandOutput, flag, positional
from tidepipe.shell.execution.streams import collect
from tidepipe.shell.models.pipeline import ApprovalRequest

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from tidepipe.shell.context import CommandContext
    from tidepipe.shell.models.pipeline import ArgValue, Item

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = "Approve?"


class ApproveCommand:
    name = "approve"

    def help(self) -> str:
        return (
            "approve -- require confirmation before continuing\n\n"
            "Usage:\n"
            '  ... | approve --prompt "Send these emails?"\n\n'
            "Modes:\n"
            "  - human: asks on the terminal; refusing aborts the pipeline.\n"
            "  - tool: halts with an approval request and a resume token.\n"
            "    Continue with: resume --token <token> --approve yes\n"
        )

    async def run(
        self,
        *,
        input: AsyncIterator[Item],  # noqa: A002
        args: Mapping[str, ArgValue],
        ctx: CommandContext,
    ) -> CommandOutput:
        prompt = flag(args, "prompt") or " ".join(positional(args)) or DEFAULT_PROMPT
        if ctx.is_tool_mode:
            return CommandOutput(output=_request(input, prompt), halt=True)
        return CommandOutput(output=_confirm(input, prompt, ctx))


async def _request(input: AsyncIterator[Item], prompt: str) -> AsyncIterator[Item]:  # noqa: A002
    items = await collect(input)
    logger.debug("approve: requesting approval for %d item(s)", len(items))
    yield ApprovalRequest(items=items, prompt=prompt)


async def _confirm(
    input: AsyncIterator[Item],  # noqa: A002
    prompt: str,
    ctx: CommandContext,
) -> AsyncIterator[Item]:
    items = await collect(input)
    if not ctx.interactive:
        msg = "approve needs an interactive terminal in human mode (use --mode tool to get a resume token)"
        raise CommandError(msg)

    question = f"{prompt} ({len(items)} item(s))"
    approved = await to_thread.run_sync(partial(click.confirm, question, default=False, err=True))
    if not approved:
        msg = "Not approved"
        raise CommandError(msg)

    for item in items:
        yield item
