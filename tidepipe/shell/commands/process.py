"""``exec`` -- run a shell command and turn its stdout into items."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import anyio

from tidepipe.shell.commands.base import CommandError, CommandOutput, flag, flag_enabled, positional
from tidepipe.shell.execution.streams import drain

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from tidepipe.shell.context import CommandContext
    from tidepipe.shell.models.pipeline import ArgValue, Item

logger = logging.getLogger(__name__)

_STDERR_PREVIEW = 400
_BOOLEAN_WORDS = frozenset({"true", "false", "1", "0", "yes", "no"})


class ExecCommand:
    """Run ``/bin/sh -c <words>``; one item per output line, or parsed JSON."""

    name = "exec"

    def __init__(self, *, timeout: float | None = None) -> None:
        self._timeout = timeout

    def help(self) -> str:
        return (
            "exec -- run a shell command and emit its output\n\n"
            "Usage:\n"
            '  exec "<command>"\n'
            '  exec --json "<command>"\n\n'
            "Notes:\n"
            "  - Without --json, each non-empty stdout line becomes a string item.\n"
            "  - With --json, stdout is parsed as JSON; an array becomes one item per element.\n"
            "  - Upstream input is consumed and discarded.\n"
        )

    async def run(
        self,
        *,
        input: AsyncIterator[Item],  # noqa: A002
        args: Mapping[str, ArgValue],
        ctx: CommandContext,
    ) -> CommandOutput:
        as_json, words = _command_words(args)
        if not words:
            msg = "exec requires a command to run"
            raise CommandError(msg)
        return CommandOutput(output=self._stream(input, " ".join(words), as_json, ctx))

    async def _stream(
        self,
        input: AsyncIterator[Item],  # noqa: A002
        command: str,
        as_json: bool,
        ctx: CommandContext,
    ) -> AsyncIterator[Item]:
        await drain(input)

        logger.debug("exec: %s", command)
        try:
            with anyio.fail_after(self._timeout):
                completed = await anyio.run_process(command, check=False, env=dict(ctx.env) or None)
        except TimeoutError:
            msg = f"exec timed out after {self._timeout}s: {command}"
            raise CommandError(msg) from None

        stdout = completed.stdout.decode("utf-8", errors="replace")
        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace").strip()
            msg = f"exec failed (exit {completed.returncode}): {stderr[:_STDERR_PREVIEW] or command}"
            raise CommandError(msg)

        if as_json:
            for item in _parse_json_output(stdout):
                yield item
            return

        for line in stdout.splitlines():
            if line.strip():
                yield line


def _command_words(args: Mapping[str, ArgValue]) -> tuple[bool, list[str]]:
    """Return (as_json, command words).

    ``--json`` is a switch, but the parser binds the following token to it
    (``exec --json "echo [1]"``), so a non-boolean value is the command.
    """
    words = positional(args)
    raw = flag(args, "json")
    if raw is None:
        return False, words
    if raw.lower() in _BOOLEAN_WORDS:
        return flag_enabled(args, "json"), words
    return True, [raw, *words]


def _parse_json_output(stdout: str) -> list[Item]:
    text = stdout.strip()
    if not text:
        return []
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"exec --json: output is not valid JSON ({exc.msg} at line {exc.lineno})"
        raise CommandError(msg) from exc
    return value if isinstance(value, list) else [value]
