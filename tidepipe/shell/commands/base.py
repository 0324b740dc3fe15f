"""Command contract.

A command is any object with a ``name``, a ``help()`` method and an async
``run()`` that receives the upstream item stream and returns its own output
stream wrapped in ``CommandOutput``.  Commands must not materialize their
input unless their semantics require it (``approve`` does; ``head`` does not).
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from tidepipe.shell.models.pipeline import POSITIONAL_KEY, ArgValue, Item

if TYPE_CHECKING:
    from tidepipe.shell.context import CommandContext


class CommandError(RuntimeError):
    """A command failed (bad arguments, subprocess failure, remote error...)."""


@dataclass
class CommandOutput:
    """What a command hands back to the engine."""

    output: AsyncIterator[Item]
    rendered: bool = False
    """The command wrote its own presentation to ``ctx.stdout``."""

    halt: bool = False
    """Ask the engine to check this stage's output for an approval request
    before invoking any later stage."""


@runtime_checkable
class Command(Protocol):
    """Uniform interface every registered command implements."""

    name: str

    def help(self) -> str:
        """Human-readable usage text."""
        ...

    async def run(
        self,
        *,
        input: AsyncIterator[Item],  # noqa: A002
        args: Mapping[str, ArgValue],
        ctx: CommandContext,
    ) -> CommandOutput:
        """Start the stage and return its output stream."""
        ...


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def positional(args: Mapping[str, ArgValue]) -> list[str]:
    value = args.get(POSITIONAL_KEY, [])
    return [value] if isinstance(value, str) else list(value)


def flag(args: Mapping[str, ArgValue], name: str, default: str | None = None) -> str | None:
    """Return a flag's value; the last occurrence wins when repeated."""
    value = args.get(name)
    if value is None:
        return default
    if isinstance(value, str):
        return value
    return value[-1] if value else default


def flag_list(args: Mapping[str, ArgValue], name: str) -> list[str]:
    value = args.get(name)
    if value is None:
        return []
    return [value] if isinstance(value, str) else list(value)


def flag_enabled(args: Mapping[str, ArgValue], name: str) -> bool:
    value = flag(args, name)
    return value is not None and value.lower() not in ("false", "0", "no")


def int_flag(args: Mapping[str, ArgValue], name: str, default: int) -> int:
    raw = flag(args, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        msg = f"--{name} must be an integer, got {raw!r}"
        raise CommandError(msg) from None


def split_fields(raw: str) -> list[str]:
    """Split a comma separated field list, dropping blanks."""
    return [part.strip() for part in raw.split(",") if part.strip()]
