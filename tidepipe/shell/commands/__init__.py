"""Builtin commands.

Each command implements the ``Command`` protocol from ``base``.  The
registry is built from :func:`builtin_commands` at startup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tidepipe.shell.commands.approve import ApproveCommand
from tidepipe.shell.commands.base import Command, CommandError, CommandOutput
from tidepipe.shell.commands.invoke import InvokeCommand
from tidepipe.shell.commands.process import ExecCommand
from tidepipe.shell.commands.render import TableCommand
from tidepipe.shell.commands.transform import HeadCommand, JsonCommand, PickCommand, WhereCommand

if TYPE_CHECKING:
    from tidepipe.shell.settings import ShellSettings


def builtin_commands(settings: ShellSettings | None = None) -> list[Command]:
    """Instantiate every builtin command, configured from *settings*."""
    return [
        ExecCommand(timeout=settings.exec_timeout if settings else None),
        JsonCommand(),
        HeadCommand(),
        PickCommand(),
        WhereCommand(),
        TableCommand(),
        ApproveCommand(),
        InvokeCommand(),
    ]


__all__ = [
    "ApproveCommand",
    "Command",
    "CommandError",
    "CommandOutput",
    "ExecCommand",
    "HeadCommand",
    "InvokeCommand",
    "JsonCommand",
    "PickCommand",
    "TableCommand",
    "WhereCommand",
    "builtin_commands",
]
