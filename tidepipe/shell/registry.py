"""Command registry.

An immutable name -> command mapping built once at startup and passed to
the engine explicitly.  There is no module-level registry to mutate.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from tidepipe.shell.commands.base import Command
    from tidepipe.shell.settings import ShellSettings


class DuplicateCommandError(ValueError):
    """Two commands were registered under the same name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Command '{name}' is registered more than once")


class CommandRegistry:
    """Read-only lookup of commands by name."""

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        table: dict[str, Command] = {}
        for command in commands:
            if command.name in table:
                raise DuplicateCommandError(command.name)
            table[command.name] = command
        self._commands = MappingProxyType(table)
        logger.debug("Registry: {} command(s) available", len(table))

    # -- Query -----------------------------------------------------------------

    def get(self, name: str) -> Command | None:
        return self._commands.get(name)

    def names(self) -> list[str]:
        """Return registered command names in registration order."""
        return list(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[Command]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)


def create_default_registry(settings: ShellSettings | None = None) -> CommandRegistry:
    """Build the registry of builtin commands."""
    from tidepipe.shell.commands import builtin_commands

    return CommandRegistry(builtin_commands(settings))
