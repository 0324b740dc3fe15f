"""Unit tests for the command registry."""

from __future__ import annotations

import pytest

from tidepipe.shell.commands import builtin_commands
from tidepipe.shell.commands.base import Command
from tidepipe.shell.commands.process import ExecCommand
from tidepipe.shell.commands.transform import JsonCommand
from tidepipe.shell.registry import CommandRegistry, DuplicateCommandError, create_default_registry
from tidepipe.shell.settings import ShellSettings

BUILTINS = ["exec", "json", "head", "pick", "where", "table", "approve", "invoke"]


def test_default_registry_has_builtins() -> None:
    registry = create_default_registry()
    assert registry.names() == BUILTINS
    assert len(registry) == len(BUILTINS)


def test_lookup() -> None:
    registry = create_default_registry()
    assert isinstance(registry.get("json"), JsonCommand)
    assert registry.get("nope") is None
    assert "exec" in registry
    assert "nope" not in registry


def test_every_builtin_satisfies_protocol() -> None:
    for command in create_default_registry():
        assert isinstance(command, Command)
        assert command.help().startswith(command.name)


def test_duplicate_name_rejected() -> None:
    with pytest.raises(DuplicateCommandError, match="json"):
        CommandRegistry([JsonCommand(), JsonCommand()])


def test_registry_cannot_be_mutated() -> None:
    registry = create_default_registry()
    with pytest.raises(TypeError):
        registry._commands["evil"] = JsonCommand()  # type: ignore[index]


def test_empty_registry() -> None:
    registry = CommandRegistry()
    assert len(registry) == 0
    assert registry.names() == []


def test_settings_configure_exec_timeout() -> None:
    commands = builtin_commands(ShellSettings(exec_timeout=2.5))
    exec_command = next(c for c in commands if c.name == "exec")
    assert isinstance(exec_command, ExecCommand)
    assert exec_command._timeout == 2.5
