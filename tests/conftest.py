"""Shared test fixtures.

Every test starts with a clean settings cache and no ``TIDEPIPE_*``
variables from the outer environment, so token keys and timeouts are the
defaults unless a test sets them.
"""

from __future__ import annotations

import io
import os
from collections.abc import Iterator

import pytest

from tidepipe.shell.context import CommandContext
from tidepipe.shell.models.enums import ShellMode
from tidepipe.shell.registry import CommandRegistry, create_default_registry
from tidepipe.shell.settings import _get_settings_cached


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for key in list(os.environ):
        if key.startswith("TIDEPIPE_"):
            monkeypatch.delenv(key)
    _get_settings_cached.cache_clear()
    yield
    _get_settings_cached.cache_clear()


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------


@pytest.fixture
def stdout() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def tool_ctx(stdout: io.StringIO) -> CommandContext:
    """Tool-mode context with captured stdout."""
    return CommandContext(env=os.environ, mode=ShellMode.TOOL, stdout=stdout, stderr=io.StringIO())


@pytest.fixture
def human_ctx(stdout: io.StringIO) -> CommandContext:
    """Non-interactive human-mode context with captured stdout."""
    return CommandContext(env=os.environ, mode=ShellMode.HUMAN, stdout=stdout, stderr=io.StringIO())


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@pytest.fixture
def registry() -> CommandRegistry:
    return create_default_registry()
