"""Per-run command context.

Every stage of a run receives the same ``CommandContext``.  It is the only
thing commands share besides the registry, so it carries nothing mutable:
the environment is exposed as a read-only mapping and the streams are the
process's own.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TextIO

from tidepipe.shell.models.enums import ShellMode


def _frozen_environ() -> Mapping[str, str]:
    return MappingProxyType(dict(os.environ))


@dataclass(frozen=True)
class CommandContext:
    """Runtime facilities available to a command while it runs."""

    env: Mapping[str, str] = field(default_factory=_frozen_environ)
    mode: ShellMode = ShellMode.HUMAN

    # -- Streams ---------------------------------------------------------------
    stdin: TextIO | None = None
    stdout: TextIO = field(default_factory=lambda: sys.stdout)
    stderr: TextIO = field(default_factory=lambda: sys.stderr)

    interactive: bool = False
    """Whether a human can answer prompts on the terminal."""

    def __post_init__(self) -> None:
        if not isinstance(self.env, MappingProxyType):
            object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    def getenv(self, key: str, default: str | None = None) -> str | None:
        return self.env.get(key, default)

    @property
    def is_tool_mode(self) -> bool:
        return self.mode == ShellMode.TOOL
