"""Usage text rendering with Jinja2.

The overview lists whatever the registry actually contains, so the text
never drifts from the commands that are available.

Template variables available:

- ``prog``     : str        -- program name
- ``commands`` : list[dict] -- ``name`` and ``summary`` per command
- ``examples`` : list[str]  -- example invocations
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import jinja2

if TYPE_CHECKING:
    from tidepipe.shell.registry import CommandRegistry

PROG = "tidepipe"

USAGE_TEMPLATE = """\
{{ prog }} -- typed JSON command pipelines

Usage:
  {{ prog }} run '<pipeline>'
  {{ prog }} run --mode tool '<pipeline>'
  {{ prog }} resume --token <token> --approve yes|no
  {{ prog }} help <command>

Modes:
  - human (default): commands may render directly to stdout
  - tool: prints a single JSON envelope for machine integration

Pipeline basics:
  - Commands are piped with |
  - Data is JSON-first (arrays/objects), not text-first
  - Commands accept --flag value or --flag=value

Examples:
{% for example in examples %}  {{ prog }} {{ example }}
{% endfor %}
Commands:
{% for cmd in commands %}  {{ "%-12s" | format(cmd.name) }} {{ cmd.summary }}
{% endfor %}"""

EXAMPLES = [
    "run 'exec --json \"echo [1,2,3]\" | json'",
    "run 'exec --json \"cat users.json\" | where role=admin | pick id,name | table'",
    "run --mode tool 'exec --json \"echo [1]\" | approve --prompt \"ok?\"'",
    "resume --token <token> --approve yes",
]


def _summary(help_text: str) -> str:
    """First line of a command's help, minus the leading ``name --`` part."""
    first = help_text.strip().splitlines()[0] if help_text.strip() else ""
    _, sep, rest = first.partition(" -- ")
    return rest.strip() if sep else first.strip()


def render_usage(registry: CommandRegistry, *, prog: str = PROG) -> str:
    """Render the top-level usage text for *registry*."""
    commands = [{"name": cmd.name, "summary": _summary(cmd.help())} for cmd in registry]
    env = jinja2.Environment(autoescape=False, keep_trailing_newline=True)  # noqa: S701
    template = env.from_string(USAGE_TEMPLATE)
    return template.render(prog=prog, commands=commands, examples=EXAMPLES)
