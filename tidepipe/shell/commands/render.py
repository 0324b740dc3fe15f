"""``table`` -- render items as a text table in human mode."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import click

from tidepipe.shell.commands.base import CommandOutput, int_flag
from tidepipe.shell.execution.streams import collect

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from tidepipe.shell.context import CommandContext
    from tidepipe.shell.models.pipeline import ArgValue, Item

VALUE_COLUMN = "value"


class TableCommand:
    name = "table"

    def help(self) -> str:
        return (
            "table -- render items as a table\n\n"
            "Usage:\n"
            "  ... | table\n"
            "  ... | table --width 40\n\n"
            "Human mode prints the table and marks the output as rendered.\n"
            "Tool mode passes items through untouched.\n"
        )

    async def run(
        self,
        *,
        input: AsyncIterator[Item],  # noqa: A002
        args: Mapping[str, ArgValue],
        ctx: CommandContext,
    ) -> CommandOutput:
        if ctx.is_tool_mode:
            return CommandOutput(output=input)
        width = int_flag(args, "width", 60)
        return CommandOutput(output=self._render(input, ctx, width), rendered=True)

    async def _render(
        self,
        input: AsyncIterator[Item],  # noqa: A002
        ctx: CommandContext,
        width: int,
    ) -> AsyncIterator[Item]:
        items = await collect(input)
        click.echo(format_table(items, max_width=width), file=ctx.stdout, nl=False)
        for item in items:
            yield item


def _cell(value: Any, max_width: int) -> str:
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
    text = text.replace("\n", " ")
    if max_width > 1 and len(text) > max_width:
        return text[: max_width - 1] + "…"
    return text


def format_table(items: list[Item], *, max_width: int = 60) -> str:
    """Format items as an aligned, pipe-separated table.

    Columns are the union of object keys in first-seen order.  Non-object
    items go into a single ``value`` column.
    """
    if not items:
        return "(no items)\n"

    columns: list[str] = []
    for item in items:
        keys = item.keys() if isinstance(item, Mapping) else [VALUE_COLUMN]
        for key in keys:
            if key not in columns:
                columns.append(key)

    rows = []
    for item in items:
        source = item if isinstance(item, Mapping) else {VALUE_COLUMN: item}
        rows.append([_cell(source[col], max_width) if col in source else "" for col in columns])

    widths = [max(len(col), *(len(row[i]) for row in rows)) for i, col in enumerate(columns)]
    header = " | ".join(col.ljust(widths[i]) for i, col in enumerate(columns))
    rule = "-+-".join("-" * w for w in widths)
    body = [" | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)) for row in rows]
    return "\n".join([header, rule, *body]) + "\n"
