"""Item transforms: ``json``, ``head``, ``pick``, ``where``.

All of these stream: they pull one upstream item at a time and never
materialize their input.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from tidepipe.shell.commands.base import CommandError, CommandOutput, flag, int_flag, positional, split_fields

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from tidepipe.shell.context import CommandContext
    from tidepipe.shell.models.pipeline import ArgValue, Item

_MISSING = object()


def _lookup(item: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path (``a.b.c``) inside nested mappings."""
    current: Any = item
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


# ---------------------------------------------------------------------------
# json
# ---------------------------------------------------------------------------


class JsonCommand:
    name = "json"

    def help(self) -> str:
        return (
            "json -- decode JSON text items\n\n"
            "Usage:\n"
            "  ... | json\n\n"
            "String items are parsed as JSON; an array becomes one item per element.\n"
            "Items that are already structured pass through unchanged.\n"
        )

    async def run(
        self,
        *,
        input: AsyncIterator[Item],  # noqa: A002
        args: Mapping[str, ArgValue],
        ctx: CommandContext,
    ) -> CommandOutput:
        return CommandOutput(output=_decode(input))


async def _decode(input: AsyncIterator[Item]) -> AsyncIterator[Item]:  # noqa: A002
    async for item in input:
        if not isinstance(item, str):
            yield item
            continue
        try:
            value = json.loads(item)
        except json.JSONDecodeError as exc:
            msg = f"json: item is not valid JSON ({exc.msg}): {item[:80]!r}"
            raise CommandError(msg) from exc
        if isinstance(value, list):
            for element in value:
                yield element
        else:
            yield value


# ---------------------------------------------------------------------------
# head
# ---------------------------------------------------------------------------


class HeadCommand:
    name = "head"

    def help(self) -> str:
        return "head -- keep the first N items\n\nUsage:\n  ... | head --n 5\n  ... | head 5\n\nDefault N is 10.\n"

    async def run(
        self,
        *,
        input: AsyncIterator[Item],  # noqa: A002
        args: Mapping[str, ArgValue],
        ctx: CommandContext,
    ) -> CommandOutput:
        words = positional(args)
        if flag(args, "n") is None and words:
            try:
                count = int(words[0])
            except ValueError:
                msg = f"head: count must be an integer, got {words[0]!r}"
                raise CommandError(msg) from None
        else:
            count = int_flag(args, "n", 10)
        if count < 0:
            msg = "head: count must not be negative"
            raise CommandError(msg)
        return CommandOutput(output=_take(input, count))


async def _take(input: AsyncIterator[Item], count: int) -> AsyncIterator[Item]:  # noqa: A002
    if count == 0:
        return
    taken = 0
    async for item in input:
        yield item
        taken += 1
        if taken >= count:
            # Stop pulling; upstream stays suspended at its next item.
            return


# ---------------------------------------------------------------------------
# pick
# ---------------------------------------------------------------------------


class PickCommand:
    name = "pick"

    def help(self) -> str:
        return (
            "pick -- keep only the listed fields of each object\n\n"
            "Usage:\n"
            "  ... | pick id,subject,from\n"
            "  ... | pick --fields id,author.login\n\n"
            "Dotted paths reach into nested objects; the output key is the full path.\n"
            "Missing fields are omitted.  Non-object items pass through.\n"
        )

    async def run(
        self,
        *,
        input: AsyncIterator[Item],  # noqa: A002
        args: Mapping[str, ArgValue],
        ctx: CommandContext,
    ) -> CommandOutput:
        raw = flag(args, "fields") or ",".join(positional(args))
        fields = split_fields(raw)
        if not fields:
            msg = "pick requires a comma-separated field list"
            raise CommandError(msg)
        return CommandOutput(output=_pick(input, fields))


async def _pick(input: AsyncIterator[Item], fields: list[str]) -> AsyncIterator[Item]:  # noqa: A002
    async for item in input:
        if not isinstance(item, Mapping):
            yield item
            continue
        picked = {}
        for name in fields:
            value = _lookup(item, name)
            if value is not _MISSING:
                picked[name] = value
        yield picked


# ---------------------------------------------------------------------------
# where
# ---------------------------------------------------------------------------


class WhereCommand:
    name = "where"

    def help(self) -> str:
        return (
            "where -- filter objects by field value\n\n"
            "Usage:\n"
            "  ... | where state=open\n"
            "  ... | where state!=closed author.login=octocat\n\n"
            "All conditions must hold.  Non-string values compare by their JSON text\n"
            "(``where draft=false``).  Non-object items are dropped.\n"
        )

    async def run(
        self,
        *,
        input: AsyncIterator[Item],  # noqa: A002
        args: Mapping[str, ArgValue],
        ctx: CommandContext,
    ) -> CommandOutput:
        conditions = [_parse_condition(raw) for raw in positional(args)]
        if not conditions:
            msg = "where requires at least one key=value condition"
            raise CommandError(msg)
        return CommandOutput(output=_filter(input, conditions))


def _parse_condition(raw: str) -> tuple[str, bool, str]:
    """Parse ``key=value`` / ``key!=value`` into (key, negated, value)."""
    if "!=" in raw:
        key, _, value = raw.partition("!=")
        negated = True
    elif "=" in raw:
        key, _, value = raw.partition("=")
        negated = False
    else:
        msg = f"where: invalid condition {raw!r} (expected key=value)"
        raise CommandError(msg)
    if not key:
        msg = f"where: condition {raw!r} has no field name"
        raise CommandError(msg)
    return key, negated, value


def _matches(item: Mapping[str, Any], conditions: list[tuple[str, bool, str]]) -> bool:
    for key, negated, expected in conditions:
        value = _lookup(item, key)
        equal = value is not _MISSING and _as_text(value) == expected
        if equal == negated:
            return False
    return True


async def _filter(
    input: AsyncIterator[Item],  # noqa: A002
    conditions: list[tuple[str, bool, str]],
) -> AsyncIterator[Item]:
    async for item in input:
        if isinstance(item, Mapping) and _matches(item, conditions):
            yield item
