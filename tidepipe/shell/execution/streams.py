"""Helpers for the one-shot async item streams wired between stages."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable

from tidepipe.shell.models.pipeline import Item


async def from_items(items: Iterable[Item]) -> AsyncIterator[Item]:
    """Yield each item in order.  The stream can be consumed once."""
    for item in items:
        yield item


async def empty() -> AsyncIterator[Item]:
    return
    yield  # pragma: no cover


async def collect(stream: AsyncIterator[Item]) -> list[Item]:
    """Drain a stream into a list, preserving order."""
    return [item async for item in stream]


async def drain(stream: AsyncIterator[Item]) -> int:
    """Consume and discard a stream.  Returns the number of items dropped."""
    count = 0
    async for _ in stream:
        count += 1
    return count
