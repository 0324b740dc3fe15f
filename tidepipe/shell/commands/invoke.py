"""``invoke`` -- call a tool endpoint over HTTP.

A thin transport bridge: the command does not own credentials.  The base
URL and bearer token come from flags or from the run environment
(``TIDEPIPE_INVOKE_URL`` / ``TIDEPIPE_INVOKE_TOKEN``).
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from tidepipe.shell.commands.base import CommandError, CommandOutput, flag
from tidepipe.shell.execution.streams import drain

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from tidepipe.shell.context import CommandContext
    from tidepipe.shell.models.pipeline import ArgValue, Item

logger = logging.getLogger(__name__)

URL_ENV = "TIDEPIPE_INVOKE_URL"
TOKEN_ENV = "TIDEPIPE_INVOKE_TOKEN"
ENDPOINT_PATH = "/tools/invoke"
_ERROR_PREVIEW = 400


class InvokeCommand:
    name = "invoke"

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._transport = transport
        self._timeout = timeout

    def help(self) -> str:
        return (
            "invoke -- call a tool endpoint\n\n"
            "Usage:\n"
            "  invoke --tool message --action send --args-json '{\"to\":\"...\",\"message\":\"...\"}'\n\n"
            "Config:\n"
            f"  - Uses {URL_ENV} by default (or pass --url).\n"
            f"  - Optional bearer token via {TOKEN_ENV} (or pass --token).\n\n"
            "A JSON array response becomes one item per element.\n"
        )

    async def run(
        self,
        *,
        input: AsyncIterator[Item],  # noqa: A002
        args: Mapping[str, ArgValue],
        ctx: CommandContext,
    ) -> CommandOutput:
        url = (flag(args, "url") or ctx.getenv(URL_ENV) or "").strip()
        if not url:
            msg = f"invoke requires --url or {URL_ENV}"
            raise CommandError(msg)

        tool = flag(args, "tool")
        action = flag(args, "action")
        if not tool or not action:
            msg = "invoke requires --tool and --action"
            raise CommandError(msg)

        body = {"tool": tool, "action": action, "args": _tool_args(args)}
        token = (flag(args, "token") or ctx.getenv(TOKEN_ENV) or "").strip()
        return CommandOutput(output=self._call(input, url, body, token))

    async def _call(
        self,
        input: AsyncIterator[Item],  # noqa: A002
        url: str,
        body: dict[str, Any],
        token: str,
    ) -> AsyncIterator[Item]:
        await drain(input)

        headers = {"authorization": f"Bearer {token}"} if token else {}
        endpoint = httpx.URL(url).join(ENDPOINT_PATH)
        logger.debug("invoke: POST %s tool=%s action=%s", endpoint, body["tool"], body["action"])

        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            try:
                response = await client.post(endpoint, json=body, headers=headers)
            except httpx.HTTPError as exc:
                msg = f"invoke request failed: {exc}"
                raise CommandError(msg) from exc

        if response.is_error:
            msg = f"invoke failed ({response.status_code}): {response.text[:_ERROR_PREVIEW]}"
            raise CommandError(msg)

        for item in _response_items(response.text):
            yield item


def _tool_args(args: Mapping[str, ArgValue]) -> Any:
    raw = flag(args, "args-json")
    if raw is None:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = "invoke --args-json must be valid JSON"
        raise CommandError(msg) from exc


def _response_items(text: str) -> list[Item]:
    if not text.strip():
        return [None]
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = "invoke expected a JSON response"
        raise CommandError(msg) from exc
    return parsed if isinstance(parsed, list) else [parsed]
