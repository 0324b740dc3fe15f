"""Unit tests for the ``invoke`` command against a mocked HTTP transport."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from tidepipe.shell.commands.base import CommandError
from tidepipe.shell.commands.invoke import InvokeCommand
from tidepipe.shell.context import CommandContext
from tidepipe.shell.execution.parser import parse_pipeline
from tidepipe.shell.execution.streams import collect, from_items
from tidepipe.shell.models.enums import ShellMode

BASE_URL = "http://tools.test"


class Recorder:
    """Mock handler that records requests and replies with a fixed response."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    @property
    def last_body(self) -> Any:
        return json.loads(self.requests[-1].content)


def _ctx(**env: str) -> CommandContext:
    return CommandContext(env=env, mode=ShellMode.TOOL)


async def _invoke(recorder: Recorder, line: str, ctx: CommandContext, items: list[Any] | None = None) -> list[Any]:
    command = InvokeCommand(transport=httpx.MockTransport(recorder))
    (stage,) = parse_pipeline(f"invoke {line}")
    result = await command.run(input=from_items(items or []), args=stage.args, ctx=ctx)
    return await collect(result.output)


async def test_posts_tool_action_and_args() -> None:
    recorder = Recorder(httpx.Response(200, json={"sent": True}))

    out = await _invoke(
        recorder,
        f"--url {BASE_URL} --tool message --action send --args-json '{{\"to\": \"bob\"}}'",
        _ctx(),
    )

    assert out == [{"sent": True}]
    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE_URL}/tools/invoke"
    assert recorder.last_body == {"tool": "message", "action": "send", "args": {"to": "bob"}}
    assert "authorization" not in request.headers


async def test_url_and_token_from_environment() -> None:
    recorder = Recorder(httpx.Response(200, json=[1, 2]))
    ctx = _ctx(TIDEPIPE_INVOKE_URL=BASE_URL, TIDEPIPE_INVOKE_TOKEN="t0k")

    out = await _invoke(recorder, "--tool t --action a", ctx)

    assert out == [1, 2]
    assert recorder.requests[0].headers["authorization"] == "Bearer t0k"
    assert recorder.last_body["args"] == {}


async def test_flags_override_environment() -> None:
    recorder = Recorder(httpx.Response(200, json={}))
    ctx = _ctx(TIDEPIPE_INVOKE_URL="http://ignored.test", TIDEPIPE_INVOKE_TOKEN="env")

    await _invoke(recorder, "--url http://chosen.test --token flag --tool t --action a", ctx)

    request = recorder.requests[0]
    assert request.url.host == "chosen.test"
    assert request.headers["authorization"] == "Bearer flag"


async def test_upstream_items_are_discarded() -> None:
    recorder = Recorder(httpx.Response(200, json="ok"))
    out = await _invoke(recorder, f"--url {BASE_URL} --tool t --action a", _ctx(), items=[1, 2, 3])
    assert out == ["ok"]
    assert len(recorder.requests) == 1


async def test_empty_response_is_null_item() -> None:
    recorder = Recorder(httpx.Response(204))
    assert await _invoke(recorder, f"--url {BASE_URL} --tool t --action a", _ctx()) == [None]


async def test_error_status() -> None:
    recorder = Recorder(httpx.Response(403, text="forbidden"))
    with pytest.raises(CommandError, match=r"invoke failed \(403\): forbidden"):
        await _invoke(recorder, f"--url {BASE_URL} --tool t --action a", _ctx())


async def test_non_json_response() -> None:
    recorder = Recorder(httpx.Response(200, text="<html>"))
    with pytest.raises(CommandError, match="JSON response"):
        await _invoke(recorder, f"--url {BASE_URL} --tool t --action a", _ctx())


async def test_transport_failure() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    command = InvokeCommand(transport=httpx.MockTransport(refuse))
    (stage,) = parse_pipeline(f"invoke --url {BASE_URL} --tool t --action a")
    result = await command.run(input=from_items([]), args=stage.args, ctx=_ctx())

    with pytest.raises(CommandError, match="invoke request failed"):
        await collect(result.output)


@pytest.mark.parametrize(
    ("line", "fragment"),
    [
        ("--tool t --action a", "requires --url"),
        (f"--url {BASE_URL} --tool t", "requires --tool and --action"),
        (f"--url {BASE_URL} --action a", "requires --tool and --action"),
        (f"--url {BASE_URL} --tool t --action a --args-json '{{nope'", "valid JSON"),
    ],
)
async def test_argument_errors_raise_before_any_request(line: str, fragment: str) -> None:
    recorder = Recorder(httpx.Response(200, json={}))
    with pytest.raises(CommandError, match=fragment):
        await _invoke(recorder, line, _ctx())
    assert recorder.requests == []
