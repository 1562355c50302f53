"""测试 ChatDeepSeek 的线上协议。"""

from __future__ import annotations

import json

import httpx
import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from deeplife.agents.oracle import OracleClient, OracleRole
from deeplife.llm.deepseek import ChatDeepSeek


def _model(handler) -> ChatDeepSeek:
    return ChatDeepSeek(api_key="sk-test", transport=httpx.MockTransport(handler))


def test_request_body_and_auth_header():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "你好"}}]})

    result = _model(handler).invoke([SystemMessage(content="You are a narrator."), HumanMessage(content="hi")])

    assert result.content == "你好"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "deepseek-chat"
    assert seen["body"]["stream"] is False
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "You are a narrator."},
        {"role": "user", "content": "hi"},
    ]


def test_non_success_status_raises_http_error():
    model = _model(lambda request: httpx.Response(503, text="busy"))
    with pytest.raises(httpx.HTTPStatusError):
        model.invoke([HumanMessage(content="hi")])


def test_malformed_body_raises_value_error():
    model = _model(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(ValueError):
        model.invoke([HumanMessage(content="hi")])


def test_oracle_over_wire_retries_server_errors():
    responses = iter([
        httpx.Response(500, text="oops"),
        httpx.Response(200, json={"choices": [{"message": {"content": "```\n平稳的一年\n```"}}]}),
    ])
    model = _model(lambda request: next(responses))
    sleeps: list[float] = []
    client = OracleClient(model, sleep=sleeps.append)

    assert client.call(OracleRole.HISTORIAN, "2025") == "平稳的一年"
    assert sleeps == [2.0]


def test_oracle_over_wire_returns_inline_error_for_bad_request():
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(400, text="bad request")

    client = OracleClient(_model(handler))
    result = client.call(OracleRole.HISTORIAN, "2025")
    assert "400" in result
    assert "bad request" in result
    assert len(calls) == 1
