"""测试 OracleClient 的重试、退避与降级约定。"""

from __future__ import annotations

import httpx

from conftest import ScriptedChatModel
from deeplife.agents.oracle import (
    CORRECTIVE_NUDGE,
    ORACLE_ERROR_PREFIX,
    ORACLE_FAILURE_PREFIX,
    OracleClient,
    OracleRole,
    is_oracle_failure,
)


def _status_error(code: int, body: str = "err") -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://api.example.com/chat/completions")
    response = httpx.Response(code, text=body, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


def _client(script: list) -> tuple[OracleClient, ScriptedChatModel, list[float]]:
    model = ScriptedChatModel(script=script)
    sleeps: list[float] = []
    return OracleClient(model, sleep=sleeps.append), model, sleeps


def test_success_strips_code_fence():
    client, model, sleeps = _client(["```json\n{\"a\": 1}\n```"])
    assert client.call(OracleRole.NARRATOR, "hi") == '{"a": 1}'
    assert len(model.calls) == 1
    assert sleeps == []


def test_system_message_carries_role():
    client, model, _ = _client(["ok"])
    client.call(OracleRole.JUDGE, "prompt")
    assert model.calls[0][0].content == "You are a judge."
    assert model.calls[0][1].content == "prompt"


def test_two_failures_then_success():
    """前两次失败、第三次成功：调用方看不到任何错误。"""
    client, model, sleeps = _client([
        httpx.ConnectError("connection refused"),
        _status_error(503),
        "终于成功",
    ])
    assert client.call(OracleRole.NARRATOR, "hi") == "终于成功"
    assert len(model.calls) == 3
    assert sleeps == [2.0, 4.0]


def test_exhausted_retries_return_failure_marker():
    client, model, sleeps = _client([
        _status_error(500),
        _status_error(502),
        httpx.ReadTimeout("timeout"),
    ])
    result = client.call(OracleRole.NARRATOR, "hi")
    assert result.startswith(ORACLE_FAILURE_PREFIX)
    assert "3 attempts" in result
    assert is_oracle_failure(result)
    assert len(model.calls) == 3
    assert sleeps == [2.0, 4.0, 8.0]


def test_rate_limit_is_retried():
    client, model, _ = _client([_status_error(429), "ok"])
    assert client.call(OracleRole.HISTORIAN, "hi") == "ok"
    assert len(model.calls) == 2


def test_client_error_returned_inline_without_retry():
    client, model, sleeps = _client([_status_error(401, "invalid key"), "never"])
    result = client.call(OracleRole.NARRATOR, "hi")
    assert result.startswith(ORACLE_ERROR_PREFIX)
    assert "401" in result
    assert "invalid key" in result
    assert len(model.calls) == 1
    assert sleeps == []


def test_exception_with_status_code_attribute():
    class SdkError(Exception):
        status_code = 500

    client, model, _ = _client([SdkError("server"), "ok"])
    assert client.call(OracleRole.NARRATOR, "hi") == "ok"
    assert len(model.calls) == 2


def test_structured_retries_invalid_json_with_nudge():
    client, model, sleeps = _client(["这不是 JSON", '["A", "B", "C"]'])
    result = client.call_structured(OracleRole.GAME_DESIGNER, "给我选项")
    assert result == '["A", "B", "C"]'
    assert len(model.calls[0]) == 2
    assert model.calls[1][-1].content == CORRECTIVE_NUDGE
    assert sleeps == [2.0]


def test_structured_accepts_fenced_object():
    client, _, _ = _client(['```json\n{"event": "x"}\n```'])
    assert client.call_structured(OracleRole.NARRATOR, "hi") == '{"event": "x"}'


def test_structured_exhausted_returns_failure_marker():
    client, model, _ = _client(["a", "b", "c"])
    result = client.call_structured(OracleRole.NARRATOR, "hi")
    assert is_oracle_failure(result)
    assert len(model.calls) == 3


def test_structured_keep_invalid_returns_last_raw_output():
    client, model, sleeps = _client(["a", "", '{"event": "残缺'])
    result = client.call_structured(OracleRole.NARRATOR, "hi", keep_invalid=True)
    assert result == '{"event": "残缺'
    assert len(model.calls) == 3
    assert sleeps == [2.0, 4.0, 8.0]


def test_structured_keep_invalid_still_reports_transport_failure():
    client, _, _ = _client([ConnectionError("down")] * 3)
    result = client.call_structured(OracleRole.NARRATOR, "hi", keep_invalid=True)
    assert result.startswith(ORACLE_FAILURE_PREFIX)


def test_free_text_call_does_not_validate_json():
    client, model, _ = _client(["一句普通的话"])
    assert client.call(OracleRole.HISTORIAN, "hi") == "一句普通的话"
    assert len(model.calls) == 1


def test_is_oracle_failure():
    assert not is_oracle_failure("")
    assert not is_oracle_failure(None)
    assert not is_oracle_failure("正常叙事")
    assert is_oracle_failure(f"{ORACLE_ERROR_PREFIX} HTTP 400")
