from __future__ import annotations

from typing import Any, Sequence

import pytest
from fastapi.testclient import TestClient

import cli_chat_proxy.serve.fastapi_app as app_mod
from cli_chat_proxy.common.errors import ProcessError
from cli_chat_proxy.common.schema import CLIResult
from cli_chat_proxy.common.settings import ProxySettings

URL = "/v1/chat/completions"


class _FakeCLI:
    """Stands in for run_cli; records the prompt it was given."""

    def __init__(self, text: str = "Hello test") -> None:
        self.text = text
        self.prompts: list[str] = []

    async def __call__(self, prompt: str, command: Sequence[str] = ("claude",), timeout: Any = None) -> CLIResult:
        self.prompts.append(prompt)
        return CLIResult(text=self.text, latency_ms=1)


@pytest.fixture()
def fake_cli(monkeypatch: pytest.MonkeyPatch) -> _FakeCLI:
    fake = _FakeCLI()
    monkeypatch.setattr(app_mod.cli_runner, "run_cli", fake)
    return fake


def _client(**overrides: Any) -> TestClient:
    return TestClient(app_mod.create_app(ProxySettings(**overrides)))


def test_chat_completion_ok(fake_cli: _FakeCLI) -> None:
    r = _client().post(URL, json={"messages": [{"role": "user", "content": "hi"}]})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/json")
    assert r.headers["access-control-allow-origin"] == "*"
    data = r.json()
    assert data["object"] == "chat.completion"
    assert data["id"].startswith("chatcmpl-")
    assert data["model"] == "claude-sonnet-4-5-20250929"
    assert len(data["choices"]) == 1
    choice = data["choices"][0]
    assert choice["message"] == {"role": "assistant", "content": "Hello test"}
    assert choice["finish_reason"] == "stop"
    usage = data["usage"]
    assert usage["prompt_tokens"] == 1
    assert usage["completion_tokens"] == 3
    assert usage["total_tokens"] == usage["prompt_tokens"] + usage["completion_tokens"]
    assert fake_cli.prompts == ["hi"]


def test_model_is_echoed(fake_cli: _FakeCLI) -> None:
    r = _client().post(URL, json={"model": "my-model", "messages": [{"role": "user", "content": "hi"}]})
    assert r.json()["model"] == "my-model"


def test_json_schema_request_strips_fence(fake_cli: _FakeCLI) -> None:
    fake_cli.text = '```json\n{"name": "John", "age": 30}\n```'
    payload = {
        "messages": [{"role": "user", "content": "Extract: John is 30 years old"}],
        "response_format": {
            "type": "json_schema",
            "json_schema": {"name": "person", "schema": {"type": "object"}},
        },
    }
    r = _client().post(URL, json=payload)
    assert r.status_code == 200
    assert r.json()["choices"][0]["message"]["content"] == '{"name": "John", "age": 30}'
    assert fake_cli.prompts[0].startswith("You must respond with valid JSON matching this schema:")


def test_missing_messages_is_400(fake_cli: _FakeCLI) -> None:
    r = _client().post(URL, json={})
    assert r.status_code == 400
    assert r.json()["error"]["type"] == "invalid_request_error"
    assert fake_cli.prompts == []


def test_messages_not_array_is_400(fake_cli: _FakeCLI) -> None:
    r = _client().post(URL, json={"messages": "hi"})
    assert r.status_code == 400
    assert r.json()["error"]["message"] == "Invalid request: messages must be an array"


def test_malformed_message_item_is_400(fake_cli: _FakeCLI) -> None:
    r = _client().post(URL, json={"messages": ["hi"]})
    assert r.status_code == 400
    assert r.json()["error"]["type"] == "invalid_request_error"


def test_invalid_json_is_500(fake_cli: _FakeCLI) -> None:
    r = _client().post(URL, content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 500
    assert r.json()["error"]["type"] == "server_error"


def test_missing_executable_is_500() -> None:
    client = _client(cli_command=["cli-chat-proxy-no-such-binary"])
    r = client.post(URL, json={"messages": [{"role": "user", "content": "hi"}]})
    assert r.status_code == 500
    error = r.json()["error"]
    assert error["type"] == "server_error"
    assert "Failed to spawn" in error["message"]


def test_process_failure_is_500(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _failing(prompt: str, command: Sequence[str] = ("claude",), timeout: Any = None) -> CLIResult:
        raise ProcessError("claude CLI exited with code 1: rate limited", returncode=1, stderr="rate limited")

    monkeypatch.setattr(app_mod.cli_runner, "run_cli", _failing)
    r = _client().post(URL, json={"messages": [{"role": "user", "content": "hi"}]})
    assert r.status_code == 500
    assert r.json()["error"]["message"] == "claude CLI exited with code 1: rate limited"


def test_options_preflight() -> None:
    r = _client().options(URL)
    assert r.status_code == 200
    assert r.content == b""
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert r.headers["access-control-allow-headers"] == "Content-Type, Authorization"


def test_get_on_endpoint_is_404() -> None:
    r = _client().get(URL)
    assert r.status_code == 404
    assert r.json() == {"error": {"message": "Not found", "type": "invalid_request_error"}}
    assert r.headers["access-control-allow-origin"] == "*"


def test_unknown_path_is_404() -> None:
    r = _client().post("/v1/completions", json={})
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Not found"


def test_messages_without_usable_role_are_dropped(fake_cli: _FakeCLI) -> None:
    for odd in ({"content": "x"}, {"role": None, "content": "x"}, {"role": 7, "content": "x"}):
        r = _client().post(URL, json={"messages": [{"role": "user", "content": "hi"}, odd]})
        assert r.status_code == 200
    assert fake_cli.prompts == ["hi", "hi", "hi"]


def test_non_object_response_format_is_ignored(fake_cli: _FakeCLI) -> None:
    r = _client().post(URL, json={"messages": [{"role": "user", "content": "hi"}], "response_format": "json"})
    assert r.status_code == 200
    assert fake_cli.prompts == ["hi"]


def test_non_string_model_is_echoed(fake_cli: _FakeCLI) -> None:
    r = _client().post(URL, json={"model": 5, "messages": [{"role": "user", "content": "hi"}]})
    assert r.status_code == 200
    assert r.json()["model"] == 5
