from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from backend.app.services import llm

SCHEMA = {"type": "object"}


@pytest.fixture
def transport(monkeypatch):
    """Route every AsyncClient through a MockTransport driven by `state`."""
    state = {"requests": [], "response": None}

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        return state["response"]

    real_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(llm.httpx, "AsyncClient", client_factory)
    return state


def _chat(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def test_openrouter_sends_json_schema(monkeypatch, transport):
    monkeypatch.setattr(llm, "PROVIDER", "openrouter")
    monkeypatch.setattr(llm, "OPENROUTER_API_KEY", "sk-test")
    transport["response"] = _chat('{"issues": [], "topTips": []}')

    out = asyncio.run(llm.complete_json("sys", "user", SCHEMA))

    assert out == {"issues": [], "topTips": []}
    req = transport["requests"][0]
    assert str(req.url) == "https://openrouter.ai/api/v1/chat/completions"
    assert req.headers["authorization"] == "Bearer sk-test"
    body = json.loads(req.content)
    assert body["response_format"] == {"type": "json_schema", "json_schema": {"name": "EvalResult", "schema": SCHEMA}}
    assert [m["role"] for m in body["messages"]] == ["system", "user"]


def test_openai_compatible_base_url(monkeypatch, transport):
    monkeypatch.setattr(llm, "PROVIDER", "openai")
    monkeypatch.setattr(llm, "OPENAI_API_KEY", "sk-openai")
    monkeypatch.setattr(llm, "OPENAI_BASE_URL", "http://localhost:8000/v1/")
    transport["response"] = _chat('{"issues": []}')

    assert asyncio.run(llm.complete_json("", "user", SCHEMA)) == {"issues": []}
    req = transport["requests"][0]
    assert str(req.url) == "http://localhost:8000/v1/chat/completions"
    assert [m["role"] for m in json.loads(req.content)["messages"]] == ["user"]


def test_ollama_passes_schema_as_format(monkeypatch, transport):
    monkeypatch.setattr(llm, "PROVIDER", "ollama")
    monkeypatch.setattr(llm, "OLLAMA_BASE", "http://ollama:11434")
    transport["response"] = httpx.Response(200, json={"message": {"content": '{"topTips": []}'}})

    assert asyncio.run(llm.complete_json("sys", "user", SCHEMA)) == {"topTips": []}
    body = json.loads(transport["requests"][0].content)
    assert body["format"] == SCHEMA
    assert body["stream"] is False


def test_missing_key_raises(monkeypatch, transport):
    monkeypatch.setattr(llm, "PROVIDER", "openrouter")
    monkeypatch.setattr(llm, "OPENROUTER_API_KEY", "")
    with pytest.raises(llm.LLMError, match="OPENROUTER_API_KEY"):
        asyncio.run(llm.complete_json("sys", "user", SCHEMA))
    assert transport["requests"] == []


def test_unsupported_provider(monkeypatch):
    monkeypatch.setattr(llm, "PROVIDER", "carrier-pigeon")
    with pytest.raises(llm.LLMError, match="not supported"):
        asyncio.run(llm.complete_json("sys", "user", SCHEMA))


@pytest.mark.parametrize("response", [
    httpx.Response(503, text="busy"),
    _chat("not json at all"),
    _chat("[1, 2, 3]"),
    _chat(""),
    httpx.Response(200, json=["unexpected"]),
    httpx.Response(200, json={"choices": ["oops"]}),
    httpx.Response(200, json={"choices": {"0": 1}}),
    httpx.Response(200, json={"choices": []}),
    httpx.Response(200, json={"choices": [{"message": "hi"}]}),
    httpx.Response(200, json={"choices": [{"message": {"content": ["a"]}}]}),
])
def test_bad_upstream_replies_raise_llm_error(monkeypatch, transport, response):
    monkeypatch.setattr(llm, "PROVIDER", "openrouter")
    monkeypatch.setattr(llm, "OPENROUTER_API_KEY", "sk-test")
    transport["response"] = response
    with pytest.raises(llm.LLMError):
        asyncio.run(llm.complete_json("sys", "user", SCHEMA))


@pytest.mark.parametrize("body", [
    {"message": "x"},
    {"message": {"content": 42}},
    {"message": {"content": "   "}},
    {"done": True},
])
def test_bad_ollama_replies_raise_llm_error(monkeypatch, transport, body):
    monkeypatch.setattr(llm, "PROVIDER", "ollama")
    transport["response"] = httpx.Response(200, json=body)
    with pytest.raises(llm.LLMError):
        asyncio.run(llm.complete_json("sys", "user", SCHEMA))
