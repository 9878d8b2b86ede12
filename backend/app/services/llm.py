# backend/app/services/llm.py
from __future__ import annotations
import json
import os
from typing import Any, Dict, List
import httpx

PROVIDER = os.getenv("LLM_PROVIDER", "openrouter").lower()
MODEL = os.getenv("LLM_MODEL", "openai/gpt-4o-mini")
TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")

OLLAMA_BASE = os.getenv("OLLAMA_BASE", "http://localhost:11434")


class LLMError(RuntimeError):
    """The model could not be reached or did not return a JSON object."""


def _format_messages(system: str, user: str) -> List[Dict[str, str]]:
    msgs: List[Dict[str, str]] = []
    if system:
        msgs.append({"role": "system", "content": system})
    msgs.append({"role": "user", "content": user})
    return msgs

def _parse_object(text: str) -> Dict[str, Any]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise LLMError(f"model returned invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise LLMError(f"model returned {type(payload).__name__}, expected an object")
    return payload

def _content_of(message: Any) -> str:
    if not isinstance(message, dict):
        raise LLMError("response has no message object")
    text = message.get("content")
    if not isinstance(text, str):
        raise LLMError(f"message content is {type(text).__name__}, expected a string")
    if not text.strip():
        raise LLMError("model returned an empty message")
    return text

async def complete_json(system: str, user: str, schema: Dict[str, Any], name: str = "EvalResult") -> Dict[str, Any]:
    """
    Ask the configured model for a JSON object matching `schema`.

    Supports:
    - openrouter: OpenRouter API (OpenAI-compatible, structured outputs)
    - openai: OpenAI chat completions, or any compatible server via OPENAI_BASE_URL
    - ollama: local Ollama with the schema passed as `format`
    """
    if PROVIDER == "openrouter":
        if not OPENROUTER_API_KEY:
            raise LLMError("OPENROUTER_API_KEY not configured in environment")
        headers = {
            "Authorization": f"Bearer {OPENROUTER_API_KEY}",
            "X-Title": "Daily-Reflection",
        }
        return await _chat_openai_compatible(OPENROUTER_BASE_URL, headers, system, user, schema, name)
    elif PROVIDER == "openai":
        if not OPENAI_API_KEY:
            raise LLMError("OPENAI_API_KEY not configured in environment")
        headers = {"Authorization": f"Bearer {OPENAI_API_KEY}"}
        return await _chat_openai_compatible(OPENAI_BASE_URL, headers, system, user, schema, name)
    elif PROVIDER == "ollama":
        return await _chat_ollama(system, user, schema)
    else:
        raise LLMError(f"LLM_PROVIDER={PROVIDER} not supported. Use 'openrouter', 'openai' or 'ollama'.")

async def _chat_openai_compatible(
    base_url: str, headers: Dict[str, str], system: str, user: str, schema: Dict[str, Any], name: str
) -> Dict[str, Any]:
    url = f"{base_url.rstrip('/')}/chat/completions"
    payload = {
        "model": MODEL,
        "messages": _format_messages(system, user),
        "temperature": 0.0,
        "response_format": {
            "type": "json_schema",
            "json_schema": {"name": name, "schema": schema},
        },
    }

    try:
        async with httpx.AsyncClient(timeout=TIMEOUT) as client:
            r = await client.post(url, json=payload, headers={**headers, "Content-Type": "application/json"})
            r.raise_for_status()
            data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        raise LLMError(f"{type(e).__name__}: {e}") from e
    if not isinstance(data, dict):
        raise LLMError("unexpected response body")

    # OpenAI-compatible response format
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise LLMError("response has no choices")
    return _parse_object(_content_of(choices[0].get("message")))

async def _chat_ollama(system: str, user: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    url = f"{OLLAMA_BASE.rstrip('/')}/api/chat"
    payload = {
        "model": MODEL,
        "messages": _format_messages(system, user),
        "stream": False,
        "format": schema,
        "options": {"temperature": 0.0},
    }
    try:
        async with httpx.AsyncClient(timeout=TIMEOUT) as client:
            r = await client.post(url, json=payload)
            r.raise_for_status()
            data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        raise LLMError(f"{type(e).__name__}: {e}") from e
    if not isinstance(data, dict):
        raise LLMError("unexpected response body")

    return _parse_object(_content_of(data.get("message")))
