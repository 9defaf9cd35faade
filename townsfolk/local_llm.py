"""Utilities for calling locally hosted LLMs (Ollama) as a villager reasoner."""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
from typing import Any, AsyncIterator, Iterator
from urllib import error, request

DEFAULT_OLLAMA_BASE_URL = "http://127.0.0.1:11434"
_CHAT_ENDPOINT = "/api/chat"


class LocalLLMError(RuntimeError):
    """Raised when a local LLM invocation fails."""


def _resolve_base_url(base_url: str | None) -> str:
    return (base_url or os.getenv("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL).rstrip("/")


def _build_payload(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_model: str,
    stream: bool,
    json_schema: dict[str, Any] | None = None,
) -> dict[str, Any]:
    system_prompt = system_prompt.strip()
    user_prompt = user_prompt.strip()
    if not user_prompt:
        raise LocalLLMError("Cannot call Ollama with an empty user prompt.")

    messages: list[dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})

    payload: dict[str, Any] = {
        "model": llm_model,
        "messages": messages,
        "stream": stream,
    }
    # Ollama constrains decoding to a JSON schema when ``format`` carries one
    if json_schema is not None:
        payload["format"] = json_schema
    return payload


def _open(payload: dict[str, Any], base_url: str, timeout: float):
    url = f"{base_url}{_CHAT_ENDPOINT}"
    req = request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        return request.urlopen(req, timeout=timeout)
    except error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore") if exc.fp else ""
        raise LocalLLMError(
            f"Ollama chat request failed with status {exc.code}: {body or exc.reason}"
        ) from exc
    except error.URLError as exc:
        raise LocalLLMError(f"Could not reach Ollama at {url}: {exc.reason}") from exc


def _message_content(raw_line: str) -> str:
    try:
        parsed = json.loads(raw_line)
    except json.JSONDecodeError as exc:
        raise LocalLLMError("Ollama returned non-JSON response.") from exc
    if parsed.get("error"):
        raise LocalLLMError(f"Ollama reported an error: {parsed['error']}")
    message = parsed.get("message") or {}
    return message.get("content") or ""


def _perform_ollama_request(
    payload: dict[str, Any],
    base_url: str,
    timeout: float,
) -> str:
    """Execute the blocking chat request and return the assistant text."""

    with _open(payload, base_url, timeout) as resp:
        raw = resp.read().decode("utf-8")

    content = _message_content(raw)
    if not content:
        raise LocalLLMError("Ollama response did not include assistant content.")
    return content


def _iter_ollama_stream(
    payload: dict[str, Any],
    base_url: str,
    timeout: float,
) -> Iterator[str]:
    """Yield content chunks from Ollama's newline-delimited JSON stream."""

    with _open(payload, base_url, timeout) as resp:
        for line in resp:
            line = line.decode("utf-8").strip()
            if not line:
                continue
            chunk = _message_content(line)
            if chunk:
                yield chunk


async def call_ollama_chat(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_model: str,
    base_url: str | None = None,
    timeout: float = 120.0,
    json_schema: dict[str, Any] | None = None,
) -> str:
    """Invoke a local Ollama model and return the assistant text."""

    payload = _build_payload(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        llm_model=llm_model,
        stream=False,
        json_schema=json_schema,
    )
    return await asyncio.to_thread(
        _perform_ollama_request,
        payload,
        _resolve_base_url(base_url),
        timeout,
    )


async def stream_ollama_chat(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_model: str,
    base_url: str | None = None,
    timeout: float = 120.0,
) -> AsyncIterator[str]:
    """Stream assistant text chunks from a local Ollama model.

    The blocking reader runs in a worker thread; each chunk is handed back
    to the event loop one at a time.
    """

    payload = _build_payload(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        llm_model=llm_model,
        stream=True,
    )
    iterator = _iter_ollama_stream(payload, _resolve_base_url(base_url), timeout)
    sentinel = object()
    try:
        while True:
            chunk = await asyncio.to_thread(next, iterator, sentinel)
            if chunk is sentinel:
                break
            yield chunk
    finally:
        # Closing exits the reader's `with` block and releases the response.
        # ValueError means a cancelled read still owns the generator.
        with contextlib.suppress(ValueError):
            await asyncio.to_thread(iterator.close)


__all__ = [
    "LocalLLMError",
    "call_ollama_chat",
    "stream_ollama_chat",
    "DEFAULT_OLLAMA_BASE_URL",
]
