"""Tests for the reasoner boundary."""

import asyncio

import pytest
from pydantic import BaseModel, ValidationError

from townsfolk.reasoner import (
    LLMReasoner,
    OfflineReasoner,
    Reasoner,
    ReasoningError,
    build_reasoner,
)


class Verdict(BaseModel):
    guilty: bool


@pytest.mark.asyncio
async def test_structured_completion_delegates_to_retry_helper(monkeypatch):
    captured = {}

    async def fake_retries(**kwargs):
        captured.update(kwargs)
        return Verdict(guilty=False)

    monkeypatch.setattr("townsfolk.reasoner.call_llm_with_retries", fake_retries)
    reasoner = LLMReasoner("openai", "gpt-5-nano", timeout=5, max_attempts=2)

    result = await reasoner.complete("System", "User", Verdict)

    assert result == Verdict(guilty=False)
    assert captured["response_model"] is Verdict
    assert captured["llm_provider"] == "openai"
    assert captured["timeout"] == 5
    assert captured["max_attempts"] == 2


@pytest.mark.asyncio
async def test_text_completion_delegates_to_text_helper(monkeypatch):
    async def fake_text(**kwargs):
        return "Good morrow."

    monkeypatch.setattr("townsfolk.reasoner.call_llm_text", fake_text)

    assert await LLMReasoner("openai", "gpt-5-nano").complete("System", "User") == "Good morrow."


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [asyncio.TimeoutError(), RuntimeError("HTTP 500"), ValueError("bad key")],
)
async def test_completion_failures_become_reasoning_errors(monkeypatch, error):
    async def failing(**kwargs):
        raise error

    monkeypatch.setattr("townsfolk.reasoner.call_llm_with_retries", failing)

    with pytest.raises(ReasoningError) as excinfo:
        await LLMReasoner("openai", "gpt-5-nano").complete("System", "User", Verdict)

    assert excinfo.value.__cause__ is error


@pytest.mark.asyncio
async def test_validation_failure_names_the_model(monkeypatch):
    try:
        Verdict.model_validate({})
    except ValidationError as exc:
        validation_error = exc

    async def failing(**kwargs):
        raise validation_error

    monkeypatch.setattr("townsfolk.reasoner.call_llm_with_retries", failing)

    with pytest.raises(ReasoningError, match="Verdict"):
        await LLMReasoner("openai", "gpt-5-nano").complete("System", "User", Verdict)


@pytest.mark.asyncio
async def test_stream_failure_becomes_reasoning_error(monkeypatch):
    async def broken_stream(**kwargs):
        yield "Hel"
        raise RuntimeError("socket closed")

    monkeypatch.setattr("townsfolk.reasoner.stream_llm_text", broken_stream)
    received = []

    with pytest.raises(ReasoningError):
        async for chunk in LLMReasoner("openai", "gpt-5-nano").stream("System", "User"):
            received.append(chunk)

    assert received == ["Hel"]


@pytest.mark.asyncio
async def test_offline_reasoner_always_fails():
    reasoner = OfflineReasoner("provider unavailable")

    with pytest.raises(ReasoningError, match="provider unavailable"):
        await reasoner.complete("System", "User")
    with pytest.raises(ReasoningError):
        async for _ in reasoner.stream("System", "User"):
            pass


def test_build_reasoner_follows_use_ai_flag():
    assert isinstance(build_reasoner(use_ai=False), OfflineReasoner)
    assert isinstance(build_reasoner(use_ai=True), LLMReasoner)
    assert isinstance(build_reasoner(use_ai=False), Reasoner)
