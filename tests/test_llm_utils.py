"""Unit tests for the LLM call helpers."""

import asyncio
from types import SimpleNamespace

import pytest
from pydantic import BaseModel, ValidationError

from townsfolk.llm_utils import (
    build_schema_feedback,
    call_llm_text,
    call_llm_with_retries,
    stream_llm_text,
)


class Greeting(BaseModel):
    content: str


def _fake_call(handler, **expected):
    """Stand-in for ``llm.call`` that routes every prompt to ``handler``."""

    def decorator(*, provider, model, **options):
        for key, value in expected.items():
            assert options.get(key) == value

        def wrapper(fn):
            async def inner(prompt: str):
                return await handler(prompt)

            return inner

        return wrapper

    return decorator


def _validation_error() -> ValidationError:
    try:
        Greeting.model_validate({})
    except ValidationError as exc:
        return exc
    raise AssertionError("expected a validation error")


@pytest.mark.asyncio
async def test_structured_call_joins_system_and_user_prompts(monkeypatch):
    prompts: list[str] = []

    async def reply(prompt):
        prompts.append(prompt)
        return Greeting(content="Good morrow")

    monkeypatch.setattr("townsfolk.llm_utils.llm.call", _fake_call(reply, response_model=Greeting))

    result = await call_llm_with_retries(
        system_prompt="  You are Bob, a farmer.\n",
        user_prompt="Greet the baker.",
        llm_provider="openai",
        llm_model="gpt-5-nano",
        response_model=Greeting,
    )

    assert result.content == "Good morrow"
    assert prompts == ["You are Bob, a farmer.\n\nGreet the baker."]


@pytest.mark.asyncio
async def test_schema_failure_is_retried_with_field_feedback(monkeypatch):
    prompts: list[str] = []
    error = _validation_error()

    async def reply(prompt):
        prompts.append(prompt)
        if len(prompts) == 1:
            raise error
        return Greeting(content="Well met")

    monkeypatch.setattr("townsfolk.llm_utils.llm.call", _fake_call(reply))

    result = await call_llm_with_retries(
        system_prompt="You are Alice.",
        user_prompt="Greet the farmer.",
        llm_provider="openai",
        llm_model="gpt-5-nano",
        response_model=Greeting,
    )

    assert result.content == "Well met"
    assert len(prompts) == 2
    assert prompts[1].startswith("You are Alice.\n\nGreet the farmer.")
    assert "Your last reply was not valid JSON for the requested schema." in prompts[1]
    assert "- content: Field required [type=missing]" in prompts[1]


def test_schema_feedback_lists_each_failing_field():
    feedback = build_schema_feedback(_validation_error())

    assert feedback.issues == ["content: Field required [type=missing] | received={}"]
    assert feedback.prompt_text.endswith("Fix these fields:\n- " + feedback.issues[0])


@pytest.mark.asyncio
async def test_schema_failures_stop_after_max_attempts(monkeypatch):
    calls = 0
    error = _validation_error()

    async def reply(prompt):
        nonlocal calls
        calls += 1
        raise error

    monkeypatch.setattr("townsfolk.llm_utils.llm.call", _fake_call(reply))

    with pytest.raises(ValidationError):
        await call_llm_with_retries(
            system_prompt="System",
            user_prompt="User",
            llm_provider="openai",
            llm_model="gpt-5-nano",
            response_model=Greeting,
            max_attempts=2,
        )

    assert calls == 2


@pytest.mark.asyncio
async def test_slow_reply_times_out_without_retry(monkeypatch):
    calls = 0

    async def reply(prompt):
        nonlocal calls
        calls += 1
        await asyncio.sleep(1)
        return Greeting(content="late")

    monkeypatch.setattr("townsfolk.llm_utils.llm.call", _fake_call(reply))

    with pytest.raises(asyncio.TimeoutError):
        await call_llm_with_retries(
            system_prompt="System",
            user_prompt="User",
            llm_provider="openai",
            llm_model="gpt-5-nano",
            response_model=Greeting,
            timeout=0.01,
        )

    assert calls == 1


@pytest.mark.asyncio
async def test_ollama_structured_call_sends_json_schema(monkeypatch):
    seen: dict[str, object] = {}

    async def fake_ollama(*, system_prompt, user_prompt, llm_model, base_url=None, timeout=120.0, json_schema=None):
        seen.update(system=system_prompt, user=user_prompt, model=llm_model, schema=json_schema)
        return '{"content": "Hail"}'

    def remote_not_allowed(*args, **kwargs):
        raise AssertionError("ollama must not go through mirascope")

    monkeypatch.setattr("townsfolk.llm_utils.call_ollama_chat", fake_ollama)
    monkeypatch.setattr("townsfolk.llm_utils.llm.call", remote_not_allowed)

    result = await call_llm_with_retries(
        system_prompt="You are the blacksmith.",
        user_prompt="Greet the guard.",
        llm_provider="Ollama",
        llm_model="llama3.1",
        response_model=Greeting,
    )

    assert result.content == "Hail"
    assert seen == {
        "system": "You are the blacksmith.",
        "user": "Greet the guard.",
        "model": "llama3.1",
        "schema": Greeting.model_json_schema(),
    }


@pytest.mark.asyncio
async def test_call_llm_text_returns_stripped_content(monkeypatch):
    recorded_prompts: list[str] = []

    def fake_decorator(*, provider, model):
        assert provider == "anthropic"

        def wrapper(fn):
            async def inner(prompt: str):
                recorded_prompts.append(prompt)
                return SimpleNamespace(content="  Good morrow!\n")

            return inner

        return wrapper

    monkeypatch.setattr("townsfolk.llm_utils.llm.call", fake_decorator)

    text = await call_llm_text(
        system_prompt="You are Bob.",
        user_prompt="Say hello.",
        llm_provider="anthropic",
        llm_model="claude-haiku",
    )

    assert text == "Good morrow!"
    assert recorded_prompts == ["You are Bob.\n\nSay hello."]


@pytest.mark.asyncio
async def test_call_llm_text_wraps_local_errors(monkeypatch):
    from townsfolk.local_llm import LocalLLMError

    async def failing_local_call(**kwargs):
        raise LocalLLMError("connection refused")

    monkeypatch.setattr("townsfolk.llm_utils.call_ollama_chat", failing_local_call)

    with pytest.raises(RuntimeError, match="connection refused"):
        await call_llm_text(
            system_prompt="System",
            user_prompt="User",
            llm_provider="ollama",
            llm_model="llama3.1",
        )


@pytest.mark.asyncio
async def test_stream_llm_text_yields_chunk_content(monkeypatch):
    async def fake_stream():
        for text in ["Well ", "", "met."]:
            yield SimpleNamespace(content=text), None

    def fake_decorator(*, provider, model, stream):
        assert stream is True

        def wrapper(fn):
            async def inner(prompt: str):
                return fake_stream()

            return inner

        return wrapper

    monkeypatch.setattr("townsfolk.llm_utils.llm.call", fake_decorator)

    chunks = [
        chunk
        async for chunk in stream_llm_text(
            system_prompt="System",
            user_prompt="User",
            llm_provider="openai",
            llm_model="gpt-5-nano",
        )
    ]

    assert chunks == ["Well ", "met."]


@pytest.mark.asyncio
async def test_stream_llm_text_local_provider(monkeypatch):
    async def fake_local_stream(*, system_prompt, user_prompt, llm_model, base_url=None, timeout=120.0):
        for text in ["Aye", ", friend"]:
            yield text

    monkeypatch.setattr("townsfolk.llm_utils.stream_ollama_chat", fake_local_stream)

    chunks = [
        chunk
        async for chunk in stream_llm_text(
            system_prompt="System",
            user_prompt="User",
            llm_provider="ollama",
            llm_model="llama3.1",
        )
    ]

    assert chunks == ["Aye", ", friend"]
