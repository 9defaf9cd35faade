"""Provider call helpers used by ``LLMReasoner``.

Three shapes of call are supported, each against either a mirascope
provider (openai, anthropic, ...) or a local Ollama server:

- structured: the reply is parsed into a pydantic model; schema failures are
  retried with the validation errors fed back to the model
- text: one free-text reply
- stream: free-text chunks as they arrive

Every call is bounded by ``asyncio.wait_for``. Errors are not translated
here beyond turning ``LocalLLMError`` into ``RuntimeError``; the reasoner
owns the mapping to ``ReasoningError``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, List, Sequence, TypeVar

from mirascope import llm
from pydantic import BaseModel, ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from townsfolk.config import Config
from townsfolk.local_llm import LocalLLMError, call_ollama_chat, stream_ollama_chat
from townsfolk.logging_utils import log_error, log_llm


ModelT = TypeVar("ModelT", bound=BaseModel)

LOCAL_PROVIDER = "ollama"
# Longest preview of a rejected value quoted back to the model
PREVIEW_LIMIT = 80


@dataclass(slots=True)
class SchemaFeedback:
    """What to tell the model after its reply failed schema validation."""

    prompt_text: str
    issues: Sequence[str]


def _preview(value: Any) -> str:
    text = "null" if value is None else repr(value)
    return text if len(text) <= PREVIEW_LIMIT else text[: PREVIEW_LIMIT - 3] + "..."


def build_schema_feedback(error: ValidationError) -> SchemaFeedback:
    """Turn a pydantic error into one correction line per failing field."""

    issues: List[str] = []
    for err in error.errors(include_url=False):
        path = ".".join(str(part) for part in err.get("loc", ())) or "root"
        line = f"{path}: {err.get('msg', 'invalid value')}"
        if err.get("type"):
            line += f" [type={err['type']}]"
        if "input" in err:
            line += f" | received={_preview(err['input'])}"
        issues.append(line)
    issues = issues or ["root: reply did not match the expected schema"]

    text = "\n".join(
        [
            "Your last reply was not valid JSON for the requested schema.",
            "Answer again with only the corrected JSON object, no prose and no code fences.",
            "Fix these fields:",
            *(f"- {issue}" for issue in issues),
        ]
    )
    return SchemaFeedback(prompt_text=text, issues=issues)


def _is_local(provider: str) -> bool:
    return provider.lower() == LOCAL_PROVIDER


def _join(*sections: str) -> str:
    return "\n\n".join(section for section in sections if section)


def _remote_call(provider: str, model: str, **call_options: Any) -> Callable[[str], Awaitable[Any]]:
    """Build a mirascope call whose prompt is the single string argument."""

    @llm.call(provider=provider, model=model, **call_options)
    async def _invoke(prompt: str) -> str:
        return prompt

    return _invoke


def _local_failure(provider: str, exc: LocalLLMError) -> RuntimeError:
    return RuntimeError(f"Local LLM provider error ({provider}): {exc}")


async def call_llm_with_retries(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_provider: str,
    llm_model: str,
    response_model: type[ModelT],
    max_attempts: int = 3,
    timeout: float = Config.LLM_TIMEOUT_SECONDS,
    feedback_builder: Callable[[ValidationError], SchemaFeedback] = build_schema_feedback,
) -> ModelT:
    """Ask for a ``response_model`` reply, retrying on schema failures only.

    The feedback from a failed attempt is appended to the original user
    prompt, so the model keeps its context. Timeouts and transport errors
    are raised on first occurrence; after ``max_attempts`` schema failures
    the last ``ValidationError`` is raised.
    """

    system_prompt = system_prompt.strip()
    user_prompt = user_prompt.strip()
    model_name = response_model.__name__

    if _is_local(llm_provider):
        schema = response_model.model_json_schema()

        async def _ask(prompt: str) -> ModelT:
            try:
                raw = await call_ollama_chat(
                    system_prompt=system_prompt,
                    user_prompt=prompt,
                    llm_model=llm_model,
                    json_schema=schema,
                )
            except LocalLLMError as exc:
                raise _local_failure(llm_provider, exc) from exc
            return response_model.model_validate_json(raw)
    else:
        invoke = _remote_call(llm_provider, llm_model, response_model=response_model)

        async def _ask(prompt: str) -> ModelT:
            return await invoke(_join(system_prompt, prompt))

    feedback: SchemaFeedback | None = None
    attempt_number = 0
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type(ValidationError),
        stop=stop_after_attempt(max_attempts),
        reraise=True,
    ):
        with attempt:
            attempt_number += 1
            if feedback is not None:
                log_llm(f"Retrying {model_name} ({attempt_number}/{max_attempts}) with schema feedback")
            prompt = _join(user_prompt, feedback.prompt_text if feedback else "")
            try:
                return await asyncio.wait_for(_ask(prompt), timeout=timeout)
            except ValidationError as exc:
                feedback = feedback_builder(exc)
                log_error(f"{model_name} reply failed validation ({attempt_number}/{max_attempts})")
                for issue in feedback.issues:
                    print(f"    - {issue}")
                raise
            except asyncio.TimeoutError:
                log_error(f"{model_name} request timed out after {timeout:g}s")
                raise

    raise RuntimeError("LLM retry loop exited without a result")


async def call_llm_text(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_provider: str,
    llm_model: str,
    timeout: float = Config.LLM_TIMEOUT_SECONDS,
) -> str:
    """One free-text reply, stripped of surrounding whitespace."""

    system_prompt = system_prompt.strip()
    user_prompt = user_prompt.strip()

    if _is_local(llm_provider):
        try:
            text = await asyncio.wait_for(
                call_ollama_chat(system_prompt=system_prompt, user_prompt=user_prompt, llm_model=llm_model),
                timeout=timeout,
            )
        except LocalLLMError as exc:
            raise _local_failure(llm_provider, exc) from exc
        return text.strip()

    invoke = _remote_call(llm_provider, llm_model)
    response = await asyncio.wait_for(invoke(_join(system_prompt, user_prompt)), timeout=timeout)
    return (response.content or "").strip()


async def stream_llm_text(
    *,
    system_prompt: str,
    user_prompt: str,
    llm_provider: str,
    llm_model: str,
) -> AsyncIterator[str]:
    """Yield reply text chunks as the provider produces them."""

    system_prompt = system_prompt.strip()
    user_prompt = user_prompt.strip()

    if _is_local(llm_provider):
        try:
            async for chunk in stream_ollama_chat(
                system_prompt=system_prompt, user_prompt=user_prompt, llm_model=llm_model
            ):
                yield chunk
        except LocalLLMError as exc:
            raise _local_failure(llm_provider, exc) from exc
        return

    invoke = _remote_call(llm_provider, llm_model, stream=True)
    stream = await invoke(_join(system_prompt, user_prompt))
    async for chunk, _ in stream:
        if chunk.content:
            yield chunk.content
