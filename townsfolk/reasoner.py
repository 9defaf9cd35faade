"""The reasoning boundary between villagers and an external language model.

Everything above this module treats reasoning as an opaque, slow and fallible
service: a call either returns a value or raises ``ReasoningError``. Callers
own the fallback for their purpose (a "Confused..." wait, importance 1, a
filler line) so a failing provider never stalls the tick loop.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional, Protocol, Type, TypeVar, Union, overload, runtime_checkable

from pydantic import BaseModel, ValidationError

from townsfolk.config import Config
from townsfolk.llm_utils import call_llm_text, call_llm_with_retries, stream_llm_text
from townsfolk.logging_utils import debug_llm_enabled, log_llm

ModelT = TypeVar("ModelT", bound=BaseModel)


class ReasoningError(RuntimeError):
    """Raised when the reasoner could not produce a usable answer."""


@runtime_checkable
class Reasoner(Protocol):
    """Anything that can complete or stream a prompt pair."""

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        response_model: Optional[Type[BaseModel]] = None,
    ) -> Union[str, BaseModel]:
        ...

    def stream(self, system_prompt: str, user_prompt: str) -> AsyncIterator[str]:
        ...


class LLMReasoner:
    """Reasoner backed by a mirascope provider or a local Ollama server.

    Structured requests go through ``call_llm_with_retries`` (validation-aware
    retries); free-text and streamed requests go straight to the provider.
    Every failure surfaces as ``ReasoningError`` with the cause chained.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        max_attempts: int = 3,
    ) -> None:
        self.provider = provider or Config.LLM_PROVIDER
        self.model = model or Config.LLM_MODEL
        self.timeout = timeout if timeout is not None else Config.LLM_TIMEOUT_SECONDS
        self.max_attempts = max_attempts

    def __repr__(self) -> str:
        return f"LLMReasoner(provider={self.provider!r}, model={self.model!r})"

    @overload
    async def complete(self, system_prompt: str, user_prompt: str, response_model: None = None) -> str: ...

    @overload
    async def complete(self, system_prompt: str, user_prompt: str, response_model: Type[ModelT]) -> ModelT: ...

    async def complete(self, system_prompt, user_prompt, response_model=None):
        if debug_llm_enabled():
            log_llm(f"[{self.provider}/{self.model}] system prompt:\n{system_prompt}")
            log_llm(f"[{self.provider}/{self.model}] user prompt:\n{user_prompt}")

        try:
            if response_model is None:
                result = await call_llm_text(
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    llm_provider=self.provider,
                    llm_model=self.model,
                    timeout=self.timeout,
                )
            else:
                result = await call_llm_with_retries(
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    llm_provider=self.provider,
                    llm_model=self.model,
                    response_model=response_model,
                    max_attempts=self.max_attempts,
                    timeout=self.timeout,
                )
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as exc:
            raise ReasoningError(f"{self.provider} call timed out after {self.timeout}s") from exc
        except ValidationError as exc:
            raise ReasoningError(
                f"{self.provider} response did not match {response_model.__name__}"
            ) from exc
        except Exception as exc:
            raise ReasoningError(f"{self.provider} call failed: {exc}") from exc

        if debug_llm_enabled():
            log_llm(f"[{self.provider}/{self.model}] response: {result!r}")
        return result

    async def stream(self, system_prompt: str, user_prompt: str) -> AsyncIterator[str]:
        try:
            async for chunk in stream_llm_text(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                llm_provider=self.provider,
                llm_model=self.model,
            ):
                yield chunk
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise ReasoningError(f"{self.provider} stream failed: {exc}") from exc


class OfflineReasoner:
    """Reasoner that always fails. Models ``USE_AI=false`` or a dead provider."""

    def __init__(self, reason: str = "reasoning is disabled") -> None:
        self.reason = reason

    def __repr__(self) -> str:
        return f"OfflineReasoner(reason={self.reason!r})"

    async def complete(self, system_prompt, user_prompt, response_model=None):
        raise ReasoningError(self.reason)

    async def stream(self, system_prompt: str, user_prompt: str) -> AsyncIterator[str]:
        raise ReasoningError(self.reason)
        yield  # pragma: no cover - marks this method as an async generator


def build_reasoner(use_ai: Optional[bool] = None) -> Union[LLMReasoner, OfflineReasoner]:
    """Return the reasoner the current configuration asks for."""
    enabled = Config.USE_AI if use_ai is None else use_ai
    if not enabled:
        return OfflineReasoner()
    return LLMReasoner()


__all__ = [
    "Reasoner",
    "ReasoningError",
    "LLMReasoner",
    "OfflineReasoner",
    "build_reasoner",
]
