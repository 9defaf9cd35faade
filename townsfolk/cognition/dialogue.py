"""Villager speech: greetings, conversation replies and ambient chatter.

Every entry point degrades to a fixed line when the reasoner fails, so a
conversation never blocks on an unavailable provider.
"""

from __future__ import annotations

from typing import AsyncIterator, Optional, Sequence, Tuple

from townsfolk.logging_utils import log_error
from townsfolk.reasoner import Reasoner, ReasoningError
from townsfolk.schemas import Agent

from .context import DialogueTurn, build_prompt_context, format_conversation_history
from .llm import AmbientExchange
from .prompts import DEFAULT_PROMPTS, PromptLibrary
from .renderers import render_prompt

GREETING_FALLBACK = "Hello there."
# Used when the reasoner answers with nothing at all
GREETING_EMPTY = "Greetings."
FILLER_LINE = "..."
AMBIENT_FALLBACK: Tuple[str, str] = ("Nice day.", "Indeed.")


async def generate_greeting(
    agent: Agent,
    reasoner: Reasoner,
    prompt_library: Optional[PromptLibrary] = None,
) -> str:
    rendered = render_prompt(
        (prompt_library or DEFAULT_PROMPTS).get("greeting"),
        build_prompt_context(agent),
    )
    try:
        text = await reasoner.complete(rendered.system, rendered.user)
    except ReasoningError as exc:
        log_error(f"[Dialogue] Greeting failed for {agent.name}: {exc}")
        return GREETING_FALLBACK
    text = str(text).strip()
    return text or GREETING_EMPTY


async def stream_dialogue(
    agent: Agent,
    player_input: str,
    history: Sequence[DialogueTurn],
    target_name: str,
    target_id: str,
    reasoner: Reasoner,
    prompt_library: Optional[PromptLibrary] = None,
) -> AsyncIterator[str]:
    """Yield the agent's reply to ``player_input`` chunk by chunk.

    If the reasoner fails before producing anything, the filler line is
    yielded instead. A failure after partial output ends the reply where it
    stopped.
    """
    context = build_prompt_context(agent)
    context.extra.update(
        {
            "relationship_context": context.relationship_text(target_id, target_name),
            "conversation_history": format_conversation_history(history),
            "player_input": player_input,
        }
    )
    rendered = render_prompt((prompt_library or DEFAULT_PROMPTS).get("dialogue"), context)

    produced = False
    try:
        async for chunk in reasoner.stream(rendered.system, rendered.user):
            produced = True
            yield chunk
    except ReasoningError as exc:
        log_error(f"[Dialogue] Reply stream failed for {agent.name}: {exc}")
        if not produced:
            yield FILLER_LINE


async def generate_ambient_dialogue(
    first: Agent,
    second: Agent,
    reasoner: Reasoner,
    prompt_library: Optional[PromptLibrary] = None,
) -> Tuple[str, str]:
    """Two lines exchanged by villagers standing near each other."""
    context = build_prompt_context(
        first,
        extra={
            "first_character": build_prompt_context(first).character_line(1, second),
            "second_character": build_prompt_context(second).character_line(2, first),
        },
    )
    rendered = render_prompt((prompt_library or DEFAULT_PROMPTS).get("ambient"), context)

    try:
        exchange = await reasoner.complete(rendered.system, rendered.user, AmbientExchange)
    except ReasoningError as exc:
        log_error(f"[Dialogue] Ambient exchange failed for {first.name}/{second.name}: {exc}")
        return AMBIENT_FALLBACK

    if not isinstance(exchange, AmbientExchange):
        return (FILLER_LINE, FILLER_LINE)
    return (exchange.first_line or FILLER_LINE, exchange.second_line or FILLER_LINE)


__all__ = [
    "AMBIENT_FALLBACK",
    "FILLER_LINE",
    "GREETING_FALLBACK",
    "generate_ambient_dialogue",
    "generate_greeting",
    "stream_dialogue",
]
