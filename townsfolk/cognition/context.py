"""Context assembly utilities for cognition prompts.

Gathers what a prompt needs to know about one villager: identity and
personality, retrieved memories, needs, and how they feel about whoever
they are talking to. Renderers turn a ``PromptContext`` into placeholder
values; nothing here talks to the reasoner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence

from townsfolk.memory import retrieve_context
from townsfolk.schemas import Agent, Relationship

# Needs below this read as "very hungry" / "exhausted" in greetings
LOW_NEED_THRESHOLD = 30


@dataclass
class DialogueTurn:
    speaker: str
    text: str


@dataclass
class PromptContext:
    """Structured context passed to planner/dialogue/reflection prompts."""

    agent: Agent
    day: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    def traits_text(self) -> str:
        return ", ".join(self.agent.personality.traits)

    def memory_context(self) -> str:
        return retrieve_context(self.agent)

    def needs_plan_text(self) -> str:
        needs = self.agent.needs
        return (
            f"Current Needs (0-100): Hunger: {round(needs.hunger)} (Low=Eat), "
            f"Social: {round(needs.social)} (Low=Talk), Energy: {round(needs.energy)}."
        )

    def needs_stats_text(self) -> str:
        needs = self.agent.needs
        return f"Current Stats: Hunger {round(needs.hunger)}%, Energy {round(needs.energy)}%."

    def needs_mood_text(self) -> str:
        if self.agent.needs.hunger < LOW_NEED_THRESHOLD:
            return "You are very hungry."
        if self.agent.needs.energy < LOW_NEED_THRESHOLD:
            return "You are exhausted."
        return ""

    def relationship_text(self, target_id: str, target_name: str) -> str:
        # Read-only: prompting about a stranger must not create a record
        relationship = self.agent.relationships.get(target_id) or Relationship(entity_id=target_id)
        return (
            f"RELATIONSHIP with {target_name}:\n"
            f"Trust: {round(relationship.trust)}/100\n"
            f"Respect: {round(relationship.respect)}/100\n"
            f"Romance: {round(relationship.romance)}/100"
        )

    def character_line(self, index: int, other: Agent) -> str:
        """One numbered character entry for a two-person prompt."""
        agent = self.agent
        trust = agent.relationships.get(other.agent_id)
        trust_value = round(trust.trust) if trust else 50
        return (
            f"{index}. {agent.name} ({agent.role}) - Traits: {self.traits_text()}.\n"
            f"{self.memory_context()}\n"
            f"Trust in {other.name}: {trust_value}\n"
            f"Hunger: {round(agent.needs.hunger)}"
        )


def format_conversation_history(history: Sequence[DialogueTurn]) -> str:
    if not history:
        return "Conversation just started."
    lines = [f'{turn.speaker}: "{turn.text}"' for turn in history]
    return "CURRENT CONVERSATION:\n" + "\n".join(lines)


def build_prompt_context(agent: Agent, day: int = 0, extra: Optional[Dict[str, Any]] = None) -> PromptContext:
    return PromptContext(agent=agent, day=day, extra=dict(extra or {}))


__all__ = [
    "DialogueTurn",
    "PromptContext",
    "build_prompt_context",
    "format_conversation_history",
]
