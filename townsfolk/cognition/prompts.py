"""Prompt templates for villager cognition stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass
class PromptTemplate:
    """Represents a templated prompt with placeholders."""

    name: str
    system: str
    user: str
    description: str = ""


class PromptLibrary:
    """Container for named prompt templates per cognition stage."""

    def __init__(self) -> None:
        self.templates: Dict[str, PromptTemplate] = {}

    def register(self, template: PromptTemplate) -> None:
        self.templates[template.name] = template

    def get(self, name: str) -> PromptTemplate:
        return self.templates[name]

    def copy(self) -> "PromptLibrary":
        library = PromptLibrary()
        library.templates = dict(self.templates)
        return library


# Default templates ------------------------------------------------------------

DEFAULT_PROMPTS = PromptLibrary()

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="plan",
        system=(
            "You are {{name}}, a {{role}}.\n"
            "Traits: {{traits}}. Goal: {{goal}}.\n"
            "{{memory_context}}\n"
            "{{needs_plan}}\n\n"
            "Plan your day in 2 distinct actions. Prioritize your Needs (e.g. if Hunger is low, "
            "go to Bakery/Farm/Tavern to eat; if Social is low, go to Market/Tavern).\n"
            "Available locations: {{locations}}.\n"
            "Output strict JSON."
        ),
        user=(
            "It is Day {{day}}. Plan your day.\n"
            "Example JSON format:\n"
            "{\n"
            "  \"actions\": [\n"
            "    {\"description\": \"Go to bakery to eat bread\", \"location\": \"Bakery\", \"duration\": 10}\n"
            "  ]\n"
            "}"
        ),
        description="Two-action daily plan driven by needs and memories.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="reflect",
        system=(
            "You are {{name}}, reflecting on your day.\n"
            "Analyze the following raw memories and generate 1-2 high-level insights or generalizations "
            "about your life, relationships, or goals.\n"
            "Example: Instead of \"Bob said hi\", generate \"Bob seems friendly lately.\"\n"
            "Output strict JSON: { \"insights\": [\"insight 1\", \"insight 2\"] }"
        ),
        user="Memories of Day {{day}}:\n{{day_memories}}",
        description="End-of-day condensation of raw memories into insights.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="greeting",
        system=(
            "You are {{name}}, a {{role}}. Traits: {{traits}}.\n"
            "Relevant Memories: {{memory_context}}\n"
            "{{needs_mood}}"
        ),
        user="You have approached the player. Generate a short, natural opening line (1 sentence).",
        description="Single opening line when a villager approaches someone.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="dialogue",
        system=(
            "You are {{name}}, a {{role}}. Traits: {{traits}}. Background: {{background}}.\n"
            "Respond naturally in 1-2 sentences. Keep it medieval. Tone reflects Trust/Respect.\n"
            "{{needs_stats}} (If hunger is low, mention being hungry. If energy low, mention being tired)."
        ),
        user=(
            "{{relationship_context}}\n"
            "{{memory_context}}\n"
            "{{conversation_history}}\n"
            "Target says: \"{{player_input}}\"\n"
            "Respond:"
        ),
        description="Streamed conversational reply.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="ambient",
        system=(
            "Generate a short interaction (2 lines). "
            "Output strict JSON: { \"first_line\": \"...\", \"second_line\": \"...\" }"
        ),
        user=(
            "Characters:\n"
            "{{first_character}}\n"
            "{{second_character}}\n"
            "They are standing near each other."
        ),
        description="Two-line exchange between villagers who meet.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="social_analysis",
        system=(
            "Analyze conversation for {{name}}.\n"
            "1. Did interaction increase/decrease Trust? (-10 to +10)\n"
            "2. Did it increase/decrease Respect? (-10 to +10)\n"
            "3. Summarize the conversation in 1 sentence for the character's memory.\n"
            "Output strict JSON: { \"trust_change\": 0, \"respect_change\": 0, \"summary\": \"...\" }"
        ),
        user="Transcript:\n\"{{transcript}}\"",
        description="Relationship deltas and a memory summary for a finished conversation.",
    )
)
