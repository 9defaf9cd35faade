"""Prompt rendering utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .context import PromptContext
from .prompts import PromptTemplate


@dataclass
class RenderedPrompt:
    system: str
    user: str


def render_prompt(template: PromptTemplate, context: PromptContext) -> RenderedPrompt:
    """Render a prompt template using the supplied context.

    Placeholders use ``{{double_brace}}`` syntax so JSON examples inside the
    templates survive untouched. Every entry in ``context.extra`` is also
    available as a placeholder of the same name; extras override the
    built-in values. Unknown placeholders are left as-is.
    """

    agent = context.agent
    personality = agent.personality

    replacements: Dict[str, str] = {
        "name": agent.name,
        "role": agent.role,
        "traits": context.traits_text(),
        "background": personality.background,
        "goal": personality.goal,
        "day": str(context.day),
        "memory_context": context.memory_context(),
        "needs_plan": context.needs_plan_text(),
        "needs_stats": context.needs_stats_text(),
        "needs_mood": context.needs_mood_text(),
    }
    replacements.update({key: str(value) for key, value in context.extra.items()})

    system = template.system
    user = template.user
    for key, value in replacements.items():
        placeholder = "{{" + key + "}}"
        system = system.replace(placeholder, value)
        user = user.replace(placeholder, value)

    return RenderedPrompt(system=system, user=user)
