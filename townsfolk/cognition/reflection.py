"""End-of-day reflection.

Reflection reads back the day's raw memories and stores a couple of
higher-level insights as new memories. Insights carry a fixed, elevated
importance so they keep surfacing in later retrieval without paying for a
scoring call.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from townsfolk.logging_utils import log_llm
from townsfolk.memory import append_memory
from townsfolk.reasoner import Reasoner
from townsfolk.schemas import Agent, Memory

from .llm import LLMReflectionEngine

REFLECTION_IMPORTANCE = 8
REFLECTION_PREFIX = "Reflection: "


class ReflectionEngine(Protocol):
    """Anything that turns a day of memories into insight strings.

    Must not raise; failures return an empty list.
    """

    async def generate_insights(self, agent: Agent, day: int, reasoner: Reasoner) -> List[str]:
        ...


def apply_reflection(agent: Agent, day: int, insights: Sequence[str]) -> List[Memory]:
    """Append insights as reflection memories and mark the day reflected.

    ``last_reflection_day`` only moves when at least one insight is stored,
    so a skipped or failed pass leaves the day eligible for another try.
    """
    stored = [
        append_memory(
            agent,
            Memory(
                text=f"{REFLECTION_PREFIX}{insight}",
                day=day,
                importance=REFLECTION_IMPORTANCE,
                kind="reflection",
            ),
        )
        for insight in insights
    ]
    if stored:
        agent.last_reflection_day = max(agent.last_reflection_day, day)
        log_llm(f"[Reflection] {agent.name} stored {len(stored)} insight(s) for day {day}")
    return stored


async def reflect(
    agent: Agent,
    day: int,
    reasoner: Reasoner,
    engine: Optional[ReflectionEngine] = None,
) -> List[Memory]:
    """Run one reflection pass for ``agent`` over ``day``; return the new memories."""
    engine = engine or LLMReflectionEngine()
    insights = await engine.generate_insights(agent, day, reasoner)
    return apply_reflection(agent, day, insights)


__all__ = [
    "REFLECTION_IMPORTANCE",
    "REFLECTION_PREFIX",
    "ReflectionEngine",
    "apply_reflection",
    "reflect",
]
