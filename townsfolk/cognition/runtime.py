"""Agent cognition runtime.

Bundles the planner, static planner, reflection engine and social analyzer
a villager uses, so the orchestrator stays agnostic to the specific
implementations and there is one place to hang prompt configuration.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from townsfolk.reasoner import Reasoner
from townsfolk.schemas import Agent

from .llm import LLMPlanner, LLMReflectionEngine, LLMSocialAnalyzer
from .planner import PlannedAction, Planner, StaticPlanner
from .prompts import DEFAULT_PROMPTS, PromptLibrary
from .reflection import ReflectionEngine

# Day one always runs the static routine so the village starts moving
# without waiting on the reasoner.
STATIC_PLAN_DAY = 1


@dataclass
class AgentCognition:
    """Collection of cognition modules shared by one or more villagers.

    - **static_planner**: Required. Role-table routine; used on day one and
      whenever reasoning is off.
    - **planner**: Reasoned plans (``LLMPlanner``). ``None`` keeps the agent
      on static routines even when reasoning is on.
    - **reflection**: End-of-day insight generator. ``None`` skips reflection.
    - **social**: Conversation analyzer producing relationship deltas.

    Examples:
        Static-only villager:
            AgentCognition(planner=None, reflection=None)

        Full reasoning villager:
            build_default_cognition()
    """

    static_planner: StaticPlanner = field(default_factory=StaticPlanner)
    planner: Optional[Planner] = None
    reflection: Optional[ReflectionEngine] = None
    social: Optional[LLMSocialAnalyzer] = None
    prompt_library: PromptLibrary = DEFAULT_PROMPTS


def build_default_cognition(prompt_library: Optional[PromptLibrary] = None) -> AgentCognition:
    """Return the standard reasoning-capable stack."""
    library = prompt_library or DEFAULT_PROMPTS
    return AgentCognition(
        static_planner=StaticPlanner(),
        planner=LLMPlanner(prompt_library=library),
        reflection=LLMReflectionEngine(prompt_library=library),
        social=LLMSocialAnalyzer(prompt_library=library),
        prompt_library=library,
    )


def wants_reasoned_plan(day: int, use_external: bool, cognition: AgentCognition) -> bool:
    return use_external and day != STATIC_PLAN_DAY and cognition.planner is not None


async def request_plan(
    agent: Agent,
    day: int,
    use_external: bool,
    cognition: Optional[AgentCognition] = None,
    *,
    reasoner: Optional[Reasoner] = None,
    rng: Optional[random.Random] = None,
) -> List[PlannedAction]:
    """Produce the next plan for ``agent``.

    Returns the static routine when ``use_external`` is false, on day one,
    or when the cognition bundle has no reasoned planner. Otherwise asks the
    reasoned planner, which falls back to a "Confused..." wait on failure.
    """
    cognition = cognition or build_default_cognition()
    if not wants_reasoned_plan(day, use_external, cognition):
        return cognition.static_planner.generate_plan(agent, rng=rng)
    if reasoner is None:
        raise ValueError(
            f"request_plan needs a reasoner for reasoned plans (agent: {agent.agent_id}). "
            "Pass use_external=False to use the static routine."
        )
    return await cognition.planner.generate_plan(agent, day, reasoner, rng=rng)


AgentCognitionMap = Dict[str, AgentCognition]
"""Convenience alias for per-agent cognition overrides."""
