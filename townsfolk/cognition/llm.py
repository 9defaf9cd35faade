"""Reasoner-backed implementations for planning, reflection and social analysis."""

from __future__ import annotations

import random
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from townsfolk.logging_utils import debug_llm_enabled, log_error, log_llm
from townsfolk.memory import memories_for_day
from townsfolk.needs import MAX_RELATIONSHIP_DELTA
from townsfolk.reasoner import Reasoner, ReasoningError
from townsfolk.schemas import Agent, MoveAction, WaitAction

from .context import build_prompt_context
from .planner import LOCATIONS, PlannedAction, jitter, resolve_location
from .prompts import DEFAULT_PROMPTS, PromptLibrary, PromptTemplate
from .renderers import RenderedPrompt, render_prompt

# Reasoned plans keep at most this many actions
MAX_PLANNED_ACTIONS = 2
# Reflection keeps at most this many insights per day
MAX_INSIGHTS = 2

CONFUSED_DESCRIPTION = "Confused..."
CONFUSED_DURATION = 10.0


class LLMPlanAction(BaseModel):
    description: str = ""
    location: str
    duration: Optional[float] = None


class LLMPlanResponse(BaseModel):
    actions: List[LLMPlanAction] = Field(default_factory=list)


class LLMReflectionResponse(BaseModel):
    insights: List[str] = Field(default_factory=list)


class AmbientExchange(BaseModel):
    first_line: str
    second_line: str


class SocialAnalysis(BaseModel):
    """Outcome of a finished conversation from one participant's side."""

    trust_change: float = 0.0
    respect_change: float = 0.0
    summary: str = ""

    @field_validator("trust_change", "respect_change", mode="after")
    @classmethod
    def _clamp_delta(cls, value: float) -> float:
        return max(-MAX_RELATIONSHIP_DELTA, min(MAX_RELATIONSHIP_DELTA, value))


def confused_plan() -> List[PlannedAction]:
    """The plan an agent falls back to when reasoning fails."""
    return [WaitAction(duration=CONFUSED_DURATION, description=CONFUSED_DESCRIPTION)]


def _template(library: Optional[PromptLibrary], name: str) -> PromptTemplate:
    try:
        return (library or DEFAULT_PROMPTS).get(name)
    except KeyError:
        return DEFAULT_PROMPTS.get(name)


def _debug_prompt(stage: str, agent: Agent, rendered: RenderedPrompt) -> None:
    if not debug_llm_enabled():
        return
    print(f"\n{'='*80}")
    print(f"[{stage}] Agent: {agent.agent_id} ({agent.name})")
    print(f"{'='*80}")
    print("\n[SYSTEM PROMPT]")
    print(f"{'-'*80}")
    print(rendered.system)
    print("\n[USER PROMPT]")
    print(f"{'-'*80}")
    print(rendered.user)
    print(f"{'='*80}\n")


class LLMPlanner:
    """Planner that delegates the day's agenda to the reasoner.

    The prompt carries role, traits, goal, retrieved memories and needs.
    Each returned action names a location; the location resolves through
    the shared table and is jittered into a ``MoveAction``. Any failure,
    including an empty reply, produces the single "Confused..." wait.
    """

    def __init__(
        self,
        *,
        template_name: str = "plan",
        prompt_library: Optional[PromptLibrary] = None,
    ) -> None:
        self.template_name = template_name
        self.prompt_library = prompt_library

    async def generate_plan(
        self,
        agent: Agent,
        day: int,
        reasoner: Reasoner,
        rng: Optional[random.Random] = None,
    ) -> List[PlannedAction]:
        context = build_prompt_context(
            agent,
            day,
            {"locations": ", ".join(f'"{name}"' for name in LOCATIONS)},
        )
        rendered = render_prompt(_template(self.prompt_library, self.template_name), context)
        _debug_prompt("LLM PLANNER", agent, rendered)

        try:
            response = await reasoner.complete(rendered.system, rendered.user, LLMPlanResponse)
        except ReasoningError as exc:
            log_error(f"[Planner] Plan request failed for {agent.name}: {exc}")
            return confused_plan()

        if not isinstance(response, LLMPlanResponse) or not response.actions:
            log_error(f"[Planner] Empty or malformed plan for {agent.name}")
            return confused_plan()

        actions: List[PlannedAction] = []
        for item in response.actions[:MAX_PLANNED_ACTIONS]:
            duration = max(0.0, item.duration) if item.duration is not None else None
            actions.append(
                MoveAction(
                    target=jitter(resolve_location(item.location), rng=rng),
                    description=item.description,
                    duration=duration,
                )
            )

        log_llm(
            f"[Planner] {agent.name} day {day}: "
            + ", ".join(action.description or "(unnamed)" for action in actions)
        )
        return actions


class LLMReflectionEngine:
    """Condense one day's raw memories into a couple of insights."""

    def __init__(
        self,
        *,
        template_name: str = "reflect",
        prompt_library: Optional[PromptLibrary] = None,
    ) -> None:
        self.template_name = template_name
        self.prompt_library = prompt_library

    async def generate_insights(self, agent: Agent, day: int, reasoner: Reasoner) -> List[str]:
        todays = memories_for_day(agent, day)
        if not todays:
            return []

        context = build_prompt_context(
            agent,
            day,
            {"day_memories": "\n".join(f"- {memory.text}" for memory in todays)},
        )
        rendered = render_prompt(_template(self.prompt_library, self.template_name), context)
        _debug_prompt("LLM REFLECTION", agent, rendered)

        try:
            response = await reasoner.complete(rendered.system, rendered.user, LLMReflectionResponse)
        except ReasoningError as exc:
            log_error(f"[Reflection] Reflection failed for {agent.name}: {exc}")
            return []

        if not isinstance(response, LLMReflectionResponse):
            log_error(f"[Reflection] Malformed reflection for {agent.name}")
            return []

        insights = [insight.strip() for insight in response.insights if insight.strip()]
        return insights[:MAX_INSIGHTS]


class LLMSocialAnalyzer:
    """Score a finished conversation into relationship deltas and a summary."""

    def __init__(
        self,
        *,
        template_name: str = "social_analysis",
        prompt_library: Optional[PromptLibrary] = None,
    ) -> None:
        self.template_name = template_name
        self.prompt_library = prompt_library

    async def analyze(
        self,
        agent: Agent,
        target_name: str,
        transcript: str,
        reasoner: Reasoner,
    ) -> SocialAnalysis:
        fallback = SocialAnalysis(summary=f"Talked to {target_name}")
        context = build_prompt_context(agent, extra={"transcript": transcript})
        rendered = render_prompt(_template(self.prompt_library, self.template_name), context)

        try:
            response = await reasoner.complete(rendered.system, rendered.user, SocialAnalysis)
        except ReasoningError as exc:
            log_error(f"[Social] Analysis failed for {agent.name}: {exc}")
            return fallback

        if not isinstance(response, SocialAnalysis):
            return fallback
        if not response.summary.strip():
            return response.model_copy(update={"summary": fallback.summary})
        return response


__all__ = [
    "LLMPlanAction",
    "LLMPlanResponse",
    "LLMReflectionResponse",
    "AmbientExchange",
    "SocialAnalysis",
    "LLMPlanner",
    "LLMReflectionEngine",
    "LLMSocialAnalyzer",
    "confused_plan",
    "CONFUSED_DESCRIPTION",
    "MAX_PLANNED_ACTIONS",
    "MAX_INSIGHTS",
]
