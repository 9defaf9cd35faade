"""
Main simulation orchestrator.

Coordinates one village tick by tick:
1. Apply finished reasoner results from the inbox
2. Decay needs (agents in conversation are frozen)
3. Advance each agent's action state machine
4. Replan agents whose plan ran out

Reasoner work (reasoned plans, importance scoring, conversation analysis,
reflection) never runs inside a tick. It is started as an asyncio task
keyed by ``(agent_id, purpose)``; at most one task per key is outstanding
and a request for a busy key is skipped rather than queued. Finished tasks
park their result in the inbox, and the next tick applies it. A tick
therefore never awaits the reasoner and never crashes because of it.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from .cognition import (
    AgentCognition,
    AgentCognitionMap,
    DialogueTurn,
    SocialAnalysis,
    advance_agent,
    apply_reflection,
    build_default_cognition,
    generate_ambient_dialogue,
    generate_greeting,
    stream_dialogue,
)
from .cognition.runtime import wants_reasoned_plan
from .config import Config
from .environment import TileMap
from .logging_utils import log_deterministic, log_error, log_info, log_llm, log_success
from .memory import append_memory, clamp_importance, score_importance
from .needs import NeedsDecayConfig, advance_needs, apply_relationship_delta
from .reasoner import Reasoner
from .schemas import Agent, Memory, MemoryKind

PURPOSE_PLAN = "plan"
PURPOSE_MEMORY = "memory"
PURPOSE_RELATIONSHIP = "relationship"
PURPOSE_REFLECTION = "reflection"

# Importance given to a memory recorded while its agent's scoring slot is busy
AMBIENT_IMPORTANCE = 2
# Importance of memories recorded with reasoning disabled
OFFLINE_IMPORTANCE = 1

TaskKey = Tuple[str, str]


@dataclass
class ReasonerResult:
    """A finished reasoner task waiting to be applied on the next tick."""

    agent_id: str
    purpose: str
    payload: Any
    day: int


class Simulation:
    """
    Owns the village state and drives it forward.

    Agents are kept in roster order; ``step`` visits them in that order.
    ``advance_agent`` returns copies, so hold agent ids rather than agent
    objects across ticks and look them up with ``agent(agent_id)``.
    """

    def __init__(
        self,
        agents: Sequence[Agent],
        tile_map: TileMap,
        reasoner: Reasoner,
        *,
        cognition: Optional[AgentCognition] = None,
        agent_cognition: Optional[AgentCognitionMap] = None,
        use_ai: Optional[bool] = None,
        day: int = 1,
        needs_config: Optional[NeedsDecayConfig] = None,
        move_speed: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        ids = [agent.agent_id for agent in agents]
        if len(set(ids)) != len(ids):
            raise ValueError("Agent ids must be unique")

        self._agents: Dict[str, Agent] = {agent.agent_id: agent for agent in agents}
        self.tile_map = tile_map
        self.reasoner = reasoner
        self.cognition = cognition or build_default_cognition()
        self.agent_cognition: AgentCognitionMap = dict(agent_cognition or {})
        self.use_ai = Config.USE_AI if use_ai is None else use_ai
        self.day = day
        self.tick = 0
        self.needs_config = needs_config or NeedsDecayConfig()
        self.move_speed = Config.MOVE_SPEED if move_speed is None else move_speed
        self.rng = rng or random.Random()

        self._suspended: Set[str] = set()
        self._in_flight: Set[TaskKey] = set()
        self._inbox: List[ReasonerResult] = []
        self._tasks: Set[asyncio.Task] = set()
        self._task_for: Dict[TaskKey, asyncio.Task] = {}
        # Memories observed behind a pending importance score, in observation order
        self._held: Dict[str, List[Memory]] = {}

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def agents(self) -> List[Agent]:
        return list(self._agents.values())

    def agent(self, agent_id: str) -> Agent:
        try:
            return self._agents[agent_id]
        except KeyError:
            raise KeyError(f"Unknown agent '{agent_id}'") from None

    def cognition_for(self, agent_id: str) -> AgentCognition:
        return self.agent_cognition.get(agent_id, self.cognition)

    def is_suspended(self, agent_id: str) -> bool:
        return agent_id in self._suspended

    def in_flight(self, agent_id: str, purpose: str) -> bool:
        return (agent_id, purpose) in self._in_flight

    @property
    def pending_results(self) -> int:
        return len(self._inbox)

    # ------------------------------------------------------------------
    # Tick loop
    # ------------------------------------------------------------------

    def step(self, dt: Optional[float] = None) -> None:
        """Advance the whole village by one tick of ``dt`` simulated seconds.

        Must run inside an event loop whenever it may start reasoner tasks.
        """
        dt = 1.0 / Config.TICK_RATE_HZ if dt is None else dt
        self.tick += 1
        self._drain_inbox()

        for agent_id in list(self._agents):
            agent = self._agents[agent_id]
            suspended = self.is_suspended(agent_id)
            if not suspended:
                advance_needs(agent, dt, self.needs_config)

            updated = advance_agent(agent, self.tile_map, dt, suspended, speed=self.move_speed)
            self._agents[agent_id] = updated

            # Replacing the plan resets the cursor, which a frozen agent must keep
            if not suspended and updated.plan.is_exhausted:
                self._replan(updated)

    async def run(self, num_ticks: int, *, dt: Optional[float] = None, realtime: bool = False) -> Dict[str, Any]:
        """Step ``num_ticks`` times, yielding to the event loop between ticks.

        With ``realtime`` the loop sleeps one tick length between steps;
        otherwise it only yields so reasoner tasks can make progress.
        """
        dt = 1.0 / Config.TICK_RATE_HZ if dt is None else dt
        log_info(
            f"Starting village: {len(self._agents)} agents, {num_ticks} ticks, "
            f"day {self.day}, reasoning {'on' if self.use_ai else 'off'}"
        )
        for _ in range(num_ticks):
            self.step(dt)
            await asyncio.sleep(dt if realtime else 0)
        log_success(f"Ran {num_ticks} ticks (tick {self.tick}, day {self.day})")
        return {"tick": self.tick, "day": self.day, "agents": self.agents}

    async def flush(self) -> None:
        """Wait for every outstanding reasoner task and apply the results."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if pending:
                await asyncio.gather(*pending)
            self._drain_inbox()
            if all(task.done() for task in self._tasks):
                break

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def _replan(self, agent: Agent) -> None:
        cognition = self.cognition_for(agent.agent_id)
        if not wants_reasoned_plan(self.day, self.use_ai, cognition):
            agent.replace_plan(cognition.static_planner.generate_plan(agent, rng=self.rng))
            return
        if self.in_flight(agent.agent_id, PURPOSE_PLAN):
            return

        day = self.day
        self._schedule(
            agent.agent_id,
            PURPOSE_PLAN,
            lambda: cognition.planner.generate_plan(agent, day, self.reasoner, rng=self.rng),
        )

    # ------------------------------------------------------------------
    # Memories
    # ------------------------------------------------------------------

    def observe(
        self,
        agent_id: str,
        text: str,
        kind: MemoryKind,
        related_entity_id: Optional[str] = None,
        *,
        importance: Optional[int] = None,
    ) -> Optional[Memory]:
        """Record something the agent experienced.

        Returns the memory when its importance is already known, or ``None``
        when it is waiting on an importance score and will land on a later
        tick. While a score is pending, later memories queue behind it so the
        log stays in observation order.
        """
        agent = self.agent(agent_id)
        day = self.day
        scoring = self.in_flight(agent_id, PURPOSE_MEMORY)

        if importance is None and not self.use_ai:
            importance = OFFLINE_IMPORTANCE
        if importance is None and scoring:
            importance = AMBIENT_IMPORTANCE

        if importance is not None:
            memory = Memory(
                text=text,
                day=day,
                importance=clamp_importance(importance),
                kind=kind,
                related_entity_id=related_entity_id,
            )
            if scoring:
                self._held.setdefault(agent_id, []).append(memory)
                return memory
            return append_memory(agent, memory)

        async def _score() -> Memory:
            score = await score_importance(text, self.reasoner)
            return Memory(text=text, day=day, importance=score, kind=kind, related_entity_id=related_entity_id)

        self._schedule(agent_id, PURPOSE_MEMORY, _score)
        return None

    def _release_held(self, agent_id: str) -> None:
        agent = self._agents[agent_id]
        for memory in self._held.pop(agent_id, []):
            append_memory(agent, memory)

    async def _settle_memories(self, agent_id: str) -> Agent:
        """Wait out the agent's pending score; return the agent with every
        observed memory in place, without touching the live log."""
        task = self._task_for.get((agent_id, PURPOSE_MEMORY))
        if task is not None and not task.done():
            await asyncio.wait([task])

        waiting = [
            result.payload
            for result in self._inbox
            if result.agent_id == agent_id and result.purpose == PURPOSE_MEMORY and result.payload is not None
        ]
        waiting.extend(self._held.get(agent_id, []))
        agent = self.agent(agent_id)
        if not waiting:
            return agent
        return agent.model_copy(update={"memories": [*agent.memories, *waiting]})

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def begin_dialogue(self, agent_id: str) -> None:
        """Freeze the agent in place until ``end_dialogue``."""
        self.agent(agent_id)
        self._suspended.add(agent_id)

    def end_dialogue(self, agent_id: str) -> None:
        self._suspended.discard(agent_id)

    async def greet(self, agent_id: str) -> str:
        return await generate_greeting(
            self.agent(agent_id), self.reasoner, self.cognition_for(agent_id).prompt_library
        )

    async def reply(
        self,
        agent_id: str,
        player_input: str,
        history: Sequence[DialogueTurn],
        target_name: str,
        target_id: str,
    ) -> AsyncIterator[str]:
        """Stream the agent's reply; with reasoning on, a finished exchange
        is remembered as a dialogue memory about ``target_id``."""
        parts: List[str] = []
        async for chunk in stream_dialogue(
            self.agent(agent_id),
            player_input,
            history,
            target_name,
            target_id,
            self.reasoner,
            self.cognition_for(agent_id).prompt_library,
        ):
            parts.append(chunk)
            yield chunk

        if self.use_ai:
            self.observe(
                agent_id,
                f'{target_name} said: "{player_input}". I replied: "{"".join(parts)}"',
                "dialogue",
                target_id,
            )

    async def ambient_exchange(self, first_id: str, second_id: str) -> Tuple[str, str]:
        return await generate_ambient_dialogue(
            self.agent(first_id),
            self.agent(second_id),
            self.reasoner,
            self.cognition_for(first_id).prompt_library,
        )

    def conclude_conversation(
        self,
        agent_id: str,
        target_id: str,
        target_name: str,
        transcript: str,
    ) -> None:
        """Turn a finished conversation into relationship changes and a memory.

        With reasoning off, no analyzer, or an analysis already running for
        this agent, the neutral outcome (no change, "Talked to <name>") is
        applied at once.
        """
        agent = self.agent(agent_id)
        social = self.cognition_for(agent_id).social
        fallback = SocialAnalysis(summary=f"Talked to {target_name}")

        if not self.use_ai or social is None or self.in_flight(agent_id, PURPOSE_RELATIONSHIP):
            self._apply_social(agent_id, (target_id, fallback), self.day)
            return

        async def _analyze() -> Tuple[str, SocialAnalysis]:
            return target_id, await social.analyze(agent, target_name, transcript, self.reasoner)

        self._schedule(agent_id, PURPOSE_RELATIONSHIP, _analyze)

    def _apply_social(self, agent_id: str, payload: Tuple[str, SocialAnalysis], day: int) -> None:
        target_id, analysis = payload
        apply_relationship_delta(
            self.agent(agent_id),
            target_id,
            trust=analysis.trust_change,
            respect=analysis.respect_change,
            day=day,
        )
        self.observe(agent_id, analysis.summary, "dialogue", target_id)

    # ------------------------------------------------------------------
    # Day boundary
    # ------------------------------------------------------------------

    def end_day(self) -> None:
        """Start reflection for every agent on the day just ended, then roll over.

        Each reflection first waits for that agent's pending importance score,
        so the day's last observations are part of what it reflects on.
        """
        ended = self.day
        if self.use_ai:
            for agent_id in self._agents:
                engine = self.cognition_for(agent_id).reflection
                if engine is None:
                    continue

                async def _reflect(agent_id: str = agent_id, engine=engine) -> List[str]:
                    agent = await self._settle_memories(agent_id)
                    return await engine.generate_insights(agent, ended, self.reasoner)

                self._schedule(agent_id, PURPOSE_REFLECTION, _reflect, day=ended)
        self.day += 1
        log_info(f"Day {ended} ended; now day {self.day}")

    # ------------------------------------------------------------------
    # Task plumbing
    # ------------------------------------------------------------------

    def _schedule(
        self,
        agent_id: str,
        purpose: str,
        factory: Callable[[], Awaitable[Any]],
        *,
        day: Optional[int] = None,
    ) -> bool:
        """Start a reasoner task unless one is already out for this key."""
        key = (agent_id, purpose)
        if key in self._in_flight:
            log_deterministic(f"[Simulation] {agent_id}/{purpose} already in flight; skipping")
            return False

        loop = asyncio.get_running_loop()
        self._in_flight.add(key)
        task = loop.create_task(self._run_task(key, factory, self.day if day is None else day))
        self._tasks.add(task)
        self._task_for[key] = task
        task.add_done_callback(self._tasks.discard)
        log_llm(f"[Simulation] Requested {purpose} for {agent_id}")
        return True

    async def _run_task(self, key: TaskKey, factory: Callable[[], Awaitable[Any]], day: int) -> None:
        agent_id, purpose = key
        try:
            payload = await factory()
        except asyncio.CancelledError:
            self._in_flight.discard(key)
            raise
        except Exception as exc:
            # Stages handle ReasoningError themselves; anything else is logged and dropped
            log_error(f"[Simulation] {purpose} task for {agent_id} failed: {exc!r}")
            if purpose != PURPOSE_MEMORY:
                self._in_flight.discard(key)
                return
            # Still delivered, empty, so the memories held behind it are released
            payload = None
        self._inbox.append(ReasonerResult(agent_id=agent_id, purpose=purpose, payload=payload, day=day))

    def _drain_inbox(self) -> None:
        results, self._inbox = self._inbox, []
        for result in results:
            self._in_flight.discard((result.agent_id, result.purpose))
            if result.agent_id not in self._agents:
                continue
            self._apply(result)

    def _apply(self, result: ReasonerResult) -> None:
        agent = self._agents[result.agent_id]
        if result.purpose == PURPOSE_PLAN:
            agent.replace_plan(result.payload)
        elif result.purpose == PURPOSE_MEMORY:
            if result.payload is not None:
                append_memory(agent, result.payload)
            self._release_held(result.agent_id)
        elif result.purpose == PURPOSE_RELATIONSHIP:
            self._apply_social(result.agent_id, result.payload, result.day)
        elif result.purpose == PURPOSE_REFLECTION:
            apply_reflection(agent, result.day, result.payload)
        else:
            log_error(f"[Simulation] Dropping result with unknown purpose '{result.purpose}'")

    async def cancel_pending(self) -> None:
        """Cancel outstanding reasoner tasks and discard their results.

        Memories held behind a cancelled score are stored, not discarded.
        """
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
        self._inbox.clear()
        self._task_for.clear()
        for agent_id in list(self._held):
            self._release_held(agent_id)


__all__ = [
    "AMBIENT_IMPORTANCE",
    "OFFLINE_IMPORTANCE",
    "PURPOSE_MEMORY",
    "PURPOSE_PLAN",
    "PURPOSE_REFLECTION",
    "PURPOSE_RELATIONSHIP",
    "ReasonerResult",
    "Simulation",
]
