"""
Memory store for villagers.

Memories are immutable facts appended to ``Agent.memories`` in creation
order. Each one carries an importance score (1-10) assigned once, either by
asking the reasoner to rate it or by the caller supplying a value directly.

Retrieval follows the "generative agents lite" policy:
- the 3 most recent memories
- plus the 3 most important of the rest
- merged and read back in chronological order

Design principle: storage is a plain list on the agent; retrieval policies
are swappable strategies so richer recall (relevance, embeddings) can be
added without touching callers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel

from townsfolk.logging_utils import log_error, log_llm
from townsfolk.reasoner import Reasoner, ReasoningError
from townsfolk.schemas import Agent, Memory, MemoryKind

MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 10

IMPORTANCE_SYSTEM_PROMPT = """Rate the importance of the following memory for a medieval village character on a scale of 1 to 10.
1 = Routine, mundane (Walking, eating, sleeping)
5 = Meaningful conversation or event
10 = Life-changing event, extreme danger, deep realization
Output strict JSON: { "score": number }"""


class ImportanceScore(BaseModel):
    """Structured reply for importance scoring."""

    score: Optional[int] = None


def clamp_importance(value: Optional[float]) -> int:
    """Clamp to [1, 10]; missing or zero scores count as routine (1)."""
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, int(value or MIN_IMPORTANCE)))


async def score_importance(text: str, reasoner: Reasoner) -> int:
    """
    Ask the reasoner how important a memory is.

    Args:
        text: Memory text to rate
        reasoner: Reasoning service to ask

    Returns:
        Importance in [1, 10]. Any reasoner failure or malformed reply
        yields 1.
    """
    try:
        reply = await reasoner.complete(
            IMPORTANCE_SYSTEM_PROMPT,
            f'Memory: "{text}"',
            ImportanceScore,
        )
    except ReasoningError as exc:
        log_error(f"[Memory] Importance scoring failed, defaulting to 1: {exc}")
        return MIN_IMPORTANCE

    if not isinstance(reply, ImportanceScore):
        log_error(f"[Memory] Unexpected importance reply {reply!r}, defaulting to 1")
        return MIN_IMPORTANCE

    score = clamp_importance(reply.score)
    log_llm(f"[Memory] Scored {score}/10: {text[:60]}")
    return score


def append_memory(agent: Agent, memory: Memory) -> Memory:
    """Append an already-built memory to the agent's log."""
    agent.memories.append(memory)
    return memory


async def record_memory(
    agent: Agent,
    text: str,
    kind: MemoryKind,
    day: int,
    related_entity_id: Optional[str] = None,
    *,
    reasoner: Optional[Reasoner] = None,
    importance: Optional[int] = None,
) -> Memory:
    """
    Create a memory, score it, and append it to the agent.

    Passing ``importance`` skips the scoring call entirely (the value is
    still clamped). Without a reasoner and without an explicit importance
    the memory is stored as routine.
    """
    if importance is not None:
        score = clamp_importance(importance)
    elif reasoner is not None:
        score = await score_importance(text, reasoner)
    else:
        score = MIN_IMPORTANCE

    memory = Memory(
        text=text,
        day=day,
        importance=score,
        kind=kind,
        related_entity_id=related_entity_id,
    )
    return append_memory(agent, memory)


class MemoryRetrieval(ABC):
    """Strategy for choosing which memories reach a prompt."""

    @abstractmethod
    def retrieve(self, memories: List[Memory]) -> List[Memory]:
        """Return the selected memories in chronological order."""


class RecencyImportanceRetrieval(MemoryRetrieval):
    """Top-N recent plus top-M important, read back chronologically."""

    def __init__(self, recent: int = 3, important: int = 3):
        self.recent = recent
        self.important = important

    def retrieve(self, memories: List[Memory]) -> List[Memory]:
        indexed = list(enumerate(memories))

        # Newest first: later day wins, then later insertion
        by_recency = sorted(indexed, key=lambda item: (item[1].day, item[0]), reverse=True)
        chosen = by_recency[: self.recent]
        chosen_ids = {index for index, _ in chosen}

        rest = [item for item in indexed if item[0] not in chosen_ids]
        # Most important first; ties go to the more recent memory
        by_importance = sorted(
            rest,
            key=lambda item: (item[1].importance, item[1].day, item[0]),
            reverse=True,
        )
        chosen.extend(by_importance[: self.important])

        chosen.sort(key=lambda item: (item[1].day, item[0]))
        return [memory for _, memory in chosen]


DEFAULT_RETRIEVAL = RecencyImportanceRetrieval()


def retrieve_memories(agent: Agent, strategy: Optional[MemoryRetrieval] = None) -> List[Memory]:
    return (strategy or DEFAULT_RETRIEVAL).retrieve(agent.memories)


def format_memory(memory: Memory) -> str:
    return f"[Day {memory.day}] (Imp: {memory.importance}) {memory.text}"


def retrieve_context(agent: Agent, strategy: Optional[MemoryRetrieval] = None) -> str:
    """Render the retrieved memories as a prompt block."""
    if not agent.memories:
        return "No memories yet."
    lines = [format_memory(memory) for memory in retrieve_memories(agent, strategy)]
    return "MEMORIES:\n" + "\n".join(lines)


def memories_for_day(agent: Agent, day: int, include_reflections: bool = False) -> List[Memory]:
    """Memories recorded on ``day``, in creation order."""
    return [
        memory
        for memory in agent.memories
        if memory.day == day and (include_reflections or memory.kind != "reflection")
    ]


__all__ = [
    "IMPORTANCE_SYSTEM_PROMPT",
    "ImportanceScore",
    "clamp_importance",
    "score_importance",
    "append_memory",
    "record_memory",
    "MemoryRetrieval",
    "RecencyImportanceRetrieval",
    "retrieve_memories",
    "retrieve_context",
    "memories_for_day",
]
