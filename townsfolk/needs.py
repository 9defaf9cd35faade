"""Needs decay and relationship bookkeeping.

Both are pure arithmetic over the agent record. Needs only ever move through
``decay_needs`` / ``replenish`` and relationships through
``apply_relationship_delta``, so every value stays clamped to [0, 100].
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from townsfolk.config import Config
from townsfolk.schemas import Agent, Needs, Relationship

NeedName = Literal["hunger", "social", "energy"]

NEED_MIN = 0.0
NEED_MAX = 100.0
# Largest trust/respect/romance swing a single interaction may cause
MAX_RELATIONSHIP_DELTA = 10.0


def clamp(value: float, low: float = NEED_MIN, high: float = NEED_MAX) -> float:
    return max(low, min(high, value))


@dataclass
class NeedsDecayConfig:
    """How fast needs fall: each drops by its rate once per interval."""

    interval_seconds: float = field(default_factory=lambda: Config.NEEDS_DECAY_INTERVAL_SECONDS)
    hunger_rate: float = field(default_factory=lambda: Config.HUNGER_DECAY_RATE)
    social_rate: float = field(default_factory=lambda: Config.SOCIAL_DECAY_RATE)
    energy_rate: float = field(default_factory=lambda: Config.ENERGY_DECAY_RATE)

    def __post_init__(self) -> None:
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")


def decay_needs(needs: Needs, intervals: int, config: NeedsDecayConfig) -> Needs:
    if intervals <= 0:
        return needs
    return Needs(
        hunger=clamp(needs.hunger - config.hunger_rate * intervals),
        social=clamp(needs.social - config.social_rate * intervals),
        energy=clamp(needs.energy - config.energy_rate * intervals),
    )


def advance_needs(agent: Agent, dt: float, config: NeedsDecayConfig) -> None:
    """Accumulate ``dt`` and apply one decay step per whole elapsed interval."""
    agent.needs_timer += max(0.0, dt)
    intervals = int(agent.needs_timer // config.interval_seconds)
    if intervals:
        agent.needs_timer -= intervals * config.interval_seconds
        agent.needs = decay_needs(agent.needs, intervals, config)


def replenish(needs: Needs, need_name: NeedName, amount: float) -> Needs:
    """Raise (or with a negative amount, lower) one need, clamped."""
    current = getattr(needs, need_name)
    return needs.model_copy(update={need_name: clamp(current + amount)})


def get_relationship(agent: Agent, target_id: str, day: Optional[int] = None) -> Relationship:
    """Fetch the agent's record for ``target_id``, creating a neutral one if absent."""
    relationship = agent.relationships.get(target_id)
    if relationship is None:
        relationship = Relationship(entity_id=target_id, last_interaction_day=day or 0)
        agent.relationships[target_id] = relationship
    return relationship


def apply_relationship_delta(
    agent: Agent,
    target_id: str,
    *,
    trust: float = 0.0,
    respect: float = 0.0,
    romance: float = 0.0,
    day: int,
) -> Relationship:
    current = get_relationship(agent, target_id, day)

    def _shift(value: float, delta: float) -> float:
        return clamp(value + clamp(delta, -MAX_RELATIONSHIP_DELTA, MAX_RELATIONSHIP_DELTA))

    updated = current.model_copy(
        update={
            "trust": _shift(current.trust, trust),
            "respect": _shift(current.respect, respect),
            "romance": _shift(current.romance, romance),
            "last_interaction_day": max(current.last_interaction_day, day),
        }
    )
    agent.relationships[target_id] = updated
    return updated


__all__ = [
    "NeedName",
    "NeedsDecayConfig",
    "clamp",
    "decay_needs",
    "advance_needs",
    "replenish",
    "get_relationship",
    "apply_relationship_delta",
]
