"""Planning module.

Turns a villager into a short queue of actions. Two flavours exist:

- ``StaticPlanner`` picks a fixed three-stop routine by role. It never
  fails and never calls the reasoner, so it doubles as the day-one plan and
  the plan used whenever reasoning is disabled.
- ``LLMPlanner`` (see ``llm.py``) asks the reasoner for a plan shaped by
  needs and memories.

Both resolve named locations through ``LOCATIONS`` and scatter the final
target with ``jitter`` so villagers sharing a destination do not stack on
a single tile.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Union

from townsfolk.logging_utils import log_deterministic
from townsfolk.reasoner import Reasoner
from townsfolk.schemas import Agent, MoveAction, Position, WaitAction

PlannedAction = Union[MoveAction, WaitAction]

LOCATIONS: Dict[str, Position] = {
    "Bakery": Position(x=28, y=24),
    "Farm": Position(x=12, y=24),
    "Market": Position(x=32, y=33),
    "Castle": Position(x=38, y=16),
    "Home": Position(x=24, y=26),
    "Guard Post": Position(x=22, y=38),
    "Church": Position(x=11, y=16),
    "Mill": Position(x=6, y=28),
    "Forge": Position(x=36, y=33),
    "Tavern": Position(x=30, y=28),
}

# Where unknown location names send a villager (roughly the village centre)
DEFAULT_LOCATION = Position(x=25, y=25)

# Targets land uniformly within this many tiles of the location on each axis
PLAN_JITTER_RADIUS = 1.5


def resolve_location(name: str) -> Position:
    return LOCATIONS.get(name, DEFAULT_LOCATION)


def jitter(
    position: Position,
    radius: float = PLAN_JITTER_RADIUS,
    rng: Optional[random.Random] = None,
) -> Position:
    """Offset ``position`` by a uniform amount in [-radius, radius] per axis."""
    rng = rng or random
    return Position(
        x=position.x + rng.uniform(-radius, radius),
        y=position.y + rng.uniform(-radius, radius),
    )


@dataclass(frozen=True)
class RoutineStop:
    location: str
    description: str
    duration: float


STATIC_ROUTINES: Dict[str, Sequence[RoutineStop]] = {
    "Farmer": (
        RoutineStop("Farm", "Working the fields", 60),
        RoutineStop("Home", "Eating lunch", 20),
        RoutineStop("Home", "Resting at home", 30),
    ),
    "Baker": (
        RoutineStop("Bakery", "Baking bread", 50),
        RoutineStop("Market", "Eating lunch", 20),
        RoutineStop("Market", "Selling at market", 40),
    ),
    "Guard": (
        RoutineStop("Guard Post", "Patrolling", 60),
        RoutineStop("Castle", "Checking Castle", 40),
        RoutineStop("Market", "Break time", 20),
    ),
}

DEFAULT_ROUTINE: Sequence[RoutineStop] = (
    RoutineStop("Market", "Wandering", 40),
    RoutineStop("Bakery", "Finding food", 20),
    RoutineStop("Home", "Going home", 40),
)


class Planner(Protocol):
    """Protocol for reasoned plan generators.

    Implementations must not raise: a failed request is expressed as a
    fallback plan so the agent always has something to do.
    """

    async def generate_plan(
        self,
        agent: Agent,
        day: int,
        reasoner: Reasoner,
        rng: Optional[random.Random] = None,
    ) -> List[PlannedAction]:
        ...


class StaticPlanner:
    """Role-table planner. Deterministic apart from target jitter."""

    def __init__(self, routines: Optional[Dict[str, Sequence[RoutineStop]]] = None):
        self.routines = routines if routines is not None else STATIC_ROUTINES

    def routine_for(self, role: str) -> Sequence[RoutineStop]:
        return self.routines.get(role, DEFAULT_ROUTINE)

    def generate_plan(self, agent: Agent, rng: Optional[random.Random] = None) -> List[PlannedAction]:
        actions: List[PlannedAction] = [
            MoveAction(
                target=jitter(resolve_location(stop.location), rng=rng),
                description=stop.description,
                duration=stop.duration,
            )
            for stop in self.routine_for(agent.role)
        ]
        log_deterministic(
            f"[Planner] {agent.name} ({agent.role}): "
            + ", ".join(action.description for action in actions)
        )
        return actions


__all__ = [
    "LOCATIONS",
    "DEFAULT_LOCATION",
    "PLAN_JITTER_RADIUS",
    "PlannedAction",
    "Planner",
    "RoutineStop",
    "STATIC_ROUTINES",
    "DEFAULT_ROUTINE",
    "StaticPlanner",
    "jitter",
    "resolve_location",
]
