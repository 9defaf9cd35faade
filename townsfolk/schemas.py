"""
Pydantic schemas for the Townsfolk village simulation.

All data structures owned by the simulation core are defined here.

Design Philosophy:
- One Agent aggregate owns its needs, relationships, memories and plan outright
- Cross-agent references (relationships, related memories) are by id only
- Actions are a tagged union so the executor can dispatch exhaustively on ``kind``
- Field constraints (ge/le) mirror the numeric invariants of the model
"""

from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# Integer tile coordinate (x, y). Paths and tile lookups use cells; agents move
# continuously between them.
Cell = Tuple[int, int]

Facing = Literal["up", "down", "left", "right"]
ExecutionState = Literal["idle", "moving", "waiting"]
MemoryKind = Literal["observation", "dialogue", "reflection"]


# ============================================================================
# Spatial Schemas
# ============================================================================


class Position(BaseModel):
    """Continuous 2D coordinate inside a zone, measured in tiles."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    def cell(self) -> Cell:
        """Round to the grid cell containing this position."""
        return (int(round(self.x)), int(round(self.y)))

    def distance_to(self, other: "Position") -> float:
        return ((self.x - other.x) ** 2 + (self.y - other.y) ** 2) ** 0.5

    @classmethod
    def from_cell(cls, cell: Cell) -> "Position":
        return cls(x=float(cell[0]), y=float(cell[1]))


# ============================================================================
# Needs & Relationships
# ============================================================================


class Needs(BaseModel):
    """Three bounded drives that decay over simulated time.

    0 means starving / lonely / exhausted, 100 means fully satisfied. Values
    are validated to stay in range; ``needs.py`` clamps before constructing.
    """

    hunger: float = Field(80.0, ge=0, le=100)
    social: float = Field(80.0, ge=0, le=100)
    energy: float = Field(100.0, ge=0, le=100)


class Relationship(BaseModel):
    """How one agent feels about another entity (agent or player)."""

    entity_id: str = Field(..., description="Id of the other entity")
    trust: float = Field(50.0, ge=0, le=100)
    respect: float = Field(50.0, ge=0, le=100)
    romance: float = Field(0.0, ge=0, le=100)
    last_interaction_day: int = Field(0, ge=0)


class Personality(BaseModel):
    """Static character sheet used when prompting the reasoner."""

    traits: List[str] = Field(default_factory=list)
    background: str = ""
    goal: str = ""


# ============================================================================
# Memory
# ============================================================================


class Memory(BaseModel):
    """An immutable fact in an agent's memory log.

    Importance is scored once at creation: 1 = routine (walking, eating),
    5 = meaningful conversation, 10 = life-changing. Reflections are recorded
    with an elevated fixed importance instead of being scored.
    """

    model_config = ConfigDict(frozen=True)

    memory_id: str = Field(default_factory=lambda: f"mem_{uuid4().hex[:12]}")
    text: str
    # day is the simulated day the memory was recorded on
    day: int = Field(..., ge=0)
    importance: int = Field(..., ge=1, le=10)
    kind: MemoryKind
    related_entity_id: Optional[str] = None


# ============================================================================
# Actions & Plans
# ============================================================================


class MoveAction(BaseModel):
    """Walk to ``target``. ``duration`` is descriptive and not enforced."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["move"] = "move"
    target: Position
    description: str = ""
    duration: Optional[float] = Field(None, ge=0)


class WaitAction(BaseModel):
    """Stand still for ``duration`` simulated seconds."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["wait"] = "wait"
    duration: float = Field(..., ge=0)
    description: str = ""


Action = Annotated[Union[MoveAction, WaitAction], Field(discriminator="kind")]


class Plan(BaseModel):
    """An ordered queue of actions and a cursor into it.

    The cursor only moves forward; a new plan replaces the old one wholesale
    and starts again at 0. ``cursor == len(actions)`` means exhausted.
    """

    actions: List[Action] = Field(default_factory=list)
    cursor: int = Field(0, ge=0)

    @property
    def is_exhausted(self) -> bool:
        return self.cursor >= len(self.actions)

    def current_action(self) -> Optional[Union[MoveAction, WaitAction]]:
        if self.is_exhausted:
            return None
        return self.actions[self.cursor]

    def advance(self) -> "Plan":
        """Return a copy with the cursor moved one step (never past the end)."""
        return self.model_copy(
            update={"cursor": min(self.cursor + 1, len(self.actions))}
        )


# ============================================================================
# Agent
# ============================================================================


class Agent(BaseModel):
    """One simulated villager.

    Identity and personality are static. Position, plan, execution state and
    the transient timers change tick to tick. Needs change by decay and by
    external events. Memories and relationships only grow.
    """

    agent_id: str = Field(..., description="Stable unique identifier")
    name: str = Field(..., description="Display name")
    role: str = Field(..., description="Profession; selects the static plan")
    personality: Personality = Field(default_factory=Personality)

    zone: str = Field("world", description="Id of the map the agent is on")
    position: Position
    facing: Facing = "down"

    needs: Needs = Field(default_factory=Needs)
    relationships: Dict[str, Relationship] = Field(default_factory=dict)
    memories: List[Memory] = Field(default_factory=list)
    last_reflection_day: int = 0

    plan: Plan = Field(default_factory=Plan)
    state: ExecutionState = "idle"
    # Cached route to the current move target; cleared whenever the action changes
    path: List[Cell] = Field(default_factory=list)
    wait_timer: float = 0.0

    # Transient interaction timers (seconds)
    interaction_cooldown: float = Field(0.0, ge=0)
    portal_cooldown: float = Field(0.0, ge=0)
    needs_timer: float = Field(0.0, ge=0)

    def replace_plan(self, actions: List[Union[MoveAction, WaitAction]]) -> None:
        """Install a fresh plan, resetting the cursor and execution state."""
        self.plan = Plan(actions=list(actions), cursor=0)
        self.path = []
        self.wait_timer = 0.0
        self.state = "idle"
