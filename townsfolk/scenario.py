"""
Scenario loading for JSON-defined villages.

A scenario file declares the roster and the tile zones a simulation starts
from:

```json
{
  "name": "Riverside",
  "description": "...",
  "day": 1,
  "agents": [
    {
      "agent_id": "npc_1", "name": "Bob", "role": "Farmer",
      "position": {"x": 12, "y": 25},
      "personality": {"traits": ["Hardworking"], "background": "...", "goal": "..."},
      "needs": {"hunger": 80, "social": 80, "energy": 100}
    }
  ],
  "zones": {
    "world": {"rows": ["....", ".##.", "...."], "legend": {".": "grass", "#": "wall_stone"}}
  }
}
```

Design philosophy:
- Scenarios are data, not code
- Everything is validated up front so a bad file fails at load time with a
  ``ScenarioError`` instead of mid-simulation
- Agents may only reference zones the file declares

Usage:
    loader = ScenarioLoader()
    scenario = loader.load("village")
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from .config import Config
from .environment import TileGrid, TileGridState, TileMap, TileMapState
from .schemas import Agent, Needs, Personality, Position

DEFAULT_ZONE = "world"
# Size of the open field used when a scenario declares no zones
DEFAULT_MAP_SIZE = 50


class ScenarioError(ValueError):
    """Raised when a scenario file is malformed."""


class AgentEntry(BaseModel):
    agent_id: str
    name: str
    role: str
    position: Position
    zone: str = DEFAULT_ZONE
    personality: Personality = Field(default_factory=Personality)
    needs: Needs = Field(default_factory=Needs)

    def to_agent(self) -> Agent:
        return Agent(
            agent_id=self.agent_id,
            name=self.name,
            role=self.role,
            personality=self.personality,
            zone=self.zone,
            position=self.position,
            needs=self.needs,
        )


class ScenarioFile(BaseModel):
    name: str
    description: str = ""
    day: int = Field(1, ge=1)
    agents: List[AgentEntry] = Field(..., min_length=1)
    zones: Dict[str, TileGridState] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_references(self) -> "ScenarioFile":
        seen: set[str] = set()
        for entry in self.agents:
            if entry.agent_id in seen:
                raise ValueError(f"duplicate agent_id '{entry.agent_id}'")
            seen.add(entry.agent_id)
            if self.zones and entry.zone not in self.zones:
                raise ValueError(
                    f"agent '{entry.agent_id}' is placed in unknown zone '{entry.zone}'"
                )
        return self


@dataclass
class Scenario:
    """A loaded scenario, ready to hand to ``Simulation``."""

    name: str
    description: str
    day: int
    agents: List[Agent]
    tile_map: TileMap


def open_field_map(width: int = DEFAULT_MAP_SIZE, height: int = DEFAULT_MAP_SIZE) -> TileMap:
    """A single walkable grass zone; the map used when none is declared."""
    return TileMap(zones={DEFAULT_ZONE: TileGrid.empty(width, height)})


class ScenarioLoader:
    """Load and validate village scenarios from JSON files.

    Directory structure:
    - Default: ``Config.SCENARIOS_DIR`` ({PROJECT_ROOT}/examples/scenarios)
    - Override via constructor: ScenarioLoader(Path("/custom/scenarios"))
    - Scenario files: {scenario_name}.json
    """

    def __init__(self, scenarios_dir: Optional[Path] = None):
        self.scenarios_dir = scenarios_dir or Config.SCENARIOS_DIR

    def load(self, scenario_name: str) -> Scenario:
        """Load ``{scenario_name}.json`` from the scenarios directory.

        Raises:
            FileNotFoundError: If the scenario file does not exist
            ScenarioError: If the file is not valid JSON or fails validation
        """
        scenario_path = self.scenarios_dir / f"{scenario_name}.json"
        if not scenario_path.exists():
            raise FileNotFoundError(
                f"Scenario '{scenario_name}' not found at {scenario_path}"
            )
        return self.load_path(scenario_path)

    def load_path(self, path: Path) -> Scenario:
        try:
            data = json.loads(Path(path).read_text())
        except json.JSONDecodeError as exc:
            raise ScenarioError(f"{path} is not valid JSON: {exc}") from exc
        return self.parse(data)

    def parse(self, data: Dict[str, Any]) -> Scenario:
        """Validate raw scenario data and build runtime objects."""
        if not isinstance(data, dict):
            raise ScenarioError("Scenario root must be a JSON object")
        try:
            parsed = ScenarioFile.model_validate(data)
        except ValidationError as exc:
            raise ScenarioError(f"Invalid scenario: {exc}") from exc

        tile_map = (
            TileMapState(zones=parsed.zones).to_tile_map() if parsed.zones else open_field_map()
        )
        return Scenario(
            name=parsed.name,
            description=parsed.description,
            day=parsed.day,
            agents=[entry.to_agent() for entry in parsed.agents],
            tile_map=tile_map,
        )


# Built-in roster ---------------------------------------------------------------

_VILLAGERS: List[Dict[str, Any]] = [
    {
        "agent_id": "npc_1", "name": "Bob", "role": "Farmer", "position": (12, 25),
        "traits": ["Hardworking", "Simple", "Superstitious"],
        "background": "Has worked this land for 40 years. Distrusts magic.",
        "goal": "To have a bountiful harvest and pay his taxes.",
    },
    {
        "agent_id": "npc_2", "name": "Alice", "role": "Baker", "position": (28, 25),
        "traits": ["Cheerful", "Gossip", "Generous"],
        "background": "Knows everyone's secrets because everyone buys her bread.",
        "goal": "To bake the perfect cake for the King one day.",
    },
    {
        "agent_id": "npc_3", "name": "Lord Edmund", "role": "Noble", "position": (38, 18),
        "traits": ["Arrogant", "Educated", "Anxious"],
        "background": "Inherited a crumbling estate. Worried about peasant revolts.",
        "goal": "To restore his family's wealth and status.",
    },
    {
        "agent_id": "npc_4", "name": "Guard Tom", "role": "Guard", "position": (22, 38),
        "traits": ["Loyal", "Lazy", "Hungry"],
        "background": "Former soldier who took a quiet village job.",
        "goal": "To get through the shift without trouble and find a snack.",
    },
    {
        "agent_id": "npc_5", "name": "Merchant Jane", "role": "Merchant", "position": (32, 33),
        "traits": ["Shrewd", "Charismatic", "Opportunist"],
        "background": "Travels between cities. Sees value where others don't.",
        "goal": "To amass enough gold to buy a noble title.",
    },
    {
        "agent_id": "npc_6", "name": "Friar Tuck", "role": "Priest", "position": (11, 17),
        "traits": ["Kind", "Jovial", "Pious"],
        "background": "Takes care of the village church and the poor.",
        "goal": "To guide the villagers spiritually.",
    },
    {
        "agent_id": "npc_7", "name": "Miller John", "role": "Miller", "position": (6, 29),
        "traits": ["Sturdy", "Loud", "Honest"],
        "background": "Grinds grain for the whole village. Covered in flour.",
        "goal": "To keep the mill running smoothly.",
    },
    {
        "agent_id": "npc_8", "name": "Blacksmith Gendry", "role": "Blacksmith", "position": (36, 33),
        "traits": ["Strong", "Quiet", "Skilled"],
        "background": "Forges tools and horseshoes. Rarely speaks.",
        "goal": "To craft a masterwork sword.",
    },
    {
        "agent_id": "npc_9", "name": "Peasant Mary", "role": "Farmhand", "position": (18, 21),
        "traits": ["Optimistic", "Tired", "Dreamer"],
        "background": "Helps Bob on the farm. Dreams of the big city.",
        "goal": "To save enough coins to travel.",
    },
    {
        "agent_id": "npc_10", "name": "Beggar Tom", "role": "Beggar", "position": (30, 30),
        "traits": ["Cunning", "Desperate", "Observant"],
        "background": "Lost everything in a fire. Now watches everything.",
        "goal": "To survive another winter.",
    },
]


def default_village_agents() -> List[Agent]:
    """Fresh copies of the built-in ten-villager roster."""
    return [
        Agent(
            agent_id=entry["agent_id"],
            name=entry["name"],
            role=entry["role"],
            position=Position.from_cell(entry["position"]),
            personality=Personality(
                traits=list(entry["traits"]),
                background=entry["background"],
                goal=entry["goal"],
            ),
        )
        for entry in _VILLAGERS
    ]


def default_village() -> Scenario:
    return Scenario(
        name="village",
        description="Ten villagers on an open field.",
        day=1,
        agents=default_village_agents(),
        tile_map=open_field_map(),
    )


__all__ = [
    "DEFAULT_ZONE",
    "Scenario",
    "ScenarioError",
    "ScenarioLoader",
    "default_village",
    "default_village_agents",
    "open_field_map",
]
