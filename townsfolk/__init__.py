"""
Townsfolk - autonomous villagers on a tile world.

Villagers plan their days, walk between locations with grid pathfinding,
remember what happens to them, and reflect each evening. Planning,
importance scoring, reflection and dialogue can be handed to a language
model through the ``Reasoner`` boundary; every one of them has a fixed
fallback, so a village runs the same way with reasoning switched off.
"""

__version__ = "0.1.0"

# Main simulation components
from .orchestrator import AMBIENT_IMPORTANCE, ReasonerResult, Simulation
from .scenario import (
    Scenario,
    ScenarioError,
    ScenarioLoader,
    default_village,
    default_village_agents,
    open_field_map,
)

# Reasoning boundary
from .reasoner import (
    LLMReasoner,
    OfflineReasoner,
    Reasoner,
    ReasoningError,
    build_reasoner,
)

# Memory, needs and relationships
from .memory import (
    RecencyImportanceRetrieval,
    record_memory,
    retrieve_context,
    retrieve_memories,
    score_importance,
)
from .needs import (
    NeedsDecayConfig,
    apply_relationship_delta,
    decay_needs,
    get_relationship,
    replenish,
)

# Cognition
from .cognition import (
    AgentCognition,
    LLMPlanner,
    LLMReflectionEngine,
    LLMSocialAnalyzer,
    StaticPlanner,
    advance_agent,
    build_default_cognition,
    reflect,
    request_plan,
)

# Environment
from .environment import TileClass, TileGrid, TileMap, find_path

# Core schemas
from .schemas import (
    Action,
    Agent,
    Memory,
    MoveAction,
    Needs,
    Personality,
    Plan,
    Position,
    Relationship,
    WaitAction,
)

__all__ = [
    "__version__",
    "Simulation",
    "ReasonerResult",
    "AMBIENT_IMPORTANCE",
    "Scenario",
    "ScenarioError",
    "ScenarioLoader",
    "default_village",
    "default_village_agents",
    "open_field_map",
    "Reasoner",
    "ReasoningError",
    "LLMReasoner",
    "OfflineReasoner",
    "build_reasoner",
    "RecencyImportanceRetrieval",
    "record_memory",
    "retrieve_context",
    "retrieve_memories",
    "score_importance",
    "NeedsDecayConfig",
    "apply_relationship_delta",
    "decay_needs",
    "get_relationship",
    "replenish",
    "AgentCognition",
    "LLMPlanner",
    "LLMReflectionEngine",
    "LLMSocialAnalyzer",
    "StaticPlanner",
    "advance_agent",
    "build_default_cognition",
    "reflect",
    "request_plan",
    "TileClass",
    "TileGrid",
    "TileMap",
    "find_path",
    "Action",
    "Agent",
    "Memory",
    "MoveAction",
    "Needs",
    "Personality",
    "Plan",
    "Position",
    "Relationship",
    "WaitAction",
]
