"""Tests for JSON scenario loading."""

import json
from pathlib import Path

import pytest

from townsfolk.environment import TileClass
from townsfolk.scenario import (
    ScenarioError,
    ScenarioLoader,
    default_village,
    default_village_agents,
    open_field_map,
)

BUNDLED_SCENARIOS = Path(__file__).parent.parent / "examples" / "scenarios"


def _scenario_data(**overrides):
    data = {
        "name": "Crossroads",
        "description": "Two villagers and a well",
        "day": 2,
        "agents": [
            {
                "agent_id": "npc_1",
                "name": "Bob",
                "role": "Farmer",
                "position": {"x": 1, "y": 1},
                "personality": {"traits": ["Hardworking"], "goal": "Harvest"},
            },
            {
                "agent_id": "npc_2",
                "name": "Alice",
                "role": "Baker",
                "position": {"x": 3, "y": 1},
                "needs": {"hunger": 20, "social": 60, "energy": 90},
            },
        ],
        "zones": {"world": {"rows": [".....", ".#...", "....."]}},
    }
    data.update(overrides)
    return data


def test_load_builds_agents_and_map(tmp_path):
    (tmp_path / "crossroads.json").write_text(json.dumps(_scenario_data()))

    scenario = ScenarioLoader(tmp_path).load("crossroads")

    assert scenario.name == "Crossroads"
    assert scenario.day == 2
    assert [agent.agent_id for agent in scenario.agents] == ["npc_1", "npc_2"]
    assert scenario.agents[0].personality.traits == ["Hardworking"]
    assert scenario.agents[1].needs.hunger == 20
    assert scenario.tile_map.classify("world", 1, 1) is TileClass.BLOCKING
    assert scenario.tile_map.classify("world", 2, 2) is TileClass.WALKABLE


def test_missing_scenario_raises_file_not_found(tmp_path):
    with pytest.raises(FileNotFoundError):
        ScenarioLoader(tmp_path).load("nowhere")


def test_invalid_json_raises_scenario_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{ not json")

    with pytest.raises(ScenarioError):
        ScenarioLoader(tmp_path).load_path(path)


@pytest.mark.parametrize(
    "overrides",
    [
        {"agents": []},
        {"day": 0},
        {"zones": {"tavern": {"rows": ["..."]}}},
        {"zones": {"world": {"rows": ["...", ".."]}}},
    ],
)
def test_invalid_scenarios_are_rejected(overrides):
    with pytest.raises(ScenarioError):
        ScenarioLoader().parse(_scenario_data(**overrides))


def test_duplicate_agent_ids_are_rejected():
    data = _scenario_data()
    data["agents"][1]["agent_id"] = "npc_1"

    with pytest.raises(ScenarioError, match="duplicate"):
        ScenarioLoader().parse(data)


def test_non_object_root_is_rejected():
    with pytest.raises(ScenarioError):
        ScenarioLoader().parse(["not", "a", "scenario"])


def test_scenario_without_zones_gets_open_field():
    scenario = ScenarioLoader().parse(_scenario_data(zones={}))

    grid = scenario.tile_map.grid("world")
    assert (grid.width, grid.height) == (50, 50)
    assert scenario.tile_map.classify("world", 49, 49) is TileClass.WALKABLE


def test_default_village_has_ten_villagers():
    scenario = default_village()

    assert len(scenario.agents) == 10
    assert len({agent.agent_id for agent in scenario.agents}) == 10
    assert scenario.agents[0].name == "Bob"
    assert scenario.tile_map.has_zone("world")


def test_default_roster_returns_fresh_copies():
    first = default_village_agents()
    first[0].memories.clear()
    first[0].needs = first[0].needs.model_copy(update={"hunger": 1})

    assert default_village_agents()[0].needs.hunger == 80


def test_bundled_village_scenario_loads():
    scenario = ScenarioLoader(BUNDLED_SCENARIOS).load("village")

    assert scenario.name == "Riverside Hamlet"
    assert {agent.name for agent in scenario.agents} >= {"Bob", "Alice"}
    grid = scenario.tile_map.grid("world")
    assert (grid.width, grid.height) == (50, 50)
    for agent in scenario.agents:
        assert grid.is_walkable(*agent.position.cell())


def test_open_field_map_size():
    grid = open_field_map(8, 4).grid("world")

    assert (grid.width, grid.height) == (8, 4)
