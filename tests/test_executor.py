"""Tests for the per-tick action executor."""

import pytest

from townsfolk.cognition import advance_agent
from townsfolk.environment import TileGrid, TileMap
from townsfolk.schemas import Agent, MoveAction, Position, WaitAction


def _open_map(size: int = 10) -> TileMap:
    return TileMap(zones={"world": TileGrid.empty(size, size)})


def _agent(actions, **kwargs) -> Agent:
    agent = Agent(agent_id="npc_1", name="Bob", role="Farmer", position=Position(x=0, y=0), **kwargs)
    agent.replace_plan(actions)
    return agent


def _run(agent: Agent, tile_map: TileMap, dt: float, ticks: int, suspended: bool = False) -> Agent:
    for _ in range(ticks):
        agent = advance_agent(agent, tile_map, dt, suspended, speed=1.0)
    return agent


@pytest.mark.parametrize("dt", [1 / 60, 0.1, 0.5, 1.0, 2.5, 5.0])
def test_wait_completes_after_duration_at_any_tick_size(dt):
    tile_map = _open_map()
    ticks = round(5.0 / dt)
    agent = _agent([WaitAction(duration=5)])

    agent = _run(agent, tile_map, dt, ticks - 1)
    if ticks > 1:
        assert agent.state == "waiting"
        assert agent.plan.cursor == 0

    agent = _run(agent, tile_map, dt, 1)
    assert agent.state == "idle"
    assert agent.plan.cursor == 1
    assert agent.plan.is_exhausted


def test_move_walks_path_and_completes():
    tile_map = _open_map()
    agent = _agent([MoveAction(target=Position(x=3, y=0))])

    agent = _run(agent, tile_map, 0.5, 1)
    assert agent.state == "moving"
    assert agent.path == [(1, 0), (2, 0), (3, 0)]
    assert agent.position.x == pytest.approx(0.5)

    agent = _run(agent, tile_map, 0.5, 4)
    assert agent.state == "moving"
    assert agent.plan.cursor == 0

    agent = _run(agent, tile_map, 0.5, 1)
    assert agent.state == "idle"
    assert agent.plan.cursor == 1
    assert agent.position == Position(x=3, y=0)
    assert agent.facing == "right"
    assert agent.path == []


def test_unreachable_target_completes_immediately():
    grid = TileGrid.empty(15, 15)
    for x in range(4, 11):
        for y in range(4, 11):
            grid = grid.with_tile(x, y, "wall_stone")
    tile_map = TileMap(zones={"world": grid})
    agent = _agent([MoveAction(target=Position(x=7, y=7)), WaitAction(duration=1)])

    agent = _run(agent, tile_map, 0.5, 1)

    assert agent.plan.cursor == 1
    assert agent.position == Position(x=0, y=0)
    assert agent.state == "idle"


def test_unknown_zone_completes_move_immediately():
    agent = _agent([MoveAction(target=Position(x=5, y=5))], zone="cellar")

    agent = _run(agent, _open_map(), 0.5, 1)

    assert agent.plan.cursor == 1
    assert agent.position == Position(x=0, y=0)


def test_input_agent_is_not_mutated():
    tile_map = _open_map()
    agent = _agent([MoveAction(target=Position(x=5, y=0))])
    agent = _run(agent, tile_map, 0.5, 1)
    snapshot = agent.model_copy(deep=True)

    advanced = advance_agent(agent, tile_map, 0.5, False, speed=1.0)

    assert advanced is not agent
    assert agent == snapshot
    assert advanced.path == [(2, 0), (3, 0), (4, 0), (5, 0)]


def test_suspended_agent_keeps_path_and_cursor_then_resumes():
    tile_map = _open_map()
    agent = _agent([MoveAction(target=Position(x=6, y=0)), WaitAction(duration=2)])
    agent = _run(agent, tile_map, 0.5, 3)
    twin = agent.model_copy(deep=True)
    path_before = list(agent.path)

    suspended = _run(agent, tile_map, 0.5, 100, suspended=True)

    assert suspended is agent
    assert suspended.path == path_before
    assert suspended.plan.cursor == 0
    assert suspended.position == twin.position

    resumed = _run(suspended, tile_map, 0.5, 12)
    expected = _run(twin, tile_map, 0.5, 12)
    assert resumed == expected
    assert resumed.position == Position(x=6, y=0)


def test_cooldowns_count_down_to_zero():
    agent = _agent([], interaction_cooldown=1.0, portal_cooldown=0.3)

    agent = _run(agent, _open_map(), 0.4, 1)
    assert agent.interaction_cooldown == pytest.approx(0.6)
    assert agent.portal_cooldown == 0

    agent = _run(agent, _open_map(), 0.4, 2)
    assert agent.interaction_cooldown == 0


def test_exhausted_plan_leaves_agent_idle_in_place():
    agent = _agent([])
    agent.state = "waiting"

    agent = _run(agent, _open_map(), 1.0, 3)

    assert agent.state == "idle"
    assert agent.position == Position(x=0, y=0)
    assert agent.plan.is_exhausted
