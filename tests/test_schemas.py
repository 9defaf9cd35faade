"""Tests for core schema invariants."""

import pytest
from pydantic import TypeAdapter, ValidationError

from townsfolk.schemas import Action, Agent, Memory, MoveAction, Needs, Plan, Position, WaitAction


def test_position_rounds_to_cell():
    assert Position(x=2.5, y=3.49).cell() == (2, 3)
    assert Position(x=3.6, y=-0.2).cell() == (4, 0)
    assert Position.from_cell((4, 7)) == Position(x=4.0, y=7.0)
    assert Position(x=0, y=0).distance_to(Position(x=3, y=4)) == 5


def test_needs_and_memory_bounds_are_validated():
    with pytest.raises(ValidationError):
        Needs(hunger=120)
    with pytest.raises(ValidationError):
        Memory(text="x", day=1, importance=11, kind="observation")
    with pytest.raises(ValidationError):
        Memory(text="x", day=1, importance=3, kind="rumour")


def test_memory_is_immutable_and_gets_an_id():
    memory = Memory(text="Met Alice", day=2, importance=4, kind="dialogue", related_entity_id="npc_2")

    assert memory.memory_id.startswith("mem_")
    with pytest.raises(ValidationError):
        memory.importance = 9


def test_actions_dispatch_on_kind():
    adapter = TypeAdapter(Action)

    move = adapter.validate_python({"kind": "move", "target": {"x": 3, "y": 4}, "description": "Go"})
    wait = adapter.validate_python({"kind": "wait", "duration": 5})

    assert isinstance(move, MoveAction)
    assert move.duration is None
    assert isinstance(wait, WaitAction)
    with pytest.raises(ValidationError):
        adapter.validate_python({"kind": "wait", "duration": -1})


def test_plan_cursor_never_passes_the_end():
    plan = Plan(actions=[WaitAction(duration=1)])

    assert plan.current_action() == WaitAction(duration=1)
    advanced = plan.advance()
    assert advanced.is_exhausted
    assert advanced.current_action() is None
    assert advanced.advance().cursor == 1
    assert plan.cursor == 0


def test_replace_plan_resets_execution_state():
    agent = Agent(agent_id="npc_1", name="Bob", role="Farmer", position=Position(x=0, y=0))
    agent.state = "moving"
    agent.path = [(1, 0)]
    agent.wait_timer = 3.0

    agent.replace_plan([WaitAction(duration=2)])

    assert agent.plan.cursor == 0
    assert len(agent.plan.actions) == 1
    assert (agent.state, agent.path, agent.wait_timer) == ("idle", [], 0.0)


def test_agent_defaults():
    agent = Agent(agent_id="npc_1", name="Bob", role="Farmer", position=Position(x=0, y=0))

    assert agent.needs == Needs(hunger=80, social=80, energy=100)
    assert agent.zone == "world"
    assert agent.plan.is_exhausted
    assert agent.last_reflection_day == 0
