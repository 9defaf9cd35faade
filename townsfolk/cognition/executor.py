"""Action execution state machine.

``advance_agent`` moves one villager forward by one tick: it walks the
cached path toward the current move target, counts down waits, and advances
the plan cursor when an action completes. It is pure with respect to its
input: the agent passed in is never mutated, a shallow copy is returned.

States::

    idle    -- no action started (or the plan is exhausted)
    moving  -- following ``agent.path`` toward a MoveAction target
    waiting -- accumulating ``wait_timer`` toward a WaitAction duration
"""

from __future__ import annotations

from typing import Optional

from townsfolk.config import Config
from townsfolk.environment import TileMap, find_path
from townsfolk.logging_utils import log_debug
from townsfolk.schemas import Agent, Cell, Facing, MoveAction, Position, WaitAction

# Slack for accumulated float error when comparing wait timers
TIMER_EPSILON = 1e-9


def _facing_toward(current: Facing, dx: float, dy: float) -> Facing:
    if dx == 0 and dy == 0:
        return current
    if abs(dx) > abs(dy):
        return "right" if dx > 0 else "left"
    return "down" if dy > 0 else "up"


def _complete_action(agent: Agent) -> None:
    agent.plan = agent.plan.advance()
    agent.path = []
    agent.wait_timer = 0.0
    agent.state = "idle"


def _step_toward(agent: Agent, cell: Cell, step: float) -> bool:
    """Move up to ``step`` tiles toward ``cell``. Returns True on arrival."""
    dx = cell[0] - agent.position.x
    dy = cell[1] - agent.position.y
    distance = (dx * dx + dy * dy) ** 0.5
    agent.facing = _facing_toward(agent.facing, dx, dy)
    if distance <= step:
        agent.position = Position.from_cell(cell)
        return True
    agent.position = Position(
        x=agent.position.x + dx / distance * step,
        y=agent.position.y + dy / distance * step,
    )
    return False


def _advance_move(agent: Agent, action: MoveAction, tile_map: TileMap, dt: float, speed: float) -> None:
    if agent.state != "moving":
        agent.path = find_path(agent.position, action.target, tile_map.grid(agent.zone))
        if not agent.path:
            log_debug(f"[Executor] {agent.name}: no path to {action.target.cell()}; skipping")
            _complete_action(agent)
            return
        agent.state = "moving"

    if not agent.path:
        _complete_action(agent)
        return

    if _step_toward(agent, agent.path[0], speed * dt):
        agent.path.pop(0)
        if not agent.path:
            _complete_action(agent)


def _advance_wait(agent: Agent, action: WaitAction, dt: float) -> None:
    agent.state = "waiting"
    agent.wait_timer += dt
    if agent.wait_timer + TIMER_EPSILON >= action.duration:
        _complete_action(agent)


def advance_agent(
    agent: Agent,
    tile_map: TileMap,
    dt: float,
    suspended: bool,
    *,
    speed: Optional[float] = None,
) -> Agent:
    """Return ``agent`` advanced by ``dt`` simulated seconds.

    A suspended agent (mid-conversation) is returned unchanged: no movement,
    no cursor change, no timers. An exhausted plan leaves the agent idle in
    place; scheduling the next plan is the caller's job.
    """
    if suspended:
        return agent

    speed = Config.MOVE_SPEED if speed is None else speed
    updated = agent.model_copy(update={"path": list(agent.path)})

    updated.interaction_cooldown = max(0.0, updated.interaction_cooldown - dt)
    updated.portal_cooldown = max(0.0, updated.portal_cooldown - dt)

    action = updated.plan.current_action()
    if action is None:
        updated.state = "idle"
        updated.path = []
        return updated

    if isinstance(action, MoveAction):
        _advance_move(updated, action, tile_map, dt, speed)
    else:
        _advance_wait(updated, action, dt)
    return updated


__all__ = ["advance_agent"]
