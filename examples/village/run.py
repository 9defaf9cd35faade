"""A day in the hamlet: four villagers walk their routines and reflect.

Run with static plans only (no reasoner):

    python -m examples.village.run --days 2

Enable reasoned plans, importance scoring and reflection (requires
LLM_PROVIDER/LLM_MODEL and an API key, or LLM_PROVIDER=ollama):

    python -m examples.village.run --llm --days 2

Use the built-in ten-villager roster on an open field instead:

    python -m examples.village.run --roster
"""

from __future__ import annotations

import argparse
import asyncio
import random

from townsfolk import (
    ScenarioLoader,
    Simulation,
    build_reasoner,
    default_village,
    retrieve_context,
)
from townsfolk.config import Config
from townsfolk.logging_utils import log_info


def _print_positions(sim: Simulation) -> None:
    for agent in sim.agents:
        action = agent.plan.current_action()
        doing = action.description if action is not None else "(planning)"
        x, y = agent.position.cell()
        print(f"  {agent.name:<12} ({x:>2},{y:>2}) {agent.state:<7} {doing}")


async def main(days: int, ticks_per_day: int, use_llm: bool, roster: bool, seed: int) -> None:
    scenario = default_village() if roster else ScenarioLoader().load("village")
    if use_llm:
        Config.validate()
        print(Config.display())

    sim = Simulation(
        scenario.agents,
        scenario.tile_map,
        build_reasoner(use_llm),
        use_ai=use_llm,
        day=scenario.day,
        rng=random.Random(seed),
    )

    dt = 1.0 / Config.TICK_RATE_HZ
    for _ in range(days):
        log_info(f"=== Day {sim.day}: {scenario.name} ===")
        await sim.run(ticks_per_day, dt=dt)
        _print_positions(sim)

        for agent in sim.agents:
            x, y = agent.position.cell()
            sim.observe(agent.agent_id, f"Finished the day near ({x}, {y}).", "observation")
        sim.end_day()
        await sim.flush()

    print()
    for agent in sim.agents:
        print(f"{agent.name}:")
        print("  " + retrieve_context(agent).replace("\n", "\n  "))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the hamlet simulation")
    parser.add_argument("--days", type=int, default=1)
    parser.add_argument("--ticks", type=int, default=3600, help="Ticks per day")
    parser.add_argument("--llm", action="store_true", help="Enable the reasoner")
    parser.add_argument("--roster", action="store_true", help="Use the built-in ten villagers")
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args()
    asyncio.run(main(args.days, args.ticks, args.llm, args.roster, args.seed))
