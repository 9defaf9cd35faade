"""Tests for truthful logging tags ([AI] vs [•]) in simulation output.

These tests assert that:
- Static planning prints [•] and never [AI]
- A reasoned plan that falls back prints [!]
- Debug lines only appear when LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import contextlib
import io
import random

import pytest

from townsfolk.environment import TileGrid, find_path
from townsfolk.logging_utils import Color, colored, log_debug
from townsfolk.orchestrator import Simulation
from townsfolk.reasoner import OfflineReasoner
from townsfolk.scenario import open_field_map
from townsfolk.schemas import Agent, Position


def _simulation(*, use_ai: bool, day: int) -> Simulation:
    agent = Agent(agent_id="npc_1", name="Bob", role="Farmer", position=Position(x=2, y=2))
    return Simulation([agent], open_field_map(), OfflineReasoner(), use_ai=use_ai, day=day, rng=random.Random(0))


def test_static_plan_is_tagged_deterministic(monkeypatch):
    monkeypatch.setenv("TOWNSFOLK_NO_COLOR", "1")
    sim = _simulation(use_ai=False, day=3)

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        sim.step(0.1)

    out = buf.getvalue()
    assert "[•] [Planner] Bob (Farmer)" in out
    assert "[AI]" not in out


@pytest.mark.asyncio
async def test_failed_reasoned_plan_is_tagged_as_error(monkeypatch):
    monkeypatch.setenv("TOWNSFOLK_NO_COLOR", "1")
    sim = _simulation(use_ai=True, day=2)

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        sim.step(0.1)
        await sim.flush()

    out = buf.getvalue()
    assert "[AI] [Simulation] Requested plan for npc_1" in out
    assert "[!] [Planner] Plan request failed for Bob" in out


def test_colored_respects_no_color(monkeypatch):
    monkeypatch.delenv("TOWNSFOLK_NO_COLOR", raising=False)
    assert colored("hi", Color.GREEN) == f"{Color.GREEN.value}hi{Color.RESET.value}"

    monkeypatch.setenv("TOWNSFOLK_NO_COLOR", "1")
    assert colored("hi", Color.GREEN, bold=True) == "hi"


def test_debug_lines_follow_log_level(monkeypatch):
    monkeypatch.setenv("TOWNSFOLK_NO_COLOR", "1")
    grid = TileGrid.empty(10, 10).with_tile(5, 5, "wall_stone")

    monkeypatch.setenv("LOG_LEVEL", "INFO")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        log_debug("hidden")
        find_path(Position(x=0, y=5), Position(x=5, y=5), grid)
    assert buf.getvalue() == ""

    monkeypatch.setenv("LOG_LEVEL", "debug")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        find_path(Position(x=0, y=5), Position(x=5, y=5), grid)
    assert "[i] [Pathfinding] Target (5, 5) is blocked; rerouting to (4, 4)" in buf.getvalue()
