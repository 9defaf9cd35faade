"""Grid pathfinding for villagers.

Best-first (A*) search over a ``TileGrid`` with four-directional moves and a
Manhattan heuristic. The search is bounded so a single call always fits inside
one frame; anything the bounded search cannot reach is reported as an
empty path rather than an exception.
"""

from __future__ import annotations

import heapq
import math
from itertools import count
from typing import Dict, List, Optional, Set, Tuple

from townsfolk.logging_utils import log_debug
from townsfolk.schemas import Cell, Position

from .grid import TileGrid

# Node expansions allowed per search
MAX_ITERATIONS = 500
# Largest ring searched around a blocked target for a walkable substitute
MAX_SNAP_RADIUS = 3
# Start/target closer than this skip the search entirely
SHORT_CIRCUIT_DISTANCE = 2.0

_NEIGHBOR_OFFSETS: Tuple[Cell, ...] = ((0, -1), (0, 1), (-1, 0), (1, 0))


def manhattan(a: Cell, b: Cell) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def nearest_walkable(grid: TileGrid, cell: Cell, max_radius: int = MAX_SNAP_RADIUS) -> Optional[Cell]:
    """Find a walkable cell on the smallest square ring around ``cell``.

    Rings are scanned for radius 1..max_radius; within a ring, row by row from
    the top. Only the ring's perimeter is checked. Returns None when every ring
    is blocked or out of bounds.
    """
    x, y = cell
    for radius in range(1, max_radius + 1):
        for dy in range(-radius, radius + 1):
            for dx in range(-radius, radius + 1):
                # Interior cells were covered by a smaller ring
                if abs(dx) != radius and abs(dy) != radius:
                    continue
                if grid.is_walkable(x + dx, y + dy):
                    return (x + dx, y + dy)
    return None


def _reconstruct(came_from: Dict[Cell, Cell], goal: Cell) -> List[Cell]:
    path = [goal]
    current = goal
    while current in came_from:
        current = came_from[current]
        path.append(current)
    path.reverse()
    # Drop the start cell; callers already stand on it
    return path[1:]


def find_path(start: Position, target: Position, grid: Optional[TileGrid]) -> List[Cell]:
    """Return the cells leading from ``start`` to ``target`` (start excluded).

    Returns ``[]`` when the target cannot be reached: it is blocked with no
    walkable cell within ``MAX_SNAP_RADIUS``, it is disconnected, or the search
    ran past ``MAX_ITERATIONS`` expansions. Never raises.
    """

    if grid is None:
        return []

    # Already next to the target: step straight onto it
    if start.distance_to(target) < SHORT_CIRCUIT_DISTANCE:
        return [target.cell()]

    start_cell = start.cell()
    goal = target.cell()

    if not grid.is_walkable(*goal):
        snapped = nearest_walkable(grid, goal)
        if snapped is None:
            log_debug(f"[Pathfinding] No walkable cell near {goal}; target unreachable")
            return []
        log_debug(f"[Pathfinding] Target {goal} is blocked; rerouting to {snapped}")
        goal = snapped

    # Open list entries: (f, h, tie_breaker, g, cell). Equal f prefers the node
    # closer to the goal. Stale entries are skipped on pop when a cheaper g has
    # been recorded since they were pushed.
    tie = count()
    open_heap: List[Tuple[int, int, int, int, Cell]] = []
    start_h = manhattan(start_cell, goal)
    heapq.heappush(open_heap, (start_h, start_h, next(tie), 0, start_cell))
    best_g: Dict[Cell, int] = {start_cell: 0}
    came_from: Dict[Cell, Cell] = {}
    closed: Set[Cell] = set()

    iterations = 0
    while open_heap and iterations < MAX_ITERATIONS:
        _, _, _, g, current = heapq.heappop(open_heap)
        if current in closed or g > best_g.get(current, math.inf):
            continue
        iterations += 1

        if current == goal:
            return _reconstruct(came_from, goal)

        closed.add(current)

        for dx, dy in _NEIGHBOR_OFFSETS:
            neighbor = (current[0] + dx, current[1] + dy)
            if neighbor in closed or not grid.is_walkable(*neighbor):
                continue
            tentative = g + 1
            # Relax only on a strictly cheaper route
            if tentative >= best_g.get(neighbor, math.inf):
                continue
            best_g[neighbor] = tentative
            came_from[neighbor] = current
            h = manhattan(neighbor, goal)
            heapq.heappush(open_heap, (tentative + h, h, next(tie), tentative, neighbor))

    if iterations >= MAX_ITERATIONS:
        log_debug(f"[Pathfinding] Gave up after {MAX_ITERATIONS} expansions toward {goal}")
    return []
