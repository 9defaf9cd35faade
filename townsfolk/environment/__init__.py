"""Tile maps, collision checks and pathfinding for Townsfolk."""

from .grid import (
    DEFAULT_BLOCKING_TILES,
    TileClass,
    TileGrid,
    TileMap,
    is_colliding,
)
from .pathfinding import (
    MAX_ITERATIONS,
    MAX_SNAP_RADIUS,
    find_path,
    manhattan,
    nearest_walkable,
)
from .schemas import TileGridState, TileMapState

__all__ = [
    "DEFAULT_BLOCKING_TILES",
    "TileClass",
    "TileGrid",
    "TileMap",
    "is_colliding",
    "MAX_ITERATIONS",
    "MAX_SNAP_RADIUS",
    "find_path",
    "manhattan",
    "nearest_walkable",
    "TileGridState",
    "TileMapState",
]
