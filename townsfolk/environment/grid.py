"""Tile grids and zone maps.

A village is a set of named zones (the outdoor world plus building
interiors). Each zone is a rectangular grid of tile names; a tile is either
walkable or blocking depending on its name. The pathfinder and collision
checks read grids but never mutate them - tile changes (opening a door,
tilling soil) happen between ticks via ``TileGrid.with_tile``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence


class TileClass(str, Enum):
    """Classification of a single cell for movement purposes."""

    WALKABLE = "walkable"
    BLOCKING = "blocking"
    OUT_OF_BOUNDS = "out_of_bounds"


DEFAULT_BLOCKING_TILES: FrozenSet[str] = frozenset(
    {
        "wall_wood",
        "wall_stone",
        "water",
        "fence",
        "table",
        "wardrobe",
        "bed",
        "anvil",
        "pew",
        "candle_stand",
    }
)


@dataclass(frozen=True)
class TileGrid:
    """Rectangular grid of tile names indexed ``tiles[y][x]``.

    ``None`` entries are empty ground and count as walkable.
    """

    tiles: Sequence[Sequence[Optional[str]]]
    blocking: FrozenSet[str] = DEFAULT_BLOCKING_TILES

    @property
    def height(self) -> int:
        return len(self.tiles)

    @property
    def width(self) -> int:
        return len(self.tiles[0]) if self.tiles else 0

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def tile_at(self, x: int, y: int) -> Optional[str]:
        if not self.in_bounds(x, y):
            return None
        return self.tiles[y][x]

    def classify(self, x: int, y: int) -> TileClass:
        if not self.in_bounds(x, y):
            return TileClass.OUT_OF_BOUNDS
        if self.tiles[y][x] in self.blocking:
            return TileClass.BLOCKING
        return TileClass.WALKABLE

    def is_walkable(self, x: int, y: int) -> bool:
        return self.classify(x, y) is TileClass.WALKABLE

    def with_tile(self, x: int, y: int, tile: Optional[str]) -> "TileGrid":
        """Return a copy with one cell replaced."""
        if not self.in_bounds(x, y):
            raise IndexError(f"({x}, {y}) is outside a {self.width}x{self.height} grid")
        rows: List[List[Optional[str]]] = [list(row) for row in self.tiles]
        rows[y][x] = tile
        return TileGrid(tiles=rows, blocking=self.blocking)

    @classmethod
    def empty(cls, width: int, height: int, tile: Optional[str] = "grass") -> "TileGrid":
        return cls(tiles=[[tile] * width for _ in range(height)])

    @classmethod
    def from_ascii(
        cls,
        rows: Sequence[str],
        legend: Dict[str, Optional[str]],
        *,
        blocking: FrozenSet[str] = DEFAULT_BLOCKING_TILES,
    ) -> "TileGrid":
        """Build a grid from strings, one character per tile.

        Characters missing from ``legend`` raise ``KeyError``.
        """
        return cls(tiles=[[legend[ch] for ch in row] for row in rows], blocking=blocking)


@dataclass
class TileMap:
    """All zones of the village, keyed by zone id."""

    zones: Dict[str, TileGrid] = field(default_factory=dict)

    def grid(self, zone: str) -> Optional[TileGrid]:
        return self.zones.get(zone)

    def has_zone(self, zone: str) -> bool:
        return zone in self.zones

    def classify(self, zone: str, x: int, y: int) -> TileClass:
        grid = self.zones.get(zone)
        if grid is None:
            return TileClass.OUT_OF_BOUNDS
        return grid.classify(x, y)

    def replace_tile(self, zone: str, x: int, y: int, tile: Optional[str]) -> None:
        """Swap a tile in place of the zone's grid. Call between ticks only."""
        self.zones[zone] = self.zones[zone].with_tile(x, y, tile)


def is_colliding(grid: Optional[TileGrid], x: float, y: float) -> bool:
    """Collision check for a continuous position (rounded to its cell)."""
    if grid is None:
        return True
    return not grid.is_walkable(int(round(x)), int(round(y)))
