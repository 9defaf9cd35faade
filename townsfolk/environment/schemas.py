"""Pydantic schemas for zone maps in scenario files.

These models mirror the frozen dataclasses in ``grid.py`` so maps can be
validated when loaded from JSON and converted into runtime grids.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .grid import DEFAULT_BLOCKING_TILES, TileGrid, TileMap


class TileGridState(BaseModel):
    """One zone, written as rows of legend characters."""

    rows: List[str] = Field(..., min_length=1, description="One string per row, top first")
    legend: Dict[str, Optional[str]] = Field(
        default_factory=lambda: {".": "grass", "#": "wall_stone", "~": "water"},
        description="Map of character → tile name (null = empty ground)",
    )
    blocking: Optional[List[str]] = Field(
        None,
        description="Tile names that block movement; defaults to the standard set",
    )

    @model_validator(mode="after")
    def _check_shape(self) -> "TileGridState":
        width = len(self.rows[0])
        for index, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(
                    f"row {index} has width {len(row)}, expected {width}"
                )
            unknown = set(row) - set(self.legend)
            if unknown:
                raise ValueError(
                    f"row {index} uses characters missing from legend: {sorted(unknown)}"
                )
        return self

    def to_grid(self) -> TileGrid:
        blocking = (
            frozenset(self.blocking) if self.blocking is not None else DEFAULT_BLOCKING_TILES
        )
        return TileGrid.from_ascii(self.rows, self.legend, blocking=blocking)


class TileMapState(BaseModel):
    """All zones of a scenario keyed by zone id."""

    zones: Dict[str, TileGridState] = Field(default_factory=dict)

    def to_tile_map(self) -> TileMap:
        return TileMap(zones={zone: state.to_grid() for zone, state in self.zones.items()})
