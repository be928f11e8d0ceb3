# duskvision/world/game_map.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import structlog

from duskvision.constants import TILE_FLOOR, TILE_UNKNOWN, TILE_WALL

log = structlog.get_logger(__name__)


def _as_tile_array(data: Any, name: str) -> np.ndarray:
    array = np.asarray(data, dtype=np.int8)
    if array.ndim != 2:
        raise TypeError(f"{name} must be a 2D array of tile codes")
    return np.ascontiguousarray(array)


@dataclass
class MapState:
    """Ground-truth terrain plus the observer's fog-of-war memory.

    ``grid`` and ``known`` are ``(height, width)`` arrays of tile codes.
    ``known`` uses :data:`~duskvision.constants.TILE_UNKNOWN` for cells that
    were never observed; it is owned by the exploration tracker and may be
    mutated between ticks. ``furniture`` and ``features`` hold placements
    that may carry light descriptors.
    """

    width: int
    height: int
    grid: np.ndarray
    known: np.ndarray | None = None
    furniture: list[Any] = field(default_factory=list)
    features: list[Any] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            log.error("Invalid map dimensions", width=self.width, height=self.height)
            raise ValueError("Map width and height must be positive integers.")
        self.grid = _as_tile_array(self.grid, "grid")
        if self.grid.shape != (self.height, self.width):
            raise ValueError(
                f"grid shape {self.grid.shape} does not match "
                f"(height, width) = {(self.height, self.width)}"
            )
        if self.known is not None:
            self.known = _as_tile_array(self.known, "known")
            if self.known.shape != self.grid.shape:
                raise ValueError("known grid shape must match grid shape")

    @classmethod
    def filled(cls, width: int, height: int, tile: int = TILE_FLOOR, **kwargs: Any) -> MapState:
        grid = np.full((height, width), fill_value=tile, dtype=np.int8)
        return cls(width=width, height=height, grid=grid, **kwargs)

    @classmethod
    def from_rows(cls, rows: list[str], **kwargs: Any) -> MapState:
        """Build a map from ASCII rows where ``#`` is wall and anything else floor."""
        if not rows:
            raise ValueError("rows must contain at least one line")
        width = len(rows[0])
        grid = np.array(
            [[TILE_WALL if ch == "#" else TILE_FLOOR for ch in row] for row in rows],
            dtype=np.int8,
        )
        return cls(width=width, height=len(rows), grid=grid, **kwargs)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def unknown_known_grid(self) -> np.ndarray:
        """A fresh known grid with every cell unexplored."""
        return np.full_like(self.grid, TILE_UNKNOWN)

    def opaque_mask(self, use_known_grid: bool = False) -> np.ndarray:
        """Boolean ``(height, width)`` array of tiles that block light.

        On the known grid, unexplored cells are treated as transparent so that
        fog projections stay optimistic. Without a known grid every cell
        counts as unexplored.
        """
        if use_known_grid:
            if self.known is None:
                return np.zeros(self.grid.shape, dtype=np.bool_)
            return self.known == TILE_WALL
        return self.grid == TILE_WALL

    def tile_blocks_light(self, x: int, y: int, use_known_grid: bool = False) -> bool:
        if not self.in_bounds(x, y):
            return True
        if use_known_grid:
            if self.known is None:
                return False
            return int(self.known[y, x]) == TILE_WALL
        return int(self.grid[y, x]) == TILE_WALL


__all__ = ["MapState"]
