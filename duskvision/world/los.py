"""duskvision/world/los.py

Numba-accelerated Bresenham line of sight helper.
Used to decide whether an observer can see a remote light source before
that light is allowed to extend the observer's vision.
"""

from __future__ import annotations

import numba
import numpy as np

from duskvision.constants import TILE_WALL
from duskvision.utils.helpers import to_tile


@numba.njit(cache=True)
def line_of_sight_clear(
    wall_map: np.ndarray,
    x0: int,
    y0: int,
    x1: int,
    y1: int,
) -> bool:
    """Return ``True`` if no tile strictly between the endpoints blocks.

    The starting tile is never inspected and the destination is always
    treated as see-through, so an observer can see a wall it looks at.
    Intermediate tiles outside the map block the line.
    """
    height, width = wall_map.shape
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx - dy

    xi, yi = x0, y0
    while not (xi == x1 and yi == y1):
        if not (xi == x0 and yi == y0):
            if not (0 <= xi < width and 0 <= yi < height):
                return False
            if wall_map[yi, xi]:
                return False
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            xi += sx
        if e2 < dx:
            err += dx
            yi += sy
    return True


def wall_mask(grid: np.ndarray) -> np.ndarray:
    """Boolean array of wall tiles for repeated :func:`line_of_sight_clear` calls."""
    return np.asarray(grid) == TILE_WALL


def has_line_of_sight(grid, start, end) -> bool:
    """Bresenham line-of-sight check on a tile grid.

    ``start`` and ``end`` are ``(x, y)`` pairs in tile coordinates. A missing
    grid places no obstacles; a non-finite endpoint never has line of sight.
    """
    if grid is None:
        return True
    if start is None or end is None:
        return False
    x0, y0 = to_tile(start[0]), to_tile(start[1])
    x1, y1 = to_tile(end[0]), to_tile(end[1])
    if x0 is None or y0 is None or x1 is None or y1 is None:
        return False
    return bool(line_of_sight_clear(wall_mask(grid), x0, y0, x1, y1))


__all__ = ["has_line_of_sight", "line_of_sight_clear", "wall_mask"]
