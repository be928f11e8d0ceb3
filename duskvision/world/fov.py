# duskvision/world/fov.py
"""
Field of View (FOV) calculations.
Symmetric shadowcasting over the eight octants, compiled with Numba.

The octant scan is written as an explicit worklist instead of recursion: each
entry is ``(octant, row, start_slope, end_slope)`` and a blocked run queues the
narrowed interval for the following row exactly where the recursive form would
descend. Sub-scans are independent of each other, so the processing order does
not change the resulting set.
"""

import math
import time
from typing import TypeAlias

import numba
import numpy as np
import structlog
from numba.typed import List as NumbaList

from duskvision.constants import FOV_TRANSFORMS
from duskvision.utils.helpers import is_finite_number, to_tile

# --- Type Aliases ---
Point: TypeAlias = tuple[int, int]
VisibilitySet: TypeAlias = set[Point]

# --- Logging Setup ---
log = structlog.get_logger(__name__)


# --- Numba Core ---
@numba.njit(cache=True)
def _cast_octants(
    origin_x: int,
    origin_y: int,
    radius: float,
    opaque_grid: np.ndarray,
    transforms: np.ndarray,
    visible_grid: np.ndarray,
) -> None:
    """Mark every tile visible from the origin in ``visible_grid``.

    Off-grid cells block light and are never marked.
    """
    height, width = opaque_grid.shape
    radius_sq = radius * radius
    last_row = int(math.floor(radius))

    sectors = NumbaList()
    for octant in range(transforms.shape[0]):
        sectors.append((octant, 1, 1.0, 0.0))

    while len(sectors) > 0:
        octant, row, start_slope, end_slope = sectors.pop()
        if start_slope < end_slope:
            continue
        xx = transforms[octant, 0]
        xy = transforms[octant, 1]
        yx = transforms[octant, 2]
        yy = transforms[octant, 3]

        for i in range(row, last_row + 1):
            dx = -i - 1
            dy = -i
            blocked = False
            new_start = start_slope
            while dx <= 0:
                dx += 1
                mx = origin_x + dx * xx + dy * xy
                my = origin_y + dx * yx + dy * yy
                l_slope = (dx - 0.5) / (dy + 0.5)
                r_slope = (dx + 0.5) / (dy - 0.5)
                if start_slope < r_slope:
                    continue
                if end_slope > l_slope:
                    break

                on_grid = 0 <= mx < width and 0 <= my < height
                if on_grid and dx * dx + dy * dy <= radius_sq:
                    visible_grid[my, mx] = True

                if on_grid:
                    cell_blocks = opaque_grid[my, mx]
                else:
                    cell_blocks = True

                if blocked:
                    if cell_blocks:
                        new_start = r_slope
                        continue
                    blocked = False
                    start_slope = new_start
                elif cell_blocks and i < radius:
                    blocked = True
                    sectors.append((octant, i + 1, start_slope, l_slope))
                    new_start = r_slope
            if blocked:
                break


def _sanitize_radius(radius) -> float:
    if not is_finite_number(radius):
        return 0.0
    return max(0.0, float(radius))


def compute_fov_mask(
    origin_xy: Point,
    radius: float,
    map_state,
    use_known_grid: bool = False,
    opaque_grid: np.ndarray | None = None,
) -> np.ndarray:
    """Compute visibility as a boolean ``(height, width)`` array.

    ``opaque_grid`` may be passed to reuse a blocking mask across several
    calls on the same map; otherwise it is derived from ``map_state``.
    The origin is marked only when it lies on the grid.
    """
    if map_state is None:
        raise ValueError("compute_fov_mask requires a map state")
    visible_grid = np.zeros((map_state.height, map_state.width), dtype=np.bool_)
    ox, oy = to_tile(origin_xy[0]), to_tile(origin_xy[1])
    if ox is None or oy is None:
        log.warning("Non-finite FOV origin", origin=origin_xy)
        return visible_grid

    if opaque_grid is None:
        opaque_grid = map_state.opaque_mask(use_known_grid)
    if map_state.in_bounds(ox, oy):
        visible_grid[oy, ox] = True

    safe_radius = _sanitize_radius(radius)
    if safe_radius >= 1.0:
        _cast_octants(ox, oy, safe_radius, opaque_grid, FOV_TRANSFORMS, visible_grid)
    return visible_grid


def compute_field_of_view(
    origin_xy: Point,
    radius: float,
    map_state,
    use_known_grid: bool = False,
    opaque_grid: np.ndarray | None = None,
) -> VisibilitySet:
    """
    Public interface for FOV computation.

    Returns the set of ``(x, y)`` tiles visible from ``origin_xy`` within
    ``radius``. With ``use_known_grid`` the observer's fog-of-war memory is
    used for blocking and unexplored cells never occlude. The origin is always
    included. A missing map state or non-finite origin yields an empty set.
    """
    if map_state is None:
        log.warning("FOV requested without a map state", origin=origin_xy)
        return set()
    ox, oy = to_tile(origin_xy[0]), to_tile(origin_xy[1])
    if ox is None or oy is None:
        log.warning("Non-finite FOV origin", origin=origin_xy)
        return set()

    start_time = time.perf_counter()
    visible_grid = compute_fov_mask(
        (ox, oy), radius, map_state, use_known_grid, opaque_grid
    )
    ys, xs = np.nonzero(visible_grid)
    visible: VisibilitySet = set(zip(xs.tolist(), ys.tolist()))
    visible.add((ox, oy))

    duration_ms = (time.perf_counter() - start_time) * 1000
    log.debug(
        "FOV computation finished",
        origin=(ox, oy),
        radius=radius,
        use_known_grid=use_known_grid,
        visible_count=len(visible),
        duration_ms=f"{duration_ms:.2f}",
    )
    return visible


__all__ = ["Point", "VisibilitySet", "compute_field_of_view", "compute_fov_mask"]
