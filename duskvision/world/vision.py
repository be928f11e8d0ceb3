"""Vision extension from remote light sources.

An observer sees its own vision radius, plus tiles lit by lights it can see,
as long as those lit tiles are also within line of sight of the observer.
The observer's search radius only grows as far as the farthest reachable
light requires.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from duskvision.utils.helpers import field as read_field
from duskvision.utils.helpers import is_finite_number, to_tile
from duskvision.world.fov import Point, VisibilitySet, compute_field_of_view
from duskvision.world.los import line_of_sight_clear, wall_mask

log = structlog.get_logger(__name__)


@dataclass
class VisionResult:
    visible: VisibilitySet = field(default_factory=set)
    base_visible: VisibilitySet = field(default_factory=set)
    extra_lit: VisibilitySet = field(default_factory=set)
    player_los: VisibilitySet = field(default_factory=set)
    light_signature: str = ""


def _light_geometry(light: Any) -> tuple[int, int, float] | None:
    x, y = to_tile(read_field(light, "x")), to_tile(read_field(light, "y"))
    radius = read_field(light, "radius")
    if x is None or y is None or not is_finite_number(radius):
        return None
    return x, y, float(radius)


def filter_lights_in_line_of_sight(
    lights: Iterable[Any], origin: Point, grid
) -> list[Any]:
    """Keep lights with a positive radius that ``origin`` has line of sight to."""
    ox, oy = to_tile(origin[0]), to_tile(origin[1])
    if ox is None or oy is None:
        return []
    walls = wall_mask(grid) if grid is not None else None
    out = []
    for light in lights or ():
        if light is None:
            continue
        geometry = _light_geometry(light)
        if geometry is None or geometry[2] <= 0:
            continue
        lx, ly, _ = geometry
        if walls is None or line_of_sight_clear(walls, ox, oy, lx, ly):
            out.append(light)
    return out


def describe_light_signature(lights: Sequence[Any]) -> str:
    """Order-independent fingerprint of a light list for memoized rendering."""
    if not lights:
        return ""
    parts = []
    for light in lights:
        lid = read_field(light, "id")
        x, y = to_tile(read_field(light, "x")), to_tile(read_field(light, "y"))
        radius = read_field(light, "radius")
        r = max(0, round(float(radius) * 100)) if is_finite_number(radius) else "?"
        parts.append(
            f"{lid if isinstance(lid, str) else '?'}:"
            f"{x if x is not None else '?'},{y if y is not None else '?'},{r}"
        )
    return "|".join(sorted(parts))


def compute_vision_with_lights(
    origin: Point,
    base_radius: float,
    map_state,
    lights: Iterable[Any] = (),
    lights_already_filtered: bool = False,
) -> VisionResult:
    """Compute the observer's effective visible set once remote lights count.

    ``visible = base ∪ (player_los ∩ lit)`` where ``lit`` is the union of the
    fields of view of every light the observer can see, and ``player_los`` is
    the observer's field of view expanded to the farthest light's reach.
    """
    ox, oy = to_tile(origin[0]), to_tile(origin[1])
    if ox is None or oy is None or map_state is None:
        log.warning("Vision requested without a usable origin or map", origin=origin)
        return VisionResult()

    safe_radius = max(0.0, float(base_radius)) if is_finite_number(base_radius) else 0.0
    opaque = map_state.opaque_mask(False)
    base_visible = compute_field_of_view((ox, oy), safe_radius, map_state, opaque_grid=opaque)

    if lights_already_filtered:
        filtered = [light for light in lights or () if light is not None]
    else:
        filtered = filter_lights_in_line_of_sight(lights, (ox, oy), map_state.grid)
    if not filtered:
        return VisionResult(
            visible=base_visible,
            base_visible=base_visible,
            player_los=base_visible,
        )

    signature = describe_light_signature(filtered)
    lit_tiles: VisibilitySet = set()
    max_reach = safe_radius
    for light in filtered:
        geometry = _light_geometry(light)
        if geometry is None:
            continue
        lx, ly, lr = geometry
        radius = math.ceil(lr)
        if radius <= 0:
            continue
        lit_tiles |= compute_field_of_view((lx, ly), radius, map_state, opaque_grid=opaque)
        max_reach = max(max_reach, math.hypot(lx - ox, ly - oy) + lr)

    if not lit_tiles:
        return VisionResult(
            visible=base_visible,
            base_visible=base_visible,
            player_los=base_visible,
            light_signature=signature,
        )

    if max_reach > safe_radius:
        player_los = compute_field_of_view(
            (ox, oy), math.ceil(max_reach), map_state, opaque_grid=opaque
        )
    else:
        player_los = base_visible

    seen_lit = player_los & lit_tiles
    extra_lit = seen_lit - base_visible
    log.debug(
        "Vision extended by lights",
        origin=(ox, oy),
        lights=len(filtered),
        max_reach=round(max_reach, 2),
        extra_lit=len(extra_lit),
    )
    return VisionResult(
        visible=base_visible | seen_lit,
        base_visible=base_visible,
        extra_lit=extra_lit,
        player_los=player_los,
        light_signature=signature,
    )


__all__ = [
    "VisionResult",
    "compute_vision_with_lights",
    "describe_light_signature",
    "filter_lights_in_line_of_sight",
]
