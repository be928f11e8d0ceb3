"""Tile visibility and dynamic lighting for grid-based games.

Computes what an observer can see each tick from its own vision radius and
the lights scattered through the world, and produces overlay samples for the
renderer and perception snapshots for AI.
"""

from .ai.perception import Perception, WorldContext, update_all_perception, update_perception
from .constants import TILE_FLOOR, TILE_UNKNOWN, TILE_WALL, LightChannel
from .lighting import (
    LightCollector,
    LightCompositor,
    LightConfig,
    LightSource,
    OverlaySample,
    collect_world_light_sources,
    composite_overlay_at,
    create_composite_light_context,
    load_light_config,
)
from .world.fov import compute_field_of_view, compute_fov_mask
from .world.game_map import MapState
from .world.los import has_line_of_sight
from .world.vision import VisionResult, compute_vision_with_lights

__version__ = "0.1.0"

__all__ = [
    "TILE_FLOOR",
    "TILE_UNKNOWN",
    "TILE_WALL",
    "LightChannel",
    "LightCollector",
    "LightCompositor",
    "LightConfig",
    "LightSource",
    "MapState",
    "OverlaySample",
    "Perception",
    "VisionResult",
    "WorldContext",
    "collect_world_light_sources",
    "composite_overlay_at",
    "compute_field_of_view",
    "compute_fov_mask",
    "compute_vision_with_lights",
    "create_composite_light_context",
    "has_line_of_sight",
    "load_light_config",
    "update_all_perception",
    "update_perception",
]
