"""Per-actor perception snapshots for AI modules.

Each actor's perception lists the other actors and the world lights standing
inside its own field of view. World entities such as dropped items are not
actors; they only show up through the lights they emit. Blind actors (vision
radius 0 or unusable) still get a perception object, just an empty one with
``fov=None``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from duskvision.lighting.collector import LightCollector, list_actors
from duskvision.lighting.sources import LightSource
from duskvision.utils.helpers import field as read_field
from duskvision.utils.helpers import is_finite_number, resolve_position
from duskvision.world.fov import VisibilitySet, compute_field_of_view

log = structlog.get_logger(__name__)


@dataclass
class Perception:
    fov: VisibilitySet | None = None
    visible_actors: list[Any] = field(default_factory=list)
    visible_lights: list[LightSource] = field(default_factory=list)


@dataclass
class WorldContext:
    """Live world state consulted when refreshing perception."""

    map_state: Any = None
    player: Any = None
    mobs: Any = None
    entities: Sequence[Any] = ()

    def actors(self) -> list[Any]:
        return list_actors(self.player, self.mobs)


def resolve_vision_radius(entity: Any) -> float:
    """Vision radius of ``entity``, or 0 when it has none worth using.

    Looks at ``get_vision_radius()``, then ``vision_radius``, then falls back
    to the actor's carried light via ``get_light_radius()``.
    """
    raw = None
    getter = getattr(entity, "get_vision_radius", None)
    if callable(getter):
        raw = getter()
    elif read_field(entity, "vision_radius") is not None:
        raw = read_field(entity, "vision_radius")
    else:
        light_getter = getattr(entity, "get_light_radius", None)
        if callable(light_getter):
            raw = light_getter()
    if not is_finite_number(raw):
        return 0.0
    return max(0.0, float(raw))


def compute_actor_fov(map_state: Any, actor: Any) -> VisibilitySet | None:
    """Ground-truth field of view for ``actor``; ``None`` when it cannot see."""
    if actor is None or map_state is None:
        return None
    radius = resolve_vision_radius(actor)
    if radius <= 0:
        return None
    pos = resolve_position(actor)
    if pos is None:
        return None
    return compute_field_of_view(pos, radius, map_state, use_known_grid=False)


def _build_perception(
    entity: Any,
    fov: VisibilitySet,
    actors: Iterable[Any],
    lights: Iterable[LightSource],
) -> Perception:
    visible_actors = []
    for other in actors:
        if other is None or other is entity:
            continue
        pos = resolve_position(other)
        if pos is not None and pos in fov:
            visible_actors.append(other)

    visible_lights = [light for light in lights if (light.x, light.y) in fov]
    return Perception(fov=fov, visible_actors=visible_actors, visible_lights=visible_lights)


def update_perception(
    entity: Any,
    world: WorldContext,
    collector: LightCollector | None = None,
) -> Perception:
    """Refresh and return ``entity.perception`` for the current tick."""
    fov = compute_actor_fov(world.map_state, entity)
    if fov is None:
        perception = Perception()
    else:
        lights = (collector or LightCollector()).collect(
            player=world.player,
            mobs=world.mobs,
            entities=world.entities,
            map_state=world.map_state,
        )
        perception = _build_perception(entity, fov, world.actors(), lights)
    if entity is not None:
        entity.perception = perception
    return perception


def update_all_perception(
    world: WorldContext,
    collector: LightCollector | None = None,
) -> dict[int, Perception]:
    """Refresh perception for the player and every mob in one pass.

    Lights are collected once and shared. Returns perceptions keyed by
    ``id(actor)`` in addition to setting ``actor.perception``.
    """
    if world.map_state is None:
        raise ValueError("update_all_perception requires a map state")
    actors = world.actors()
    if not actors:
        return {}

    lights = (collector or LightCollector()).collect(
        player=world.player,
        mobs=world.mobs,
        entities=world.entities,
        map_state=world.map_state,
    )
    results: dict[int, Perception] = {}
    for entity in actors:
        fov = compute_actor_fov(world.map_state, entity)
        if fov is None:
            perception = Perception()
        else:
            perception = _build_perception(entity, fov, actors, lights)
        entity.perception = perception
        results[id(entity)] = perception

    log.debug("Perception updated", actors=len(actors), lights=len(lights))
    return results


__all__ = [
    "Perception",
    "WorldContext",
    "compute_actor_fov",
    "resolve_vision_radius",
    "update_all_perception",
    "update_perception",
]
