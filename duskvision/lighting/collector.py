"""World light collection (actors, dropped items, map features, furniture).

Produces the normalized :class:`~duskvision.lighting.sources.LightSource`
records for one tick. Ids combine a source-kind tag, a name and a sequence
number that restarts on every :meth:`LightCollector.collect` call, so they are
unique within one result but not across ticks.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from duskvision.constants import LightChannel
from duskvision.lighting.sources import (
    LightDescriptor,
    LightSource,
    resolve_emitter_adapter,
)
from duskvision.utils.colors import ColorParser
from duskvision.utils.helpers import coerce_point, field, resolve_position, to_tile

log = structlog.get_logger(__name__)


def resolve_mob_list(mobs: Any) -> list[Any]:
    """Accept a list of mobs or a manager exposing ``list()`` / ``list``."""
    if mobs is None:
        return []
    lister = getattr(mobs, "list", None)
    if callable(lister):
        try:
            result = lister()
        except Exception as e:
            log.warning("Mob manager list() failed", error=str(e), exc_info=True)
            return []
        return list(result) if result is not None else []
    if isinstance(lister, (list, tuple)):
        return list(lister)
    if isinstance(mobs, Iterable):
        return list(mobs)
    return []


def list_actors(player: Any, mobs: Any) -> list[Any]:
    """Player first, then mobs, skipping ``None`` and duplicates."""
    actors: list[Any] = []
    seen: set[int] = set()
    for actor in [player, *resolve_mob_list(mobs)]:
        if actor is None or id(actor) in seen:
            continue
        seen.add(id(actor))
        actors.append(actor)
    return actors


class LightCollector:
    """Gathers this tick's light sources; owns its color parse cache."""

    def __init__(self, color_parser: ColorParser | None = None) -> None:
        self.colors = color_parser if color_parser is not None else ColorParser()

    def collect(
        self,
        player: Any = None,
        mobs: Any = None,
        entities: Iterable[Any] | None = None,
        map_state: Any = None,
    ) -> list[LightSource]:
        out: list[LightSource] = []
        seq = 0

        def emit(kind: str, name: Any, pos: tuple[int, int], light: LightDescriptor,
                 owner_id: str | None = None) -> None:
            nonlocal seq
            channel = light.channel if light.channel is not None else int(LightChannel.ALL)
            out.append(
                LightSource(
                    id=f"{kind}:{name}:{seq}",
                    x=pos[0],
                    y=pos[1],
                    radius=light.radius,
                    color=self.colors.to_rgb(light.color),
                    intensity=light.intensity,
                    flicker_rate=light.flicker_rate,
                    angle=light.angle,
                    width=light.width,
                    channel=channel,
                    owner_id=owner_id,
                )
            )
            seq += 1

        # 1) Player & mobs, through their emitter adapter
        for actor in list_actors(player, mobs):
            adapter = resolve_emitter_adapter(actor)
            descriptors = adapter.emitters(actor)
            if not descriptors:
                continue
            pos = resolve_position(actor)
            if pos is None:
                log.debug("Skipping lit actor without a finite position", actor=repr(actor))
                continue
            actor_id = field(actor, "id") or field(actor, "name")
            for light in descriptors:
                emit("actor", actor_id or "anon", pos, light,
                     owner_id=str(actor_id) if actor_id else None)

        # 2) Dropped items and other world entities glowing in place
        for ent in entities or ():
            if ent is None:
                continue
            raw = field(ent, "light") or field(field(ent, "item"), "light")
            light = LightDescriptor.coerce(raw)
            if light is None or not light.works_when_dropped:
                continue
            pos = _entity_position(ent)
            if pos is None:
                continue
            emit("world", field(ent, "id") or field(ent, "kind") or "lit", pos, light)

        if map_state is None:
            return out

        # 3) Static map features (braziers, sconces)
        for feature in getattr(map_state, "features", None) or ():
            light = LightDescriptor.coerce(field(feature, "light"))
            pos = resolve_position(feature)
            if light is None or pos is None:
                continue
            emit("feat", field(feature, "id") or field(feature, "type") or "feature", pos, light)

        # 4) Placed furniture fixtures
        for placement in getattr(map_state, "furniture", None) or ():
            pos = _placement_position(placement)
            light = _furniture_light(placement)
            if light is None or pos is None:
                continue
            furniture = field(placement, "furniture")
            name = field(placement, "id") or field(furniture, "id") or f"{pos[0]},{pos[1]}"
            emit("furn", name, pos, light)

        log.debug("Collected world light sources", count=len(out))
        return out


def _entity_position(ent: Any) -> tuple[int, int] | None:
    pos = resolve_position(ent)
    if pos is not None:
        return pos
    x, y = to_tile(field(ent, "tx")), to_tile(field(ent, "ty"))
    if x is None or y is None:
        return None
    return x, y


def _placement_position(placement: Any) -> tuple[int, int] | None:
    for name in ("position", "pos", "tile"):
        pos = coerce_point(field(placement, name))
        if pos is not None:
            return pos
    return resolve_position(placement)


def _furniture_light(placement: Any) -> LightDescriptor | None:
    light = LightDescriptor.coerce(field(placement, "light"))
    if light is not None:
        return light
    furniture = field(placement, "furniture")
    light = LightDescriptor.coerce(field(furniture, "light"))
    if light is not None:
        return light
    meta = field(placement, "metadata") or field(furniture, "metadata")
    if not meta:
        return None
    return LightDescriptor.coerce(
        {
            "radius": field(meta, "light_radius"),
            "color": field(meta, "light_color"),
            "intensity": field(meta, "light_intensity"),
            "flicker_rate": field(meta, "light_flicker_rate"),
            "channel": field(meta, "light_channel"),
        }
    )


def collect_world_light_sources(
    player: Any = None,
    mobs: Any = None,
    entities: Iterable[Any] | None = None,
    map_state: Any = None,
) -> list[LightSource]:
    """Collect every active light in the world with a fresh collector."""
    return LightCollector().collect(
        player=player, mobs=mobs, entities=entities, map_state=map_state
    )


__all__ = [
    "LightCollector",
    "collect_world_light_sources",
    "list_actors",
    "resolve_mob_list",
]
