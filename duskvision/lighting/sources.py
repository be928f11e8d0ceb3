"""Light records and the adapters that read them off world objects.

Actors expose light in one of a few ways. Rather than probing for each
capability wherever lights are needed, :func:`resolve_emitter_adapter` picks
an adapter once per actor and the collector only talks to the adapter:

* :class:`MultiEmitterAdapter` - the actor has ``get_light_emitters()``
  returning a list of descriptors.
* :class:`EquipmentEmitterAdapter` - the actor carries ``equipment`` whose
  items hold ``light`` descriptors (a torch in hand, a lantern on the belt).
  When nothing equipped is lit, the single accessors below are used instead.
* :class:`SingleAccessorAdapter` - the actor has ``get_light_radius()`` and
  optional ``get_light_color()``, ``get_light_flicker_rate()``,
  ``get_light_angle()``, ``get_light_width()``, ``get_light_channel()``.
* :class:`NullEmitterAdapter` - none of the above; emits nothing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from duskvision.constants import LightChannel
from duskvision.utils.colors import RGB
from duskvision.utils.helpers import clamp01, field, is_finite_number


@dataclass(frozen=True)
class LightDescriptor:
    """What an emitter declares about its light, before it is placed."""

    radius: float
    color: Any = None
    intensity: float = 1.0
    flicker_rate: float = 0.0
    works_when_dropped: bool = True
    angle: float | None = None
    width: float | None = None
    channel: int | None = None

    @classmethod
    def coerce(cls, raw: Any) -> LightDescriptor | None:
        """Normalize a descriptor from a mapping or object.

        Returns ``None`` when there is no positive, finite radius.
        """
        if raw is None:
            return None
        if isinstance(raw, LightDescriptor):
            return raw if raw.radius > 0 else None
        radius = field(raw, "radius")
        if not is_finite_number(radius) or float(radius) <= 0:
            return None
        intensity = field(raw, "intensity")
        flicker = field(raw, "flicker_rate")
        angle = field(raw, "angle")
        width = field(raw, "width")
        channel = field(raw, "channel")
        works = field(raw, "works_when_dropped")
        return cls(
            radius=float(radius),
            color=field(raw, "color"),
            intensity=1.0 if intensity is None else clamp01(intensity),
            flicker_rate=max(0.0, float(flicker)) if is_finite_number(flicker) else 0.0,
            works_when_dropped=True if works is None else bool(works),
            angle=float(angle) if is_finite_number(angle) else None,
            width=max(0.0, float(width)) if is_finite_number(width) else None,
            channel=int(channel) if is_finite_number(channel) else None,
        )


@dataclass(frozen=True)
class LightSource:
    """A light placed in the world for the current tick."""

    id: str
    x: int
    y: int
    radius: float
    color: RGB
    intensity: float = 1.0
    flicker_rate: float = 0.0
    angle: float | None = None
    width: float | None = None
    channel: int = int(LightChannel.ALL)
    owner_id: str | None = None

    @property
    def position(self) -> tuple[int, int]:
        return self.x, self.y


class EmitterKind(Enum):
    MULTI = "multi"
    EQUIPMENT = "equipment"
    SINGLE = "single"
    NONE = "none"


class LightEmitterAdapter(Protocol):
    kind: EmitterKind

    def emitters(self, actor: Any) -> list[LightDescriptor]: ...


class MultiEmitterAdapter:
    kind = EmitterKind.MULTI

    def emitters(self, actor: Any) -> list[LightDescriptor]:
        raw = actor.get_light_emitters() or []
        return [d for d in map(LightDescriptor.coerce, raw) if d is not None]


class EquipmentEmitterAdapter:
    kind = EmitterKind.EQUIPMENT

    def emitters(self, actor: Any) -> list[LightDescriptor]:
        out = []
        for item in equipped_items(actor.equipment):
            if field(item, "lit") is False:
                continue
            descriptor = LightDescriptor.coerce(field(item, "light"))
            if descriptor is not None:
                out.append(descriptor)
        if not out and callable(getattr(actor, "get_light_radius", None)):
            return _SINGLE.emitters(actor)
        return out


class SingleAccessorAdapter:
    kind = EmitterKind.SINGLE

    def emitters(self, actor: Any) -> list[LightDescriptor]:
        def read(name: str) -> Any:
            getter = getattr(actor, name, None)
            return getter() if callable(getter) else None

        descriptor = LightDescriptor.coerce(
            {
                "radius": read("get_light_radius"),
                "color": read("get_light_color"),
                "flicker_rate": read("get_light_flicker_rate"),
                "angle": read("get_light_angle"),
                "width": read("get_light_width"),
                "channel": read("get_light_channel"),
            }
        )
        return [descriptor] if descriptor is not None else []


class NullEmitterAdapter:
    kind = EmitterKind.NONE

    def emitters(self, actor: Any) -> list[LightDescriptor]:
        return []


_MULTI = MultiEmitterAdapter()
_EQUIPMENT = EquipmentEmitterAdapter()
_SINGLE = SingleAccessorAdapter()
_NULL = NullEmitterAdapter()


def resolve_emitter_adapter(actor: Any) -> LightEmitterAdapter:
    if actor is None:
        return _NULL
    if callable(getattr(actor, "get_light_emitters", None)):
        return _MULTI
    if getattr(actor, "equipment", None) is not None:
        return _EQUIPMENT
    if callable(getattr(actor, "get_light_radius", None)):
        return _SINGLE
    return _NULL


def equipped_items(equipment: Any) -> list[Any]:
    """Flatten an equipment container into unique item objects.

    Accepts a slot mapping, an object with an ``all()`` method yielding
    ``(slot, item)`` pairs or items, or a plain iterable. Slot entries
    wrapping an ``item`` are unwrapped.
    """
    if equipment is None:
        return []
    if isinstance(equipment, Mapping):
        values: Iterable[Any] = equipment.values()
    elif isinstance(getattr(equipment, "slots", None), Mapping):
        values = equipment.slots.values()
    elif callable(getattr(equipment, "all", None)):
        values = [
            entry[1] if isinstance(entry, tuple) and len(entry) == 2 else entry
            for entry in equipment.all()
        ]
    elif isinstance(equipment, Iterable) and not isinstance(equipment, (str, bytes)):
        values = equipment
    else:
        return []

    items: list[Any] = []
    seen: set[int] = set()
    for entry in values:
        if entry is None:
            continue
        item = field(entry, "item") or entry
        if id(item) in seen:
            continue
        seen.add(id(item))
        items.append(item)
    return items


__all__ = [
    "EmitterKind",
    "EquipmentEmitterAdapter",
    "LightDescriptor",
    "LightEmitterAdapter",
    "LightSource",
    "MultiEmitterAdapter",
    "NullEmitterAdapter",
    "SingleAccessorAdapter",
    "equipped_items",
    "resolve_emitter_adapter",
]
