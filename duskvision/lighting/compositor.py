"""Composite light overlay math.

``create_composite_light_context`` precomputes per-light state for one frame
and ``composite_overlay_at`` blends every light reaching a tile into a single
overlay sample.

Attenuation is a smoothstep rolloff with an optional full-strength dead zone
near the source. Flicker is a per-light sine oscillator whose amplitude fades
with ``falloff ** falloff_power``. Lights combine with a bounded screen-like
blend: ``A = 1 - prod(1 - a_i)`` and ``C = 1 - prod(1 - c_i * a_i)``.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple

import numpy as np
import structlog

from duskvision.constants import LightChannel
from duskvision.lighting.settings import LightConfig
from duskvision.utils.colors import RGB, ColorParser
from duskvision.utils.helpers import clamp01, field, is_finite_number, smoothstep01

log = structlog.get_logger(__name__)

EPSILON = 1e-6
TAU = 2.0 * math.pi

LosFn = Callable[["CompositeLight", int, int], bool]


class OverlaySample(NamedTuple):
    alpha: float
    color: RGB | None


EMPTY_SAMPLE = OverlaySample(0.0, None)


@dataclass(frozen=True)
class CompositeLight:
    """Per-frame state for one light."""

    id: str | None
    x: int
    y: int
    radius: float
    color: RGB
    intensity: float
    osc: float
    angle: float | None
    width: float | None
    channel: int

    @property
    def has_cone(self) -> bool:
        return self.angle is not None and self.width is not None and self.width > 0


@dataclass(frozen=True)
class LightContext:
    lights: tuple[CompositeLight, ...]
    max_flicker_rate: float

    def __len__(self) -> int:
        return len(self.lights)


class LightCompositor:
    """Blends light records into overlay samples; owns its color cache."""

    def __init__(self, color_parser: ColorParser | None = None) -> None:
        self.colors = color_parser if color_parser is not None else ColorParser()

    def create_context(
        self,
        lights: Iterable[Any],
        config: LightConfig,
        now: float | None = None,
    ) -> LightContext:
        """Precompute colors, intensities and flicker phases at ``now`` seconds."""
        t = time.monotonic() if now is None else float(now)
        fallback = self.colors.to_rgb(config.fallback_color)
        out: list[CompositeLight] = []
        max_flicker_rate = 0.0

        for light in lights or ():
            if light is None:
                continue
            radius = field(light, "radius")
            x, y = field(light, "x"), field(light, "y")
            if not is_finite_number(radius) or float(radius) <= 0:
                continue
            if not (is_finite_number(x) and is_finite_number(y)):
                continue
            rate = field(light, "flicker_rate")
            rate = max(0.0, float(rate)) if is_finite_number(rate) else 0.0
            intensity = field(light, "intensity")
            angle = field(light, "angle")
            width = field(light, "width")
            channel = field(light, "channel")
            out.append(
                CompositeLight(
                    id=field(light, "id"),
                    x=int(float(x)),
                    y=int(float(y)),
                    radius=float(radius),
                    color=self.colors.to_rgb(field(light, "color"), fallback),
                    intensity=1.0 if intensity is None else clamp01(intensity),
                    osc=math.sin(TAU * rate * t) if rate > 0 else 0.0,
                    angle=float(angle) if is_finite_number(angle) else None,
                    width=float(width) if is_finite_number(width) else None,
                    channel=int(channel) if is_finite_number(channel) else int(LightChannel.ALL),
                )
            )
            max_flicker_rate = max(max_flicker_rate, rate)

        return LightContext(lights=tuple(out), max_flicker_rate=max_flicker_rate)

    def overlay_at(
        self,
        x: int,
        y: int,
        ctx: LightContext,
        config: LightConfig,
        los_fn: LosFn | None = None,
        entities_on_tile: Sequence[Any] | None = None,
    ) -> OverlaySample:
        return composite_overlay_at(x, y, ctx, config, los_fn, entities_on_tile)


def tile_light_mask(entities_on_tile: Sequence[Any] | None) -> int:
    """Union of the ``light_mask`` of every entity on a tile.

    An empty tile receives every channel, as does an entity without a mask.
    """
    if not entities_on_tile:
        return int(LightChannel.ALL)
    mask = 0
    for ent in entities_on_tile:
        value = field(ent, "light_mask")
        mask |= int(value) if is_finite_number(value) else int(LightChannel.ALL)
    return mask


def _normalize_angle(delta: float) -> float:
    while delta <= -math.pi:
        delta += TAU
    while delta > math.pi:
        delta -= TAU
    return delta


def light_contribution(x: int, y: int, light: CompositeLight, config: LightConfig) -> float:
    """Alpha contributed by a single light at ``(x, y)``, in ``[0, 1]``."""
    dx = x - light.x
    dy = y - light.y

    if light.has_cone and (dx != 0 or dy != 0):
        delta = _normalize_angle(math.atan2(dy, dx) - light.angle)
        if abs(delta) > light.width / 2:
            return 0.0

    dead = max(0.0, config.flicker_near_dead_zone_tiles)
    dist = math.hypot(dx, dy)
    reach = light.radius * config.range_multiplier
    falloff = 1.0 - smoothstep01((dist - dead) / max(EPSILON, reach - dead))
    if falloff <= 0:
        return 0.0

    base_alpha = clamp01(config.base_overlay_alpha)
    variance = max(0.0, config.flicker_variance)
    flicker = light.osc * variance * falloff ** config.falloff_power if variance else 0.0
    return clamp01((base_alpha + flicker) * falloff * light.intensity)


def composite_overlay_at(
    x: int,
    y: int,
    ctx: LightContext,
    config: LightConfig,
    los_fn: LosFn | None = None,
    entities_on_tile: Sequence[Any] | None = None,
) -> OverlaySample:
    """Blend every light in ``ctx`` that reaches ``(x, y)``.

    Lights are gated in order by channel mask, ``los_fn(light, x, y)`` and
    directional cone before falloff is applied.
    """
    if ctx is None or not ctx.lights:
        return EMPTY_SAMPLE

    tile_mask = tile_light_mask(entities_on_tile)
    one_minus_a = 1.0
    omr = omg = omb = 1.0

    for light in ctx.lights:
        if light.channel & tile_mask == 0:
            continue
        if los_fn is not None and not los_fn(light, x, y):
            continue
        ai = light_contribution(x, y, light, config)
        if ai <= 0:
            continue
        one_minus_a *= 1.0 - ai
        omr *= 1.0 - (light.color.r / 255.0) * ai
        omg *= 1.0 - (light.color.g / 255.0) * ai
        omb *= 1.0 - (light.color.b / 255.0) * ai

    alpha = clamp01(1.0 - one_minus_a)
    if alpha <= 0:
        return EMPTY_SAMPLE
    return OverlaySample(
        alpha,
        RGB(
            int(round(255 * (1.0 - omr))),
            int(round(255 * (1.0 - omg))),
            int(round(255 * (1.0 - omb))),
        ),
    )


def composite_overlay_region(
    x0: int,
    y0: int,
    width: int,
    height: int,
    ctx: LightContext,
    config: LightConfig,
    los_fn: LosFn | None = None,
    entities_at: Callable[[int, int], Sequence[Any]] | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Sample a viewport into ``(alpha, rgb)`` arrays for the renderer.

    ``alpha`` is ``float32`` of shape ``(height, width)``; ``rgb`` is ``uint8``
    of shape ``(height, width, 3)`` and stays black where alpha is zero.
    """
    alpha_map = np.zeros((height, width), dtype=np.float32)
    rgb_map = np.zeros((height, width, 3), dtype=np.uint8)
    if ctx is None or not ctx.lights:
        return alpha_map, rgb_map

    for row in range(height):
        for col in range(width):
            wx, wy = x0 + col, y0 + row
            entities = entities_at(wx, wy) if entities_at is not None else None
            sample = composite_overlay_at(wx, wy, ctx, config, los_fn, entities)
            if sample.color is None:
                continue
            alpha_map[row, col] = sample.alpha
            rgb_map[row, col] = sample.color

    log.debug(
        "Composited light overlay region",
        origin=(x0, y0),
        size=(width, height),
        lights=len(ctx.lights),
        lit_tiles=int(np.count_nonzero(alpha_map)),
    )
    return alpha_map, rgb_map


def create_composite_light_context(
    lights: Iterable[Any],
    config: LightConfig,
    now: float | None = None,
    compositor: LightCompositor | None = None,
) -> LightContext:
    """Module-level entry point; uses a fresh :class:`LightCompositor` by default."""
    return (compositor or LightCompositor()).create_context(lights, config, now)


__all__ = [
    "CompositeLight",
    "EMPTY_SAMPLE",
    "LightCompositor",
    "LightContext",
    "OverlaySample",
    "composite_overlay_at",
    "composite_overlay_region",
    "create_composite_light_context",
    "light_contribution",
    "tile_light_mask",
]
