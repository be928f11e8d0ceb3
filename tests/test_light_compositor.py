import math
from types import SimpleNamespace

import numpy as np
import pytest

from duskvision.constants import LightChannel
from duskvision.lighting.compositor import (
    EMPTY_SAMPLE,
    LightCompositor,
    composite_overlay_at,
    composite_overlay_region,
    create_composite_light_context,
)
from duskvision.lighting.settings import LightConfig
from duskvision.utils.colors import RGB

CFG = LightConfig(base_overlay_alpha=0.5, flicker_variance=0.0)


def _white(**overrides):
    light = {"id": "lamp", "x": 0, "y": 0, "radius": 4, "color": "#ffffff", "intensity": 1}
    light.update(overrides)
    return light


def test_overlay_respects_los_fn():
    ctx = create_composite_light_context([_white()], CFG, now=0)

    visible = composite_overlay_at(1, 0, ctx, CFG, lambda light, x, y: True)
    assert visible.alpha > 0
    assert visible.color is not None

    blocked = composite_overlay_at(1, 0, ctx, CFG, lambda light, x, y: False)
    assert blocked.alpha == 0
    assert blocked.color is None


def test_empty_context_returns_empty_sample():
    ctx = create_composite_light_context([], CFG, now=0)
    assert composite_overlay_at(0, 0, ctx, CFG) == EMPTY_SAMPLE
    assert ctx.max_flicker_rate == 0


def test_invalid_lights_are_dropped():
    lights = [None, _white(radius=0), _white(radius=-2), _white(radius=math.nan), _white(x=math.inf)]
    ctx = create_composite_light_context(lights, CFG, now=0)
    assert len(ctx) == 0


def test_directional_cone_limits_contribution():
    cone = _white(x=5, y=5, radius=6, angle=0.0, width=math.pi / 2)
    ctx = create_composite_light_context([cone], CFG, now=0)

    assert composite_overlay_at(8, 5, ctx, CFG).alpha > 0  # straight ahead
    assert composite_overlay_at(8, 6, ctx, CFG).alpha > 0  # inside the half-width
    assert composite_overlay_at(5, 5, ctx, CFG).alpha > 0  # the source tile
    assert composite_overlay_at(2, 5, ctx, CFG) == EMPTY_SAMPLE  # behind
    assert composite_overlay_at(5, 8, ctx, CFG) == EMPTY_SAMPLE  # 90 degrees off


def test_cone_bearing_wraps_around_pi():
    cone = _white(x=5, y=5, radius=6, angle=math.pi, width=math.pi / 3)
    ctx = create_composite_light_context([cone], CFG, now=0)
    assert composite_overlay_at(2, 5, ctx, CFG).alpha > 0
    assert composite_overlay_at(2, 6, ctx, CFG).alpha > 0
    assert composite_overlay_at(8, 5, ctx, CFG) == EMPTY_SAMPLE


def test_channel_mask_gates_lights():
    spectral = _white(channel=int(LightChannel.SPECTRAL))
    ctx = create_composite_light_context([spectral], CFG, now=0)

    normal_viewer = [SimpleNamespace(light_mask=int(LightChannel.NORMAL))]
    spectral_viewer = [SimpleNamespace(light_mask=int(LightChannel.SPECTRAL))]
    unmasked = [SimpleNamespace()]

    assert composite_overlay_at(1, 0, ctx, CFG, entities_on_tile=normal_viewer) == EMPTY_SAMPLE
    assert composite_overlay_at(1, 0, ctx, CFG, entities_on_tile=spectral_viewer).alpha > 0
    assert composite_overlay_at(1, 0, ctx, CFG, entities_on_tile=unmasked).alpha > 0
    assert composite_overlay_at(1, 0, ctx, CFG).alpha > 0


def test_mixed_entities_union_their_masks():
    spectral = _white(channel=int(LightChannel.SPECTRAL))
    ctx = create_composite_light_context([spectral], CFG, now=0)
    crowd = [
        SimpleNamespace(light_mask=int(LightChannel.NORMAL)),
        SimpleNamespace(light_mask=int(LightChannel.SPECTRAL)),
    ]
    assert composite_overlay_at(1, 0, ctx, CFG, entities_on_tile=crowd).alpha > 0


def test_falloff_fades_to_zero_at_reach():
    cfg = LightConfig(base_overlay_alpha=0.5, flicker_variance=0.0, range_multiplier=1.0)
    ctx = create_composite_light_context([_white(radius=2)], cfg, now=0)
    near = composite_overlay_at(0, 0, ctx, cfg)
    mid = composite_overlay_at(1, 0, ctx, cfg)
    assert near.alpha == pytest.approx(0.5)
    assert 0 < mid.alpha < near.alpha
    assert composite_overlay_at(2, 0, ctx, cfg) == EMPTY_SAMPLE
    assert composite_overlay_at(3, 0, ctx, cfg) == EMPTY_SAMPLE


def test_range_multiplier_extends_reach():
    short = LightConfig(base_overlay_alpha=0.5, flicker_variance=0.0, range_multiplier=1.0)
    long = LightConfig(base_overlay_alpha=0.5, flicker_variance=0.0, range_multiplier=2.0)
    ctx = create_composite_light_context([_white(radius=2)], short, now=0)
    assert composite_overlay_at(3, 0, ctx, short) == EMPTY_SAMPLE
    assert composite_overlay_at(3, 0, ctx, long).alpha > 0


def test_dead_zone_keeps_full_strength_near_source():
    cfg = LightConfig(
        base_overlay_alpha=0.5,
        flicker_variance=0.0,
        range_multiplier=1.0,
        flicker_near_dead_zone_tiles=2.0,
    )
    ctx = create_composite_light_context([_white(radius=5)], cfg, now=0)
    assert composite_overlay_at(1, 0, ctx, cfg).alpha == pytest.approx(0.5)
    assert composite_overlay_at(2, 0, ctx, cfg).alpha == pytest.approx(0.5)
    assert composite_overlay_at(3, 0, ctx, cfg).alpha < 0.5


def test_white_light_color_tracks_alpha():
    ctx = create_composite_light_context([_white()], CFG, now=0)
    sample = composite_overlay_at(0, 0, ctx, CFG)
    level = round(255 * sample.alpha)
    assert sample.color == RGB(level, level, level)


def test_colored_light_only_tints_its_channels():
    ctx = create_composite_light_context([_white(color="#ff0000")], CFG, now=0)
    sample = composite_overlay_at(0, 0, ctx, CFG)
    assert sample.color.r > 0
    assert sample.color.g == 0
    assert sample.color.b == 0


def test_screen_blend_of_two_lights():
    ctx_one = create_composite_light_context([_white()], CFG, now=0)
    ctx_two = create_composite_light_context([_white(), _white(id="lamp2")], CFG, now=0)
    single = composite_overlay_at(0, 0, ctx_one, CFG).alpha
    double = composite_overlay_at(0, 0, ctx_two, CFG).alpha
    assert double == pytest.approx(1 - (1 - single) ** 2)
    assert single < double <= 1


def test_intensity_is_clamped():
    bright = create_composite_light_context([_white(intensity=5)], CFG, now=0)
    assert bright.lights[0].intensity == 1.0
    dark = create_composite_light_context([_white(intensity=-1)], CFG, now=0)
    assert dark.lights[0].intensity == 0.0
    assert composite_overlay_at(0, 0, dark, CFG) == EMPTY_SAMPLE


def test_alpha_is_clamped_with_large_flicker():
    cfg = LightConfig(base_overlay_alpha=1.0, flicker_variance=5.0)
    ctx = create_composite_light_context([_white(flicker_rate=1.0)], cfg, now=0.25)
    sample = composite_overlay_at(0, 0, ctx, cfg)
    assert 0 <= sample.alpha <= 1


def test_flicker_oscillator_uses_supplied_time():
    cfg = LightConfig(base_overlay_alpha=0.5, flicker_variance=0.2)
    light = _white(flicker_rate=1.0)

    still = create_composite_light_context([light], cfg, now=0.0)
    peak = create_composite_light_context([light], cfg, now=0.25)
    trough = create_composite_light_context([light], cfg, now=0.75)

    assert still.lights[0].osc == pytest.approx(0.0)
    assert peak.lights[0].osc == pytest.approx(1.0)
    assert trough.lights[0].osc == pytest.approx(-1.0)
    assert peak.max_flicker_rate == 1.0

    high = composite_overlay_at(1, 0, peak, cfg).alpha
    low = composite_overlay_at(1, 0, trough, cfg).alpha
    assert high > composite_overlay_at(1, 0, still, cfg).alpha > low


def test_max_flicker_rate_across_lights():
    lights = [_white(flicker_rate=0.5), _white(flicker_rate=3.0), _white(flicker_rate=-1)]
    ctx = create_composite_light_context(lights, CFG, now=0)
    assert ctx.max_flicker_rate == 3.0
    assert ctx.lights[2].osc == 0.0


def test_missing_color_uses_config_fallback():
    cfg = LightConfig(base_overlay_alpha=0.5, flicker_variance=0.0, fallback_color="#0000ff")
    ctx = create_composite_light_context([_white(color=None)], cfg, now=0)
    assert ctx.lights[0].color == RGB(0, 0, 255)


def test_region_matches_point_samples():
    ctx = create_composite_light_context([_white(x=1, y=1, radius=2)], CFG, now=0)
    alpha, rgb = composite_overlay_region(0, 0, 4, 3, ctx, CFG)
    assert alpha.shape == (3, 4)
    assert rgb.shape == (3, 4, 3)
    for row in range(3):
        for col in range(4):
            sample = composite_overlay_at(col, row, ctx, CFG)
            assert alpha[row, col] == pytest.approx(sample.alpha, abs=1e-6)
            if sample.color is not None:
                assert tuple(rgb[row, col]) == tuple(sample.color)
            else:
                assert not np.any(rgb[row, col])


def test_region_entities_lookup_applies_channel_mask():
    spectral = _white(channel=int(LightChannel.SPECTRAL))
    ctx = create_composite_light_context([spectral], CFG, now=0)
    blind = [SimpleNamespace(light_mask=int(LightChannel.NORMAL))]
    alpha, _ = composite_overlay_region(0, 0, 2, 1, ctx, CFG, entities_at=lambda x, y: blind)
    assert not np.any(alpha)


def test_compositor_color_cache_is_per_instance():
    first = LightCompositor()
    second = LightCompositor()
    first.create_context([_white(color="#123456")], CFG, now=0)
    assert len(first.colors) > 0
    assert len(second.colors) == 0


def test_compositor_instance_overlay_matches_function():
    compositor = LightCompositor()
    ctx = compositor.create_context([_white()], CFG, now=0)
    assert compositor.overlay_at(1, 1, ctx, CFG) == composite_overlay_at(1, 1, ctx, CFG)
