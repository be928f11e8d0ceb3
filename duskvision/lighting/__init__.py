"""Light collection, compositing and configuration."""

from .collector import LightCollector, collect_world_light_sources
from .compositor import (
    LightCompositor,
    LightContext,
    OverlaySample,
    composite_overlay_at,
    composite_overlay_region,
    create_composite_light_context,
)
from .settings import LightConfig, LightFalloffSettings, load_light_config
from .sources import LightDescriptor, LightSource, resolve_emitter_adapter

__all__ = [
    "LightCollector",
    "LightCompositor",
    "LightConfig",
    "LightContext",
    "LightDescriptor",
    "LightFalloffSettings",
    "LightSource",
    "OverlaySample",
    "collect_world_light_sources",
    "composite_overlay_at",
    "composite_overlay_region",
    "create_composite_light_context",
    "load_light_config",
    "resolve_emitter_adapter",
]
