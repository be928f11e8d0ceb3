"""Lighting configuration.

:class:`LightConfig` is an immutable bundle of compositor knobs and must be
handed explicitly to every compositor call. :class:`LightFalloffSettings`
holds the runtime-adjustable falloff knobs (for a debug panel, say) and
produces new configs from them; each scene owns its own instance.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import structlog
import yaml

from duskvision.constants import DEFAULT_LIGHT_COLOR
from duskvision.utils.helpers import clamp01, is_finite_number

log = structlog.get_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "lighting.yaml"

MIN_RANGE_MULTIPLIER = 0.01
MIN_FALLOFF_POWER = 0.01


@dataclass(frozen=True)
class LightConfig:
    base_overlay_alpha: float = 0.75
    flicker_variance: float = 0.15
    flicker_near_dead_zone_tiles: float = 0.0
    range_multiplier: float = 1.75
    falloff_power: float = 0.8
    fallback_color: str = DEFAULT_LIGHT_COLOR

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> LightConfig:
        """Build a config from loose values, ignoring anything unusable."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            log.warning("Ignoring unknown lighting config keys", keys=unknown)
        return cls().with_overrides(**{k: v for k, v in data.items() if k in known})

    def with_overrides(self, **overrides: Any) -> LightConfig:
        """Return a copy with sanitized overrides applied."""
        clean: dict[str, Any] = {}
        for name, value in overrides.items():
            if value is None:
                continue
            if name == "fallback_color":
                if isinstance(value, str) and value.strip():
                    clean[name] = value.strip()
                continue
            if not is_finite_number(value):
                log.warning("Ignoring non-finite lighting value", key=name, value=value)
                continue
            number = float(value)
            if name == "base_overlay_alpha":
                number = clamp01(number)
            elif name in ("flicker_variance", "flicker_near_dead_zone_tiles"):
                number = max(0.0, number)
            elif name == "range_multiplier":
                number = max(MIN_RANGE_MULTIPLIER, number)
            elif name == "falloff_power":
                number = max(MIN_FALLOFF_POWER, number)
            clean[name] = number
        return replace(self, **clean)


def load_light_config(config_path: Path | str | None = None) -> LightConfig:
    """Load the ``lighting`` section of a YAML configuration file."""
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    if not path.is_file():
        log.error("Lighting config file not found", path=str(path))
        raise FileNotFoundError(f"Lighting configuration file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        log.error("Error parsing lighting YAML", path=str(path), error=str(e), exc_info=True)
        raise

    if config_data is None:
        log.warning("Lighting config file is empty.", path=str(path))
        return LightConfig()
    section = config_data.get("lighting", {}) if isinstance(config_data, Mapping) else {}
    if not isinstance(section, Mapping):
        log.warning("Lighting section is not a mapping", path=str(path))
        section = {}
    log.info("Lighting config loaded", path=str(path))
    return LightConfig.from_mapping(section)


@dataclass(frozen=True)
class FalloffSnapshot:
    dead_zone_tiles: float | None
    range_multiplier: float
    falloff_power: float


DEFAULT_FALLOFF = FalloffSnapshot(
    dead_zone_tiles=None, range_multiplier=1.75, falloff_power=0.8
)

FalloffListener = Callable[[FalloffSnapshot], None]


class LightFalloffSettings:
    """Runtime-adjustable falloff knobs with change notification.

    ``dead_zone_tiles`` of ``None`` leaves each config's own dead zone alone.
    """

    def __init__(self, initial: FalloffSnapshot = DEFAULT_FALLOFF) -> None:
        self._state = initial
        self._listeners: list[FalloffListener] = []

    @property
    def snapshot(self) -> FalloffSnapshot:
        return self._state

    def subscribe(self, fn: FalloffListener, immediate: bool = False) -> Callable[[], None]:
        self._listeners.append(fn)
        if immediate:
            self._call(fn)

        def unsubscribe() -> None:
            if fn in self._listeners:
                self._listeners.remove(fn)

        return unsubscribe

    def update(self, **partial: Any) -> FalloffSnapshot:
        """Apply any of ``dead_zone_tiles``, ``range_multiplier``, ``falloff_power``.

        Invalid values are ignored. Listeners fire once when something changed.
        """
        state = self._state
        if "dead_zone_tiles" in partial:
            value = partial["dead_zone_tiles"]
            if value is None or value == "":
                state = replace(state, dead_zone_tiles=None)
            elif is_finite_number(value):
                state = replace(state, dead_zone_tiles=max(0.0, float(value)))
        value = partial.get("range_multiplier")
        if is_finite_number(value):
            state = replace(state, range_multiplier=max(MIN_RANGE_MULTIPLIER, float(value)))
        value = partial.get("falloff_power")
        if is_finite_number(value):
            state = replace(state, falloff_power=max(MIN_FALLOFF_POWER, float(value)))

        if state != self._state:
            self._state = state
            self._notify()
        return self._state

    def reset(self) -> FalloffSnapshot:
        if self._state != DEFAULT_FALLOFF:
            self._state = DEFAULT_FALLOFF
            self._notify()
        return self._state

    def apply(self, config: LightConfig) -> LightConfig:
        """Return ``config`` with the current falloff knobs applied."""
        state = self._state
        return config.with_overrides(
            flicker_near_dead_zone_tiles=state.dead_zone_tiles,
            range_multiplier=state.range_multiplier,
            falloff_power=state.falloff_power,
        )

    def _notify(self) -> None:
        for fn in list(self._listeners):
            self._call(fn)

    def _call(self, fn: FalloffListener) -> None:
        try:
            fn(self._state)
        except Exception as e:
            log.error("Light falloff listener failed", error=str(e), exc_info=True)


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_FALLOFF",
    "FalloffSnapshot",
    "LightConfig",
    "LightFalloffSettings",
    "load_light_config",
]
