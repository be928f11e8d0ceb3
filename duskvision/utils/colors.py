"""Color normalization for light records.

Light colors arrive as ``#rgb``/``#rrggbb`` strings (the leading ``#`` is
optional for six-digit hex), ``rgb()``/``rgba()`` strings, ``{r, g, b}``
mappings, 3-sequences or :class:`RGB` values. Anything else resolves to the
fallback color.

String parsing is memoized per :class:`ColorParser` instance so that two
scenes (or a test and a running simulation) never share cache entries.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any, NamedTuple

import structlog

from duskvision.constants import DEFAULT_LIGHT_COLOR, DEFAULT_LIGHT_RGB
from duskvision.utils.helpers import is_finite_number

log = structlog.get_logger(__name__)

HEX_PATTERN = re.compile(r"^#?([0-9a-f]{6})$", re.IGNORECASE)
SHORT_HEX_PATTERN = re.compile(r"^#([0-9a-f]{3})$", re.IGNORECASE)
FUNCTIONAL_PATTERN = re.compile(r"^rgba?\(([^)]+)\)$", re.IGNORECASE)


class RGB(NamedTuple):
    r: int
    g: int
    b: int


DEFAULT_RGB = RGB(*DEFAULT_LIGHT_RGB)


def _channel(value: float) -> int:
    return max(0, min(255, int(round(value))))


def parse_color_string(color: str) -> RGB | None:
    """Parse a single color string without caching; ``None`` if malformed."""
    text = color.strip()
    if not text:
        return None

    match = HEX_PATTERN.match(text)
    if match:
        value = int(match.group(1), 16)
        return RGB((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)

    match = SHORT_HEX_PATTERN.match(text)
    if match:
        value = int("".join(ch * 2 for ch in match.group(1)), 16)
        return RGB((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)

    match = FUNCTIONAL_PATTERN.match(text)
    if match:
        parts = []
        for raw in match.group(1).split(","):
            try:
                parts.append(float(raw.strip()))
            except ValueError:
                continue
        parts = [p for p in parts if is_finite_number(p)]
        if len(parts) >= 3:
            return RGB(_channel(parts[0]), _channel(parts[1]), _channel(parts[2]))
    return None


class ColorParser:
    """Resolve arbitrary color inputs to :class:`RGB`, caching string parses."""

    def __init__(self, fallback: str | RGB = DEFAULT_LIGHT_COLOR) -> None:
        self._cache: dict[str, RGB | None] = {}
        if isinstance(fallback, str):
            parsed = parse_color_string(fallback)
            self.fallback = parsed if parsed is not None else DEFAULT_RGB
        else:
            self.fallback = RGB(*fallback)

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()

    def parse(self, color: str) -> RGB | None:
        """Parse a string through the cache; ``None`` when malformed."""
        if color in self._cache:
            return self._cache[color]
        parsed = parse_color_string(color)
        if parsed is None:
            log.debug("Unparseable light color", color=color)
        self._cache[color] = parsed
        return parsed

    def to_rgb(self, color: Any, fallback: RGB | None = None) -> RGB:
        default = fallback if fallback is not None else self.fallback
        if color is None:
            return default
        if isinstance(color, RGB):
            return color
        if isinstance(color, str):
            parsed = self.parse(color)
            return parsed if parsed is not None else default
        if isinstance(color, Mapping):
            r, g, b = color.get("r"), color.get("g"), color.get("b")
            if is_finite_number(r):
                return RGB(
                    _channel(float(r)),
                    _channel(float(g) if is_finite_number(g) else 0.0),
                    _channel(float(b) if is_finite_number(b) else 0.0),
                )
            return default
        if isinstance(color, Sequence) and len(color) == 3:
            if all(is_finite_number(c) for c in color):
                return RGB(*(_channel(float(c)) for c in color))
        return default


__all__ = ["RGB", "DEFAULT_RGB", "ColorParser", "parse_color_string"]
