# duskvision/utils/helpers.py
from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any


def is_finite_number(value: Any) -> bool:
    """Return ``True`` for real numbers that are neither NaN nor infinite."""
    if isinstance(value, bool) or value is None:
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def to_tile(value: Any) -> int | None:
    """Truncate a coordinate to a tile index, or ``None`` when it is not finite."""
    if not is_finite_number(value):
        return None
    return int(float(value))


def clamp01(value: Any) -> float:
    if not is_finite_number(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def smoothstep01(t: float) -> float:
    x = max(0.0, min(1.0, t))
    return x * x * (3.0 - 2.0 * x)


def field(obj: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping key or an attribute, whichever ``obj`` has."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def resolve_position(obj: Any) -> tuple[int, int] | None:
    """Find an integer tile position on an actor, entity or placement.

    Checks, in order: ``x``/``y``, a ``pos``/``position`` value (tuple,
    mapping, object, or a zero-argument callable returning one of those) and
    a ``get_position()`` method.
    """
    if obj is None:
        return None

    x, y = to_tile(field(obj, "x")), to_tile(field(obj, "y"))
    if x is not None and y is not None:
        return x, y

    for name in ("pos", "position"):
        candidate = field(obj, name)
        if callable(candidate):
            candidate = candidate()
        point = coerce_point(candidate)
        if point is not None:
            return point

    getter = getattr(obj, "get_position", None)
    if callable(getter):
        return coerce_point(getter())
    return None


def coerce_point(candidate: Any) -> tuple[int, int] | None:
    if candidate is None:
        return None
    if isinstance(candidate, (tuple, list)) and len(candidate) == 2:
        x, y = to_tile(candidate[0]), to_tile(candidate[1])
    else:
        x, y = to_tile(field(candidate, "x")), to_tile(field(candidate, "y"))
    if x is None or y is None:
        return None
    return x, y


__all__ = [
    "is_finite_number",
    "to_tile",
    "clamp01",
    "smoothstep01",
    "field",
    "resolve_position",
    "coerce_point",
]
