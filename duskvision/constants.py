"""Tile codes, light channels and shadowcasting tables shared across the package."""

from enum import IntFlag
from typing import Final

import numpy as np

TILE_FLOOR: Final[int] = 0
TILE_WALL: Final[int] = 1
# Known-grid sentinel for cells the observer has never seen
TILE_UNKNOWN: Final[int] = -1

DEFAULT_LIGHT_COLOR: Final[str] = "#ffe9a6"
DEFAULT_LIGHT_RGB: Final[tuple[int, int, int]] = (255, 233, 166)


class LightChannel(IntFlag):
    """Independent light/visibility layers an emitter or receiver can use."""

    NONE = 0
    NORMAL = 1
    SPECTRAL = 2
    MAGIC = 4
    ALL = 0xFFFFFFFF


# (xx, xy, yx, yy) coefficients for the eight octants
FOV_TRANSFORMS: Final[np.ndarray] = np.array(
    [
        (1, 0, 0, 1),
        (0, 1, 1, 0),
        (0, -1, 1, 0),
        (-1, 0, 0, 1),
        (-1, 0, 0, -1),
        (0, -1, -1, 0),
        (0, 1, -1, 0),
        (1, 0, 0, -1),
    ],
    dtype=np.int64,
)
FOV_TRANSFORMS.setflags(write=False)

__all__ = [
    "TILE_FLOOR",
    "TILE_WALL",
    "TILE_UNKNOWN",
    "DEFAULT_LIGHT_COLOR",
    "DEFAULT_LIGHT_RGB",
    "LightChannel",
    "FOV_TRANSFORMS",
]
