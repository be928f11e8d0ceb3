"""Perception snapshots consumed by AI decision systems."""

from .perception import (
    Perception,
    WorldContext,
    compute_actor_fov,
    update_all_perception,
    update_perception,
)

__all__ = [
    "Perception",
    "WorldContext",
    "compute_actor_fov",
    "update_all_perception",
    "update_perception",
]
