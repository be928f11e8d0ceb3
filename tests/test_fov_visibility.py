import math

import numpy as np
import pytest
from structlog.testing import capture_logs

from duskvision.constants import TILE_UNKNOWN, TILE_WALL
from duskvision.world.fov import compute_field_of_view, compute_fov_mask
from duskvision.world.game_map import MapState


def _make_open_map(width: int = 15, height: int = 15) -> MapState:
    return MapState.filled(width, height)


@pytest.mark.parametrize("radius", [0, 1, 2, 3, 5])
def test_open_grid_visibility_matches_distance(radius):
    gm = _make_open_map()
    origin = (7, 7)
    visible = compute_field_of_view(origin, radius, gm)
    for y in range(gm.height):
        for x in range(gm.width):
            dx, dy = x - origin[0], y - origin[1]
            assert ((x, y) in visible) == (dx * dx + dy * dy <= radius * radius), (x, y)


def test_wall_hides_tiles_behind_it_on_same_ray():
    gm = _make_open_map(11, 11)
    gm.grid[5, 7] = TILE_WALL
    visible = compute_field_of_view((5, 5), 5, gm)
    assert (6, 5) in visible
    assert (7, 5) in visible  # the wall itself is seen
    for x in (8, 9, 10):
        assert (x, 5) not in visible


def test_wall_column_blocks_visibility():
    gm = _make_open_map(5, 5)
    gm.grid[:, 2] = TILE_WALL
    visible = compute_field_of_view((1, 2), 4, gm)
    assert (1, 2) in visible
    assert (2, 2) in visible
    assert (3, 2) not in visible
    assert (4, 2) not in visible


def test_known_grid_treats_unknown_as_transparent():
    gm = _make_open_map(11, 11)
    gm.grid[:, 7] = TILE_WALL
    gm.known = gm.unknown_known_grid()

    truth = compute_field_of_view((5, 5), 5, gm, use_known_grid=False)
    projected = compute_field_of_view((5, 5), 5, gm, use_known_grid=True)

    assert (9, 5) not in truth
    assert (9, 5) in projected
    assert (7, 5) in projected


def test_known_grid_walls_still_block():
    gm = _make_open_map(11, 11)
    gm.known = gm.unknown_known_grid()
    gm.known[5, 7] = TILE_WALL
    projected = compute_field_of_view((5, 5), 5, gm, use_known_grid=True)
    assert (7, 5) in projected
    assert (8, 5) not in projected


def test_known_grid_missing_is_fully_optimistic():
    gm = _make_open_map(11, 11)
    gm.grid[5, 7] = TILE_WALL
    projected = compute_field_of_view((5, 5), 5, gm, use_known_grid=True)
    assert (9, 5) in projected


@pytest.mark.parametrize("radius", [0, -5, math.nan, math.inf, None])
def test_degenerate_radius_only_origin_visible(radius):
    gm = _make_open_map(5, 5)
    assert compute_field_of_view((2, 2), radius, gm) == {(2, 2)}


def test_off_grid_tiles_never_inserted():
    gm = _make_open_map(5, 5)
    visible = compute_field_of_view((0, 0), 4, gm)
    assert (0, 0) in visible
    assert all(0 <= x < gm.width and 0 <= y < gm.height for x, y in visible)
    assert (3, 2) in visible


def test_repeated_calls_are_set_equal():
    gm = _make_open_map(20, 20)
    gm.grid[8:12, 10] = TILE_WALL
    gm.grid[4, 3:9] = TILE_WALL
    first = compute_field_of_view((9, 9), 8, gm)
    second = compute_field_of_view((9, 9), 8, gm)
    assert first == second


def test_fov_is_symmetric_between_mirrored_origins():
    gm = _make_open_map(9, 9)
    gm.grid[4, 4] = TILE_WALL
    left = compute_field_of_view((2, 4), 6, gm)
    right = compute_field_of_view((6, 4), 6, gm)
    mirrored = {(8 - x, y) for x, y in right}
    assert left == mirrored


def test_mask_matches_set():
    gm = _make_open_map(12, 12)
    gm.grid[3:9, 6] = TILE_WALL
    mask = compute_fov_mask((3, 5), 7, gm)
    visible = compute_field_of_view((3, 5), 7, gm)
    ys, xs = np.nonzero(mask)
    assert set(zip(xs.tolist(), ys.tolist())) == visible


def test_reused_opaque_grid_gives_same_result():
    gm = _make_open_map(12, 12)
    gm.grid[2:10, 8] = TILE_WALL
    opaque = gm.opaque_mask()
    assert compute_field_of_view((4, 4), 6, gm, opaque_grid=opaque) == compute_field_of_view(
        (4, 4), 6, gm
    )


def test_missing_map_state_logs_and_returns_empty():
    with capture_logs() as logs:
        assert compute_field_of_view((1, 1), 3, None) == set()
    assert any(entry["event"] == "FOV requested without a map state" for entry in logs)


def test_non_finite_origin_returns_empty():
    gm = _make_open_map(5, 5)
    assert compute_field_of_view((math.nan, 1), 3, gm) == set()


def test_map_state_rejects_mismatched_grid():
    with pytest.raises(ValueError):
        MapState(width=4, height=3, grid=np.zeros((4, 4), dtype=np.int8))
    with pytest.raises(ValueError):
        MapState(width=0, height=3, grid=np.zeros((3, 0), dtype=np.int8))


def test_map_state_from_rows_and_blocking():
    gm = MapState.from_rows(["..#", "..."])
    assert gm.width == 3 and gm.height == 2
    assert gm.tile_blocks_light(2, 0)
    assert not gm.tile_blocks_light(0, 1)
    assert gm.tile_blocks_light(5, 5)  # off-grid
    gm.known = gm.unknown_known_grid()
    assert (gm.known == TILE_UNKNOWN).all()
    assert not gm.tile_blocks_light(2, 0, use_known_grid=True)
