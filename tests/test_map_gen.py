"""
Test suite for arena grid generation: layouts, start slots, symmetry and
coordinate conversion.
"""

import numpy as np
import pytest

from map_gen import (
    BOARD_HEIGHT,
    BOARD_WIDTH,
    NUM_LAYOUTS,
    START_DIRECTIONS,
    generate_grid,
    get_grid,
    get_start_vectors,
    human_coords_to_index,
    index_to_human_coords,
    reachable_area,
    rectangle_grid,
    validate_grid_balance,
)
from models import DOWN, LEFT, OPEN, RIGHT, UP, WALL, Vector


def is_mirror_symmetric(grid):
    return np.array_equal(grid, grid[:, ::-1]) and np.array_equal(grid, grid[::-1, :])


class TestRectangleGrid:
    """Bordered empty arena."""

    def test_border_is_wall_interior_open(self):
        grid = rectangle_grid(6, 4)
        assert grid.shape == (4, 6)
        assert (grid[0, :] == WALL).all()
        assert (grid[-1, :] == WALL).all()
        assert (grid[:, 0] == WALL).all()
        assert (grid[:, -1] == WALL).all()
        assert (grid[1:-1, 1:-1] == OPEN).all()


class TestStartVectors:
    """Start slot placement."""

    def test_default_board_slots(self):
        assert get_start_vectors(4) == [Vector(12, 12), Vector(37, 37), Vector(12, 37), Vector(37, 12)]

    def test_slots_mirror_each_other(self):
        slots = get_start_vectors(4, 20, 20)
        tl, br, bl, tr = slots
        assert br == Vector(19 - tl.x, 19 - tl.y)
        assert bl == Vector(tl.x, 19 - tl.y)
        assert tr == Vector(19 - tl.x, tl.y)

    def test_fewer_players_take_leading_slots(self):
        assert get_start_vectors(2) == get_start_vectors(4)[:2]

    @pytest.mark.parametrize("count", [0, 5])
    def test_invalid_player_count(self, count):
        with pytest.raises(ValueError):
            get_start_vectors(count)

    def test_start_directions(self):
        assert START_DIRECTIONS == [RIGHT, LEFT, UP, DOWN]


class TestLayouts:
    """Built-in layouts."""

    @pytest.mark.parametrize("index", range(NUM_LAYOUTS))
    def test_layout_is_symmetric_and_balanced(self, index):
        grid = get_grid(index)
        assert grid.shape == (BOARD_HEIGHT, BOARD_WIDTH)
        assert is_mirror_symmetric(grid)
        assert validate_grid_balance(grid)
        for start in get_start_vectors(4):
            assert grid[start.y, start.x] == OPEN

    def test_layout_index_wraps(self):
        assert np.array_equal(get_grid(NUM_LAYOUTS + 1), get_grid(1))

    def test_layouts_differ(self):
        assert not np.array_equal(get_grid(0), get_grid(1))
        assert (get_grid(0) == rectangle_grid(BOARD_WIDTH, BOARD_HEIGHT)).all()


class TestGeneratedGrids:
    """Seeded obstacle grids."""

    def test_same_seed_same_grid(self):
        assert np.array_equal(generate_grid(11, 30, 30), generate_grid(11, 30, 30))

    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_generated_grid_is_symmetric_and_balanced(self, seed):
        grid = generate_grid(seed, 30, 30)
        assert is_mirror_symmetric(grid)
        assert validate_grid_balance(grid)

    def test_falls_back_to_rectangle(self):
        grid = generate_grid(5, 30, 30, obstacle_density=1.0)
        assert np.array_equal(grid, rectangle_grid(30, 30))


class TestReachability:
    """Flood-fill helpers."""

    def test_reachable_area_open_board(self):
        grid = rectangle_grid(7, 7)
        assert reachable_area(grid, Vector(3, 3)) == 25

    def test_reachable_area_blocked_start(self):
        grid = rectangle_grid(7, 7)
        assert reachable_area(grid, Vector(0, 0)) == 0

    def test_unbalanced_grid_is_rejected(self):
        grid = rectangle_grid(20, 20)
        tl = get_start_vectors(1, 20, 20)[0]
        grid[tl.y - 1:tl.y + 2, tl.x - 1:tl.x + 2] = WALL
        grid[tl.y, tl.x] = OPEN
        assert not validate_grid_balance(grid)


class TestHumanCoordinates:
    """Flat index to 1-based (column, row)."""

    def test_round_trip_over_whole_grid(self):
        width, height = 7, 5
        seen = set()
        for index in range(width * height):
            coords = index_to_human_coords(index, width, height)
            assert human_coords_to_index(coords, width, height) == index
            seen.add(coords)
        assert len(seen) == width * height

    def test_known_values(self):
        assert index_to_human_coords(0, 7, 5) == (1, 1)
        assert index_to_human_coords(8, 7, 5) == (2, 2)

    @pytest.mark.parametrize("index", [-1, 35])
    def test_index_out_of_range(self, index):
        with pytest.raises(ValueError):
            index_to_human_coords(index, 7, 5)

    @pytest.mark.parametrize("coords", [(0, 1), (8, 1), (1, 6)])
    def test_coords_out_of_range(self, coords):
        with pytest.raises(ValueError):
            human_coords_to_index(coords, 7, 5)
