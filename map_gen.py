"""
Arena grid generation for the light-cycle arena.

Grids are numpy integer matrices indexed [y, x] holding Square tags
(OPEN, WALL or a positive player id). Every layout produced here is bordered
by a permanent wall and is symmetric under the mirror images that map the
four start slots onto each other, so no starting slot is favoured.
"""

from collections import deque
from typing import List, Tuple

import numpy as np

from models import DOWN, LEFT, OPEN, RIGHT, UP, WALL, Vector

BOARD_WIDTH = 50
BOARD_HEIGHT = 50
NUM_LAYOUTS = 4
MAX_PLAYERS = 4

# Headings matching the order of get_start_vectors:
# top-left moves right, bottom-right moves left, bottom-left moves up, top-right moves down.
START_DIRECTIONS = [RIGHT, LEFT, UP, DOWN]


def rectangle_grid(width: int, height: int) -> np.ndarray:
    """
    Create an open grid enclosed by a one-cell perimeter wall.

    Args:
        width: Number of columns (including the wall)
        height: Number of rows (including the wall)

    Returns:
        (height, width) int32 array
    """
    grid = np.full((height, width), OPEN, dtype=np.int32)
    grid[0, :] = WALL
    grid[height - 1, :] = WALL
    grid[:, 0] = WALL
    grid[:, width - 1] = WALL
    return grid


def get_start_vectors(num_players: int, width: int = BOARD_WIDTH, height: int = BOARD_HEIGHT) -> List[Vector]:
    """
    Starting head positions for up to four players.

    Slots are the corners of an inner square a quarter of the way in from
    each wall, mirrored exactly so that every slot is the same distance from
    its walls. Order: top-left, bottom-right, bottom-left, top-right.
    """
    if not 1 <= num_players <= MAX_PLAYERS:
        raise ValueError(f"Between 1 and {MAX_PLAYERS} players supported, got {num_players}")

    lo_x = max(1, width // 4)
    lo_y = max(1, height // 4)
    hi_x = width - 1 - lo_x
    hi_y = height - 1 - lo_y
    slots = [
        Vector(lo_x, lo_y),
        Vector(hi_x, hi_y),
        Vector(lo_x, hi_y),
        Vector(hi_x, lo_y),
    ]
    return slots[:num_players]


def _mirror(grid: np.ndarray) -> np.ndarray:
    """Make a grid symmetric left/right and top/bottom by OR-ing walls with their reflections."""
    walls = grid == WALL
    walls = walls | walls[:, ::-1]
    walls = walls | walls[::-1, :]
    mirrored = grid.copy()
    mirrored[walls] = WALL
    return mirrored


def _clear_start_zones(grid: np.ndarray, radius: int = 2) -> None:
    """Open the cells around every start slot so no player spawns boxed in."""
    height, width = grid.shape
    for start in get_start_vectors(MAX_PLAYERS, width, height):
        y0, y1 = max(1, start.y - radius), min(height - 1, start.y + radius + 1)
        x0, x1 = max(1, start.x - radius), min(width - 1, start.x + radius + 1)
        grid[y0:y1, x0:x1] = OPEN


def get_grid(index: int, width: int = BOARD_WIDTH, height: int = BOARD_HEIGHT) -> np.ndarray:
    """
    Built-in arena layouts, selected by index modulo NUM_LAYOUTS.

    0: open rectangle
    1: central block
    2: four pillars between the start slots
    3: central cross with gaps at its arms
    """
    grid = rectangle_grid(width, height)
    layout = index % NUM_LAYOUTS
    cx, cy = width // 2, height // 2

    if layout == 1:
        half_w, half_h = max(1, width // 10), max(1, height // 10)
        grid[cy - half_h:cy + half_h, cx - half_w:cx + half_w] = WALL
    elif layout == 2:
        size_x, size_y = max(1, width // 16), max(1, height // 16)
        for px, py in [(width // 2, height // 4), (width // 4, height // 2)]:
            grid[py - size_y:py + size_y, px - size_x:px + size_x] = WALL
    elif layout == 3:
        arm_x, arm_y = width // 5, height // 5
        grid[cy, cx - arm_x:cx + arm_x] = WALL
        grid[cy - arm_y:cy + arm_y, cx] = WALL
        grid[cy - 1:cy + 2, cx - 1:cx + 2] = OPEN

    grid = _mirror(grid)
    _clear_start_zones(grid)
    return grid


def reachable_area(grid: np.ndarray, start: Vector) -> int:
    """
    Count open cells connected to `start` by 4-neighbour moves.

    The start cell itself is counted when it is open.
    """
    height, width = grid.shape
    if not (0 <= start.x < width and 0 <= start.y < height) or grid[start.y, start.x] != OPEN:
        return 0

    open_cells = (grid == OPEN).tolist()
    seen = {(start.x, start.y)}
    queue = deque([(start.x, start.y)])
    while queue:
        x, y = queue.popleft()
        for dx, dy in ((0, -1), (0, 1), (-1, 0), (1, 0)):
            nx, ny = x + dx, y + dy
            if 0 <= nx < width and 0 <= ny < height and (nx, ny) not in seen and open_cells[ny][nx]:
                seen.add((nx, ny))
                queue.append((nx, ny))
    return len(seen)


def validate_grid_balance(grid: np.ndarray) -> bool:
    """
    Check that every start slot reaches the same, non-trivial open region.

    Args:
        grid: Candidate arena grid

    Returns:
        True if all four slots see the same reachable area and it covers at
        least half of the open cells.
    """
    height, width = grid.shape
    starts = get_start_vectors(MAX_PLAYERS, width, height)
    areas = [reachable_area(grid, s) for s in starts]
    total_open = int(np.count_nonzero(grid == OPEN))
    if total_open == 0 or len(set(areas)) != 1:
        return False
    return areas[0] * 2 >= total_open


def generate_grid(
    seed: int,
    width: int = BOARD_WIDTH,
    height: int = BOARD_HEIGHT,
    obstacle_density: float = 0.08,
    max_attempts: int = 10,
) -> np.ndarray:
    """
    Generate a seeded arena with scattered, mirrored obstacles.

    Obstacles are drawn in the top-left quadrant and mirrored into the other
    three, then the start zones are cleared. An unbalanced draw is retried
    with the next seed; after max_attempts the open rectangle is returned.

    Args:
        seed: Seed for numpy's default generator
        width, height: Grid dimensions including the border wall
        obstacle_density: Fraction of quadrant cells turned into wall
        max_attempts: Regeneration attempts before giving up

    Returns:
        (height, width) int32 array
    """
    for attempt in range(max_attempts):
        rng = np.random.default_rng(seed + attempt)
        grid = rectangle_grid(width, height)
        qh, qw = (height + 1) // 2, (width + 1) // 2
        mask = rng.random((qh, qw)) < obstacle_density
        quadrant = grid[:qh, :qw]
        quadrant[mask] = WALL
        grid = _mirror(grid)
        _clear_start_zones(grid)
        if validate_grid_balance(grid):
            return grid

    return rectangle_grid(width, height)


def index_to_human_coords(index: int, width: int, height: int) -> Tuple[int, int]:
    """
    Convert a flat row-major cell index into 1-based (column, row) coordinates.

    Raises:
        ValueError: if the index is outside 0 .. width*height - 1
    """
    if not 0 <= index < width * height:
        raise ValueError(f"Cell index {index} outside grid of {width}x{height}")
    row, col = divmod(index, width)
    return col + 1, row + 1


def human_coords_to_index(coords: Tuple[int, int], width: int, height: int) -> int:
    """Inverse of index_to_human_coords."""
    col, row = coords
    if not (1 <= col <= width and 1 <= row <= height):
        raise ValueError(f"Coordinates {coords} outside grid of {width}x{height}")
    return (row - 1) * width + (col - 1)
