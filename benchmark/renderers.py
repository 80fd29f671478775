"""
Plain-text renderers for the light-cycle arena.

Read-only consumers of an Arena: grid dimensions, per-cell Square tags and
the player list. Used by the benchmark CLI (--show-final) and for debugging
failing tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from models import DIRECTION_NAMES, OPEN, WALL
from territory import NEUTRAL, UNREACHED, find_closest_assignments, territory_summary

if TYPE_CHECKING:
    from state import Arena

WALL_CHAR = "#"
OPEN_CHAR = "."
NEUTRAL_CHAR = "+"
UNREACHED_CHAR = " "


def head_char(player_id: int) -> str:
    """Heads render as capital letters: player 1 is A."""
    return chr(ord("A") + player_id - 1)


def trail_char(player_id: int) -> str:
    """Trails render as the player's id digit (ids past 9 wrap)."""
    return str(player_id % 10)


def render_arena(arena: Arena) -> str:
    """
    ASCII dump of the grid, one text row per grid row.

    Walls are '#', open cells '.', trails the owner's id digit and living
    heads the owner's letter.
    """
    heads = {(p.position.x, p.position.y): p.id for p in arena.players if p.alive}
    rows = []
    grid = arena.grid.tolist()
    for y, row in enumerate(grid):
        chars = []
        for x, square in enumerate(row):
            if square == WALL:
                chars.append(WALL_CHAR)
            elif square == OPEN:
                chars.append(OPEN_CHAR)
            elif heads.get((x, y)) == square:
                chars.append(head_char(square))
            else:
                chars.append(trail_char(square))
        rows.append("".join(chars))
    return "\n".join(rows)


def render_territory(arena: Arena) -> str:
    """
    ASCII dump of the Voronoi partition.

    Open cells show the lowercase letter of the player who reaches them first,
    '+' for ties and a blank for cells no living head can reach. Walls, trails
    and heads render as in render_arena.
    """
    distances, assignments = find_closest_assignments(arena)
    board = [list(line) for line in render_arena(arena).split("\n")]
    for y in range(arena.height):
        for x in range(arena.width):
            if arena.grid[y, x] != OPEN:
                continue
            if distances[y, x] == UNREACHED:
                board[y][x] = UNREACHED_CHAR
            elif assignments[y, x] == NEUTRAL:
                board[y][x] = NEUTRAL_CHAR
            else:
                board[y][x] = head_char(int(assignments[y, x])).lower()
    return "\n".join("".join(row) for row in board)


def render_status(arena: Arena) -> str:
    """One line per player with state, heading and live territory."""
    summary = territory_summary(arena)
    lines = [f"Tick {arena.tick}  open={summary['open']}  neutral={summary['neutral']}  "
             f"unreached={summary['unreached']}"]
    for p in arena.players:
        status = "alive" if p.alive else "dead"
        lines.append(
            f"  {head_char(p.id)} (player {p.id}) {status:<5} "
            f"at ({p.position.x}, {p.position.y}) heading {DIRECTION_NAMES[p.direction]:<5} "
            f"trail={len(p.path)} territory={summary['scores'][p.id]}"
        )
    return "\n".join(lines)
