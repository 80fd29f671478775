"""
Simultaneous tick resolution for the light-cycle arena.

All moves of a tick are decided before any cell changes: every living
player's candidate cell is checked against the grid as it stood at the start
of the tick, then candidates are compared with each other for head-on
meetings, and only then are deaths and survivor moves written back. The order
in which players are processed therefore never changes the outcome.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping

from models import DIRECTION_NAMES, WALL, Vector, is_direction, is_owned
from state import log_event

if TYPE_CHECKING:
    from state import Arena


def collect_directions(arena: Arena) -> Dict[int, Vector]:
    """
    Ask every living player's controller for its next direction.

    Headings are not changed here, so each controller sees the same
    pre-tick state regardless of query order.

    Raises:
        ValueError: if a controller returns something other than a cardinal direction
    """
    directions = {}
    for player in arena.alive_players():
        direction = player.controller.get_direction(arena, player.id)
        if not is_direction(direction):
            raise ValueError(f"Controller for player {player.id} returned non-cardinal direction {direction}")
        directions[player.id] = direction
    return directions


def classify_square(arena: Arena, pos: Vector, player_id: int) -> str:
    """Name what a candidate cell holds, for death records."""
    if not arena.in_bounds(pos):
        return 'out_of_bounds'
    square = arena.grid[pos.y, pos.x]
    if square == WALL:
        return 'wall'
    if square == player_id:
        return 'own_trail'
    if is_owned(square):
        return 'trail'
    return 'open'


def find_collisions(arena: Arena, candidates: Mapping[int, Vector]) -> Dict[int, str]:
    """
    Decide which candidate moves are fatal, without touching the grid.

    Pass 1: a candidate on a wall, off the grid, or on any owned cell (own
    trail included) as the grid stood before this tick.
    Pass 2: two or more candidates on the same cell all collide, which catches
    head-on meetings in a cell that was open.

    Returns:
        player_id -> collision reason for every collided player
    """
    collided: Dict[int, str] = {}

    for player_id, pos in candidates.items():
        if arena.is_collision(pos):
            collided[player_id] = classify_square(arena, pos, player_id)

    claimants: Dict[Vector, List[int]] = {}
    for player_id, pos in candidates.items():
        claimants.setdefault(pos, []).append(player_id)
    for pos, ids in claimants.items():
        if len(ids) > 1:
            for player_id in ids:
                collided.setdefault(player_id, 'head_on')

    return collided


def apply_directions(arena: Arena, directions: Mapping[int, Vector]) -> Dict[str, Any]:
    """
    Resolve one tick using explicit directions instead of querying controllers.

    Living players missing from `directions` keep their current heading.
    Used by Arena.update() and by look-ahead search on sandbox copies.

    Args:
        arena: Arena to advance (mutated)
        directions: player_id -> direction for this tick

    Returns:
        Dictionary with the tick number, survivor moves, collision reasons and deaths
    """
    results: Dict[str, Any] = {'tick': arena.tick + 1, 'moves': {}, 'collisions': {}, 'deaths': []}
    alive = arena.alive_players()

    # Step 1: headings and candidate cells
    candidates: Dict[int, Vector] = {}
    for player in alive:
        player.direction = directions.get(player.id, player.direction)
        candidates[player.id] = player.next_position()

    # Steps 2-3: every collision is decided before any mutation
    collided = find_collisions(arena, candidates)
    results['collisions'] = dict(collided)

    arena.tick += 1

    # Step 4: deaths clear their whole trail
    for player in alive:
        if player.id in collided:
            arena.clear_path(player)
            player.alive = False
            results['deaths'].append(player.id)
            target = candidates[player.id]
            log_event(arena, f"Player {player.id} crashed moving {DIRECTION_NAMES[player.direction]}",
                      player_id=player.id, reason=collided[player.id], position=(target.x, target.y))

    # Step 5: survivors keep their old head as trail and claim the new cell
    for player in alive:
        if player.id in collided:
            continue
        old_pos = player.position
        new_pos = candidates[player.id]
        arena.grid[old_pos.y, old_pos.x] = player.id
        player.position = new_pos
        arena.grid[new_pos.y, new_pos.x] = player.id
        player.path.append(new_pos)
        results['moves'][player.id] = (new_pos.x, new_pos.y)

    if len(results['deaths']) > 1:
        log_event(arena, f"{len(results['deaths'])} players crashed on the same tick", player_ids=list(results['deaths']))

    return results


def apply_single_move(arena: Arena, player_id: int, direction: Vector) -> bool:
    """
    Move one player a single step while everyone else stands still.

    Meant for sandbox copies in one-ply evaluation. A fatal step kills the
    player and clears its trail exactly as a real tick would.

    Returns:
        True if the player survived the step
    """
    player = arena.get_player_by_id(player_id)
    player.direction = direction
    new_pos = player.next_position()
    if arena.is_collision(new_pos):
        arena.clear_path(player)
        player.alive = False
        return False
    arena.grid[player.position.y, player.position.x] = player.id
    player.position = new_pos
    arena.grid[new_pos.y, new_pos.x] = player.id
    player.path.append(new_pos)
    return True


def resolve_tick(arena: Arena) -> Dict[str, Any]:
    """Advance the arena one tick with directions chosen by the players' controllers."""
    return apply_directions(arena, collect_directions(arena))
