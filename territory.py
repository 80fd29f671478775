"""
Territory scoring for the light-cycle arena.

A multi-source breadth-first search from every living head partitions the
open cells into a discrete Voronoi diagram: each cell goes to the player who
can reach it first, and cells two or more players reach at the same distance
stay neutral. The per-player cell counts are both the live territory score
and the static evaluation used by look-ahead controllers.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from models import OPEN, Player

if TYPE_CHECKING:
    from state import Arena

NEUTRAL = 0
UNREACHED = -1


def find_closest_assignments(arena: Arena) -> Tuple[np.ndarray, np.ndarray]:
    """
    Run the multi-source BFS from every living player's head.

    Expansion only passes through OPEN cells. A cell reached at a strictly
    shorter distance takes the reaching owner; a cell reached again at the
    same distance by a different owner becomes neutral. Neutral cells carry
    their neutrality on to cells only they reach first.

    Args:
        arena: Arena to score (not modified)

    Returns:
        (distances, assignments): distances holds the BFS distance or
        UNREACHED; assignments holds the owning player id or NEUTRAL. Heads
        are pre-assigned to their players.
    """
    height, width = arena.height, arena.width
    size = width * height
    passable = (arena.grid == OPEN).ravel().tolist()
    unreached = size + 1
    dist = [unreached] * size
    owner = [NEUTRAL] * size

    queue = deque()
    for player in arena.alive_players():
        idx = player.position.y * width + player.position.x
        dist[idx] = 0
        owner[idx] = player.id
        queue.append(idx)

    while queue:
        idx = queue.popleft()
        next_dist = dist[idx] + 1
        current_owner = owner[idx]
        y, x = divmod(idx, width)

        neighbours = []
        if y > 0:
            neighbours.append(idx - width)
        if y < height - 1:
            neighbours.append(idx + width)
        if x > 0:
            neighbours.append(idx - 1)
        if x < width - 1:
            neighbours.append(idx + 1)

        for n in neighbours:
            if not passable[n]:
                continue
            if next_dist < dist[n]:
                dist[n] = next_dist
                owner[n] = current_owner
                queue.append(n)
            elif next_dist == dist[n] and owner[n] != current_owner:
                # A true tie is nobody's territory
                owner[n] = NEUTRAL

    distances = np.array(dist, dtype=np.int32).reshape(height, width)
    distances[distances == unreached] = UNREACHED
    assignments = np.array(owner, dtype=np.int32).reshape(height, width)
    return distances, assignments


def calculate_scores(assignments: np.ndarray, players: Sequence[Player],
                     open_mask: Optional[np.ndarray] = None) -> List[int]:
    """
    Count the cells assigned to each player.

    Args:
        assignments: Assignment grid from find_closest_assignments
        players: Players of the arena, id k at index k - 1
        open_mask: Cells that count (default: every cell)

    Returns:
        List of scores indexed by player id - 1
    """
    assignments = np.asarray(assignments)
    counted = assignments[open_mask] if open_mask is not None else assignments.ravel()
    counted = counted[counted > 0]
    counts = np.bincount(counted, minlength=len(players) + 1)
    return [int(c) for c in counts[1:len(players) + 1]]


def compute_player_scores(arena: Arena) -> List[int]:
    """Territory score of every player (dead players score 0), indexed by id - 1."""
    _, assignments = find_closest_assignments(arena)
    return calculate_scores(assignments, arena.players, open_mask=arena.grid == OPEN)


def score_margin(scores: Sequence[int], player_id: int) -> int:
    """Own score minus the best opposing score."""
    own = scores[player_id - 1]
    best_opponent = max((s for i, s in enumerate(scores) if i != player_id - 1), default=0)
    return own - best_opponent


def evaluate_margin(arena: Arena, player_id: int) -> int:
    """Territory margin of one player on the current state."""
    return score_margin(compute_player_scores(arena), player_id)


def territory_summary(arena: Arena) -> Dict[str, Any]:
    """
    Live territory report.

    Returns:
        Dictionary with per-player scores keyed by id, neutral and unreached
        open-cell counts, and the total number of open cells. The scores plus
        both counts always add up to the open total.
    """
    distances, assignments = find_closest_assignments(arena)
    open_mask = arena.grid == OPEN
    scores = calculate_scores(assignments, arena.players, open_mask=open_mask)
    reached = open_mask & (distances != UNREACHED)
    neutral = int(np.count_nonzero(reached & (assignments == NEUTRAL)))
    unreached = int(np.count_nonzero(open_mask & (distances == UNREACHED)))
    return {
        'scores': {p.id: scores[p.id - 1] for p in arena.players},
        'neutral': neutral,
        'unreached': unreached,
        'open': arena.open_cell_count(),
    }
