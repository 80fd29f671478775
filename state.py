"""
Arena state management for the light-cycle arena.

The Arena is the single source of truth for one game: the grid of Square
tags, the player records and the tick counter. Look-ahead controllers never
touch it directly; they work on Arena.copy(), which shares no mutable state
with the original.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from map_gen import rectangle_grid
from models import OPEN, WALL, Player, Vector, is_direction

DEFAULT_CONFIG: Dict[str, Any] = {
    'arena_width': 50,
    'arena_height': 50,
    'players_per_game': 4,
    'rounds_per_match': 5,
    'minimax_depth': 3,
    'safety_cap_factor': 1,
    'obstacle_density': 0.08,
}

PlayerSpec = Union[Player, Tuple[Vector, Vector, Any]]


class ArenaValidationError(Exception):
    """Exception raised when an arena is built from inconsistent inputs."""
    pass


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load tunables from config.json, falling back to defaults.

    Args:
        path: Config file location (default: config.json beside this module)

    Returns:
        Defaults overridden by whatever keys the file provides
    """
    config_path = path or os.path.join(os.path.dirname(__file__), 'config.json')
    config = dict(DEFAULT_CONFIG)
    try:
        with open(config_path, 'r') as f:
            config.update(json.load(f))
    except (FileNotFoundError, json.JSONDecodeError):
        # Use defaults if config file is missing or invalid
        pass
    return config


def create_players(specs: Iterable[PlayerSpec]) -> List[Player]:
    """
    Build player records from (position, direction, controller) tuples.

    Ids are assigned 1..N in order. Ready-made Player records are passed
    through unchanged; Arena.from_grid rejects any that are not fresh.
    """
    players = []
    for i, spec in enumerate(specs, 1):
        if isinstance(spec, Player):
            players.append(spec)
            continue
        position, direction, controller = spec
        players.append(Player(id=i, position=position, direction=direction, controller=controller))
    return players


@dataclass
class Arena:
    """
    Grid plus players for one simulation instance.

    grid is a (height, width) int array indexed [y, x]; players[k] holds the
    player with id k + 1.
    """
    grid: np.ndarray
    players: List[Player] = field(default_factory=list)
    tick: int = 0
    log: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def width(self) -> int:
        return self.grid.shape[1]

    @property
    def height(self) -> int:
        return self.grid.shape[0]

    @classmethod
    def from_grid(cls, grid: Union[np.ndarray, Sequence[Sequence[int]]], players: Iterable[PlayerSpec]) -> 'Arena':
        """
        Build an arena on a copy of `grid` and stamp every starting head on it.

        The caller's grid is never modified.

        Raises:
            ArenaValidationError: on malformed grids or illegal starting positions
        """
        try:
            grid_copy = np.array(grid, dtype=np.int32, copy=True)
        except (TypeError, ValueError) as e:
            raise ArenaValidationError(f"Grid is not a rectangular integer matrix: {e}")
        if grid_copy.ndim != 2:
            raise ArenaValidationError(f"Grid must be two-dimensional, got {grid_copy.ndim} dimensions")
        if grid_copy.shape[0] < 3 or grid_copy.shape[1] < 3:
            raise ArenaValidationError(f"Grid must be at least 3x3, got {grid_copy.shape[1]}x{grid_copy.shape[0]}")

        arena = cls(grid=grid_copy, players=create_players(players))
        arena._validate_players()
        for player in arena.players:
            arena.grid[player.position.y, player.position.x] = player.id
        return arena

    def _validate_players(self) -> None:
        """Check ids are dense, records are fresh, and every start head lies on its own open in-bounds cell."""
        seen_positions = set()
        for index, player in enumerate(self.players):
            if player.id != index + 1:
                raise ArenaValidationError(f"Player at index {index} has id {player.id}, expected {index + 1}")
            if not player.alive:
                raise ArenaValidationError(f"Player {player.id} cannot enter the arena dead")
            if player.path != [player.position]:
                raise ArenaValidationError(f"Player {player.id} must start with a one-cell trail at its head, "
                                           f"got {len(player.path)} cells")
            if not is_direction(player.direction):
                raise ArenaValidationError(f"Player {player.id} heading {player.direction} is not a cardinal direction")
            if not self.in_bounds(player.position):
                raise ArenaValidationError(f"Player {player.id} starts outside the grid at {player.position}")
            if self.grid[player.position.y, player.position.x] != OPEN:
                raise ArenaValidationError(f"Player {player.id} starts on a blocked cell at {player.position}")
            if player.position in seen_positions:
                raise ArenaValidationError(f"Player {player.id} shares its start cell {player.position}")
            seen_positions.add(player.position)

    def in_bounds(self, pos: Vector) -> bool:
        return 0 <= pos.x < self.width and 0 <= pos.y < self.height

    def square_at(self, pos: Vector) -> int:
        """Square tag at a position; out-of-bounds reads as WALL."""
        if not self.in_bounds(pos):
            return WALL
        return int(self.grid[pos.y, pos.x])

    def is_collision(self, pos: Vector) -> bool:
        """True if `pos` is outside the grid or its cell is anything but OPEN."""
        if not self.in_bounds(pos):
            return True
        return self.grid[pos.y, pos.x] != OPEN

    def clear_path(self, player: Player) -> None:
        """Set every cell of a player's trail back to OPEN (used when the player dies)."""
        for pos in player.path:
            if self.in_bounds(pos):
                self.grid[pos.y, pos.x] = OPEN

    def get_player_by_id(self, player_id: int) -> Optional[Player]:
        """Get a player by id, or None if no such player exists."""
        if 1 <= player_id <= len(self.players):
            return self.players[player_id - 1]
        return None

    def alive_players(self) -> List[Player]:
        return [p for p in self.players if p.alive]

    def opponents_of(self, player_id: int) -> List[Player]:
        """Living players other than `player_id`."""
        return [p for p in self.players if p.alive and p.id != player_id]

    def is_finished(self) -> bool:
        """A round ends once at most one player is left alive."""
        return len(self.alive_players()) <= 1

    def open_cell_count(self) -> int:
        return int(np.count_nonzero(self.grid == OPEN))

    def copy(self) -> 'Arena':
        """
        Fully independent duplicate for look-ahead search.

        The grid and every player's path are copied element for element.
        Controllers are shared, and the copy starts with an empty log so
        sandbox play never shows up in the live game's history.
        """
        return Arena(
            grid=self.grid.copy(),
            players=[p.clone() for p in self.players],
            tick=self.tick,
        )

    def update(self) -> Dict[str, Any]:
        """Advance one tick: query every living controller, then resolve all moves at once."""
        from resolution import resolve_tick
        return resolve_tick(self)


def log_event(arena: Arena, event: str, **kwargs) -> None:
    """
    Add an event to the arena log.

    Args:
        arena: Arena the event happened in
        event: Description of the event
        **kwargs: Additional event data to include
    """
    log_entry = {
        'tick': arena.tick,
        'event': event,
        **kwargs
    }
    arena.log.append(log_entry)


def new_arena(width: int, height: int, players: Iterable[PlayerSpec]) -> Arena:
    """
    Create an arena on a bordered open rectangle.

    Args:
        width: Grid width including the wall
        height: Grid height including the wall
        players: (position, direction, controller) tuples or Player records

    Returns:
        New Arena with every starting head stamped on the grid
    """
    return Arena.from_grid(rectangle_grid(width, height), players)


def get_arena_summary(arena: Arena) -> Dict[str, Any]:
    """Snapshot of the arena for renderers and reports."""
    return {
        'tick': arena.tick,
        'size': (arena.width, arena.height),
        'players': [
            {
                'id': p.id,
                'alive': p.alive,
                'position': (p.position.x, p.position.y),
                'direction': (p.direction.x, p.direction.y),
                'path_length': len(p.path),
            }
            for p in arena.players
        ],
    }
