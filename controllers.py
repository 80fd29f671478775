"""
Decision sources for light cycles.

Every controller answers one question per tick: given the arena and a player
id, which cardinal direction does that player take next. The ladder runs from
brain-dead (uniform random) through rule-based heuristics to territory-driven
search, which is what the benchmark ranks.

Look-ahead controllers only ever play on Arena.copy() sandboxes; the live
arena they are handed is read, never written.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from collections import deque
from typing import TYPE_CHECKING, Callable, Deque, Dict, List, Optional, Tuple

from models import DIRECTIONS, Player, Vector, non_reversing
from resolution import apply_directions, apply_single_move
from territory import evaluate_margin

if TYPE_CHECKING:
    from state import Arena

WIN_SCORE = 1_000_000
LOSS_SCORE = -1_000_000


class Controller(ABC):
    """Base class for decision sources."""
    name: str = "base"

    @abstractmethod
    def get_direction(self, arena: Arena, player_id: int) -> Vector:
        """
        Choose the next direction for a player.

        Args:
            arena: Current arena (read-only for the controller)
            player_id: Id of the player being steered

        Returns:
            One of UP, DOWN, LEFT, RIGHT
        """
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


# ---------------------------------------------------------------------------
# Move helpers
# ---------------------------------------------------------------------------

def is_possible_player_collision(arena: Arena, player_id: int, direction: Vector) -> bool:
    """True if another living player could step into the same cell this tick."""
    player = arena.get_player_by_id(player_id)
    next_pos = player.next_position(direction)
    for other in arena.opponents_of(player_id):
        for other_dir in DIRECTIONS:
            if other.next_position(other_dir) == next_pos:
                return True
    return False


def legal_directions(arena: Arena, player: Player) -> List[Vector]:
    """Non-reversing directions that do not hit a wall or trail next tick, in order straight, right, left."""
    return [d for d in non_reversing(player.direction) if not arena.is_collision(player.next_position(d))]


def classify_directions(arena: Arena, player: Player) -> Tuple[List[Vector], List[Vector]]:
    """
    Split legal directions into safe ones and head-on risks.

    Returns:
        (safe, risky): risky directions survive the grid but another player
        could claim the same cell this tick
    """
    safe, risky = [], []
    for d in legal_directions(arena, player):
        if is_possible_player_collision(arena, player.id, d):
            risky.append(d)
        else:
            safe.append(d)
    return safe, risky


def predict_straight(arena: Arena, player: Player) -> Vector:
    """Cheap opponent model: keep going unless blocked, then take the first open turn."""
    options = legal_directions(arena, player)
    return options[0] if options else player.direction


def nearest_opponent(arena: Arena, player: Player) -> Optional[Player]:
    """Living opponent with the smallest Manhattan distance between heads (lowest id on ties)."""
    opponents = arena.opponents_of(player.id)
    if not opponents:
        return None
    return min(opponents, key=lambda o: (abs(o.position.x - player.position.x)
                                         + abs(o.position.y - player.position.y), o.id))


# ---------------------------------------------------------------------------
# Randomized controllers
# ---------------------------------------------------------------------------

class RandomController(Controller):
    """Pure random play over all four directions, reversal included. The floor."""
    name = "Random"

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def get_direction(self, arena: Arena, player_id: int) -> Vector:
        return self.rng.choice(DIRECTIONS)


class NonReversingRandomController(Controller):
    """Uniform over the three directions that are not a 180-degree turn."""
    name = "NonReversingRandom"

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def get_direction(self, arena: Arena, player_id: int) -> Vector:
        player = arena.get_player_by_id(player_id)
        return self.rng.choice(non_reversing(player.direction))


class RandomAvoidingController(Controller):
    """
    Random among directions that survive the next tick.

    Prefers directions no other player can reach this tick, then any legal
    direction. When every option is fatal, any non-reversing direction will do.
    """
    name = "RandomAvoiding"

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def get_direction(self, arena: Arena, player_id: int) -> Vector:
        player = arena.get_player_by_id(player_id)
        safe, risky = classify_directions(arena, player)
        if safe:
            return self.rng.choice(safe)
        if risky:
            return self.rng.choice(risky)
        # Going to die, just pick anything
        return self.rng.choice(non_reversing(player.direction))


class RandomTurnerController(Controller):
    """
    Mostly straight, occasionally turning.

    Goes straight with probability 1 - turn_prob, otherwise turns left or
    right with equal chance. If the drawn direction is fatal it falls back to
    straight, then any other safe direction, then head-on risks.
    """

    def __init__(self, turn_prob: float = 0.1, rng: Optional[random.Random] = None):
        if not 0.0 <= turn_prob <= 1.0:
            raise ValueError(f"turn_prob must be within [0, 1], got {turn_prob}")
        self.turn_prob = turn_prob
        self.rng = rng or random.Random()

    @property
    def name(self) -> str:
        return f"RandomTurner_{self.turn_prob:g}"

    def get_direction(self, arena: Arena, player_id: int) -> Vector:
        player = arena.get_player_by_id(player_id)
        if self.rng.random() < self.turn_prob:
            drawn = self.rng.choice([player.direction.turn_left(), player.direction.turn_right()])
        else:
            drawn = player.direction

        safe, risky = classify_directions(arena, player)
        for tier in (safe, risky):
            if not tier:
                continue
            if drawn in tier:
                return drawn
            if player.direction in tier:
                return player.direction
            return self.rng.choice(tier)

        # Doomed, keep going
        return player.direction


# ---------------------------------------------------------------------------
# Rule-based controller
# ---------------------------------------------------------------------------

class WallHuggerController(Controller):
    """
    Maze-follower that keeps a wall or trail on one side.

    Looks at the cells diagonally behind the head. A blocked cell behind on
    the left means a wall to follow: prefer left, straight, right. Blocked
    behind on the right: prefer right, straight, left. Otherwise prefer
    straight, right, left. Deterministic.
    """
    name = "WallHugger"

    def get_direction(self, arena: Arena, player_id: int) -> Vector:
        player = arena.get_player_by_id(player_id)
        heading = player.direction
        left = heading.turn_left()
        right = heading.turn_right()

        back_left = player.position.add(left).subtract(heading)
        back_right = player.position.add(right).subtract(heading)

        if arena.is_collision(back_left):
            preferences = [left, heading, right]
        elif arena.is_collision(back_right):
            preferences = [right, heading, left]
        else:
            preferences = [heading, right, left]

        for direction in preferences:
            if not arena.is_collision(player.next_position(direction)):
                return direction

        # No safe turns, go forward and die
        return heading


# ---------------------------------------------------------------------------
# Territory-driven controllers
# ---------------------------------------------------------------------------

class AreaController(Controller):
    """
    One-ply greedy territory maximizer.

    Tries each legal direction on a sandbox copy, scores the resulting state
    with the territory partition and keeps the direction with the best margin
    over the strongest opponent. Head-on risks are only considered when no
    risk-free direction exists. Ties keep the earlier of straight, right, left.
    """
    name = "AreaController"

    def get_direction(self, arena: Arena, player_id: int) -> Vector:
        player = arena.get_player_by_id(player_id)
        safe, risky = classify_directions(arena, player)
        candidates = safe or risky
        if not candidates:
            return player.direction

        best_dir = candidates[0]
        best_margin = None
        for direction in candidates:
            sandbox = arena.copy()
            apply_single_move(sandbox, player_id, direction)
            margin = evaluate_margin(sandbox, player_id)
            if best_margin is None or margin > best_margin:
                best_margin = margin
                best_dir = direction
        return best_dir


class MinimaxAreaController(Controller):
    """
    Depth-limited alpha-beta search on territory margin.

    Each ply is one full tick. The acting player maximizes over its legal
    directions; the nearest living opponent answers with the reply that
    minimizes the margin; every other opponent is assumed to keep going
    straight when it can. Joint moves are played on sandbox copies through
    the real simultaneous collision rules. Leaves are scored by own territory
    minus the best opposing territory; dying scores LOSS_SCORE (later deaths
    slightly better) and outliving everyone scores WIN_SCORE (sooner is
    better).
    """

    def __init__(self, max_depth: int = 3):
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.max_depth = max_depth

    @property
    def name(self) -> str:
        return f"MinimaxAreaController_{self.max_depth}"

    def get_direction(self, arena: Arena, player_id: int) -> Vector:
        player = arena.get_player_by_id(player_id)
        candidates = legal_directions(arena, player)
        if not candidates:
            return player.direction
        if len(candidates) == 1:
            return candidates[0]

        alpha, beta = float('-inf'), float('inf')
        best_dir = candidates[0]
        best_value = float('-inf')
        for direction in candidates:
            value = self._min_value(arena, player_id, direction, self.max_depth, alpha, beta)
            if value > best_value:
                best_value = value
                best_dir = direction
            alpha = max(alpha, best_value)
        return best_dir

    def _max_value(self, arena: Arena, player_id: int, depth: int, alpha: float, beta: float) -> float:
        player = arena.get_player_by_id(player_id)
        ticks_played = self.max_depth - depth
        if not player.alive:
            return LOSS_SCORE + ticks_played
        if not arena.opponents_of(player_id):
            return WIN_SCORE - ticks_played
        if depth == 0:
            return evaluate_margin(arena, player_id)

        candidates = legal_directions(arena, player) or [player.direction]
        value = float('-inf')
        for direction in candidates:
            value = max(value, self._min_value(arena, player_id, direction, depth, alpha, beta))
            if value >= beta:
                return value
            alpha = max(alpha, value)
        return value

    def _min_value(self, arena: Arena, player_id: int, direction: Vector,
                   depth: int, alpha: float, beta: float) -> float:
        player = arena.get_player_by_id(player_id)
        adversary = nearest_opponent(arena, player)
        predicted: Dict[int, Vector] = {
            o.id: predict_straight(arena, o)
            for o in arena.opponents_of(player_id)
            if adversary is None or o.id != adversary.id
        }
        predicted[player_id] = direction

        if adversary is None:
            sandbox = arena.copy()
            apply_directions(sandbox, predicted)
            return self._max_value(sandbox, player_id, depth - 1, alpha, beta)

        replies = legal_directions(arena, adversary) or [adversary.direction]
        value = float('inf')
        for reply in replies:
            sandbox = arena.copy()
            apply_directions(sandbox, {**predicted, adversary.id: reply})
            value = min(value, self._max_value(sandbox, player_id, depth - 1, alpha, beta))
            if value <= alpha:
                return value
            beta = min(beta, value)
        return value


# ---------------------------------------------------------------------------
# Human input relay
# ---------------------------------------------------------------------------

class HumanController(Controller):
    """
    Relay for directions pushed by an input handler outside the core.

    The handler appends with enqueue_direction(); each tick consumes the
    oldest pending request. A request to reverse is dropped and the heading
    held, as is the heading when nothing is pending.
    """
    name = "Human"

    def __init__(self):
        self.input_queue: Deque[Vector] = deque()

    def enqueue_direction(self, direction: Vector) -> None:
        self.input_queue.append(direction)

    def get_direction(self, arena: Arena, player_id: int) -> Vector:
        player = arena.get_player_by_id(player_id)
        if not self.input_queue:
            return player.direction
        requested = self.input_queue.popleft()
        if requested.is_opposite(player.direction):
            return player.direction
        return requested


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

CONTROLLERS: Dict[str, Callable[[random.Random], Controller]] = {
    "Random": lambda rng: RandomController(rng),
    "NonReversingRandom": lambda rng: NonReversingRandomController(rng),
    "RandomAvoiding": lambda rng: RandomAvoidingController(rng),
    "RandomTurner_0.1": lambda rng: RandomTurnerController(0.1, rng),
    "RandomTurner_0.005": lambda rng: RandomTurnerController(0.005, rng),
    "WallHugger": lambda rng: WallHuggerController(),
    "AreaController": lambda rng: AreaController(),
    "MinimaxAreaController_3": lambda rng: MinimaxAreaController(max_depth=3),
}

# The ladder ranked by the benchmark by default
BENCHMARK_CONTROLLERS = [
    "RandomAvoiding",
    "RandomTurner_0.1",
    "RandomTurner_0.005",
    "WallHugger",
    "AreaController",
    "MinimaxAreaController_3",
]


# Name families taking their parameter after the last underscore
PARAMETERIZED_CONTROLLERS: Dict[str, Callable[[str, random.Random], Controller]] = {
    "RandomTurner": lambda arg, rng: RandomTurnerController(float(arg), rng),
    "MinimaxAreaController": lambda arg, rng: MinimaxAreaController(max_depth=int(arg)),
}


def _build(name: str, rng: random.Random) -> Optional[Controller]:
    if name in CONTROLLERS:
        return CONTROLLERS[name](rng)
    family, _, arg = name.rpartition("_")
    if family not in PARAMETERIZED_CONTROLLERS:
        return None
    try:
        return PARAMETERIZED_CONTROLLERS[family](arg, rng)
    except ValueError:
        return None


def is_known_controller(name: str) -> bool:
    """True for registered names and well-formed parameterized names such as RandomTurner_0.2."""
    return _build(name, random.Random(0)) is not None


def new_controller(name: str, rng: Optional[random.Random] = None) -> Controller:
    """
    Create a fresh, non-aliased controller instance by name.

    Besides the registered names, RandomTurner_<p> and MinimaxAreaController_<depth>
    build those controllers with any valid parameter.

    Raises:
        KeyError: if the name is neither registered nor a valid parameterized name
    """
    controller = _build(name, rng or random.Random())
    if controller is None:
        raise KeyError(f"Unknown controller {name!r}; known: {', '.join(sorted(CONTROLLERS))}")
    return controller
