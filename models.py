# Models for the light-cycle arena: coordinates, cell tags and player records

from dataclasses import dataclass, field
from typing import Any, List, Optional

# Cell tags. Positive values are player ids (trail or head of that player).
OPEN = 0
WALL = -1


@dataclass(frozen=True)
class Vector:
    """Integer (x, y) pair used both as a grid position and as a unit direction.

    Screen orientation: x grows to the right, y grows downward.
    """
    x: int
    y: int

    def add(self, other: 'Vector') -> 'Vector':
        return Vector(self.x + other.x, self.y + other.y)

    def subtract(self, other: 'Vector') -> 'Vector':
        return Vector(self.x - other.x, self.y - other.y)

    def is_opposite(self, other: 'Vector') -> bool:
        """True if `other` is the 180-degree reversal of this direction."""
        return self.x == -other.x and self.y == -other.y

    def turn_right(self) -> 'Vector':
        return Vector(-self.y, self.x)

    def turn_left(self) -> 'Vector':
        return Vector(self.y, -self.x)

    def __add__(self, other: 'Vector') -> 'Vector':
        return self.add(other)

    def __sub__(self, other: 'Vector') -> 'Vector':
        return self.subtract(other)


UP = Vector(0, -1)
DOWN = Vector(0, 1)
LEFT = Vector(-1, 0)
RIGHT = Vector(1, 0)

DIRECTIONS = (UP, DOWN, LEFT, RIGHT)
DIRECTION_NAMES = {UP: 'Up', DOWN: 'Down', LEFT: 'Left', RIGHT: 'Right'}


def is_direction(vec: Vector) -> bool:
    """Check that a vector is one of the four cardinal unit directions."""
    return vec in DIRECTIONS


def is_owned(square: int) -> bool:
    """A square belongs to a player when it carries a positive player id."""
    return square > 0


def non_reversing(direction: Vector) -> List[Vector]:
    """The three directions a player heading `direction` may take: straight, right, left."""
    return [direction, direction.turn_right(), direction.turn_left()]


@dataclass
class Player:
    """
    A light cycle: identity, liveness, head position, heading and full trail.

    The path starts with the start cell and gains one entry per survived tick,
    so path[-1] is always the head. Dead players keep their record (for final
    scoring) but their trail is cleared from the grid.
    """
    id: int  # Positive player id, also the Square tag of its trail
    position: Vector  # Current head position
    direction: Vector  # Current heading
    controller: Any = None  # Decision source queried once per tick
    alive: bool = True
    path: List[Vector] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.path:
            self.path = [self.position]

    def next_position(self, direction: Optional[Vector] = None) -> Vector:
        """Cell the head would enter moving in `direction` (default: current heading)."""
        return self.position.add(direction if direction is not None else self.direction)

    def clone(self) -> 'Player':
        """Copy with an independent path list; the controller is shared."""
        return Player(
            id=self.id,
            position=self.position,
            direction=self.direction,
            controller=self.controller,
            alive=self.alive,
            path=list(self.path),
        )
