"""Shared test fixtures and helpers."""

import random

import pytest

from controllers import Controller
from map_gen import rectangle_grid
from models import DOWN, LEFT, RIGHT, UP, Player, Vector
from state import Arena


class ScriptedController(Controller):
    """Plays a fixed list of directions, then keeps its heading."""
    name = "Scripted"

    def __init__(self, moves=None):
        self.moves = list(moves or [])
        self.calls = 0

    def get_direction(self, arena, player_id):
        self.calls += 1
        if self.moves:
            return self.moves.pop(0)
        return arena.get_player_by_id(player_id).direction


class StraightController(Controller):
    """Never turns."""
    name = "Straight"

    def get_direction(self, arena, player_id):
        return arena.get_player_by_id(player_id).direction


# --- Fixtures ---


@pytest.fixture
def rng():
    """Deterministic RNG seeded at 42."""
    return random.Random(42)


@pytest.fixture
def small_arena():
    """7x7 bordered arena, two players facing each other across the middle row."""
    return make_arena(7, 7, [
        (Vector(1, 3), RIGHT, StraightController()),
        (Vector(5, 3), LEFT, StraightController()),
    ])


@pytest.fixture
def open_arena():
    """12x12 bordered arena with one player in the middle heading up."""
    return make_arena(12, 12, [(Vector(6, 6), UP, StraightController())])


# --- Helper functions ---


def make_arena(width, height, specs):
    """Arena on a bordered rectangle from (position, direction, controller) tuples."""
    return Arena.from_grid(rectangle_grid(width, height), specs)


def make_player(player_id, x, y, direction=RIGHT, controller=None):
    return Player(id=player_id, position=Vector(x, y), direction=direction,
                  controller=controller or StraightController())


def snapshot(arena):
    """Everything a controller must not change, in comparable form."""
    return (
        arena.grid.tobytes(),
        arena.tick,
        [(p.id, p.position, p.direction, p.alive, list(p.path)) for p in arena.players],
        len(arena.log),
    )


def mirrored_pair_arena(size=7):
    """Square arena with two players placed symmetrically about the centre."""
    mid = size // 2
    return make_arena(size, size, [
        (Vector(1, mid), RIGHT, StraightController()),
        (Vector(size - 2, mid), LEFT, StraightController()),
    ])


ALL_DIRECTIONS = [UP, DOWN, LEFT, RIGHT]
