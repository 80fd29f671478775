"""
Tests for controller strategies and the controller registry.
"""

import random

import pytest

from controllers import (
    BENCHMARK_CONTROLLERS,
    CONTROLLERS,
    AreaController,
    HumanController,
    MinimaxAreaController,
    NonReversingRandomController,
    RandomAvoidingController,
    RandomController,
    RandomTurnerController,
    WallHuggerController,
    is_known_controller,
    is_possible_player_collision,
    legal_directions,
    nearest_opponent,
    new_controller,
    predict_straight,
)
from models import DIRECTIONS, DOWN, LEFT, RIGHT, UP, WALL, Vector
from tests.conftest import StraightController, make_arena, snapshot


def dead_end_arena():
    """Player 1 at (3, 3) heading up into a one-cell pocket; player 2 far away."""
    arena = make_arena(7, 7, [(Vector(3, 3), UP, None), (Vector(1, 5), UP, StraightController())])
    arena.grid[1, 3] = WALL
    arena.grid[2, 2] = WALL
    arena.grid[2, 4] = WALL
    return arena


class TestHelpers:
    """Shared move helpers."""

    def test_legal_directions_order_and_filtering(self):
        arena = make_arena(7, 7, [(Vector(1, 1), UP, None)])
        assert legal_directions(arena, arena.players[0]) == [RIGHT]
        arena = make_arena(7, 7, [(Vector(3, 3), UP, None)])
        assert legal_directions(arena, arena.players[0]) == [UP, RIGHT, LEFT]

    def test_possible_player_collision(self):
        arena = make_arena(9, 9, [(Vector(2, 4), RIGHT, None), (Vector(4, 4), LEFT, None)])
        assert is_possible_player_collision(arena, 1, RIGHT)
        assert not is_possible_player_collision(arena, 1, UP)

    def test_predict_straight(self):
        arena = make_arena(7, 7, [(Vector(1, 1), UP, None)])
        assert predict_straight(arena, arena.players[0]) == RIGHT
        arena = make_arena(7, 7, [(Vector(3, 3), UP, None)])
        assert predict_straight(arena, arena.players[0]) == UP

    def test_nearest_opponent(self):
        arena = make_arena(9, 9, [(Vector(1, 1), RIGHT, None), (Vector(7, 7), LEFT, None),
                                  (Vector(1, 4), UP, None)])
        assert nearest_opponent(arena, arena.players[0]).id == 3
        arena.players[1].alive = False
        arena.players[2].alive = False
        assert nearest_opponent(arena, arena.players[0]) is None


class TestRandomControllers:
    """Randomized strategies."""

    def test_random_returns_cardinal_directions(self, rng):
        arena = make_arena(7, 7, [(Vector(3, 3), UP, None)])
        controller = RandomController(rng)
        picks = {controller.get_direction(arena, 1) for _ in range(200)}
        assert picks == set(DIRECTIONS)

    def test_non_reversing_never_reverses(self, rng):
        arena = make_arena(7, 7, [(Vector(3, 3), UP, None)])
        controller = NonReversingRandomController(rng)
        picks = {controller.get_direction(arena, 1) for _ in range(200)}
        assert picks == {UP, LEFT, RIGHT}

    def test_avoiding_picks_only_survivable_move(self, rng):
        arena = make_arena(7, 7, [(Vector(1, 1), UP, None)])
        controller = RandomAvoidingController(rng)
        for _ in range(50):
            assert controller.get_direction(arena, 1) == RIGHT

    def test_avoiding_prefers_cells_no_one_else_can_reach(self, rng):
        arena = make_arena(9, 9, [(Vector(2, 4), RIGHT, None), (Vector(4, 4), LEFT, None)])
        controller = RandomAvoidingController(rng)
        for _ in range(50):
            assert controller.get_direction(arena, 1) in (UP, DOWN)

    def test_avoiding_when_doomed_does_not_reverse(self, rng):
        arena = make_arena(3, 3, [(Vector(1, 1), UP, None)])
        controller = RandomAvoidingController(rng)
        for _ in range(20):
            assert controller.get_direction(arena, 1) != DOWN

    def test_same_seed_same_choices(self):
        arena = make_arena(9, 9, [(Vector(4, 4), UP, None)])
        a = RandomAvoidingController(random.Random(5))
        b = RandomAvoidingController(random.Random(5))
        assert [a.get_direction(arena, 1) for _ in range(30)] == [b.get_direction(arena, 1) for _ in range(30)]

    def test_turner_goes_straight_with_zero_turn_probability(self, rng):
        arena = make_arena(9, 9, [(Vector(4, 4), UP, None)])
        controller = RandomTurnerController(0.0, rng)
        for _ in range(50):
            assert controller.get_direction(arena, 1) == UP

    def test_turner_always_turns_with_full_probability(self, rng):
        arena = make_arena(9, 9, [(Vector(4, 4), UP, None)])
        controller = RandomTurnerController(1.0, rng)
        picks = {controller.get_direction(arena, 1) for _ in range(100)}
        assert picks == {LEFT, RIGHT}

    def test_turner_falls_back_to_safe_turn(self, rng):
        arena = make_arena(7, 7, [(Vector(3, 1), UP, None)])
        controller = RandomTurnerController(0.0, rng)
        picks = {controller.get_direction(arena, 1) for _ in range(50)}
        assert picks <= {LEFT, RIGHT}

    def test_turner_rejects_bad_probability(self):
        with pytest.raises(ValueError):
            RandomTurnerController(1.5)

    def test_turner_name_includes_probability(self):
        assert RandomTurnerController(0.1).name == "RandomTurner_0.1"
        assert RandomTurnerController(0.005).name == "RandomTurner_0.005"


class TestWallHugger:
    """Deterministic wall following."""

    def test_follows_wall_on_the_left(self):
        """Heading up along the left wall: the wall is behind-left, left is blocked, so straight."""
        arena = make_arena(7, 7, [(Vector(1, 3), UP, None)])
        assert WallHuggerController().get_direction(arena, 1) == UP

    def test_turns_into_wall_side_when_possible(self):
        arena = make_arena(7, 7, [(Vector(2, 3), UP, None)])
        arena.grid[4, 1] = WALL
        assert WallHuggerController().get_direction(arena, 1) == LEFT

    def test_open_space_prefers_straight_then_right(self):
        arena = make_arena(7, 7, [(Vector(3, 3), RIGHT, None)])
        controller = WallHuggerController()
        assert controller.get_direction(arena, 1) == RIGHT
        arena.grid[3, 4] = WALL
        assert controller.get_direction(arena, 1) == DOWN

    def test_boxed_in_keeps_heading(self):
        arena = make_arena(3, 3, [(Vector(1, 1), LEFT, None)])
        assert WallHuggerController().get_direction(arena, 1) == LEFT


class TestSearchControllers:
    """Territory-driven controllers."""

    def test_area_controller_takes_only_legal_move(self):
        arena = make_arena(7, 7, [(Vector(1, 1), UP, None), (Vector(5, 5), DOWN, None)])
        assert AreaController().get_direction(arena, 1) == RIGHT

    def test_area_controller_avoids_dead_end(self):
        arena = dead_end_arena()
        assert AreaController().get_direction(arena, 1) in (LEFT, RIGHT)

    def test_minimax_avoids_dead_end(self):
        arena = dead_end_arena()
        assert MinimaxAreaController(max_depth=2).get_direction(arena, 1) in (LEFT, RIGHT)

    def test_minimax_with_no_opponents(self):
        arena = make_arena(7, 7, [(Vector(3, 3), UP, None)])
        assert MinimaxAreaController(max_depth=2).get_direction(arena, 1) in (UP, LEFT, RIGHT)

    def test_doomed_search_keeps_heading(self):
        arena = make_arena(3, 3, [(Vector(1, 1), UP, None)])
        assert AreaController().get_direction(arena, 1) == UP
        assert MinimaxAreaController().get_direction(arena, 1) == UP

    @pytest.mark.parametrize("controller", [AreaController(), MinimaxAreaController(max_depth=2)])
    def test_lookahead_leaves_live_arena_unchanged(self, controller):
        arena = make_arena(11, 11, [
            (Vector(2, 2), RIGHT, StraightController()),
            (Vector(8, 8), LEFT, StraightController()),
            (Vector(2, 8), UP, StraightController()),
        ])
        arena.update()
        before = snapshot(arena)
        controller.get_direction(arena, 1)
        assert snapshot(arena) == before

    def test_minimax_rejects_zero_depth(self):
        with pytest.raises(ValueError):
            MinimaxAreaController(max_depth=0)

    def test_minimax_name(self):
        assert MinimaxAreaController(max_depth=3).name == "MinimaxAreaController_3"


class TestHumanController:
    """Input relay."""

    def test_holds_heading_without_input(self):
        arena = make_arena(7, 7, [(Vector(3, 3), UP, None)])
        assert HumanController().get_direction(arena, 1) == UP

    def test_consumes_requests_in_order(self):
        arena = make_arena(7, 7, [(Vector(3, 3), UP, None)])
        human = HumanController()
        human.enqueue_direction(LEFT)
        human.enqueue_direction(RIGHT)
        assert human.get_direction(arena, 1) == LEFT
        assert human.get_direction(arena, 1) == RIGHT
        assert human.get_direction(arena, 1) == UP

    def test_ignores_reversal(self):
        arena = make_arena(7, 7, [(Vector(3, 3), UP, None)])
        human = HumanController()
        human.enqueue_direction(DOWN)
        assert human.get_direction(arena, 1) == UP
        assert not human.input_queue


class TestRegistry:
    """Name-based controller construction."""

    def test_every_registered_name_builds(self):
        for name in CONTROLLERS:
            controller = new_controller(name, random.Random(1))
            assert controller.name == name

    def test_benchmark_ladder_is_registered(self):
        assert all(name in CONTROLLERS for name in BENCHMARK_CONTROLLERS)

    def test_instances_are_not_shared(self):
        assert new_controller("RandomAvoiding") is not new_controller("RandomAvoiding")

    def test_parameterized_names(self):
        assert new_controller("RandomTurner_0.25").turn_prob == 0.25
        assert new_controller("MinimaxAreaController_2").max_depth == 2
        assert is_known_controller("MinimaxAreaController_4")
        assert not is_known_controller("MinimaxAreaController_x")
        assert not is_known_controller("RandomTurner_7")

    def test_unknown_name_raises_key_error(self):
        with pytest.raises(KeyError):
            new_controller("Nope")
