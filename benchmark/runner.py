"""
Headless round simulator and controller benchmark for the light-cycle arena.

Plays rounds to completion without rendering, scores players by order of
elimination from a shared rank pool, and ranks controllers over many
randomized rounds.

Usage:
    python -m benchmark.runner --runs 100 --seed 7
    python -m benchmark.runner --help
"""

from __future__ import annotations

import argparse
import logging
import multiprocessing as mp
import random
import sys
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from benchmark.metrics import ControllerStats, aggregate_metrics, controller_stats
from benchmark.renderers import render_arena
from controllers import BENCHMARK_CONTROLLERS, is_known_controller, new_controller
from map_gen import MAX_PLAYERS, NUM_LAYOUTS, START_DIRECTIONS, generate_grid, get_grid, get_start_vectors
from models import Player
from state import Arena, PlayerSpec, load_config, log_event

logger = logging.getLogger(__name__)

# Marks a player who has not been given a round score yet
UNSCORED = -1


# ---------------------------------------------------------------------------
# Rank pool scoring
# ---------------------------------------------------------------------------

def new_rank_pool(num_players: int) -> list[int]:
    """Rank values from last place up: [0, 2, 4, ..., 2 * (num_players - 1)]."""
    return [rank * 2 for rank in range(num_players)]


def calculate_average_score(ranks: Sequence[int], num: int) -> int:
    """
    Floor average of the first `num` rank values.

    `num` is clamped to the pool size; an empty pool or num == 0 scores 0.
    """
    if num <= 0 or not ranks:
        return 0
    num = min(num, len(ranks))
    return sum(ranks[:num]) // num


def handle_score_update(
    players: Sequence[Player],
    previous_alive: Sequence[bool],
    round_scores: dict[int, int],
    remaining: list[int],
) -> list[int]:
    """
    Score the cohort of players that died on the latest tick.

    Every member of the cohort gets the floor average of the lowest remaining
    rank values, and those values are consumed from `remaining` in place.

    Args:
        players: Round players, in id order
        previous_alive: Alive flags before the tick, parallel to `players`
        round_scores: player_id -> score, updated in place
        remaining: Unconsumed rank values, updated in place

    Returns:
        Ids of the players scored this tick
    """
    died = [p.id for p, was_alive in zip(players, previous_alive) if was_alive and not p.alive]
    if not died:
        return died

    num_died = min(len(died), len(remaining))
    score = calculate_average_score(remaining, num_died)
    for player_id in died:
        round_scores[player_id] = score
    del remaining[:num_died]
    return died


def score_remaining_players(
    players: Sequence[Player],
    round_scores: dict[int, int],
    remaining: list[int],
) -> list[int]:
    """
    Give every unscored player the floor average of all remaining rank values.

    Covers the winner, or the group still alive when the round was cut short.

    Returns:
        Ids of the players scored here
    """
    unscored = [p.id for p in players if round_scores.get(p.id, UNSCORED) == UNSCORED]
    if unscored:
        score = calculate_average_score(remaining, len(unscored))
        for player_id in unscored:
            round_scores[player_id] = score
        del remaining[:len(unscored)]
    return unscored


# ---------------------------------------------------------------------------
# Round simulation
# ---------------------------------------------------------------------------

def play_round(grid: Any, players: Iterable[PlayerSpec],
               max_ticks: Optional[int] = None) -> tuple[Arena, dict[int, int]]:
    """
    Run one round to completion and return the final arena alongside the scores.

    The round ends when at most one player is alive, or when `max_ticks`
    ticks (default: one per grid cell) have been played.
    """
    arena = Arena.from_grid(grid, players)
    cap = max_ticks if max_ticks is not None else arena.width * arena.height

    remaining = new_rank_pool(len(arena.players))
    round_scores = {p.id: UNSCORED for p in arena.players}
    previous_alive = [p.alive for p in arena.players]

    while not arena.is_finished():
        if arena.tick >= cap:
            alive_ids = [p.id for p in arena.alive_players()]
            logger.warning("Round stopped at safety cap of %d ticks with players %s still alive",
                           cap, alive_ids)
            log_event(arena, "Safety cap reached", max_ticks=cap, alive=alive_ids)
            break
        arena.update()
        handle_score_update(arena.players, previous_alive, round_scores, remaining)
        previous_alive = [p.alive for p in arena.players]

    score_remaining_players(arena.players, round_scores, remaining)
    return arena, round_scores


def simulate_round(grid: Any, players: Iterable[PlayerSpec],
                   max_ticks: Optional[int] = None) -> dict[int, int]:
    """
    Play a round headlessly and score it by order of elimination.

    Args:
        grid: Arena grid; copied, never modified
        players: Player records or (position, direction, controller) tuples
        max_ticks: Safety cap on the round length (default: width * height)

    Returns:
        player_id -> rank score
    """
    _, round_scores = play_round(grid, players, max_ticks)
    return round_scores


def setup_round(controller_names: Sequence[str], grid: Any, rng: random.Random) -> list[Player]:
    """
    Seat fresh controllers at the start slots of a grid.

    Each controller gets its own generator drawn from `rng`, so a seeded
    round replays identically.
    """
    height, width = len(grid), len(grid[0])
    starts = get_start_vectors(len(controller_names), width, height)
    players = []
    for i, (name, start) in enumerate(zip(controller_names, starts), 1):
        controller = new_controller(name, random.Random(rng.randrange(2 ** 32)))
        players.append(Player(id=i, position=start, direction=START_DIRECTIONS[i - 1], controller=controller))
    return players


def run_match(
    controller_names: Sequence[str],
    rounds: Optional[int] = None,
    seed: Optional[int] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> dict[str, Any]:
    """
    Play consecutive rounds on the rotating built-in layouts and total the scores.

    Round r is played on layout r mod NUM_LAYOUTS with freshly seated
    controllers. Defaults come from config.json.

    Returns:
        Dictionary with per-round scores, per-player totals and seat names
    """
    config = load_config()
    rounds = rounds if rounds is not None else config["rounds_per_match"]
    width = width or config["arena_width"]
    height = height or config["arena_height"]
    cap = config["safety_cap_factor"] * width * height
    rng = random.Random(seed)

    totals = {i: 0 for i in range(1, len(controller_names) + 1)}
    round_scores = []
    for r in range(rounds):
        grid = get_grid(r, width, height)
        players = setup_round(controller_names, grid, rng)
        scores = simulate_round(grid, players, max_ticks=cap)
        for player_id, score in scores.items():
            totals[player_id] += score
        round_scores.append(scores)
        logger.info("Match round %d/%d scores: %s", r + 1, rounds, scores)

    return {
        "controllers": list(controller_names),
        "rounds": round_scores,
        "totals": totals,
    }


# ---------------------------------------------------------------------------
# Benchmark
# ---------------------------------------------------------------------------

@dataclass
class BenchmarkConfig:
    """Configuration for a benchmark run."""

    runs: int
    seed: Optional[int] = None
    players_per_game: int = 4
    controllers: list[str] = field(default_factory=lambda: list(BENCHMARK_CONTROLLERS))
    workers: int = 1
    width: int = 50
    height: int = 50
    safety_cap_factor: int = 1
    keep_final_boards: bool = False
    generated_maps: bool = False
    obstacle_density: float = 0.08

    @classmethod
    def from_game_config(cls, runs: int, **overrides: Any) -> "BenchmarkConfig":
        """Fill arena dimensions and round sizes from config.json."""
        game_config = load_config()
        values = {
            "players_per_game": game_config["players_per_game"],
            "width": game_config["arena_width"],
            "height": game_config["arena_height"],
            "safety_cap_factor": game_config["safety_cap_factor"],
            "obstacle_density": game_config["obstacle_density"],
        }
        depth = game_config["minimax_depth"]
        values["controllers"] = [
            f"MinimaxAreaController_{depth}" if name.startswith("MinimaxAreaController_") else name
            for name in BENCHMARK_CONTROLLERS
        ]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(runs=runs, **values)


@dataclass
class RoundResult:
    """Result of a single benchmark round."""

    seed: int
    layout: Optional[int]  # None for a generated grid
    controller_names: list[str]
    scores: dict[int, int]
    ticks: int
    final_board: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "seed": self.seed,
            "layout": self.layout,
            "controllers": self.controller_names,
            "scores": self.scores,
            "ticks": self.ticks,
        }


@dataclass
class BenchmarkReport:
    """Aggregate results from a benchmark run."""

    round_results: list[RoundResult] = field(default_factory=list)
    stats: list[ControllerStats] = field(default_factory=list)
    aggregate_metrics: dict[str, dict[str, Any]] = field(default_factory=dict)


def play_benchmark_round(
    round_seed: int,
    controller_pool: Sequence[str],
    players_per_game: int,
    width: int,
    height: int,
    max_ticks: Optional[int] = None,
    keep_final_board: bool = False,
    obstacle_density: Optional[float] = None,
) -> RoundResult:
    """
    One isolated benchmark round, fully determined by `round_seed`.

    Shuffles the pool, seats the first `players_per_game` names, and plays on
    a randomly chosen built-in layout. With an `obstacle_density` the round
    is played on a freshly generated obstacle grid instead.
    """
    rng = random.Random(round_seed)
    names = list(controller_pool)
    rng.shuffle(names)
    names = names[:players_per_game]
    if obstacle_density is None:
        layout = rng.randrange(NUM_LAYOUTS)
        grid = get_grid(layout, width, height)
    else:
        layout = None
        grid = generate_grid(rng.randrange(2 ** 32), width, height, obstacle_density)
    players = setup_round(names, grid, rng)
    arena, scores = play_round(grid, players, max_ticks)
    return RoundResult(
        seed=round_seed,
        layout=layout,
        controller_names=names,
        scores=scores,
        ticks=arena.tick,
        final_board=render_arena(arena) if keep_final_board else None,
    )


def _worker(args: tuple) -> RoundResult:
    return play_benchmark_round(*args)


class BenchmarkRunner:
    """Ranks controllers over many randomized, independent rounds."""

    def __init__(self, config: BenchmarkConfig):
        self.config = config

    def validate(self) -> None:
        """
        Raises:
            ValueError: for a non-positive run count, a player count outside
                1..MAX_PLAYERS, too few controllers, or unknown controller names
        """
        if self.config.runs <= 0:
            raise ValueError(f"Number of runs must be positive, got {self.config.runs}")
        if not 1 <= self.config.players_per_game <= MAX_PLAYERS:
            raise ValueError(f"Players per game must be between 1 and {MAX_PLAYERS}, "
                             f"got {self.config.players_per_game}")
        if len(self.config.controllers) < self.config.players_per_game:
            raise ValueError(f"Need at least {self.config.players_per_game} controllers, "
                             f"only {len(self.config.controllers)} registered")
        unknown = [name for name in self.config.controllers if not is_known_controller(name)]
        if unknown:
            raise ValueError(f"Unknown controllers: {', '.join(unknown)}")

    def round_seeds(self) -> list[int]:
        """Per-round seeds drawn up front so parallel and sequential runs agree."""
        master = random.Random(self.config.seed)
        return [master.randrange(2 ** 32) for _ in range(self.config.runs)]

    def run_benchmark(self) -> BenchmarkReport:
        """Play every round and aggregate per-controller statistics."""
        self.validate()
        cap = self.config.safety_cap_factor * self.config.width * self.config.height
        density = self.config.obstacle_density if self.config.generated_maps else None
        jobs = [
            (seed, self.config.controllers, self.config.players_per_game,
             self.config.width, self.config.height, cap, self.config.keep_final_boards, density)
            for seed in self.round_seeds()
        ]

        if self.config.workers > 1:
            with mp.Pool(processes=self.config.workers) as pool:
                results = pool.map(_worker, jobs)
        else:
            results = []
            for i, job in enumerate(jobs, 1):
                results.append(_worker(job))
                logger.info("Round %d/%d done: %s", i, len(jobs), results[-1].to_dict())

        report = BenchmarkReport(round_results=list(results))
        report.stats = controller_stats(report.round_results)
        report.aggregate_metrics = aggregate_metrics(report.round_results)
        return report

    def generate_report(self, report: BenchmarkReport) -> str:
        """Human-readable controller table sorted by total score."""
        lines = [
            "=" * 70,
            f"  CONTROLLER BENCHMARK ({len(report.round_results)} rounds, "
            f"{self.config.players_per_game} players per round)",
            "=" * 70,
            f"  {'Controller':<28} {'Total':>8} {'Games':>7} {'Normalized':>11} {'Win rate':>9}",
            "-" * 70,
        ]
        for stats in report.stats:
            win_rate = report.aggregate_metrics.get(stats.name, {}).get("win_rate", 0.0)
            lines.append(
                f"  {stats.name:<28} {stats.total:>8} {stats.games:>7} "
                f"{stats.normalized:>11.3f} {win_rate:>9.3f}"
            )
        lines.append("=" * 70)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="benchmark.runner",
                                     description="Rank light-cycle controllers over randomized rounds")
    parser.add_argument("--runs", type=int, required=True, help="Number of rounds to play")
    parser.add_argument("--seed", type=int, default=None, help="Master random seed")
    parser.add_argument("--players", type=int, default=None,
                        help="Players per round (default from config.json)")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes (1 = sequential)")
    parser.add_argument("--show-final", action="store_true", help="Print the final board of every round")
    parser.add_argument("--generated", action="store_true",
                        help="Play on seeded obstacle grids instead of the built-in layouts")
    parser.add_argument("--verbose", action="store_true", help="Log progress at INFO level")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    config = BenchmarkConfig.from_game_config(
        args.runs,
        seed=args.seed,
        players_per_game=args.players,
        workers=args.workers,
        keep_final_boards=args.show_final,
        generated_maps=args.generated,
    )
    runner = BenchmarkRunner(config)
    try:
        report = runner.run_benchmark()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.show_final:
        for i, result in enumerate(report.round_results, 1):
            layout = "generated" if result.layout is None else result.layout
            print(f"Round {i} (layout {layout}, {result.ticks} ticks): "
                  f"{', '.join(result.controller_names)}")
            print(result.final_board)
            print()

    print(runner.generate_report(report))
    return 0


if __name__ == "__main__":
    sys.exit(main())
