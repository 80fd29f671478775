"""
Benchmark metrics for ranking controllers.

Turns per-round rank scores into per-controller statistics:
- Total score and games played (the headline table)
- Normalized score: total / games, comparable across uneven seat counts
- Mean, standard deviation and 95% confidence interval of per-round scores
- Win rate: share of rounds in which the controller took the top score
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Protocol


class RoundOutcome(Protocol):
    """Anything carrying the seat names and rank scores of one round."""

    controller_names: list[str]
    scores: dict[int, int]


@dataclass
class ControllerStats:
    """Accumulated benchmark results for one controller name."""

    name: str
    total: int = 0
    games: int = 0

    @property
    def normalized(self) -> float:
        """Average rank score per round played (0.0 before any round)."""
        if self.games == 0:
            return 0.0
        return self.total / self.games

    def add(self, score: int) -> None:
        self.total += score
        self.games += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "total": self.total,
            "games": self.games,
            "normalized": self.normalized,
        }


def summarize(values: list[float]) -> dict[str, float]:
    """
    Mean, sample standard deviation and normal-approximation 95% CI.

    A single value has zero spread; an empty list summarizes to zeros.
    """
    n = len(values)
    if n == 0:
        return {"mean": 0.0, "std": 0.0, "ci_lower": 0.0, "ci_upper": 0.0, "n": 0}
    mean = sum(values) / n
    if n >= 2:
        variance = sum((v - mean) ** 2 for v in values) / (n - 1)
        std = math.sqrt(variance)
        # z=1.96, fine for the run counts a benchmark uses
        ci_margin = 1.96 * std / math.sqrt(n)
    else:
        std = 0.0
        ci_margin = 0.0
    return {
        "mean": mean,
        "std": std,
        "ci_lower": mean - ci_margin,
        "ci_upper": mean + ci_margin,
        "n": n,
    }


def scores_by_controller(results: Iterable[RoundOutcome]) -> dict[str, list[int]]:
    """Collect every per-round score under the controller name that earned it."""
    by_name: dict[str, list[int]] = {}
    for result in results:
        for seat, name in enumerate(result.controller_names, 1):
            by_name.setdefault(name, []).append(result.scores[seat])
    return by_name


def controller_stats(results: Iterable[RoundOutcome]) -> list[ControllerStats]:
    """
    Fold round results into ControllerStats.

    Returns:
        Stats sorted by total score descending, then by name for stable output
    """
    stats: dict[str, ControllerStats] = {}
    for name, scores in scores_by_controller(results).items():
        entry = stats.setdefault(name, ControllerStats(name=name))
        for score in scores:
            entry.add(score)
    return sorted(stats.values(), key=lambda s: (-s.total, s.name))


def win_rates(results: Iterable[RoundOutcome]) -> dict[str, float]:
    """
    Share of played rounds in which each controller held the top score.

    Shared top scores count as a win for every holder.
    """
    wins: dict[str, int] = {}
    played: dict[str, int] = {}
    for result in results:
        top = max(result.scores.values())
        for seat, name in enumerate(result.controller_names, 1):
            played[name] = played.get(name, 0) + 1
            if result.scores[seat] == top:
                wins[name] = wins.get(name, 0) + 1
    return {name: wins.get(name, 0) / count for name, count in played.items()}


def aggregate_metrics(results: list[RoundOutcome]) -> dict[str, dict[str, Any]]:
    """Per-controller score summary with confidence interval plus win rate."""
    rates = win_rates(results)
    aggregate = {}
    for name, scores in sorted(scores_by_controller(results).items()):
        summary = summarize([float(s) for s in scores])
        summary["win_rate"] = rates.get(name, 0.0)
        aggregate[name] = summary
    return aggregate
