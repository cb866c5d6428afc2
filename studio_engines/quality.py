"""
studio_engines.quality -- Critic and audience scores for a finished film.

Responsibility:
    Turns what went into a film (script, director, cast, budget) into the
    two independent quality dimensions the box-office curve reads:
    critic score (0..100, integer) and audience score (0..10, one decimal).

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Noise comes from the
    injected ``random.Random``.

Invariants enforced:
    - 0 <= critic_score <= 100 and 0.0 <= audience_score <= 10.0.
    - Missing crew or cast scores as ``missing_contributor_score`` rather
      than failing, so an uncast film still gets (poor) reviews.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass

from studio_engines.tracer import traced_engine


@dataclass(frozen=True)
class QualityWeights:
    script: float = 0.30
    director: float = 0.25
    cast: float = 0.30
    budget: float = 0.15

    # Total budget at which budget adequacy saturates at 100
    reference_budget: int = 60_000_000
    missing_contributor_score: float = 40.0

    critic_noise: float = 8.0
    audience_noise: float = 6.0
    audience_fame_weight: float = 0.2

    def __post_init__(self) -> None:
        total = self.script + self.director + self.cast + self.budget
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"quality weights must sum to 1.0, got {total}")
        if self.reference_budget <= 0:
            raise ValueError("reference_budget must be positive")


DEFAULT_QUALITY_WEIGHTS = QualityWeights()


@dataclass(frozen=True)
class Contributor:
    """One person's contribution: 0..100 performance, genre skill and fame."""

    performance: int
    genre_skill: int
    fame: int = 50

    @property
    def craft(self) -> float:
        return (self.performance + self.genre_skill) / 2


@dataclass(frozen=True)
class QualityScores:
    critic_score: int
    audience_score: float
    craft: float


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _mean(values: Sequence[float], default: float) -> float:
    return sum(values) / len(values) if values else default


@traced_engine(
    "quality",
    "1.0",
    fingerprint_fields=("script_quality", "director", "cast", "total_budget"),
    result_fields=("critic_score", "audience_score"),
)
def score_film(
    *,
    script_quality: int,
    director: Contributor | None,
    cast: Sequence[Contributor],
    total_budget: int,
    rng: random.Random,
    weights: QualityWeights = DEFAULT_QUALITY_WEIGHTS,
) -> QualityScores:
    missing = weights.missing_contributor_score
    director_craft = director.craft if director is not None else missing
    cast_craft = _mean([c.craft for c in cast], missing)
    budget_adequacy = _clamp(total_budget / weights.reference_budget * 100, 0, 100)

    craft = (
        weights.script * _clamp(script_quality, 0, 100)
        + weights.director * director_craft
        + weights.cast * cast_craft
        + weights.budget * budget_adequacy
    )

    critic = _clamp(
        round(craft + rng.uniform(-weights.critic_noise, weights.critic_noise)), 0, 100
    )

    star_power = _mean([c.fame for c in cast], missing)
    audience_raw = (
        (1 - weights.audience_fame_weight) * craft
        + weights.audience_fame_weight * star_power
        + rng.uniform(-weights.audience_noise, weights.audience_noise)
    )
    audience = round(_clamp(audience_raw / 10, 0.0, 10.0), 1)

    return QualityScores(critic_score=int(critic), audience_score=audience, craft=craft)
