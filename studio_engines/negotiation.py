"""
studio_engines.negotiation -- Casting acceptance probability.

Responsibility:
    Computes the probability (0..100) that a talent accepts an offer, as a
    baseline plus five independently bounded factor contributions, and
    resolves an acceptance roll against an injected random source.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Called by CastingService (resolution) and by the orchestrator's
    ``calculate_acceptance`` preview.

Invariants enforced:
    - Each factor is clamped to its own bounds before summing, so no single
      factor can dominate the result.
    - Factors are rounded to whole points; the probability is exactly
      baseline + sum(factors), clamped to 0..100.
    - Role importance weights are strictly ordered lead > supporting >
      minor > cameo (checked by NegotiationWeights).
    - Salary contribution is negative below the asking price,
      non-negative at or above it, and flattens beyond the knee ratio.

Failure modes:
    - ValueError on a non-positive asking price or offered salary.
    - ValueError on an unknown role importance.

Default weights:
    prestige       min(20, level * 4)
    director fame  min(15, fame * 0.15), 0 without a director
    role           lead 25 / supporting 15 / minor 8 / cameo 3
    salary ratio r r < 1: max(-40, (r - 1) * 80)
                   1 <= r <= 2: (r - 1) * 20
                   r > 2: 20 + min(5, (r - 2) * 5)
    genre skill s  s >= 60: 5 + (s - 60) / 40 * 10
                   s < 60: -(60 - s) / 60 * 10
"""

from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from studio_engines.tracer import traced_engine

ROLE_ORDER = ("lead", "supporting", "minor", "cameo")


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class NegotiationWeights:
    """Tunable coefficients of the acceptance model."""

    baseline: int = 20

    prestige_per_level: float = 4.0
    prestige_cap: float = 20.0

    director_fame_weight: float = 0.15
    director_fame_cap: float = 15.0

    role_importance: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType(
            {"lead": 25, "supporting": 15, "minor": 8, "cameo": 3}
        )
    )

    salary_below_slope: float = 80.0
    salary_floor: float = -40.0
    salary_slope: float = 20.0
    salary_knee: float = 2.0
    salary_bonus_slope: float = 5.0
    salary_bonus_cap: float = 5.0

    genre_threshold: int = 60
    genre_match_base: float = 5.0
    genre_match_span: float = 10.0
    genre_mismatch_max: float = 10.0

    def __post_init__(self) -> None:
        missing = [r for r in ROLE_ORDER if r not in self.role_importance]
        if missing:
            raise ValueError(f"role_importance missing weights for: {missing}")
        ordered = [self.role_importance[r] for r in ROLE_ORDER]
        if any(a <= b for a, b in zip(ordered, ordered[1:])):
            raise ValueError(
                f"role_importance must be strictly decreasing lead > cameo, got {ordered}"
            )
        if not 0 < self.genre_threshold < 100:
            raise ValueError(f"genre_threshold must be in (0, 100), got {self.genre_threshold}")
        if self.salary_knee <= 1.0:
            raise ValueError(f"salary_knee must exceed 1.0, got {self.salary_knee}")
        object.__setattr__(
            self, "role_importance", MappingProxyType(dict(self.role_importance))
        )


DEFAULT_WEIGHTS = NegotiationWeights()


@dataclass(frozen=True)
class AcceptanceFactors:
    """The five contributions, in whole points."""

    prestige: int
    director_fame: int
    role_importance: int
    salary: int
    genre_match: int

    @property
    def total(self) -> int:
        return (
            self.prestige
            + self.director_fame
            + self.role_importance
            + self.salary
            + self.genre_match
        )

    def as_dict(self) -> dict[str, int]:
        return {
            "prestige": self.prestige,
            "director_fame": self.director_fame,
            "role_importance": self.role_importance,
            "salary": self.salary,
            "genre_match": self.genre_match,
        }


@dataclass(frozen=True)
class AcceptanceResult:
    probability: int
    baseline: int
    factors: AcceptanceFactors
    salary_ratio: float


@dataclass(frozen=True)
class RollOutcome:
    accepted: bool
    roll: float
    probability: int


# Individual factors


def prestige_factor(prestige_level: int, weights: NegotiationWeights = DEFAULT_WEIGHTS) -> float:
    raw = max(0, prestige_level) * weights.prestige_per_level
    return _clamp(raw, 0.0, weights.prestige_cap)


def director_fame_factor(
    director_fame: int | None,
    weights: NegotiationWeights = DEFAULT_WEIGHTS,
) -> float:
    if director_fame is None:
        return 0.0
    return _clamp(director_fame * weights.director_fame_weight, 0.0, weights.director_fame_cap)


def role_importance_factor(
    role_importance: str,
    weights: NegotiationWeights = DEFAULT_WEIGHTS,
) -> float:
    key = getattr(role_importance, "value", role_importance)
    try:
        return float(weights.role_importance[key])
    except KeyError:
        raise ValueError(f"Unknown role importance: {role_importance!r}") from None


def salary_factor(ratio: float, weights: NegotiationWeights = DEFAULT_WEIGHTS) -> float:
    if ratio < 1.0:
        return max(weights.salary_floor, (ratio - 1.0) * weights.salary_below_slope)
    if ratio <= weights.salary_knee:
        return (ratio - 1.0) * weights.salary_slope
    at_knee = (weights.salary_knee - 1.0) * weights.salary_slope
    bonus = min(weights.salary_bonus_cap, (ratio - weights.salary_knee) * weights.salary_bonus_slope)
    return at_knee + bonus


def genre_match_factor(genre_skill: int, weights: NegotiationWeights = DEFAULT_WEIGHTS) -> float:
    skill = _clamp(genre_skill, 0, 100)
    threshold = weights.genre_threshold
    if skill >= threshold:
        return weights.genre_match_base + (
            (skill - threshold) / (100 - threshold) * weights.genre_match_span
        )
    return -((threshold - skill) / threshold) * weights.genre_mismatch_max


@traced_engine(
    "negotiation",
    "1.0",
    fingerprint_fields=(
        "prestige_level",
        "director_fame",
        "role_importance",
        "offered_salary",
        "asking_price",
        "genre_skill",
    ),
    result_fields=("probability",),
)
def calculate_acceptance(
    *,
    prestige_level: int,
    director_fame: int | None,
    role_importance: str,
    offered_salary: int,
    asking_price: int,
    genre_skill: int,
    weights: NegotiationWeights = DEFAULT_WEIGHTS,
) -> AcceptanceResult:
    """
    Acceptance probability for one offer.

    Args:
        prestige_level: Offering studio's prestige (1..5).
        director_fame: Fame of the film's attached director, or None.
        role_importance: lead / supporting / minor / cameo.
        offered_salary: Whole currency units, > 0.
        asking_price: Talent's asking price, > 0.
        genre_skill: Talent's 0..100 skill in the film's genre.
    """
    if asking_price <= 0:
        raise ValueError(f"asking_price must be positive, got {asking_price}")
    if offered_salary <= 0:
        raise ValueError(f"offered_salary must be positive, got {offered_salary}")

    ratio = offered_salary / asking_price
    factors = AcceptanceFactors(
        prestige=round(prestige_factor(prestige_level, weights)),
        director_fame=round(director_fame_factor(director_fame, weights)),
        role_importance=round(role_importance_factor(role_importance, weights)),
        salary=round(salary_factor(ratio, weights)),
        genre_match=round(genre_match_factor(genre_skill, weights)),
    )
    probability = int(_clamp(weights.baseline + factors.total, 0, 100))

    return AcceptanceResult(
        probability=probability,
        baseline=weights.baseline,
        factors=factors,
        salary_ratio=ratio,
    )


def roll_acceptance(probability: int, rng: random.Random) -> RollOutcome:
    """Draw once from ``rng``: accepted iff the draw lands under ``probability``."""
    roll = rng.uniform(0, 100)
    return RollOutcome(accepted=roll < probability, roll=roll, probability=probability)
