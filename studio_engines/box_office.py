"""
studio_engines.box_office -- Weekly theatrical revenue curve.

Responsibility:
    Produces one territory's gross for one week of its run: the opening
    weekend on the first week, then a quality-sensitive decay of the
    previous week's gross.  Also derives theater counts and reports the
    legs multiplier.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Randomness comes only from the ``random.Random`` the caller injects,
    so a seeded caller gets a reproducible run.

Invariants enforced:
    - Every weekly gross is an integer >= 0.
    - After the opening week, gross(k+1) = floor(gross(k) * retention) with
      retention clamped to [min_retention, max_retention] and
      max_retention < 1, so the run is non-increasing.
    - Higher audience (0..10) and critic (0..100) scores raise retention;
      lower scores lower it.
    - A run closes when the gross drops under min_weekly_gross or the run
      reaches max_run_weeks.

Formulas:
    opening   = base_opening_gross * market_share * marketing_mult
                * quality_factor * fame_factor * holiday_modifier * noise
    marketing_mult = clamp((marketing / market_share) / reference_marketing,
                           marketing_min, marketing_max)
    quality   = (audience * 10 + critic) / 2
    quality_factor = 0.5 + quality / 200
    fame_factor    = 0.8 + average_fame / 250
    retention = clamp(base_retention
                      + (audience - 5) * audience_weight
                      + (critic - 50) * critic_weight
                      - fatigue_per_week * weeks_in_release
                      + uniform(-retention_noise, retention_noise),
                      min_retention, max_retention)
    theaters  = opening_theaters * sqrt(gross / opening)

Failure modes:
    - ValueError from BoxOfficeCurve on inconsistent bounds.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass

from studio_engines.tracer import traced_engine

NEUTRAL_AUDIENCE_SCORE = 5.0
NEUTRAL_CRITIC_SCORE = 50


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class BoxOfficeCurve:
    """Coefficients of the opening and decay model."""

    base_opening_gross: int = 150_000_000
    reference_marketing: int = 30_000_000
    marketing_min: float = 0.25
    marketing_max: float = 2.0

    noise_low: float = 0.85
    noise_high: float = 1.15

    base_retention: float = 0.62
    audience_weight: float = 0.03
    critic_weight: float = 0.002
    fatigue_per_week: float = 0.01
    retention_noise: float = 0.03
    min_retention: float = 0.25
    max_retention: float = 0.85

    min_weekly_gross: int = 100_000
    max_run_weeks: int = 16

    opening_screen_floor: float = 0.35
    opening_screen_per_marketing: float = 0.325

    studio_share: float = 0.5

    def __post_init__(self) -> None:
        if self.base_opening_gross <= 0:
            raise ValueError("base_opening_gross must be positive")
        if self.reference_marketing <= 0:
            raise ValueError("reference_marketing must be positive")
        if not 0 < self.marketing_min <= self.marketing_max:
            raise ValueError("marketing bounds must satisfy 0 < min <= max")
        if not 0 < self.noise_low <= self.noise_high:
            raise ValueError("noise bounds must satisfy 0 < low <= high")
        if not 0 <= self.min_retention <= self.max_retention < 1:
            raise ValueError(
                "retention bounds must satisfy 0 <= min <= max < 1, got "
                f"[{self.min_retention}, {self.max_retention}]"
            )
        if self.max_run_weeks < 1:
            raise ValueError("max_run_weeks must be at least 1")
        if self.min_weekly_gross < 0:
            raise ValueError("min_weekly_gross must be non-negative")
        if not 0 <= self.studio_share <= 1:
            raise ValueError("studio_share must be in [0, 1]")


DEFAULT_CURVE = BoxOfficeCurve()


@dataclass(frozen=True)
class ReleaseInputs:
    """Per-territory inputs fixed for the whole run."""

    market_share: float
    marketing_budget: int
    audience_score: float | None
    critic_score: int | None
    average_fame: float
    holiday_modifier: float = 1.0
    max_theaters: int = 1000


@dataclass(frozen=True)
class RunState:
    """Where the run stands before this week."""

    weeks_in_release: int = 0
    last_gross: int = 0
    opening_gross: int = 0
    opening_theaters: int = 0


@dataclass(frozen=True)
class WeekProjection:
    week_number: int
    gross: int
    theater_count: int
    retention: float | None
    closes: bool

    @property
    def is_opening(self) -> bool:
        return self.week_number == 1


def quality_index(audience_score: float | None, critic_score: int | None) -> float:
    """Both scores on a 0..100 scale, averaged.  Unscored films count as neutral."""
    audience = NEUTRAL_AUDIENCE_SCORE if audience_score is None else audience_score
    critic = NEUTRAL_CRITIC_SCORE if critic_score is None else critic_score
    return (audience * 10 + critic) / 2


def marketing_multiplier(
    marketing_budget: int,
    market_share: float,
    curve: BoxOfficeCurve = DEFAULT_CURVE,
) -> float:
    if market_share <= 0:
        return curve.marketing_min
    intensity = marketing_budget / market_share
    return _clamp(intensity / curve.reference_marketing, curve.marketing_min, curve.marketing_max)


def opening_theaters(
    inputs: ReleaseInputs,
    curve: BoxOfficeCurve = DEFAULT_CURVE,
) -> int:
    mult = marketing_multiplier(inputs.marketing_budget, inputs.market_share, curve)
    coverage = _clamp(
        curve.opening_screen_floor + curve.opening_screen_per_marketing * mult, 0.0, 1.0
    )
    return max(1, round(inputs.max_theaters * coverage))


def opening_gross(
    inputs: ReleaseInputs,
    noise: float,
    curve: BoxOfficeCurve = DEFAULT_CURVE,
) -> int:
    quality = quality_index(inputs.audience_score, inputs.critic_score)
    quality_factor = 0.5 + quality / 200
    fame_factor = 0.8 + _clamp(inputs.average_fame, 0, 100) / 250
    raw = (
        curve.base_opening_gross
        * inputs.market_share
        * marketing_multiplier(inputs.marketing_budget, inputs.market_share, curve)
        * quality_factor
        * fame_factor
        * inputs.holiday_modifier
        * noise
    )
    return max(0, math.floor(raw))


def retention_rate(
    weeks_in_release: int,
    audience_score: float | None,
    critic_score: int | None,
    noise: float,
    curve: BoxOfficeCurve = DEFAULT_CURVE,
) -> float:
    audience = NEUTRAL_AUDIENCE_SCORE if audience_score is None else audience_score
    critic = NEUTRAL_CRITIC_SCORE if critic_score is None else critic_score
    raw = (
        curve.base_retention
        + (audience - NEUTRAL_AUDIENCE_SCORE) * curve.audience_weight
        + (critic - NEUTRAL_CRITIC_SCORE) * curve.critic_weight
        - curve.fatigue_per_week * weeks_in_release
        + noise
    )
    return _clamp(raw, curve.min_retention, curve.max_retention)


def theater_count(opening_theater_count: int, opening: int, gross: int) -> int:
    if opening <= 0 or gross <= 0:
        return 0
    return round(opening_theater_count * math.sqrt(min(1.0, gross / opening)))


def legs_multiplier(total_gross: int, opening: int) -> float:
    """Total / opening.  Display only; never feeds back into revenue."""
    if opening <= 0:
        return 0.0
    return total_gross / opening


@traced_engine(
    "box_office",
    "1.0",
    fingerprint_fields=("inputs", "state"),
    result_fields=("week_number", "gross", "closes"),
)
def project_week(
    *,
    inputs: ReleaseInputs,
    state: RunState,
    rng: random.Random,
    curve: BoxOfficeCurve = DEFAULT_CURVE,
) -> WeekProjection:
    """Gross for the next week of a run."""
    week_number = state.weeks_in_release + 1

    if state.weeks_in_release == 0:
        noise = rng.uniform(curve.noise_low, curve.noise_high)
        gross = opening_gross(inputs, noise, curve)
        theaters = opening_theaters(inputs, curve) if gross > 0 else 0
        retention = None
    else:
        noise = rng.uniform(-curve.retention_noise, curve.retention_noise)
        retention = retention_rate(
            state.weeks_in_release,
            inputs.audience_score,
            inputs.critic_score,
            noise,
            curve,
        )
        gross = min(state.last_gross, math.floor(state.last_gross * retention))
        theaters = theater_count(state.opening_theaters, state.opening_gross, gross)

    closes = gross < curve.min_weekly_gross or week_number >= curve.max_run_weeks
    return WeekProjection(
        week_number=week_number,
        gross=gross,
        theater_count=theaters,
        retention=retention,
        closes=closes,
    )
