"""
Module: studio_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines: casting
    acceptance, the box-office curve and film quality scoring.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import studio_kernel logging and sibling engine modules.
    MUST NOT import studio_services or studio_config.

Invariants enforced:
    - Engines never read a clock or the database.  Week numbers, scores
      and a ``random.Random`` are passed in by the caller.
    - Identical inputs and an identically seeded ``random.Random`` give
      identical outputs.

Every engine entrypoint is wrapped by ``@traced_engine`` and emits a
STUDIO_ENGINE_TRACE log record.
"""

from studio_kernel.logging_config import get_logger

logger = get_logger("engines")

from studio_engines.box_office import (
    DEFAULT_CURVE,
    BoxOfficeCurve,
    ReleaseInputs,
    RunState,
    WeekProjection,
    legs_multiplier,
    project_week,
)
from studio_engines.negotiation import (
    DEFAULT_WEIGHTS,
    AcceptanceFactors,
    AcceptanceResult,
    NegotiationWeights,
    RollOutcome,
    calculate_acceptance,
    roll_acceptance,
)
from studio_engines.quality import (
    DEFAULT_QUALITY_WEIGHTS,
    Contributor,
    QualityScores,
    QualityWeights,
    score_film,
)

__all__ = [
    "AcceptanceFactors",
    "AcceptanceResult",
    "BoxOfficeCurve",
    "Contributor",
    "DEFAULT_CURVE",
    "DEFAULT_QUALITY_WEIGHTS",
    "DEFAULT_WEIGHTS",
    "NegotiationWeights",
    "QualityScores",
    "QualityWeights",
    "ReleaseInputs",
    "RollOutcome",
    "RunState",
    "WeekProjection",
    "calculate_acceptance",
    "legs_multiplier",
    "project_week",
    "roll_acceptance",
    "score_film",
]
