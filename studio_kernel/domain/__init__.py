"""Pure domain layer: clock, phase table, value vocabularies and DTOs."""

from studio_kernel.domain.clock import WEEKS_PER_YEAR, GameClock
from studio_kernel.domain.phases import (
    PHASE_RULES,
    Phase,
    PhaseDurations,
    PhaseGuards,
    PhaseRule,
    PhaseStep,
    earliest_release_clock,
    step_phase,
)
from studio_kernel.domain.values import (
    FilmStatus,
    Genre,
    LedgerReason,
    ReleaseScope,
    RoleImportance,
    TalentType,
)

__all__ = [
    "GameClock",
    "WEEKS_PER_YEAR",
    "Phase",
    "PhaseRule",
    "PHASE_RULES",
    "PhaseDurations",
    "PhaseGuards",
    "PhaseStep",
    "step_phase",
    "earliest_release_clock",
    "FilmStatus",
    "Genre",
    "LedgerReason",
    "ReleaseScope",
    "RoleImportance",
    "TalentType",
]
