"""
Phases -- Film lifecycle as an explicit state + guard transition table.

Responsibility:
    Declares the ordered production phases and the ``PHASE_RULES`` table,
    and provides ``step_phase()``, the pure function that advances a film's
    (phase, weeks_in_current_phase) pair by one weekly tick.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Called by PhaseService; never reads the database or the clock.

Invariants enforced:
    - Timed phases increment the week counter once per tick and transition
      when it reaches the configured duration.  The counter resets to 0 on
      every transition, so it never exceeds the duration.
    - Guarded phases consume no time: the counter is not incremented and the
      transition happens as soon as the guard holds.
    - At most one timed transition per tick.  Guarded transitions chain
      before and after it.
    - RELEASED is terminal.

Failure modes:
    - InvalidDurationError from PhaseDurations on a duration < 1.

Adding a phase or a guard is a new row in PHASE_RULES (and a field on
PhaseGuards), not an edit to step_phase().
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum

from studio_kernel.domain.clock import GameClock
from studio_kernel.exceptions import InvalidDurationError


class Phase(str, Enum):
    """Production phases in lifecycle order."""

    DEVELOPMENT = "development"
    AWAITING_GREENLIGHT = "awaiting-greenlight"
    PRE_PRODUCTION = "pre-production"
    PRODUCTION = "production"
    FILMED = "filmed"
    POST_PRODUCTION = "post-production"
    PRODUCTION_COMPLETE = "production-complete"
    AWAITING_RELEASE = "awaiting-release"
    RELEASED = "released"


@dataclass(frozen=True)
class PhaseRule:
    """
    One row of the transition table.

    Exactly one of ``duration_field`` (timed) or ``guard`` (gated) is set.
    """

    state: Phase
    next_state: Phase
    duration_field: str | None = None
    guard: str | None = None

    @property
    def is_timed(self) -> bool:
        return self.duration_field is not None


PHASE_RULES: tuple[PhaseRule, ...] = (
    PhaseRule(Phase.DEVELOPMENT, Phase.AWAITING_GREENLIGHT,
              duration_field="development_duration_weeks"),
    PhaseRule(Phase.AWAITING_GREENLIGHT, Phase.PRE_PRODUCTION,
              guard="has_hired_talent"),
    PhaseRule(Phase.PRE_PRODUCTION, Phase.PRODUCTION,
              duration_field="pre_production_duration_weeks"),
    PhaseRule(Phase.PRODUCTION, Phase.FILMED,
              duration_field="production_duration_weeks"),
    PhaseRule(Phase.FILMED, Phase.POST_PRODUCTION,
              guard="has_edited_post_production"),
    PhaseRule(Phase.POST_PRODUCTION, Phase.PRODUCTION_COMPLETE,
              duration_field="post_production_duration_weeks"),
    PhaseRule(Phase.PRODUCTION_COMPLETE, Phase.AWAITING_RELEASE,
              guard="has_releases"),
    PhaseRule(Phase.AWAITING_RELEASE, Phase.RELEASED,
              guard="release_week_reached"),
)

RULES_BY_STATE: dict[Phase, PhaseRule] = {rule.state: rule for rule in PHASE_RULES}

# Phases in which roles may still be defined and offered.
CASTING_PHASES: tuple[Phase, ...] = (
    Phase.DEVELOPMENT,
    Phase.AWAITING_GREENLIGHT,
    Phase.PRE_PRODUCTION,
)

# Phases from which a release may be scheduled.
SCHEDULABLE_PHASES: tuple[Phase, ...] = (
    Phase.PRODUCTION_COMPLETE,
    Phase.AWAITING_RELEASE,
)


@dataclass(frozen=True)
class PhaseDurations:
    """Configured week counts for the four timed phases."""

    development_duration_weeks: int
    pre_production_duration_weeks: int
    production_duration_weeks: int
    post_production_duration_weeks: int

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, int) or value < 1:
                raise InvalidDurationError(f.name, value)

    @property
    def total_weeks(self) -> int:
        return (
            self.development_duration_weeks
            + self.pre_production_duration_weeks
            + self.production_duration_weeks
            + self.post_production_duration_weeks
        )

    def for_rule(self, rule: PhaseRule) -> int:
        return getattr(self, rule.duration_field)


@dataclass(frozen=True)
class PhaseGuards:
    """Guard flags evaluated by the service before a tick."""

    has_hired_talent: bool = False
    has_edited_post_production: bool = False
    has_releases: bool = False
    release_week_reached: bool = False


@dataclass(frozen=True)
class PhaseTransition:
    from_phase: Phase
    to_phase: Phase


@dataclass(frozen=True)
class PhaseStep:
    """Result of one tick for one film."""

    phase: Phase
    weeks_in_current_phase: int
    transitions: tuple[PhaseTransition, ...] = ()

    @property
    def changed_phase(self) -> bool:
        return bool(self.transitions)


def _chain_guards(
    phase: Phase,
    weeks: int,
    guards: PhaseGuards,
    transitions: list[PhaseTransition],
) -> tuple[Phase, int]:
    while True:
        rule = RULES_BY_STATE.get(phase)
        if rule is None or rule.is_timed or not getattr(guards, rule.guard):
            return phase, weeks
        transitions.append(PhaseTransition(phase, rule.next_state))
        phase, weeks = rule.next_state, 0


def step_phase(
    phase: Phase,
    weeks_in_current_phase: int,
    durations: PhaseDurations,
    guards: PhaseGuards,
) -> PhaseStep:
    """
    Advance one film by one weekly tick.

    Guarded phases whose guard already holds are passed through first, then
    the current timed phase (if any) consumes the week, then any guards that
    hold on the resulting phase are passed through.
    """
    transitions: list[PhaseTransition] = []
    phase, weeks = _chain_guards(Phase(phase), weeks_in_current_phase, guards, transitions)

    rule = RULES_BY_STATE.get(phase)
    if rule is not None and rule.is_timed:
        weeks += 1
        if weeks >= durations.for_rule(rule):
            transitions.append(PhaseTransition(phase, rule.next_state))
            phase, weeks = rule.next_state, 0
            phase, weeks = _chain_guards(phase, weeks, guards, transitions)

    return PhaseStep(
        phase=phase,
        weeks_in_current_phase=weeks,
        transitions=tuple(transitions),
    )


def earliest_release_clock(
    created: GameClock,
    durations: PhaseDurations,
    current: GameClock,
) -> GameClock:
    """Creation week plus all four durations, never earlier than ``current``."""
    earliest = created.plus_weeks(durations.total_weeks)
    return max(earliest, current)
