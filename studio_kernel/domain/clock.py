"""
GameClock -- Explicit game-time value.

Responsibility:
    Provides the week/year value that every core operation receives as a
    parameter.  Domain, engine and service code never read an ambient
    "current week"; they are handed a ``GameClock`` by the caller.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - 1 <= week <= WEEKS_PER_YEAR.
    - ``index`` is a strictly increasing absolute week number, so ordering
      and arithmetic across year boundaries are plain integer operations.

Failure modes:
    - ValueError on a week outside 1..52.
"""

from __future__ import annotations

from dataclasses import dataclass

WEEKS_PER_YEAR = 52


@dataclass(frozen=True, order=True)
class GameClock:
    """
    A single game week.

    Contract:
        Immutable.  ``next()`` and ``plus_weeks()`` return new clocks.

    Guarantees:
        - ``GameClock.from_index(c.index) == c`` for every valid clock.
        - Ordering compares (year, week), which agrees with ``index``.
    """

    year: int
    week: int

    def __post_init__(self) -> None:
        if not 1 <= self.week <= WEEKS_PER_YEAR:
            raise ValueError(
                f"week must be between 1 and {WEEKS_PER_YEAR}, got {self.week}"
            )

    @classmethod
    def of(cls, week: int, year: int) -> GameClock:
        """Build a clock from (week, year) in the order the game displays them."""
        return cls(year=year, week=week)

    @classmethod
    def from_index(cls, index: int) -> GameClock:
        """Inverse of ``index``."""
        year, offset = divmod(index - 1, WEEKS_PER_YEAR)
        return cls(year=year, week=offset + 1)

    @property
    def index(self) -> int:
        """Absolute week number (year * 52 + week)."""
        return self.year * WEEKS_PER_YEAR + self.week

    def next(self) -> GameClock:
        return self.plus_weeks(1)

    def plus_weeks(self, weeks: int) -> GameClock:
        return GameClock.from_index(self.index + weeks)

    def weeks_until(self, other: GameClock) -> int:
        """Signed number of weeks from this clock to ``other``."""
        return other.index - self.index

    def __str__(self) -> str:
        return f"W{self.week}/{self.year}"
