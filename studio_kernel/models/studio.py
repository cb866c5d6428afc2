"""
Module: studio_kernel.models.studio
Responsibility: ORM persistence for a studio -- its cash budget and its
    position on the game calendar.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - budget is never decremented below zero by a committed spend.  All
      debits go through BudgetLedger's conditional UPDATE; no code path
      assigns ``studio.budget`` directly.
    - current_week is in 1..52.

Failure modes:
    - InsufficientFundsError (raised by BudgetLedger, not here).
"""

from sqlalchemy import BigInteger, CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from studio_kernel.db.base import TrackedBase
from studio_kernel.domain.clock import WEEKS_PER_YEAR

DEFAULT_STARTING_BUDGET = 150_000_000
DEFAULT_START_YEAR = 2025


class Studio(TrackedBase):
    """
    A player studio.

    Contract:
        Owns films.  Holds the studio's cash and its current game week.

    Guarantees:
        - session_id partitions studio state for multiplayer sessions; it is
          NULL for single-player studios.

    Non-goals:
        - Studio does NOT advance its own clock; PhaseService does.
    """

    __tablename__ = "studios"

    __table_args__ = (
        CheckConstraint("budget >= 0", name="ck_studio_budget_non_negative"),
        Index("idx_studio_session", "session_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Whole currency units
    budget: Mapped[int] = mapped_column(
        BigInteger,
        default=DEFAULT_STARTING_BUDGET,
        nullable=False,
    )

    current_week: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    current_year: Mapped[int] = mapped_column(
        Integer,
        default=DEFAULT_START_YEAR,
        nullable=False,
    )

    # 1 (newcomer) .. 5 (major)
    prestige_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    total_earnings: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    home_territory: Mapped[str] = mapped_column(String(8), default="NA", nullable=False)

    def __repr__(self) -> str:
        return f"<Studio {self.name}: W{self.current_week}/{self.current_year}>"

    @property
    def clock_index(self) -> int:
        """Absolute week number of the studio's current week."""
        return self.current_year * WEEKS_PER_YEAR + self.current_week
