"""
Module: studio_kernel.models.talent
Responsibility: ORM persistence for actors, directors, writers and composers.
Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions only.

Invariants enforced:
    - fame, performance, experience and every genre skill are bounded to
      0..100.  Enforced at assignment time by ``@validates`` hooks so an
      out-of-range value never reaches a flush.
    - busy_until_week/year are either both NULL or both set.

Failure modes:
    - AttributeBoundsError on an out-of-range score.

Talent is catalog data: the core only mutates busy status and
current_film_id.
"""

from uuid import UUID

from sqlalchemy import JSON, BigInteger, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from studio_kernel.db.base import TrackedBase, UUIDString
from studio_kernel.domain.clock import WEEKS_PER_YEAR
from studio_kernel.exceptions import AttributeBoundsError

SCORE_MIN = 0
SCORE_MAX = 100


def _check_score(field_name: str, value: float) -> None:
    if value is None or not SCORE_MIN <= value <= SCORE_MAX:
        raise AttributeBoundsError(field_name, value, SCORE_MIN, SCORE_MAX)


class Talent(TrackedBase):
    """
    A hireable person.

    Contract:
        ``skills`` maps genre value -> 0..100.  A genre missing from the map
        counts as skill 0.

    Guarantees:
        - Score bounds are checked on every assignment, including
          construction.
    """

    __tablename__ = "talent"

    __table_args__ = (Index("idx_talent_type", "talent_type"),)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    talent_type: Mapped[str] = mapped_column(String(20), nullable=False)

    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)

    fame: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    performance: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    experience: Mapped[int] = mapped_column(Integer, default=50, nullable=False)

    asking_price: Mapped[int] = mapped_column(BigInteger, nullable=False)

    skills: Mapped[dict[str, int]] = mapped_column(JSON, default=dict, nullable=False)

    busy_until_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    busy_until_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    current_film_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<Talent {self.name} ({self.talent_type})>"

    @validates("fame", "performance", "experience")
    def _validate_score(self, key: str, value: int) -> int:
        _check_score(key, value)
        return value

    @validates("skills")
    def _validate_skills(self, key: str, value: dict[str, int]) -> dict[str, int]:
        for genre, score in (value or {}).items():
            _check_score(f"skills.{genre}", score)
        return dict(value or {})

    def skill_for(self, genre: str) -> int:
        key = getattr(genre, "value", genre)
        return int((self.skills or {}).get(key, 0))

    @property
    def busy_until_index(self) -> int | None:
        if self.busy_until_week is None or self.busy_until_year is None:
            return None
        return self.busy_until_year * WEEKS_PER_YEAR + self.busy_until_week

    def is_busy_at(self, clock_index: int) -> bool:
        """True while the busy-until week is still in the future."""
        until = self.busy_until_index
        return until is not None and until > clock_index
