"""
Module: studio_kernel.models.release
Responsibility: ORM persistence for one territory's theatrical release of a
    film and its weekly box-office series.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one release per (film, territory): uq_film_release_territory.
      A concurrent scheduler that loses the race hits this constraint.
    - release week is never earlier than the film's earliest eligible week
      (checked by ReleaseScheduler before insert).
    - last_charged_index only moves forward; a week at or below it is never
      charged again.
    - Once is_active is False the row is never mutated again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio_kernel.db.base import TrackedBase, UUIDString
from studio_kernel.domain.clock import WEEKS_PER_YEAR

if TYPE_CHECKING:
    from studio_kernel.models.film import Film


class FilmRelease(TrackedBase):
    """
    One territory release.

    Contract:
        Created by ReleaseScheduler.  Mutated only by BoxOfficeService, once
        per tick, until the run closes.

    Guarantees:
        - weekly_box_office is non-negative and non-increasing after the
          opening week.
        - total_box_office == sum(weekly_box_office).
    """

    __tablename__ = "film_releases"

    __table_args__ = (
        UniqueConstraint("film_id", "territory_code", name="uq_film_release_territory"),
        Index("idx_film_release_active", "is_active"),
    )

    film_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("films.id"),
        nullable=False,
    )

    territory_code: Mapped[str] = mapped_column(String(8), nullable=False)

    release_week: Mapped[int] = mapped_column(Integer, nullable=False)
    release_year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Snapshots taken at scheduling time
    production_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    marketing_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    distribution_fee: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    is_released: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Run still open
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    weekly_box_office: Mapped[list[int]] = mapped_column(JSON, default=list, nullable=False)
    total_box_office: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    opening_gross: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    theater_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    opening_theater_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    weeks_in_release: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    last_charged_index: Mapped[int | None] = mapped_column(Integer, nullable=True)

    closed_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    closed_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    film: Mapped[Film] = relationship(back_populates="releases")

    def __repr__(self) -> str:
        return f"<FilmRelease {self.territory_code} W{self.release_week}/{self.release_year}>"

    @property
    def release_index(self) -> int:
        return self.release_year * WEEKS_PER_YEAR + self.release_week

    @property
    def legs_multiplier(self) -> float:
        """Total gross / opening gross.  Display only."""
        if not self.opening_gross:
            return 0.0
        return self.total_box_office / self.opening_gross
