"""
Module: studio_kernel.models.film
Responsibility: ORM persistence for films and the character roles they cast.
Architecture position: Kernel > Models.  May import from db/base.py, the
    pure domain package, and exceptions.

Invariants enforced:
    - total_budget == sum(department budgets) + composer_cost + vfx_cost.
      Every service that touches a budget field calls
      ``recompute_total_budget()`` in the same unit of work.
    - weeks_in_current_phase never exceeds the current phase's duration
      without a transition (maintained by ``step_phase``).
    - last_tick_index only moves forward; a tick at or below it is a no-op.
    - FilmRole: is_cast implies actor_id (ck_film_role_cast_has_actor).
    - FilmRole: an actor holds at most one role per film (uq_film_role_actor).

Failure modes:
    - IntegrityError on a duplicate (film_id, actor_id) -- surfaced by the
      casting service as TalentAlreadyCastError.

JSON columns (cast_ids, weekly_box_office, total_box_office_by_territory)
are always reassigned, never mutated in place, so the ORM sees the change.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studio_kernel.db.base import TrackedBase, UUIDString
from studio_kernel.domain.clock import GameClock
from studio_kernel.domain.phases import Phase, PhaseDurations
from studio_kernel.domain.values import (
    ATTACHED_COST_FIELDS,
    DEPARTMENT_FIELDS,
    FilmStatus,
)

if TYPE_CHECKING:
    from studio_kernel.models.release import FilmRelease


class Film(TrackedBase):
    """
    A production unit owned by a studio.

    Contract:
        Created in DEVELOPMENT with zero budgets.  Mutated by PhaseService
        (phase, counters), CastingService (crew, cast, budgets),
        ReleaseScheduler (marketing sync, release week) and
        BoxOfficeService (grosses, archive).

    Guarantees:
        - Never deleted while ACTIVE.
        - Archived once every territory run has closed.
    """

    __tablename__ = "films"

    __table_args__ = (
        Index("idx_film_studio_status", "studio_id", "status"),
        Index("idx_film_phase", "phase"),
    )

    studio_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("studios.id"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    genre: Mapped[str] = mapped_column(String(20), nullable=False)

    phase: Mapped[str] = mapped_column(
        String(30),
        default=Phase.DEVELOPMENT.value,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=FilmStatus.ACTIVE.value,
        nullable=False,
    )

    created_week: Mapped[int] = mapped_column(Integer, nullable=False)
    created_year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Configured phase durations (weeks, each >= 1)
    development_duration_weeks: Mapped[int] = mapped_column(Integer, nullable=False)
    pre_production_duration_weeks: Mapped[int] = mapped_column(Integer, nullable=False)
    production_duration_weeks: Mapped[int] = mapped_column(Integer, nullable=False)
    post_production_duration_weeks: Mapped[int] = mapped_column(Integer, nullable=False)

    weeks_in_current_phase: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Absolute week index of the last processed tick
    last_tick_index: Mapped[int] = mapped_column(Integer, nullable=False)

    # Phase guards
    has_hired_talent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_edited_post_production: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Department budgets
    production_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    sets_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    costumes_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    stunts_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    makeup_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    practical_effects_budget: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
    )
    sound_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    talent_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Attached post-production costs
    composer_cost: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    vfx_cost: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    vfx_studio: Mapped[str | None] = mapped_column(String(200), nullable=True)

    total_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    marketing_budget: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Crew and cast
    director_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    writer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    composer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    cast_ids: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Quality (script 0-100, audience 0-10, critic 0-100)
    script_quality: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    audience_score: Mapped[float | None] = mapped_column(nullable=True)
    critic_score: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Earliest scheduled release
    release_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    poster_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Box office aggregates
    weekly_box_office: Mapped[list[int]] = mapped_column(JSON, default=list, nullable=False)
    total_box_office: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_box_office_by_territory: Mapped[dict[str, int]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )
    theater_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    archived_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    archived_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    roles: Mapped[list[FilmRole]] = relationship(
        back_populates="film",
        cascade="all, delete-orphan",
    )
    releases: Mapped[list[FilmRelease]] = relationship(
        back_populates="film",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Film {self.title}: {self.phase}>"

    @property
    def durations(self) -> PhaseDurations:
        return PhaseDurations(
            development_duration_weeks=self.development_duration_weeks,
            pre_production_duration_weeks=self.pre_production_duration_weeks,
            production_duration_weeks=self.production_duration_weeks,
            post_production_duration_weeks=self.post_production_duration_weeks,
        )

    @property
    def created_clock(self) -> GameClock:
        return GameClock.of(self.created_week, self.created_year)

    @property
    def release_clock(self) -> GameClock | None:
        if self.release_week is None or self.release_year is None:
            return None
        return GameClock.of(self.release_week, self.release_year)

    @property
    def is_active(self) -> bool:
        return self.status == FilmStatus.ACTIVE.value

    def department_total(self) -> int:
        return sum(getattr(self, name) or 0 for name in DEPARTMENT_FIELDS)

    def computed_total_budget(self) -> int:
        """Sum of parts; compare with ``total_budget`` to check the invariant."""
        return self.department_total() + sum(
            getattr(self, name) or 0 for name in ATTACHED_COST_FIELDS
        )

    def recompute_total_budget(self) -> int:
        self.total_budget = self.computed_total_budget()
        return self.total_budget

    def add_cast_member(self, actor_id: UUID) -> None:
        self.cast_ids = [*(self.cast_ids or []), str(actor_id)]


class FilmRole(TrackedBase):
    """
    A character slot in exactly one film.

    Contract:
        Mutated only by a successful casting offer, through a conditional
        UPDATE on ``is_cast``.  Deleted only with its film.
    """

    __tablename__ = "film_roles"

    __table_args__ = (
        UniqueConstraint("film_id", "actor_id", name="uq_film_role_actor"),
        CheckConstraint(
            "NOT is_cast OR actor_id IS NOT NULL",
            name="ck_film_role_cast_has_actor",
        ),
        Index("idx_film_role_film", "film_id"),
    )

    film_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("films.id"),
        nullable=False,
    )

    role_name: Mapped[str] = mapped_column(String(200), nullable=False)
    importance: Mapped[str] = mapped_column(String(20), nullable=False)
    character_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    character_age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gender_preference: Mapped[str | None] = mapped_column(String(20), nullable=True)

    is_cast: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    film: Mapped[Film] = relationship(back_populates="roles")

    def __repr__(self) -> str:
        return f"<FilmRole {self.role_name} ({self.importance})>"
