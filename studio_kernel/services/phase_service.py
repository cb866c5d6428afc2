"""
PhaseService -- applies the weekly phase transition to persisted films.

Responsibility:
    Loads the films due for a tick, evaluates their guards, runs the pure
    ``step_phase()`` transition and writes the result back.  Also moves
    the studio clock forward.

Architecture position:
    Kernel > Services -- imperative shell around domain/phases.py.
    Called by StudioOrchestrator.advance_week; box-office charging for the
    same tick runs afterwards in studio_services.

Invariants enforced:
    - Idempotent per (film, tick): a film whose last_tick_index is at or
      beyond the tick index is skipped, and last_tick_index is written in
      the same unit of work as the phase change.
    - The studio clock only moves forward.
    - Archived films are never advanced.

Failure modes:
    - None of its own.  The orchestrator resolves the studio before calling.
"""

from uuid import UUID

from sqlalchemy import select

from studio_kernel.domain.clock import GameClock
from studio_kernel.domain.dtos import FilmTickSummary
from studio_kernel.domain.phases import Phase, PhaseGuards, step_phase
from studio_kernel.domain.values import FilmStatus
from studio_kernel.logging_config import LogContext, get_logger
from studio_kernel.models.film import Film
from studio_kernel.models.release import FilmRelease
from studio_kernel.models.studio import Studio
from studio_kernel.services.base import BaseService

logger = get_logger("services.phase")


def studio_clock(studio: Studio) -> GameClock:
    return GameClock.of(studio.current_week, studio.current_year)


class PhaseService(BaseService):
    """
    Weekly phase advance.

    Contract:
        ``advance_film(film, clock)`` advances one film by at most one tick
        and returns a summary, or None when the tick was already applied.

    Guarantees:
        - Calling ``advance_films`` twice with the same clock changes
          nothing the second time.
    """

    def due_films(self, studio_id: UUID, clock: GameClock) -> list[Film]:
        stmt = (
            select(Film)
            .where(
                Film.studio_id == studio_id,
                Film.status == FilmStatus.ACTIVE.value,
                Film.last_tick_index < clock.index,
            )
            .order_by(Film.created_year, Film.created_week, Film.title)
            .with_for_update()
        )
        return list(self.session.scalars(stmt))

    def guards_for(self, film: Film, clock: GameClock) -> PhaseGuards:
        has_releases = (
            self.session.scalar(
                select(FilmRelease.id).where(FilmRelease.film_id == film.id).limit(1)
            )
            is not None
        )
        release = film.release_clock
        return PhaseGuards(
            has_hired_talent=film.has_hired_talent,
            has_edited_post_production=film.has_edited_post_production,
            has_releases=has_releases,
            release_week_reached=release is not None and release.index <= clock.index,
        )

    def advance_film(self, film: Film, clock: GameClock) -> FilmTickSummary | None:
        if film.last_tick_index >= clock.index:
            return None

        with LogContext.bind(film_id=str(film.id), tick=str(clock)):
            step = step_phase(
                Phase(film.phase),
                film.weeks_in_current_phase,
                film.durations,
                self.guards_for(film, clock),
            )
            for transition in step.transitions:
                logger.info(
                    "phase_transition",
                    extra={
                        "from_phase": transition.from_phase.value,
                        "to_phase": transition.to_phase.value,
                    },
                )

            film.phase = step.phase.value
            film.weeks_in_current_phase = step.weeks_in_current_phase
            film.last_tick_index = clock.index

        return FilmTickSummary(
            film_id=film.id,
            title=film.title,
            phase=film.phase,
            weeks_in_current_phase=film.weeks_in_current_phase,
            transitions=tuple(
                (t.from_phase.value, t.to_phase.value) for t in step.transitions
            ),
        )

    def advance_films(self, studio_id: UUID, clock: GameClock) -> list[FilmTickSummary]:
        summaries = []
        for film in self.due_films(studio_id, clock):
            summary = self.advance_film(film, clock)
            if summary is not None:
                summaries.append(summary)
        self.session.flush()
        return summaries

    def advance_studio_clock(self, studio: Studio, clock: GameClock) -> bool:
        """Move the studio to ``clock`` if it is behind.  Returns True if moved."""
        if studio_clock(studio) >= clock:
            return False
        studio.current_week = clock.week
        studio.current_year = clock.year
        self.session.flush()
        logger.info(
            "studio_clock_advanced",
            extra={"studio_id": str(studio.id), "week": clock.week, "year": clock.year},
        )
        return True
