"""
StudioOrchestrator -- the boundary every caller goes through.

Responsibility:
    Runs the weekly tick for a studio or a whole session, resolves casting
    offers, schedules releases and exposes the setup and read operations.
    Owns transaction boundaries and per-film serialization, and maps kernel
    errors to typed result objects.

Architecture position:
    Services -- top of the stack.  Wires kernel services, engines and
    configuration together.

Tick flow (advance_week):
    1. Resolve the tick clock (studio week + 1 unless given)
    2. PhaseService.advance_films -- one phase step per due film
    3. QualityService -- score films that just reached RELEASED
    4. BoxOfficeService.charge_due_releases -- one week per due run
    5. Move the studio clock forward
    6. Commit (or roll back on failure)

Invariants enforced:
    - Commit on success, rollback on any failure (when auto_commit=True).
      A failed action leaves all state unchanged.
    - Offers, scheduling and crew changes hold the film's lock from the
      first read to the commit, so a second request for the same film sees
      the first one's committed state.
    - A declined offer is a success outcome, not an error.

Failure modes:
    - Kernel errors are returned as results with status VALIDATION_FAILED,
      INSUFFICIENT_FUNDS or CONFLICT and the error's ``code``.
    - Anything else is rolled back, logged and re-raised.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from studio_config import get_active_config
from studio_config.schema import StudioConfig
from studio_kernel.domain.clock import GameClock
from studio_kernel.domain.dtos import (
    FilmInfo,
    FilmTickSummary,
    LedgerEntryInfo,
    ReleaseInfo,
    ReleaseWeekSummary,
    RoleInfo,
    StudioInfo,
    TalentInfo,
)
from studio_kernel.domain.phases import Phase, PhaseDurations
from studio_kernel.domain.values import ReleaseScope
from studio_kernel.exceptions import (
    ConcurrencyConflictError,
    EntityNotFoundError,
    InsufficientFundsError,
    StudioKernelError,
    ValidationError,
)
from studio_kernel.logging_config import LogContext, get_logger
from studio_kernel.models.film import Film
from studio_kernel.models.studio import Studio
from studio_kernel.selectors.film_selector import FilmSelector, StudioSelector, TalentSelector
from studio_kernel.services.film_locks import FilmLockRegistry, default_film_locks
from studio_kernel.services.ledger_service import BudgetLedger
from studio_kernel.services.phase_service import PhaseService, studio_clock
from studio_kernel.services.production_service import ProductionService
from studio_services.box_office_service import BoxOfficeService
from studio_services.casting_service import CastingService
from studio_services.quality_service import QualityService
from studio_services.release_scheduler import ReleaseRequest, ReleaseScheduler

logger = get_logger("services.studio_orchestrator")

T = TypeVar("T")


class ResultStatus(str, Enum):
    """Outcome of an orchestrator call."""

    SUCCESS = "success"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    VALIDATION_FAILED = "validation_failed"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    CONFLICT = "conflict"


SUCCESS_STATUSES = frozenset(
    {ResultStatus.SUCCESS, ResultStatus.ACCEPTED, ResultStatus.DECLINED}
)


def status_for(error: StudioKernelError) -> ResultStatus:
    if isinstance(error, InsufficientFundsError):
        return ResultStatus.INSUFFICIENT_FUNDS
    if isinstance(error, ConcurrencyConflictError):
        return ResultStatus.CONFLICT
    return ResultStatus.VALIDATION_FAILED


@dataclass(frozen=True)
class _Failure:
    status: ResultStatus
    error_code: str
    message: str

    @classmethod
    def from_error(cls, error: StudioKernelError) -> _Failure:
        return cls(status=status_for(error), error_code=error.code, message=str(error))


@dataclass(frozen=True)
class ActionResult:
    """Result of a setup or crew operation."""

    status: ResultStatus
    entity_id: UUID | None = None
    message: str | None = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status in SUCCESS_STATUSES


@dataclass(frozen=True)
class OfferResult:
    """
    Outcome of a casting offer.

    ``success`` is True when the offer was resolved (accepted or declined);
    ``accepted`` tells the two apart.
    """

    status: ResultStatus
    accepted: bool = False
    probability: int | None = None
    factors: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    message: str | None = None
    error_code: str | None = None
    offer_id: UUID | None = None
    roll: float | None = None

    @property
    def is_success(self) -> bool:
        return self.status in SUCCESS_STATUSES

    @property
    def success(self) -> bool:
        return self.is_success


@dataclass(frozen=True)
class AcceptancePreview:
    status: ResultStatus
    probability: int | None = None
    baseline: int | None = None
    factors: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    salary_ratio: float | None = None
    message: str | None = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status in SUCCESS_STATUSES


@dataclass(frozen=True)
class ScheduleResult:
    status: ResultStatus
    releases: tuple[ReleaseInfo, ...] = ()
    total_cost: int = 0
    message: str | None = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status in SUCCESS_STATUSES

    @property
    def error(self) -> str | None:
        return None if self.is_success else self.message


@dataclass(frozen=True)
class WeekAdvanceResult:
    """What one tick did across one or more studios."""

    status: ResultStatus
    clock: GameClock | None = None
    studio_ids: tuple[UUID, ...] = ()
    films: tuple[FilmTickSummary, ...] = ()
    releases: tuple[ReleaseWeekSummary, ...] = ()
    message: str | None = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status in SUCCESS_STATUSES

    @property
    def total_gross(self) -> int:
        return sum(r.gross for r in self.releases)


class StudioOrchestrator:
    """
    Transaction-owning facade over the studio core.

    Contract:
        Every mutating method returns a frozen result object and never
        raises a StudioKernelError.  Read accessors return DTOs and raise
        EntityNotFoundError for unknown ids.

    Guarantees:
        - One transaction per call.
        - All randomness comes from the injected ``rng``.

    Non-goals:
        - Does NOT manage sessions.  One orchestrator per session; use one
          session per thread.
    """

    def __init__(
        self,
        session: Session,
        config: StudioConfig | None = None,
        rng: random.Random | None = None,
        auto_commit: bool = True,
        film_locks: FilmLockRegistry | None = None,
    ):
        self._session = session
        self._config = config or get_active_config()
        self._rng = rng or random.Random()
        self._auto_commit = auto_commit
        self._film_locks = film_locks or default_film_locks()

        ledger = BudgetLedger(session)
        self._ledger = ledger
        self._phases = PhaseService(session)
        self._production = ProductionService(session, ledger)
        self._casting = CastingService(session, self._config.negotiation, ledger)
        self._scheduler = ReleaseScheduler(session, self._config, ledger)
        self._box_office = BoxOfficeService(session, self._config, ledger)
        self._quality = QualityService(session, self._config.quality)
        self._films = FilmSelector(session)
        self._studios = StudioSelector(session)
        self._talent = TalentSelector(session)

    @property
    def config(self) -> StudioConfig:
        return self._config

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        work: Callable[[], T],
        on_failure: Callable[[_Failure], T],
        *,
        film_id: UUID | None = None,
        studio_id: UUID | None = None,
    ) -> T:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            film_id=str(film_id) if film_id else None,
            studio_id=str(studio_id) if studio_id else None,
        ):
            if film_id is None:
                self._session.expire_all()
                return self._transact(operation, work, on_failure)
            with self._film_locks.hold(film_id):
                # Drop anything read before the lock was taken
                self._session.expire_all()
                return self._transact(operation, work, on_failure)

    def _transact(
        self,
        operation: str,
        work: Callable[[], T],
        on_failure: Callable[[_Failure], T],
    ) -> T:
        t0 = time.monotonic()
        try:
            result = work()
            if self._auto_commit:
                self._session.commit()
        except StudioKernelError as exc:
            if self._auto_commit:
                self._session.rollback()
            failure = _Failure.from_error(exc)
            logger.info(
                f"{operation}_rejected",
                extra={
                    "status": failure.status.value,
                    "error_code": failure.error_code,
                    "detail": failure.message,
                },
            )
            return on_failure(failure)
        except Exception:
            if self._auto_commit:
                self._session.rollback()
            logger.error(
                f"{operation}_failed",
                extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                exc_info=True,
            )
            raise

        logger.info(
            f"{operation}_completed",
            extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
        )
        return result

    def _film_clock(self, film_id: UUID) -> GameClock:
        film = self._session.get(Film, film_id)
        if film is None:
            raise EntityNotFoundError("Film", film_id)
        studio = self._session.get(Studio, film.studio_id)
        return studio_clock(studio)

    @staticmethod
    def _action_failure(failure: _Failure) -> ActionResult:
        return ActionResult(
            status=failure.status,
            message=failure.message,
            error_code=failure.error_code,
        )

    # ------------------------------------------------------------------
    # Weekly tick
    # ------------------------------------------------------------------

    def _tick_studio(
        self,
        studio: Studio,
        clock: GameClock,
    ) -> tuple[list[FilmTickSummary], list[ReleaseWeekSummary]]:
        with LogContext.bind(studio_id=str(studio.id), tick=str(clock)):
            films = self._phases.advance_films(studio.id, clock)

            for summary in films:
                if (Phase.AWAITING_RELEASE.value, Phase.RELEASED.value) in summary.transitions:
                    film = self._session.get(Film, summary.film_id)
                    self._quality.score_if_unscored(film, self._rng)

            box_office = self._box_office.charge_due_releases(studio.id, clock, self._rng)
            archived = set(box_office.archived_film_ids)
            films = [
                replace(s, archived=True) if s.film_id in archived else s
                for s in films
            ]
            self._phases.advance_studio_clock(studio, clock)

            logger.info(
                "week_advanced",
                extra={
                    "film_count": len(films),
                    "release_count": len(box_office.releases),
                    "gross": box_office.total_gross,
                    "archived_count": len(archived),
                },
            )
        return films, list(box_office.releases)

    def advance_week(
        self,
        studio_id: UUID,
        clock: GameClock | None = None,
    ) -> WeekAdvanceResult:
        """
        Run one tick for a studio.

        Without ``clock`` the studio moves to its next week.  Replaying a
        tick that was already applied changes nothing.
        """

        def work() -> WeekAdvanceResult:
            studio = self._session.get(Studio, studio_id)
            if studio is None:
                raise EntityNotFoundError("Studio", studio_id)
            tick = clock or studio_clock(studio).next()
            films, releases = self._tick_studio(studio, tick)
            return WeekAdvanceResult(
                status=ResultStatus.SUCCESS,
                clock=tick,
                studio_ids=(studio.id,),
                films=tuple(films),
                releases=tuple(releases),
            )

        return self._run(
            "advance_week",
            work,
            lambda f: WeekAdvanceResult(
                status=f.status, message=f.message, error_code=f.error_code
            ),
            studio_id=studio_id,
        )

    def advance_session(
        self,
        session_id: str,
        clock: GameClock | None = None,
    ) -> WeekAdvanceResult:
        """Run one tick for every studio sharing ``session_id``, on one shared clock."""

        def work() -> WeekAdvanceResult:
            studios = list(
                self._session.scalars(
                    select(Studio)
                    .where(Studio.session_id == session_id)
                    .order_by(Studio.name, Studio.id)
                )
            )
            if not studios:
                raise EntityNotFoundError("Session", session_id)
            tick = clock or max(studio_clock(s) for s in studios).next()

            films: list[FilmTickSummary] = []
            releases: list[ReleaseWeekSummary] = []
            for studio in studios:
                studio_films, studio_releases = self._tick_studio(studio, tick)
                films.extend(studio_films)
                releases.extend(studio_releases)
            return WeekAdvanceResult(
                status=ResultStatus.SUCCESS,
                clock=tick,
                studio_ids=tuple(s.id for s in studios),
                films=tuple(films),
                releases=tuple(releases),
            )

        return self._run(
            "advance_session",
            work,
            lambda f: WeekAdvanceResult(
                status=f.status, message=f.message, error_code=f.error_code
            ),
        )

    # ------------------------------------------------------------------
    # Casting
    # ------------------------------------------------------------------

    def calculate_acceptance(
        self,
        film_id: UUID,
        role_id: UUID,
        talent_id: UUID,
        salary: int,
    ) -> AcceptancePreview:
        """Acceptance probability for an offer, without making it."""
        try:
            result = self._casting.preview(film_id, role_id, talent_id, salary)
        except StudioKernelError as exc:
            failure = _Failure.from_error(exc)
            return AcceptancePreview(
                status=failure.status,
                message=failure.message,
                error_code=failure.error_code,
            )
        return AcceptancePreview(
            status=ResultStatus.SUCCESS,
            probability=result.probability,
            baseline=result.baseline,
            factors=MappingProxyType(result.factors.as_dict()),
            salary_ratio=result.salary_ratio,
        )

    def offer_talent(
        self,
        film_id: UUID,
        role_id: UUID,
        talent_id: UUID,
        salary: int,
        week: int | None = None,
        year: int | None = None,
    ) -> OfferResult:
        """
        Make a casting offer.

        ``week``/``year`` default to the studio's current week and, when
        given, must equal it; the talent's busy period is measured from it.
        """

        def work() -> OfferResult:
            clock = self._film_clock(film_id)
            if week is not None or year is not None:
                try:
                    claimed = GameClock.of(week, year)
                except (TypeError, ValueError) as exc:
                    raise ValidationError(str(exc)) from exc
                if claimed != clock:
                    raise ValidationError(
                        f"Offers are made in the studio's current week {clock}, "
                        f"not {claimed}"
                    )

            outcome = self._casting.offer(
                film_id, role_id, talent_id, salary, clock, self._rng
            )
            acceptance = outcome.acceptance
            if outcome.accepted:
                message = f"{outcome.talent_name} accepted the role of {outcome.role_name}"
            else:
                message = (
                    f"{outcome.talent_name} declined the role of {outcome.role_name} "
                    f"({acceptance.probability}% chance)"
                )
            return OfferResult(
                status=ResultStatus.ACCEPTED if outcome.accepted else ResultStatus.DECLINED,
                accepted=outcome.accepted,
                probability=acceptance.probability,
                factors=MappingProxyType(acceptance.factors.as_dict()),
                message=message,
                offer_id=outcome.offer_id,
                roll=outcome.roll.roll,
            )

        return self._run(
            "offer_talent",
            work,
            lambda f: OfferResult(
                status=f.status, message=f.message, error_code=f.error_code
            ),
            film_id=film_id,
        )

    # ------------------------------------------------------------------
    # Release scheduling
    # ------------------------------------------------------------------

    def schedule_release(
        self,
        film_id: UUID,
        scope: ReleaseScope | str,
        marketing_budget: int,
        week: int,
        year: int,
        territories: tuple[str, ...] | None = None,
        poster_url: str | None = None,
    ) -> ScheduleResult:
        request = ReleaseRequest(
            scope=scope,
            marketing_budget=marketing_budget,
            week=week,
            year=year,
            territories=tuple(territories) if territories else None,
            poster_url=poster_url,
        )

        def work() -> ScheduleResult:
            clock = self._film_clock(film_id)
            scheduled = self._scheduler.schedule(film_id, request, clock)
            film = self._session.get(Film, film_id)
            if film.phase == Phase.RELEASED.value:
                self._quality.score_if_unscored(film, self._rng)
            return ScheduleResult(
                status=ResultStatus.SUCCESS,
                releases=tuple(ReleaseInfo.from_model(r) for r in scheduled.releases),
                total_cost=scheduled.quote.total_cost,
            )

        return self._run(
            "schedule_release",
            work,
            lambda f: ScheduleResult(
                status=f.status, message=f.message, error_code=f.error_code
            ),
            film_id=film_id,
        )

    # ------------------------------------------------------------------
    # Setup and crew
    # ------------------------------------------------------------------

    def create_studio(
        self,
        name: str,
        *,
        budget: int | None = None,
        prestige_level: int | None = None,
        session_id: str | None = None,
        clock: GameClock | None = None,
    ) -> ActionResult:
        defaults = self._config.studio_defaults

        def work() -> ActionResult:
            studio = self._production.create_studio(
                name,
                budget=defaults.starting_budget if budget is None else budget,
                clock=clock or GameClock.of(defaults.start_week, defaults.start_year),
                prestige_level=(
                    defaults.prestige_level if prestige_level is None else prestige_level
                ),
                session_id=session_id,
                home_territory=defaults.home_territory,
            )
            return ActionResult(status=ResultStatus.SUCCESS, entity_id=studio.id)

        return self._run("create_studio", work, self._action_failure)

    def create_film(
        self,
        studio_id: UUID,
        title: str,
        genre: str,
        *,
        durations: PhaseDurations | None = None,
        script_quality: int = 50,
    ) -> ActionResult:
        def work() -> ActionResult:
            film = self._production.create_film(
                studio_id,
                title,
                genre,
                durations or self._config.phase_defaults,
                script_quality=script_quality,
            )
            return ActionResult(status=ResultStatus.SUCCESS, entity_id=film.id)

        return self._run("create_film", work, self._action_failure, studio_id=studio_id)

    def define_role(
        self,
        film_id: UUID,
        role_name: str,
        importance: str,
        **details: Any,
    ) -> ActionResult:
        def work() -> ActionResult:
            role = self._production.define_role(film_id, role_name, importance, **details)
            return ActionResult(status=ResultStatus.SUCCESS, entity_id=role.id)

        return self._run("define_role", work, self._action_failure, film_id=film_id)

    def attach_director(
        self, film_id: UUID, talent_id: UUID, salary: int | None = None
    ) -> ActionResult:
        def work() -> ActionResult:
            clock = self._film_clock(film_id)
            self._production.attach_director(film_id, talent_id, clock, salary)
            return ActionResult(status=ResultStatus.SUCCESS, entity_id=film_id)

        return self._run("attach_director", work, self._action_failure, film_id=film_id)

    def attach_writer(
        self, film_id: UUID, talent_id: UUID, salary: int | None = None
    ) -> ActionResult:
        def work() -> ActionResult:
            clock = self._film_clock(film_id)
            self._production.attach_writer(film_id, talent_id, clock, salary)
            return ActionResult(status=ResultStatus.SUCCESS, entity_id=film_id)

        return self._run("attach_writer", work, self._action_failure, film_id=film_id)

    def commit_department_budgets(
        self, film_id: UUID, budgets: Mapping[str, int]
    ) -> ActionResult:
        def work() -> ActionResult:
            clock = self._film_clock(film_id)
            self._production.commit_department_budgets(film_id, budgets, clock)
            return ActionResult(status=ResultStatus.SUCCESS, entity_id=film_id)

        return self._run(
            "commit_department_budgets", work, self._action_failure, film_id=film_id
        )

    def complete_hiring(self, film_id: UUID) -> ActionResult:
        def work() -> ActionResult:
            self._production.complete_hiring(film_id)
            return ActionResult(status=ResultStatus.SUCCESS, entity_id=film_id)

        return self._run("complete_hiring", work, self._action_failure, film_id=film_id)

    def complete_post_production(
        self,
        film_id: UUID,
        composer_id: UUID,
        *,
        vfx_studio: str | None = None,
        vfx_cost: int = 0,
    ) -> ActionResult:
        def work() -> ActionResult:
            clock = self._film_clock(film_id)
            self._production.complete_post_production(
                film_id, composer_id, clock, vfx_studio=vfx_studio, vfx_cost=vfx_cost
            )
            return ActionResult(status=ResultStatus.SUCCESS, entity_id=film_id)

        return self._run(
            "complete_post_production", work, self._action_failure, film_id=film_id
        )

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def get_studio(self, studio_id: UUID) -> StudioInfo:
        return self._studios.get_studio(studio_id)

    def get_film(self, film_id: UUID) -> FilmInfo:
        return self._films.get_film(film_id)

    def get_roles(self, film_id: UUID) -> list[RoleInfo]:
        return self._films.get_roles(film_id)

    def get_releases(self, film_id: UUID) -> list[ReleaseInfo]:
        return self._films.get_releases(film_id)

    def get_films(self, studio_id: UUID, *, include_archived: bool = True) -> list[FilmInfo]:
        return self._films.films_for_studio(studio_id, include_archived=include_archived)

    def get_session_studios(self, session_id: str) -> list[StudioInfo]:
        return self._studios.studios_in_session(session_id)

    def get_ledger(self, studio_id: UUID, **filters: Any) -> list[LedgerEntryInfo]:
        return self._studios.ledger_entries(studio_id, **filters)

    def get_talent(self, talent_id: UUID) -> TalentInfo:
        return self._talent.get_talent(talent_id)

    def available_talent(
        self, talent_type: str, clock: GameClock
    ) -> list[TalentInfo]:
        """Talent of one type free to hire at ``clock``, most famous first."""
        return self._talent.available_talent(talent_type, clock.index)
