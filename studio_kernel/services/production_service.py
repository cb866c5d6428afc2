"""
ProductionService -- studio and film setup, crew hiring and greenlight.

Responsibility:
    Creates studios and films, defines character roles, attaches the
    director, writer and composer, commits department budgets, and flips
    the two phase guards (``has_hired_talent`` at greenlight,
    ``has_edited_post_production`` after composer/VFX selection).

Architecture position:
    Kernel > Services -- imperative shell.
    Casting offers (the negotiated path) live in
    studio_services.casting_service; crew attachments here are direct hires
    at the offered salary.

Invariants enforced:
    - Every budget mutation is paired with ``film.recompute_total_budget()``
      and a BudgetLedger debit in the same unit of work.
    - Crew are hired only while the film can still be staffed, and only
      when available and of the matching talent type.
    - Greenlight requires a director, every lead role cast, at least one
      cast role and a department budget commitment.

Failure modes:
    - EntityNotFoundError, InvalidPhaseError, TalentTypeMismatchError,
      TalentUnavailableError, HiringIncompleteError, InvalidAmountError,
      ValidationError, InsufficientFundsError.
"""

from collections.abc import Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from studio_kernel.domain.clock import GameClock
from studio_kernel.domain.phases import CASTING_PHASES, Phase, PhaseDurations
from studio_kernel.domain.values import (
    DEPARTMENT_FIELDS,
    CharacterType,
    Genre,
    LedgerReason,
    RoleImportance,
    TalentType,
)
from studio_kernel.exceptions import (
    HiringIncompleteError,
    InvalidAmountError,
    InvalidPhaseError,
    TalentTypeMismatchError,
    TalentUnavailableError,
    ValidationError,
)
from studio_kernel.logging_config import LogContext, get_logger
from studio_kernel.models.film import Film, FilmRole
from studio_kernel.models.studio import Studio
from studio_kernel.models.talent import Talent
from studio_kernel.services.base import BaseService
from studio_kernel.services.ledger_service import BudgetLedger

logger = get_logger("services.production")

# talent_budget is only ever raised by hiring
COMMITTABLE_DEPARTMENTS: tuple[str, ...] = tuple(
    name for name in DEPARTMENT_FIELDS if name != "talent_budget"
)

GREENLIGHT_PHASES: tuple[Phase, ...] = (Phase.DEVELOPMENT, Phase.AWAITING_GREENLIGHT)


def _enum_value(enum_cls, value: str, field_name: str) -> str:
    try:
        return enum_cls(getattr(value, "value", value)).value
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field_name} {value!r}; expected one of: {allowed}") from None


def require_phase(film: Film, allowed: tuple[Phase, ...]) -> None:
    if film.phase not in {p.value for p in allowed}:
        raise InvalidPhaseError(film.id, film.phase, tuple(p.value for p in allowed))


def require_available(talent: Talent, clock: GameClock) -> None:
    if talent.is_busy_at(clock.index):
        raise TalentUnavailableError(talent.id, talent.busy_until_week, talent.busy_until_year)


def require_type(talent: Talent, expected: TalentType) -> None:
    if talent.talent_type != expected.value:
        raise TalentTypeMismatchError(talent.id, expected.value, talent.talent_type)


def mark_busy(talent: Talent, film: Film, until: GameClock) -> None:
    talent.busy_until_week = until.week
    talent.busy_until_year = until.year
    talent.current_film_id = film.id


class ProductionService(BaseService):
    """
    Film setup and crew.

    Contract:
        Mutating methods flush and return the ORM entity.  The caller owns
        the transaction.
    """

    def __init__(self, session: Session, ledger: BudgetLedger | None = None):
        super().__init__(session)
        self._ledger = ledger or BudgetLedger(session)

    # Setup

    def create_studio(
        self,
        name: str,
        *,
        budget: int,
        clock: GameClock,
        prestige_level: int = 1,
        session_id: str | None = None,
        home_territory: str = "NA",
    ) -> Studio:
        if budget < 0:
            raise InvalidAmountError("budget", budget)
        if not 1 <= prestige_level <= 5:
            raise ValidationError(f"prestige_level must be in 1..5, got {prestige_level}")

        studio = Studio(
            name=name,
            budget=budget,
            current_week=clock.week,
            current_year=clock.year,
            prestige_level=prestige_level,
            total_earnings=0,
            session_id=session_id,
            home_territory=home_territory,
        )
        self.session.add(studio)
        self.session.flush()
        logger.info(
            "studio_created",
            extra={"studio_id": str(studio.id), "budget": budget, "session_id": session_id},
        )
        return studio

    def create_film(
        self,
        studio_id: UUID,
        title: str,
        genre: str,
        durations: PhaseDurations,
        *,
        script_quality: int = 50,
    ) -> Film:
        """Create a film in DEVELOPMENT at the studio's current week."""
        studio = self._require(Studio, studio_id)
        genre_value = _enum_value(Genre, genre, "genre")
        if not 0 <= script_quality <= 100:
            raise ValidationError(f"script_quality must be in 0..100, got {script_quality}")

        created = GameClock.of(studio.current_week, studio.current_year)
        film = Film(
            studio_id=studio.id,
            title=title,
            genre=genre_value,
            phase=Phase.DEVELOPMENT.value,
            created_week=created.week,
            created_year=created.year,
            development_duration_weeks=durations.development_duration_weeks,
            pre_production_duration_weeks=durations.pre_production_duration_weeks,
            production_duration_weeks=durations.production_duration_weeks,
            post_production_duration_weeks=durations.post_production_duration_weeks,
            weeks_in_current_phase=0,
            last_tick_index=created.index,
            script_quality=script_quality,
            cast_ids=[],
            weekly_box_office=[],
            total_box_office_by_territory={},
        )
        film.recompute_total_budget()
        self.session.add(film)
        self.session.flush()
        logger.info(
            "film_created",
            extra={"film_id": str(film.id), "studio_id": str(studio.id), "genre": genre_value},
        )
        return film

    def define_role(
        self,
        film_id: UUID,
        role_name: str,
        importance: str,
        *,
        character_type: str | None = None,
        character_age: int | None = None,
        gender_preference: str | None = None,
    ) -> FilmRole:
        film = self._require(Film, film_id, for_update=True)
        require_phase(film, CASTING_PHASES)
        role = FilmRole(
            film_id=film.id,
            role_name=role_name,
            importance=_enum_value(RoleImportance, importance, "importance"),
            character_type=(
                _enum_value(CharacterType, character_type, "character_type")
                if character_type is not None
                else None
            ),
            character_age=character_age,
            gender_preference=gender_preference,
            is_cast=False,
        )
        self.session.add(role)
        self.session.flush()
        logger.info(
            "role_defined",
            extra={"film_id": str(film.id), "role_id": str(role.id), "importance": role.importance},
        )
        return role

    # Crew

    def attach_director(
        self,
        film_id: UUID,
        talent_id: UUID,
        clock: GameClock,
        salary: int | None = None,
    ) -> Film:
        return self._attach_crew(film_id, talent_id, clock, salary, TalentType.DIRECTOR)

    def attach_writer(
        self,
        film_id: UUID,
        talent_id: UUID,
        clock: GameClock,
        salary: int | None = None,
    ) -> Film:
        return self._attach_crew(film_id, talent_id, clock, salary, TalentType.WRITER)

    def _attach_crew(
        self,
        film_id: UUID,
        talent_id: UUID,
        clock: GameClock,
        salary: int | None,
        talent_type: TalentType,
    ) -> Film:
        film = self._require(Film, film_id, for_update=True)
        slot = f"{talent_type.value}_id"
        with LogContext.bind(film_id=str(film.id), actor_id=str(talent_id)):
            require_phase(film, CASTING_PHASES)
            if getattr(film, slot) is not None:
                raise ValidationError(f"Film {film.id} already has a {talent_type.value}")

            talent = self._require(Talent, talent_id, for_update=True)
            require_type(talent, talent_type)
            require_available(talent, clock)

            pay = talent.asking_price if salary is None else salary
            if pay <= 0:
                raise InvalidAmountError("salary", pay)

            self._ledger.debit(
                film.studio_id,
                pay,
                LedgerReason.CREW_SALARY,
                film_id=film.id,
                clock=clock,
                memo=f"{talent_type.value}: {talent.name}",
            )

            setattr(film, slot, talent.id)
            film.talent_budget += pay
            film.recompute_total_budget()
            mark_busy(talent, film, clock.plus_weeks(film.production_duration_weeks))
            self.session.flush()

            logger.info(
                "crew_attached",
                extra={"position": talent_type.value, "salary": pay},
            )
        return film

    def commit_department_budgets(
        self,
        film_id: UUID,
        budgets: Mapping[str, int],
        clock: GameClock,
    ) -> Film:
        """Debit and add the given amounts to the film's department budgets."""
        film = self._require(Film, film_id, for_update=True)
        require_phase(film, CASTING_PHASES)

        unknown = sorted(set(budgets) - set(COMMITTABLE_DEPARTMENTS))
        if unknown:
            raise ValidationError(f"Unknown department budget fields: {', '.join(unknown)}")
        for name, amount in budgets.items():
            if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
                raise InvalidAmountError(name, amount)
        total = sum(budgets.values())
        if total <= 0:
            raise InvalidAmountError("department_budgets", total)

        self._ledger.debit(
            film.studio_id,
            total,
            LedgerReason.DEPARTMENT_BUDGET,
            film_id=film.id,
            clock=clock,
        )
        for name, amount in budgets.items():
            setattr(film, name, getattr(film, name) + amount)
        film.recompute_total_budget()
        self.session.flush()

        logger.info(
            "department_budgets_committed",
            extra={"film_id": str(film.id), "amount": total, "total_budget": film.total_budget},
        )
        return film

    def hiring_gaps(self, film: Film) -> list[str]:
        """What still blocks greenlight; empty when the film may proceed."""
        missing = []
        if film.director_id is None:
            missing.append("no director attached")
        roles = list(film.roles)
        uncast_leads = [
            r.role_name
            for r in roles
            if r.importance == RoleImportance.LEAD.value and not r.is_cast
        ]
        if uncast_leads:
            missing.append(f"lead roles not cast: {', '.join(sorted(uncast_leads))}")
        if not any(r.is_cast for r in roles):
            missing.append("no roles cast")
        if sum(getattr(film, name) for name in COMMITTABLE_DEPARTMENTS) <= 0:
            missing.append("no department budget committed")
        return missing

    def complete_hiring(self, film_id: UUID) -> Film:
        film = self._require(Film, film_id, for_update=True)
        require_phase(film, GREENLIGHT_PHASES)
        self.session.refresh(film, ["roles"])

        missing = self.hiring_gaps(film)
        if missing:
            raise HiringIncompleteError(film.id, missing)

        film.has_hired_talent = True
        self.session.flush()
        logger.info("film_greenlit", extra={"film_id": str(film.id)})
        return film

    def complete_post_production(
        self,
        film_id: UUID,
        composer_id: UUID,
        clock: GameClock,
        *,
        vfx_studio: str | None = None,
        vfx_cost: int = 0,
    ) -> Film:
        """Hire the composer and VFX house; unblocks FILMED -> POST_PRODUCTION."""
        film = self._require(Film, film_id, for_update=True)
        require_phase(film, (Phase.FILMED,))
        if isinstance(vfx_cost, bool) or not isinstance(vfx_cost, int) or vfx_cost < 0:
            raise InvalidAmountError("vfx_cost", vfx_cost)

        composer = self._require(Talent, composer_id, for_update=True)
        require_type(composer, TalentType.COMPOSER)
        require_available(composer, clock)

        cost = composer.asking_price + vfx_cost
        if cost > 0:
            self._ledger.debit(
                film.studio_id,
                cost,
                LedgerReason.POST_PRODUCTION,
                film_id=film.id,
                clock=clock,
                memo=f"composer: {composer.name}; vfx: {vfx_studio or 'none'}",
            )

        film.composer_id = composer.id
        film.composer_cost = composer.asking_price
        film.vfx_cost = vfx_cost
        film.vfx_studio = vfx_studio
        film.recompute_total_budget()
        film.has_edited_post_production = True
        mark_busy(composer, film, clock.plus_weeks(film.post_production_duration_weeks))
        self.session.flush()

        logger.info(
            "post_production_edited",
            extra={"film_id": str(film.id), "composer_cost": film.composer_cost, "vfx_cost": vfx_cost},
        )
        return film
