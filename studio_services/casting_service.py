"""
CastingService -- negotiated casting offers.

Responsibility:
    Validates an offer, asks the negotiation engine for the acceptance
    probability, draws the roll and, on acceptance, casts the role, books
    the talent and debits the salary.  Every offer that reaches the roll is
    recorded as a CastingOffer row.

Architecture position:
    Services -- imperative shell over studio_engines.negotiation and the
    kernel BudgetLedger.

Invariants enforced:
    - Rejections happen before the roll and before any write: wrong phase,
      role already cast, busy talent, talent already in this film,
      insufficient funds.  An unaffordable offer never reaches the roll.
    - The role is claimed with a conditional UPDATE (``WHERE is_cast =
      false``); a lost race raises RoleAlreadyCastError.
    - A declined offer debits nothing and leaves the role open.

Failure modes:
    - EntityNotFoundError, InvalidPhaseError, InvalidAmountError,
      ValidationError, TalentTypeMismatchError, TalentUnavailableError,
      TalentAlreadyCastError, InsufficientFundsError, RoleAlreadyCastError.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studio_engines.negotiation import (
    DEFAULT_WEIGHTS,
    AcceptanceResult,
    NegotiationWeights,
    RollOutcome,
    calculate_acceptance,
    roll_acceptance,
)
from studio_kernel.domain.clock import GameClock
from studio_kernel.domain.phases import CASTING_PHASES
from studio_kernel.domain.values import LedgerReason, TalentType
from studio_kernel.exceptions import (
    InvalidAmountError,
    RoleAlreadyCastError,
    TalentAlreadyCastError,
    ValidationError,
)
from studio_kernel.logging_config import LogContext, get_logger
from studio_kernel.models.casting_offer import CastingOffer
from studio_kernel.models.film import Film, FilmRole
from studio_kernel.models.studio import Studio
from studio_kernel.models.talent import Talent
from studio_kernel.services.base import BaseService
from studio_kernel.services.ledger_service import BudgetLedger
from studio_kernel.services.production_service import (
    mark_busy,
    require_available,
    require_phase,
    require_type,
)

logger = get_logger("services.casting")


@dataclass(frozen=True)
class NegotiationOutcome:
    """What happened to one offer that reached the roll."""

    offer_id: UUID
    acceptance: AcceptanceResult
    roll: RollOutcome
    talent_name: str
    role_name: str

    @property
    def accepted(self) -> bool:
        return self.roll.accepted


class CastingService(BaseService):
    """
    Casting offers against a film's roles.

    Contract:
        ``preview()`` evaluates an offer without side effects.
        ``offer()`` resolves it and flushes; the caller commits.

    Guarantees:
        - The roll draws exactly once from the injected ``random.Random``.
    """

    def __init__(
        self,
        session: Session,
        weights: NegotiationWeights = DEFAULT_WEIGHTS,
        ledger: BudgetLedger | None = None,
    ):
        super().__init__(session)
        self._weights = weights
        self._ledger = ledger or BudgetLedger(session)

    def preview(
        self,
        film_id: UUID,
        role_id: UUID,
        talent_id: UUID,
        salary: int,
    ) -> AcceptanceResult:
        film = self._require(Film, film_id)
        role = self._load_role(film, role_id)
        talent = self._require(Talent, talent_id)
        return self._evaluate(film, role, talent, salary)

    def offer(
        self,
        film_id: UUID,
        role_id: UUID,
        talent_id: UUID,
        salary: int,
        clock: GameClock,
        rng: random.Random,
    ) -> NegotiationOutcome:
        if isinstance(salary, bool) or not isinstance(salary, int) or salary <= 0:
            raise InvalidAmountError("salary", salary)

        film = self._require(Film, film_id, for_update=True)
        with LogContext.bind(film_id=str(film.id), actor_id=str(talent_id)):
            require_phase(film, CASTING_PHASES)
            role = self._load_role(film, role_id)
            if role.is_cast:
                raise RoleAlreadyCastError(role.id, role.actor_id)

            talent = self._require(Talent, talent_id, for_update=True)
            require_type(talent, TalentType.ACTOR)
            require_available(talent, clock)
            self._require_not_in_film(film, talent)

            self._ledger.ensure_funds(
                film.studio_id, salary, LedgerReason.CASTING_SALARY.value
            )

            acceptance = self._evaluate(film, role, talent, salary)
            roll = roll_acceptance(acceptance.probability, rng)

            offer = CastingOffer(
                studio_id=film.studio_id,
                film_id=film.id,
                role_id=role.id,
                talent_id=talent.id,
                offered_salary=salary,
                probability=acceptance.probability,
                roll=roll.roll,
                factors=acceptance.factors.as_dict(),
                accepted=roll.accepted,
                week=clock.week,
                year=clock.year,
                outcome="accepted" if roll.accepted else "declined",
            )
            self.session.add(offer)

            if roll.accepted:
                self._cast(film, role, talent, salary, clock)
            self.session.flush()

            logger.info(
                "offer_resolved",
                extra={
                    "role_id": str(role.id),
                    "salary": salary,
                    "probability": acceptance.probability,
                    "roll": round(roll.roll, 4),
                    "accepted": roll.accepted,
                },
            )

        return NegotiationOutcome(
            offer_id=offer.id,
            acceptance=acceptance,
            roll=roll,
            talent_name=talent.name,
            role_name=role.role_name,
        )

    # Internals

    def _load_role(self, film: Film, role_id: UUID) -> FilmRole:
        role = self._require(FilmRole, role_id)
        if role.film_id != film.id:
            raise ValidationError(f"Role {role_id} does not belong to film {film.id}")
        return role

    def _require_not_in_film(self, film: Film, talent: Talent) -> None:
        held = self.session.scalar(
            select(FilmRole.id).where(
                FilmRole.film_id == film.id,
                FilmRole.actor_id == talent.id,
            )
        )
        if held is not None:
            raise TalentAlreadyCastError(talent.id, film.id, held)

    def _evaluate(
        self,
        film: Film,
        role: FilmRole,
        talent: Talent,
        salary: int,
    ) -> AcceptanceResult:
        studio = self._require(Studio, film.studio_id)
        director_fame = None
        if film.director_id is not None:
            director = self.session.get(Talent, film.director_id)
            director_fame = director.fame if director is not None else None
        try:
            return calculate_acceptance(
                prestige_level=studio.prestige_level,
                director_fame=director_fame,
                role_importance=role.importance,
                offered_salary=salary,
                asking_price=talent.asking_price,
                genre_skill=talent.skill_for(film.genre),
                weights=self._weights,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    def _cast(
        self,
        film: Film,
        role: FilmRole,
        talent: Talent,
        salary: int,
        clock: GameClock,
    ) -> None:
        try:
            claimed = self.session.execute(
                update(FilmRole)
                .where(FilmRole.id == role.id, FilmRole.is_cast.is_(False))
                .values(is_cast=True, actor_id=talent.id)
                .execution_options(synchronize_session=False)
            )
        except IntegrityError as exc:
            raise TalentAlreadyCastError(talent.id, film.id, role.id) from exc
        if claimed.rowcount == 0:
            self.session.refresh(role)
            raise RoleAlreadyCastError(role.id, role.actor_id)
        self.session.expire(role)

        self._ledger.debit(
            film.studio_id,
            salary,
            LedgerReason.CASTING_SALARY,
            film_id=film.id,
            clock=clock,
            memo=f"{talent.name} as {role.role_name}",
        )

        film.add_cast_member(talent.id)
        film.talent_budget += salary
        film.recompute_total_budget()
        mark_busy(talent, film, clock.plus_weeks(film.production_duration_weeks))
