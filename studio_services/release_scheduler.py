"""
ReleaseScheduler -- turns a finished film into per-territory releases.

Responsibility:
    Resolves the territories in scope, prices the request (production-cost
    snapshot, marketing, distribution fees), checks funds, then commits
    one FilmRelease per territory in configured order and debits the
    ledger.

Architecture position:
    Services -- imperative shell over the kernel ledger and the territory
    table from StudioConfig.  Runs inside the orchestrator's per-film lock
    and transaction.

Invariants enforced:
    - All-or-nothing: every check (phase, date, unknown or already
      scheduled territory, funds) runs before the first write.  Any later
      failure rolls the whole request back with the caller's transaction.
    - The production-cost snapshot is charged once per film, with its first
      release request.
    - Marketing is split in proportion to market share; the remainder goes
      to the last territory so the parts sum to the request.
    - uq_film_release_territory turns a lost race into
      ReleaseSchedulingConflictError.

Failure modes:
    - InvalidPhaseError, InvalidAmountError, ValidationError,
      ReleaseDateTooEarlyError, UnknownTerritoryError,
      TerritoryAlreadyScheduledError, InsufficientFundsError,
      ReleaseSchedulingConflictError.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studio_config.schema import StudioConfig, TerritoryDef
from studio_kernel.domain.clock import GameClock
from studio_kernel.domain.phases import SCHEDULABLE_PHASES, Phase, earliest_release_clock
from studio_kernel.domain.values import LedgerReason, ReleaseScope
from studio_kernel.exceptions import (
    InvalidAmountError,
    ReleaseDateTooEarlyError,
    ReleaseSchedulingConflictError,
    TerritoryAlreadyScheduledError,
    UnknownTerritoryError,
    ValidationError,
)
from studio_kernel.logging_config import LogContext, get_logger
from studio_kernel.models.film import Film
from studio_kernel.models.release import FilmRelease
from studio_kernel.models.studio import Studio
from studio_kernel.services.base import BaseService
from studio_kernel.services.ledger_service import BudgetLedger
from studio_kernel.services.production_service import require_phase

logger = get_logger("services.release_scheduler")


@dataclass(frozen=True)
class ReleaseRequest:
    """
    One scheduling request.

    ``territories`` is only read for SINGLE scope, where it names the one
    territory to open in; it defaults to the studio's home territory.
    """

    scope: ReleaseScope
    marketing_budget: int
    week: int
    year: int
    territories: tuple[str, ...] | None = None
    poster_url: str | None = None


@dataclass(frozen=True)
class ReleaseQuote:
    """Priced request, before anything is written."""

    territories: tuple[TerritoryDef, ...]
    release: GameClock
    production_cost: int
    marketing_shares: tuple[int, ...]
    distribution_fees: tuple[int, ...]

    @property
    def marketing_total(self) -> int:
        return sum(self.marketing_shares)

    @property
    def distribution_total(self) -> int:
        return sum(self.distribution_fees)

    @property
    def total_cost(self) -> int:
        return self.production_cost + self.marketing_total + self.distribution_total


@dataclass(frozen=True)
class ScheduledReleases:
    releases: tuple[FilmRelease, ...]
    quote: ReleaseQuote


def split_marketing(budget: int, territories: tuple[TerritoryDef, ...]) -> tuple[int, ...]:
    """Proportional to market share, floored; the last territory takes the remainder."""
    if not territories:
        return ()
    total_share = sum(t.market_share for t in territories)
    shares = [math.floor(budget * t.market_share / total_share) for t in territories[:-1]]
    shares.append(budget - sum(shares))
    return tuple(shares)


class ReleaseScheduler(BaseService):
    """
    Territory release scheduling.

    Contract:
        ``schedule()`` either creates every requested release and debits
        the full cost, or raises.  The caller commits or rolls back.

    Non-goals:
        - Does NOT take the per-film lock; the orchestrator holds it.
    """

    def __init__(
        self,
        session: Session,
        config: StudioConfig,
        ledger: BudgetLedger | None = None,
    ):
        super().__init__(session)
        self._config = config
        self._ledger = ledger or BudgetLedger(session)

    def resolve_territories(
        self,
        request: ReleaseRequest,
        home_territory: str,
    ) -> tuple[TerritoryDef, ...]:
        try:
            scope = ReleaseScope(getattr(request.scope, "value", request.scope))
        except ValueError:
            raise ValidationError(f"Unknown release scope: {request.scope!r}") from None
        if scope is ReleaseScope.WORLDWIDE:
            if request.territories:
                raise ValidationError("Worldwide releases open in every territory; do not list codes")
            return self._config.territories

        codes = request.territories or (home_territory,)
        if len(codes) != 1:
            raise ValidationError(f"Single-territory release takes one code, got {len(codes)}")
        territory = self._config.territory(codes[0])
        if territory is None:
            raise UnknownTerritoryError(codes[0])
        return (territory,)

    def quote(self, film: Film, request: ReleaseRequest, clock: GameClock) -> ReleaseQuote:
        """Validate and price ``request``.  Read-only."""
        require_phase(film, SCHEDULABLE_PHASES)
        marketing = request.marketing_budget
        if isinstance(marketing, bool) or not isinstance(marketing, int) or marketing < 0:
            raise InvalidAmountError("marketing_budget", marketing)

        try:
            target = GameClock.of(request.week, request.year)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        earliest = earliest_release_clock(film.created_clock, film.durations, clock)
        if target < earliest:
            raise ReleaseDateTooEarlyError(
                film.id, target.week, target.year, earliest.week, earliest.year
            )

        studio = self._require(Studio, film.studio_id)
        territories = self.resolve_territories(request, studio.home_territory)

        scheduled = set(
            self.session.scalars(
                select(FilmRelease.territory_code).where(FilmRelease.film_id == film.id)
            )
        )
        for territory in territories:
            if territory.code in scheduled:
                raise TerritoryAlreadyScheduledError(film.id, territory.code)

        return ReleaseQuote(
            territories=territories,
            release=target,
            production_cost=0 if scheduled else film.total_budget,
            marketing_shares=split_marketing(marketing, territories),
            distribution_fees=tuple(
                self._config.distribution_fee(t.code) for t in territories
            ),
        )

    def schedule(
        self,
        film_id: UUID,
        request: ReleaseRequest,
        clock: GameClock,
    ) -> ScheduledReleases:
        film = self._require(Film, film_id, for_update=True)
        with LogContext.bind(film_id=str(film.id)):
            quote = self.quote(film, request, clock)
            self._ledger.ensure_funds(film.studio_id, quote.total_cost, "release")

            if quote.production_cost > 0:
                self._ledger.debit(
                    film.studio_id,
                    quote.production_cost,
                    LedgerReason.PRODUCTION_COST,
                    film_id=film.id,
                    clock=clock,
                )

            releases = []
            for territory, marketing, fee in zip(
                quote.territories, quote.marketing_shares, quote.distribution_fees
            ):
                releases.append(
                    self._commit_territory(film, territory, marketing, fee, quote.release, clock)
                )

            self._sync_film(film, quote.release, clock, request.poster_url)
            self.session.flush()

            logger.info(
                "release_scheduled",
                extra={
                    "territories": [t.code for t in quote.territories],
                    "release_week": quote.release.week,
                    "release_year": quote.release.year,
                    "total_cost": quote.total_cost,
                    "phase": film.phase,
                },
            )
        return ScheduledReleases(releases=tuple(releases), quote=quote)

    def _commit_territory(
        self,
        film: Film,
        territory: TerritoryDef,
        marketing: int,
        fee: int,
        release: GameClock,
        clock: GameClock,
    ) -> FilmRelease:
        row = FilmRelease(
            film=film,
            territory_code=territory.code,
            release_week=release.week,
            release_year=release.year,
            production_budget=film.total_budget,
            marketing_budget=marketing,
            distribution_fee=fee,
            is_released=release == clock,
            is_active=True,
            weekly_box_office=[],
        )
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ReleaseSchedulingConflictError(film.id, territory.code) from exc

        if marketing > 0:
            self._ledger.debit(
                film.studio_id,
                marketing,
                LedgerReason.MARKETING,
                film_id=film.id,
                territory_code=territory.code,
                clock=clock,
            )
        if fee > 0:
            self._ledger.debit(
                film.studio_id,
                fee,
                LedgerReason.DISTRIBUTION_FEE,
                film_id=film.id,
                territory_code=territory.code,
                clock=clock,
            )
        return row

    def _sync_film(
        self,
        film: Film,
        release: GameClock,
        clock: GameClock,
        poster_url: str | None,
    ) -> None:
        film.marketing_budget = self.session.scalar(
            select(func.coalesce(func.sum(FilmRelease.marketing_budget), 0)).where(
                FilmRelease.film_id == film.id
            )
        )
        current = film.release_clock
        if current is None or release < current:
            film.release_week = release.week
            film.release_year = release.year
        if poster_url:
            film.poster_url = poster_url

        target = Phase.RELEASED if release == clock else Phase.AWAITING_RELEASE
        if film.phase != target.value:
            logger.info(
                "phase_transition",
                extra={"from_phase": film.phase, "to_phase": target.value},
            )
            film.phase = target.value
            film.weeks_in_current_phase = 0
