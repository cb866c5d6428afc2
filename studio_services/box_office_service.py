"""
BoxOfficeService -- charges one week of theatrical revenue per open run.

Responsibility:
    For every active release of a studio whose release week has arrived and
    which has not been charged for this tick, projects the week's gross
    with the box-office engine, appends it to the release and the film
    aggregates, credits the studio its share and closes finished runs.
    Films whose runs have all closed are archived.

Architecture position:
    Services -- imperative shell over studio_engines.box_office.
    Called by StudioOrchestrator.advance_week after the phase advance.

Invariants enforced:
    - Idempotent per (release, tick): ``last_charged_index`` is written in
      the same unit of work as the gross, and a release already charged at
      or beyond the tick index is skipped.
    - A closed run (``is_active`` False) is never charged again.
    - Film totals always equal the sum of their territories.
    - The holiday modifier only shapes the opening week.

Failure modes:
    - None expected.  A missing territory definition falls back to the
      OTHER bucket's market share and theater capacity.
"""

from __future__ import annotations

import math
import random
from collections import defaultdict
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from studio_config.schema import OTHER_TERRITORY, StudioConfig
from studio_engines.box_office import ReleaseInputs, RunState, project_week
from studio_kernel.domain.clock import WEEKS_PER_YEAR, GameClock
from studio_kernel.domain.dtos import ReleaseWeekSummary
from studio_kernel.domain.values import FilmStatus, LedgerReason
from studio_kernel.logging_config import LogContext, get_logger
from studio_kernel.models.film import Film
from studio_kernel.models.release import FilmRelease
from studio_kernel.models.talent import Talent
from studio_kernel.services.base import BaseService
from studio_kernel.services.ledger_service import BudgetLedger

logger = get_logger("services.box_office")

DEFAULT_FAME = 50.0


@dataclass(frozen=True)
class BoxOfficeTick:
    releases: tuple[ReleaseWeekSummary, ...] = ()
    archived_film_ids: tuple[UUID, ...] = field(default_factory=tuple)

    @property
    def total_gross(self) -> int:
        return sum(r.gross for r in self.releases)


class BoxOfficeService(BaseService):
    """
    Weekly box-office accrual.

    Contract:
        ``charge_due_releases(studio_id, clock, rng)`` charges each due run
        exactly once for ``clock`` and returns what was charged.

    Guarantees:
        - Releases are processed in a fixed order (film creation, title,
          configured territory order), so a seeded ``rng`` reproduces the
          same grosses.
    """

    def __init__(self, session: Session, config: StudioConfig, ledger: BudgetLedger | None = None):
        super().__init__(session)
        self._config = config
        self._ledger = ledger or BudgetLedger(session)
        self._territory_rank = {code: i for i, code in enumerate(config.territory_codes)}

    def due_releases(self, studio_id: UUID, clock: GameClock) -> list[FilmRelease]:
        stmt = (
            select(FilmRelease)
            .join(Film, FilmRelease.film_id == Film.id)
            .where(
                Film.studio_id == studio_id,
                FilmRelease.is_active.is_(True),
                FilmRelease.release_year * WEEKS_PER_YEAR + FilmRelease.release_week <= clock.index,
                (FilmRelease.last_charged_index.is_(None))
                | (FilmRelease.last_charged_index < clock.index),
            )
            .order_by(Film.created_year, Film.created_week, Film.title)
            .with_for_update()
        )
        releases = list(self.session.scalars(stmt))
        film_order = {}
        for release in releases:
            film_order.setdefault(release.film_id, len(film_order))
        return sorted(
            releases,
            key=lambda r: (
                film_order[r.film_id],
                self._territory_rank.get(r.territory_code, len(self._territory_rank)),
                r.territory_code,
            ),
        )

    def average_fame(self, film: Film) -> float:
        ids = list(film.cast_ids or ())
        if not ids:
            return DEFAULT_FAME
        fames = list(self.session.scalars(select(Talent.fame).where(Talent.id.in_(ids))))
        return sum(fames) / len(fames) if fames else DEFAULT_FAME

    def charge_due_releases(
        self,
        studio_id: UUID,
        clock: GameClock,
        rng: random.Random,
    ) -> BoxOfficeTick:
        summaries: list[ReleaseWeekSummary] = []
        theaters_by_film: dict[UUID, int] = defaultdict(int)
        gross_by_film: dict[UUID, int] = defaultdict(int)
        films: dict[UUID, Film] = {}
        fame_cache: dict[UUID, float] = {}

        for release in self.due_releases(studio_id, clock):
            film = release.film
            films[film.id] = film
            if film.id not in fame_cache:
                fame_cache[film.id] = self.average_fame(film)
            with LogContext.bind(film_id=str(film.id), tick=str(clock)):
                summary = self._charge(release, film, clock, rng, fame_cache[film.id])
            summaries.append(summary)
            theaters_by_film[film.id] += summary.theater_count
            gross_by_film[film.id] += summary.gross

        archived = []
        for film_id, film in films.items():
            film.theater_count = theaters_by_film[film_id]
            # One aggregate entry per tick in which any territory was charged
            film.weekly_box_office = [*(film.weekly_box_office or ()), gross_by_film[film_id]]
            if all(not r.is_active for r in film.releases):
                film.status = FilmStatus.ARCHIVED.value
                film.archived_week = clock.week
                film.archived_year = clock.year
                archived.append(film_id)
                logger.info(
                    "film_archived",
                    extra={"film_id": str(film_id), "total_box_office": film.total_box_office},
                )
        self.session.flush()
        return BoxOfficeTick(releases=tuple(summaries), archived_film_ids=tuple(archived))

    def _charge(
        self,
        release: FilmRelease,
        film: Film,
        clock: GameClock,
        rng: random.Random,
        average_fame: float,
    ) -> ReleaseWeekSummary:
        curve = self._config.box_office
        territory = self._config.territory(release.territory_code) or self._config.territory(
            OTHER_TERRITORY
        )
        opening = release.weeks_in_release == 0
        weekly = list(release.weekly_box_office or ())

        inputs = ReleaseInputs(
            market_share=territory.market_share,
            marketing_budget=release.marketing_budget,
            audience_score=film.audience_score,
            critic_score=film.critic_score,
            average_fame=average_fame,
            holiday_modifier=(
                self._config.holiday_modifier(clock.week, film.genre) if opening else 1.0
            ),
            max_theaters=territory.max_theaters,
        )
        state = RunState(
            weeks_in_release=release.weeks_in_release,
            last_gross=weekly[-1] if weekly else 0,
            opening_gross=release.opening_gross,
            opening_theaters=release.opening_theater_count,
        )
        week = project_week(inputs=inputs, state=state, rng=rng, curve=curve)

        release.weekly_box_office = [*weekly, week.gross]
        release.total_box_office += week.gross
        release.weeks_in_release = week.week_number
        release.theater_count = week.theater_count
        release.is_released = True
        release.last_charged_index = clock.index
        if opening:
            release.opening_gross = week.gross
            release.opening_theater_count = week.theater_count
        if week.closes:
            release.is_active = False
            release.closed_week = clock.week
            release.closed_year = clock.year

        self._accumulate_film(film, release.territory_code, week.gross)

        share = math.floor(week.gross * curve.studio_share)
        if share > 0:
            self._ledger.credit(
                film.studio_id,
                share,
                LedgerReason.BOX_OFFICE_SHARE,
                film_id=film.id,
                territory_code=release.territory_code,
                clock=clock,
                earnings=True,
            )

        logger.info(
            "box_office_week",
            extra={
                "territory_code": release.territory_code,
                "week_number": week.week_number,
                "gross": week.gross,
                "theater_count": week.theater_count,
                "closed": week.closes,
            },
        )
        return ReleaseWeekSummary(
            release_id=release.id,
            film_id=film.id,
            territory_code=release.territory_code,
            week_number=week.week_number,
            gross=week.gross,
            studio_share=share,
            theater_count=week.theater_count,
            closed=week.closes,
        )

    def _accumulate_film(self, film: Film, territory_code: str, gross: int) -> None:
        film.total_box_office += gross
        by_territory = dict(film.total_box_office_by_territory or {})
        by_territory[territory_code] = by_territory.get(territory_code, 0) + gross
        film.total_box_office_by_territory = by_territory
