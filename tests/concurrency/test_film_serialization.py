"""
Concurrent requests against one film.

Each worker gets its own session and orchestrator; the workers share one
FilmLockRegistry, the way orchestrators in one process do.  A barrier
releases all workers at once.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest
from sqlalchemy import func, select

from studio_kernel.domain.values import LedgerReason
from studio_kernel.models.casting_offer import CastingOffer
from studio_kernel.models.ledger_entry import LedgerEntry
from studio_kernel.models.release import FilmRelease
from studio_kernel.services.film_locks import FilmLockRegistry
from studio_services.studio_orchestrator import ResultStatus, StudioOrchestrator
from tests.conftest import LowRandom

WORKERS = 4


def run_together(session_factory, config, film_locks, call):
    """Run ``call(orchestrator, i)`` in WORKERS threads released by one barrier."""
    barrier = Barrier(WORKERS)

    def worker(i):
        session = session_factory()
        try:
            orchestrator = StudioOrchestrator(
                session, config=config, rng=LowRandom(), film_locks=film_locks
            )
            barrier.wait(timeout=10)
            return call(orchestrator, i)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        return list(pool.map(worker, range(WORKERS)))


class TestConcurrentScheduling:
    def test_exactly_one_schedule_wins(self, session, session_factory, config, film_locks, finished_film):
        studio, film = finished_film()
        session.commit()

        results = run_together(
            session_factory,
            config,
            film_locks,
            lambda o, i: o.schedule_release(film.id, "single", 1_000_000, 12, 2025),
        )

        winners = [r for r in results if r.is_success]
        losers = [r for r in results if not r.is_success]
        assert len(winners) == 1
        assert {r.error_code for r in losers} <= {
            "TERRITORY_ALREADY_SCHEDULED",
            "RELEASE_SCHEDULING_CONFLICT",
        }

        session.expire_all()
        assert session.scalar(select(func.count()).select_from(FilmRelease)) == 1
        fees = session.scalars(
            select(LedgerEntry).where(
                LedgerEntry.reason == LedgerReason.DISTRIBUTION_FEE.value
            )
        ).all()
        assert [(e.territory_code, e.amount) for e in fees] == [("NA", -2_000_000)]
        production = session.scalars(
            select(LedgerEntry).where(LedgerEntry.reason == LedgerReason.PRODUCTION_COST.value)
        ).all()
        assert len(production) == 1


class TestConcurrentOffers:
    def test_one_role_one_actor(
        self, session, session_factory, config, film_locks, make_studio, make_film, make_role, make_talent
    ):
        studio = make_studio(budget=100_000_000)
        film = make_film(studio)
        role = make_role(film, "Hero", "lead")
        actors = [make_talent(asking_price=2_000_000) for _ in range(WORKERS)]
        session.commit()

        results = run_together(
            session_factory,
            config,
            film_locks,
            lambda o, i: o.offer_talent(film.id, role.id, actors[i].id, 2_000_000),
        )

        accepted = [r for r in results if r.status is ResultStatus.ACCEPTED]
        conflicts = [r for r in results if r.status is ResultStatus.CONFLICT]
        assert len(accepted) == 1
        assert len(conflicts) == WORKERS - 1
        assert {r.error_code for r in conflicts} == {"ROLE_ALREADY_CAST"}

        session.expire_all()
        session.refresh(role)
        assert role.is_cast
        assert session.scalar(select(func.count()).select_from(CastingOffer)) == 1
        salaries = session.scalars(
            select(LedgerEntry).where(LedgerEntry.reason == LedgerReason.CASTING_SALARY.value)
        ).all()
        assert len(salaries) == 1
        session.refresh(studio)
        assert studio.budget == 98_000_000


class TestFilmLockRegistry:
    def test_same_film_shares_one_lock(self):
        registry = FilmLockRegistry()
        assert registry.lock_for("a") is registry.lock_for("a")
        assert registry.lock_for("a") is not registry.lock_for("b")
        assert len(registry) == 2

    def test_repeated_holds_keep_one_entry_per_film(self):
        registry = FilmLockRegistry()
        for _ in range(50):
            with registry.hold("a"):
                pass
            with registry.hold("b"):
                pass
        assert len(registry) == 2

    def test_hold_excludes_other_holders(self):
        registry = FilmLockRegistry()
        with registry.hold("film"):
            assert not registry.lock_for("film").acquire(blocking=False)
        assert registry.lock_for("film").acquire(blocking=False)

    def test_hold_releases_on_error(self):
        registry = FilmLockRegistry()
        with pytest.raises(RuntimeError):
            with registry.hold("film"):
                raise RuntimeError("boom")
        assert not registry.lock_for("film").locked()
