"""Tests for StudioOrchestrator result mapping and transaction handling."""

import pytest
from sqlalchemy import func, select

from studio_kernel.domain.clock import GameClock
from studio_kernel.domain.phases import Phase
from studio_kernel.domain.values import TalentType
from studio_kernel.exceptions import EntityNotFoundError, ValidationError
from studio_kernel.models.release import FilmRelease
from studio_services.studio_orchestrator import ResultStatus, StudioOrchestrator
from tests.conftest import HighRandom, LowRandom


@pytest.fixture
def make_orchestrator(session, config, film_locks):
    def _make(rng) -> StudioOrchestrator:
        return StudioOrchestrator(session, config=config, rng=rng, film_locks=film_locks)

    return _make


@pytest.fixture
def casting_film(session, make_studio, make_film, make_role, make_talent):
    studio = make_studio(budget=20_000_000)
    film = make_film(studio, genre="drama")
    role = make_role(film, "Hero", "lead")
    actor = make_talent(asking_price=5_000_000, skills={"drama": 40})
    session.commit()
    return studio, film, role, actor


class TestSetup:
    def test_create_studio_uses_configured_defaults(self, orchestrator):
        result = orchestrator.create_studio("Lumen Pictures")
        assert result.is_success
        studio = orchestrator.get_studio(result.entity_id)
        assert studio.budget == 150_000_000
        assert studio.clock == GameClock.of(1, 2025)
        assert studio.prestige_level == 1

    def test_create_film_and_role(self, orchestrator):
        studio_id = orchestrator.create_studio("Lumen Pictures").entity_id
        film_id = orchestrator.create_film(studio_id, "Night Train", "thriller").entity_id
        role = orchestrator.define_role(film_id, "Conductor", "lead", character_type="villain")

        assert role.is_success
        film = orchestrator.get_film(film_id)
        assert film.phase == Phase.DEVELOPMENT.value
        assert [r.role_name for r in orchestrator.get_roles(film_id)] == ["Conductor"]

    def test_validation_failure_is_a_result(self, orchestrator):
        studio_id = orchestrator.create_studio("Lumen Pictures").entity_id
        result = orchestrator.create_film(studio_id, "Untitled", "western")
        assert result.status is ResultStatus.VALIDATION_FAILED
        assert result.error_code == "VALIDATION_ERROR"
        assert not result.is_success

    def test_unknown_film_read_raises(self, orchestrator):
        from uuid import uuid4

        with pytest.raises(EntityNotFoundError):
            orchestrator.get_film(uuid4())


class TestOffers:
    def test_preview(self, orchestrator, casting_film):
        _, film, role, actor = casting_film
        preview = orchestrator.calculate_acceptance(film.id, role.id, actor.id, 5_000_000)
        assert preview.is_success
        assert preview.probability == 46
        assert preview.baseline == 20
        assert dict(preview.factors)["genre_match"] == -3

    def test_accepted(self, make_orchestrator, casting_film):
        studio, film, role, actor = casting_film
        orchestrator = make_orchestrator(LowRandom())

        result = orchestrator.offer_talent(film.id, role.id, actor.id, 5_000_000)

        assert result.status is ResultStatus.ACCEPTED
        assert result.success and result.accepted
        assert result.probability == 46
        assert "accepted" in result.message
        assert orchestrator.get_studio(studio.id).budget == 15_000_000
        assert orchestrator.get_roles(film.id)[0].actor_id == actor.id

    def test_declined_is_a_success_outcome(self, make_orchestrator, casting_film):
        studio, film, role, actor = casting_film
        orchestrator = make_orchestrator(HighRandom())

        result = orchestrator.offer_talent(film.id, role.id, actor.id, 5_000_000)

        assert result.status is ResultStatus.DECLINED
        assert result.success
        assert not result.accepted
        assert "46% chance" in result.message
        assert orchestrator.get_studio(studio.id).budget == 20_000_000

    def test_insufficient_funds_distinct_from_decline(self, make_orchestrator, casting_film):
        _, film, role, actor = casting_film
        result = make_orchestrator(LowRandom()).offer_talent(film.id, role.id, actor.id, 50_000_000)
        assert result.status is ResultStatus.INSUFFICIENT_FUNDS
        assert result.error_code == "INSUFFICIENT_FUNDS"
        assert result.probability is None
        assert not result.success

    def test_second_offer_for_cast_role_conflicts(self, make_orchestrator, make_talent, session, casting_film):
        _, film, role, actor = casting_film
        rival = make_talent(asking_price=1_000_000)
        session.commit()
        orchestrator = make_orchestrator(LowRandom())
        orchestrator.offer_talent(film.id, role.id, actor.id, 5_000_000)

        result = orchestrator.offer_talent(film.id, role.id, rival.id, 1_000_000)

        assert result.status is ResultStatus.CONFLICT
        assert result.error_code == "ROLE_ALREADY_CAST"

    def test_explicit_offer_week_must_be_current(self, make_orchestrator, session, casting_film):
        _, film, role, actor = casting_film
        result = make_orchestrator(LowRandom()).offer_talent(
            film.id, role.id, actor.id, 5_000_000, week=1, year=2025
        )
        assert result.status is ResultStatus.ACCEPTED
        session.refresh(actor)
        assert (actor.busy_until_week, actor.busy_until_year) == (5, 2025)

    @pytest.mark.parametrize(("week", "year"), [(30, 2025), (1, 2020), (1, None)])
    def test_offer_week_other_than_studio_clock_rejected(
        self, make_orchestrator, session, casting_film, week, year
    ):
        studio, film, role, actor = casting_film
        orchestrator = make_orchestrator(LowRandom())

        result = orchestrator.offer_talent(
            film.id, role.id, actor.id, 5_000_000, week=week, year=year
        )

        assert result.status is ResultStatus.VALIDATION_FAILED
        assert orchestrator.get_studio(studio.id).budget == 20_000_000
        assert orchestrator.get_roles(film.id)[0].actor_id is None
        session.refresh(actor)
        assert actor.busy_until_week is None

    def test_busy_actor_cannot_be_booked_from_another_week(
        self, make_orchestrator, make_film, make_role, session, casting_film
    ):
        studio, film, role, actor = casting_film
        other_film = make_film(studio, title="Second Feature")
        other_role = make_role(other_film, "Rival")
        session.commit()
        orchestrator = make_orchestrator(LowRandom())
        assert orchestrator.offer_talent(film.id, role.id, actor.id, 5_000_000).accepted

        result = orchestrator.offer_talent(
            other_film.id, other_role.id, actor.id, 5_000_000, week=30, year=2025
        )

        assert result.status is ResultStatus.VALIDATION_FAILED
        assert orchestrator.get_roles(other_film.id)[0].actor_id is None

    def test_invalid_offer_week(self, make_orchestrator, casting_film):
        _, film, role, actor = casting_film
        result = make_orchestrator(LowRandom()).offer_talent(
            film.id, role.id, actor.id, 5_000_000, week=60, year=2025
        )
        assert result.status is ResultStatus.VALIDATION_FAILED


class TestScheduling:
    def test_rejection_rolls_back(self, session, orchestrator, finished_film):
        studio, film = finished_film()
        session.commit()

        result = orchestrator.schedule_release(film.id, "worldwide", 10_000_000, 5, 2025)

        assert result.status is ResultStatus.VALIDATION_FAILED
        assert result.error_code == "RELEASE_DATE_TOO_EARLY"
        assert "11/2025" in result.error
        assert orchestrator.get_studio(studio.id).budget == 150_000_000
        assert orchestrator.get_releases(film.id) == []

    def test_success(self, session, orchestrator, finished_film, config):
        studio, film = finished_film()
        session.commit()

        result = orchestrator.schedule_release(film.id, "worldwide", 10_000_000, 12, 2025)

        assert result.is_success
        assert result.error is None
        assert result.total_cost == 29_900_000
        assert [r.territory_code for r in result.releases] == list(config.territory_codes)
        assert orchestrator.get_film(film.id).phase == Phase.AWAITING_RELEASE.value

    def test_released_immediately_is_scored(self, session, orchestrator, finished_film):
        studio, film = finished_film()
        studio.current_week = 11
        session.commit()

        result = orchestrator.schedule_release(film.id, "single", 5_000_000, 11, 2025)

        info = orchestrator.get_film(film.id)
        assert result.is_success
        assert info.phase == Phase.RELEASED.value
        assert info.critic_score is not None
        assert info.audience_score is not None

    def test_unexpected_error_rolls_back_and_raises(
        self, session, orchestrator, finished_film, monkeypatch, captured_logs
    ):
        studio, film = finished_film()
        session.commit()
        real_commit = orchestrator._scheduler._commit_territory
        calls = []

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) == 2:
                raise RuntimeError("disk on fire")
            return real_commit(*args, **kwargs)

        monkeypatch.setattr(orchestrator._scheduler, "_commit_territory", flaky)

        with pytest.raises(RuntimeError):
            orchestrator.schedule_release(film.id, "worldwide", 10_000_000, 12, 2025)

        assert session.scalar(select(func.count()).select_from(FilmRelease)) == 0
        assert orchestrator.get_studio(studio.id).budget == 150_000_000
        failed = [r for r in captured_logs() if r["message"] == "schedule_release_failed"]
        assert failed and failed[0]["exc_type"] == "RuntimeError"


class TestWeeklyTick:
    def test_advance_week_moves_studio_and_films(self, orchestrator):
        studio_id = orchestrator.create_studio("Lumen Pictures").entity_id
        film_id = orchestrator.create_film(studio_id, "Night Train", "thriller").entity_id

        result = orchestrator.advance_week(studio_id)

        assert result.is_success
        assert result.clock == GameClock.of(2, 2025)
        assert [f.film_id for f in result.films] == [film_id]
        assert orchestrator.get_studio(studio_id).clock == GameClock.of(2, 2025)
        assert orchestrator.get_film(film_id).weeks_in_current_phase == 1

    def test_replaying_a_tick_changes_nothing(self, orchestrator):
        studio_id = orchestrator.create_studio("Lumen Pictures").entity_id
        film_id = orchestrator.create_film(studio_id, "Night Train", "thriller").entity_id
        orchestrator.advance_week(studio_id)

        replay = orchestrator.advance_week(studio_id, GameClock.of(2, 2025))

        assert replay.is_success
        assert replay.films == ()
        assert orchestrator.get_film(film_id).weeks_in_current_phase == 1

    def test_unknown_studio(self, orchestrator):
        from uuid import uuid4

        result = orchestrator.advance_week(uuid4())
        assert result.status is ResultStatus.VALIDATION_FAILED
        assert result.error_code == "ENTITY_NOT_FOUND"

    def test_session_tick_shares_one_clock(self, orchestrator):
        behind = orchestrator.create_studio("Behind", session_id="game-1").entity_id
        ahead = orchestrator.create_studio(
            "Ahead", session_id="game-1", clock=GameClock.of(4, 2025)
        ).entity_id
        orchestrator.create_studio("Elsewhere", session_id="game-2")

        result = orchestrator.advance_session("game-1")

        assert result.clock == GameClock.of(5, 2025)
        assert set(result.studio_ids) == {behind, ahead}
        assert orchestrator.get_studio(behind).clock == GameClock.of(5, 2025)
        assert orchestrator.get_studio(ahead).clock == GameClock.of(5, 2025)

    def test_unknown_session(self, orchestrator):
        result = orchestrator.advance_session("nobody")
        assert result.error_code == "ENTITY_NOT_FOUND"

    def test_tick_logs_carry_correlation(self, orchestrator, captured_logs):
        studio_id = orchestrator.create_studio("Lumen Pictures").entity_id
        orchestrator.advance_week(studio_id)

        records = captured_logs()
        advanced = [r for r in records if r["message"] == "week_advanced"]
        completed = [r for r in records if r["message"] == "advance_week_completed"]
        assert advanced and completed
        assert advanced[0]["correlation_id"] == completed[0]["correlation_id"]
        assert advanced[0]["studio_id"] == str(studio_id)
        assert advanced[0]["tick"] == str(GameClock.of(2, 2025))


class TestReadAccessors:
    def test_available_talent_skips_busy(self, orchestrator, session, make_talent):
        free = make_talent(TalentType.DIRECTOR, fame=40, name="Free Director")
        star = make_talent(TalentType.DIRECTOR, fame=90, name="Star Director")
        busy = make_talent(TalentType.DIRECTOR, fame=95, name="Busy Director")
        busy.busy_until_week, busy.busy_until_year = 10, 2025
        make_talent(TalentType.WRITER)
        session.commit()

        names = [t.name for t in orchestrator.available_talent("director", GameClock.of(5, 2025))]
        assert names == [star.name, free.name]
        later = orchestrator.available_talent("director", GameClock.of(11, 2025))
        assert later[0].name == busy.name

    def test_unknown_talent_type(self, orchestrator):
        with pytest.raises(ValidationError):
            orchestrator.available_talent("stunt-double", GameClock.of(5, 2025))

    def test_get_talent(self, orchestrator, session, make_talent):
        actor = make_talent(skills={"drama": 40})
        session.commit()
        info = orchestrator.get_talent(actor.id)
        assert info.skills == {"drama": 40}
        assert info.busy_until is None

    def test_films_and_session_studios(self, orchestrator):
        studio_id = orchestrator.create_studio("Lumen", session_id="game-7").entity_id
        orchestrator.create_studio("Arclight", session_id="game-7")
        orchestrator.create_film(studio_id, "B Side", "comedy")
        orchestrator.create_film(studio_id, "A Side", "comedy")

        assert [f.title for f in orchestrator.get_films(studio_id)] == ["A Side", "B Side"]
        assert [s.name for s in orchestrator.get_session_studios("game-7")] == [
            "Arclight",
            "Lumen",
        ]
