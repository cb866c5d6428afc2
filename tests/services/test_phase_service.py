"""Tests for PhaseService (studio_kernel/services/phase_service.py) and QualityService."""

import random

from studio_kernel.domain.clock import GameClock
from studio_kernel.domain.phases import Phase
from studio_kernel.domain.values import FilmStatus, TalentType
from studio_kernel.services import PhaseService
from studio_services.quality_service import QualityService
from tests.conftest import START


def week(n: int) -> GameClock:
    return GameClock.of(n, 2025)


class TestAdvanceFilms:
    def test_one_step_per_tick(self, session, make_studio, make_film):
        studio = make_studio()
        film = make_film(studio)
        phases = PhaseService(session)

        summaries = phases.advance_films(studio.id, week(2))

        assert len(summaries) == 1
        assert film.phase == Phase.DEVELOPMENT.value
        assert film.weeks_in_current_phase == 1
        assert film.last_tick_index == week(2).index

    def test_same_tick_twice_is_a_no_op(self, session, make_studio, make_film):
        studio = make_studio()
        film = make_film(studio)
        phases = PhaseService(session)
        phases.advance_films(studio.id, week(2))

        assert phases.advance_films(studio.id, week(2)) == []
        assert film.weeks_in_current_phase == 1

    def test_older_tick_is_ignored(self, session, make_studio, make_film):
        studio = make_studio()
        film = make_film(studio)
        phases = PhaseService(session)
        phases.advance_films(studio.id, week(3))
        assert phases.advance_film(film, week(2)) is None

    def test_waits_for_greenlight(self, session, make_studio, make_film):
        studio = make_studio()
        film = make_film(studio)
        phases = PhaseService(session)
        for n in range(2, 6):
            phases.advance_films(studio.id, week(n))
        assert film.phase == Phase.AWAITING_GREENLIGHT.value

        film.has_hired_talent = True
        summaries = phases.advance_films(studio.id, week(6))
        # The guard passes and pre-production consumes the same week
        assert film.phase == Phase.PRE_PRODUCTION.value
        assert film.weeks_in_current_phase == 1
        assert summaries[0].transitions == (("awaiting-greenlight", "pre-production"),)

    def test_release_guards_read_the_releases_table(self, session, make_studio, make_film):
        studio = make_studio()
        film = make_film(studio)
        phases = PhaseService(session)
        guards = phases.guards_for(film, week(5))
        assert guards.has_releases is False
        assert guards.release_week_reached is False

        film.release_week, film.release_year = 5, 2025
        assert phases.guards_for(film, week(5)).release_week_reached is True
        assert phases.guards_for(film, week(4)).release_week_reached is False

    def test_archived_films_are_skipped(self, session, make_studio, make_film):
        studio = make_studio()
        film = make_film(studio)
        film.status = FilmStatus.ARCHIVED.value
        session.flush()
        assert PhaseService(session).advance_films(studio.id, week(2)) == []


class TestStudioClock:
    def test_moves_forward_only(self, session, make_studio):
        studio = make_studio()
        phases = PhaseService(session)
        assert phases.advance_studio_clock(studio, week(2)) is True
        assert phases.advance_studio_clock(studio, week(2)) is False
        assert phases.advance_studio_clock(studio, START) is False
        assert (studio.current_week, studio.current_year) == (2, 2025)


class TestQualityScoring:
    def test_scores_once(self, session, config, production, make_studio, make_film, make_talent):
        studio = make_studio()
        film = make_film(studio, script_quality=80)
        director = make_talent(TalentType.DIRECTOR, performance=85, skills={"drama": 90})
        production.attach_director(film.id, director.id, START)
        quality = QualityService(session, config.quality)

        scores = quality.score_if_unscored(film, random.Random(5))

        assert scores is not None
        assert film.critic_score == scores.critic_score
        assert film.audience_score == scores.audience_score
        assert quality.score_if_unscored(film, random.Random(6)) is None
        assert film.critic_score == scores.critic_score

    def test_cast_talent_loaded_from_cast_ids(self, session, config, make_studio, make_film, make_talent):
        film = make_film(make_studio())
        actor = make_talent()
        film.add_cast_member(actor.id)
        session.flush()
        assert QualityService(session, config.quality).cast_talent(film) == [actor]
