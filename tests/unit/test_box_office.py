"""Tests for the box-office curve (studio_engines/box_office.py)."""

import random
from dataclasses import replace

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from studio_engines.box_office import (
    DEFAULT_CURVE,
    BoxOfficeCurve,
    ReleaseInputs,
    RunState,
    legs_multiplier,
    marketing_multiplier,
    opening_gross,
    project_week,
    retention_rate,
    theater_count,
)

NA_INPUTS = ReleaseInputs(
    market_share=0.35,
    marketing_budget=10_500_000,
    audience_score=7.0,
    critic_score=70,
    average_fame=50,
    max_theaters=4000,
)


def run_to_close(inputs: ReleaseInputs, rng: random.Random, curve=DEFAULT_CURVE) -> list[int]:
    state = RunState()
    grosses = []
    while True:
        week = project_week(inputs=inputs, state=state, rng=rng, curve=curve)
        grosses.append(week.gross)
        if week.closes:
            return grosses
        state = RunState(
            weeks_in_release=week.week_number,
            last_gross=week.gross,
            opening_gross=grosses[0],
            opening_theaters=week.theater_count if week.is_opening else state.opening_theaters,
        )


class TestOpening:
    def test_marketing_multiplier_clamped(self):
        assert marketing_multiplier(0, 0.35) == DEFAULT_CURVE.marketing_min
        assert marketing_multiplier(10**12, 0.35) == DEFAULT_CURVE.marketing_max
        assert marketing_multiplier(10_500_000, 0.35) == pytest.approx(1.0)

    def test_opening_formula_at_neutral_noise(self):
        # 150M * 0.35 * 1.0 * (0.5 + 70/200) * (0.8 + 50/250) * 1.0 * 1.0
        assert opening_gross(NA_INPUTS, 1.0) == pytest.approx(44_625_000, abs=1)

    def test_holiday_modifier_scales_opening(self):
        holiday = replace(NA_INPUTS, holiday_modifier=1.5)
        assert opening_gross(holiday, 1.0) == pytest.approx(opening_gross(NA_INPUTS, 1.0) * 1.5, abs=2)

    def test_opening_week_is_first_projection(self):
        week = project_week(inputs=NA_INPUTS, state=RunState(), rng=random.Random(1))
        assert week.is_opening
        assert week.retention is None
        assert week.theater_count > 0
        assert week.theater_count <= NA_INPUTS.max_theaters


class TestRetention:
    def test_better_scores_slow_decay(self):
        good = retention_rate(1, 9.0, 90, 0.0)
        neutral = retention_rate(1, 5.0, 50, 0.0)
        bad = retention_rate(1, 2.0, 20, 0.0)
        assert good > neutral > bad

    def test_retention_bounded(self):
        assert retention_rate(1, 10.0, 100, 1.0) == DEFAULT_CURVE.max_retention
        assert retention_rate(30, 0.0, 0, -1.0) == DEFAULT_CURVE.min_retention

    def test_unscored_film_is_neutral(self):
        assert retention_rate(1, None, None, 0.0) == retention_rate(1, 5.0, 50, 0.0)


class TestRun:
    def test_run_is_front_loaded_and_closes(self):
        grosses = run_to_close(NA_INPUTS, random.Random(11))
        assert grosses[0] == max(grosses)
        assert len(grosses) <= DEFAULT_CURVE.max_run_weeks

    def test_seeded_runs_are_reproducible(self):
        assert run_to_close(NA_INPUTS, random.Random(5)) == run_to_close(
            NA_INPUTS, random.Random(5)
        )

    def test_tiny_opening_closes_immediately(self):
        tiny = ReleaseInputs(
            market_share=0.01,
            marketing_budget=0,
            audience_score=1.0,
            critic_score=5,
            average_fame=0,
        )
        curve = BoxOfficeCurve(base_opening_gross=1_000_000)
        week = project_week(inputs=tiny, state=RunState(), rng=random.Random(1), curve=curve)
        assert week.closes

    @settings(max_examples=60, deadline=None)
    @given(
        share=st.floats(min_value=0.005, max_value=1.0),
        marketing=st.integers(min_value=0, max_value=200_000_000),
        audience=st.one_of(st.none(), st.floats(min_value=0, max_value=10)),
        critic=st.one_of(st.none(), st.integers(min_value=0, max_value=100)),
        fame=st.floats(min_value=0, max_value=100),
        seed=st.integers(min_value=0, max_value=2**32 - 1),
    )
    def test_revenue_non_negative_and_non_increasing(
        self, share, marketing, audience, critic, fame, seed
    ):
        inputs = ReleaseInputs(
            market_share=share,
            marketing_budget=marketing,
            audience_score=audience,
            critic_score=critic,
            average_fame=fame,
        )
        grosses = run_to_close(inputs, random.Random(seed))
        assert all(g >= 0 for g in grosses)
        assert grosses == sorted(grosses, reverse=True)


class TestDisplayMetrics:
    def test_legs_multiplier(self):
        assert legs_multiplier(30_000_000, 10_000_000) == pytest.approx(3.0)
        assert legs_multiplier(0, 0) == 0.0

    def test_theater_count_shrinks_with_gross(self):
        assert theater_count(4000, 10_000_000, 10_000_000) == 4000
        assert theater_count(4000, 10_000_000, 2_500_000) == 2000
        assert theater_count(4000, 10_000_000, 0) == 0


class TestCurveValidation:
    def test_max_retention_must_stay_below_one(self):
        with pytest.raises(ValueError):
            BoxOfficeCurve(max_retention=1.0)

    def test_studio_share_bounded(self):
        with pytest.raises(ValueError):
            BoxOfficeCurve(studio_share=1.5)
