"""
QualityService -- scores a film once, when it reaches the screens.

Loads the film's director and cast, hands them to the quality engine and
stores critic_score (0..100) and audience_score (0..10).  Films that
already carry scores are left alone.
"""

from __future__ import annotations

import random

from sqlalchemy import select
from sqlalchemy.orm import Session

from studio_engines.quality import (
    DEFAULT_QUALITY_WEIGHTS,
    Contributor,
    QualityScores,
    QualityWeights,
    score_film,
)
from studio_kernel.logging_config import get_logger
from studio_kernel.models.film import Film
from studio_kernel.models.talent import Talent
from studio_kernel.services.base import BaseService

logger = get_logger("services.quality")


def contributor_for(talent: Talent, genre: str) -> Contributor:
    return Contributor(
        performance=talent.performance,
        genre_skill=talent.skill_for(genre),
        fame=talent.fame,
    )


class QualityService(BaseService):
    def __init__(
        self,
        session: Session,
        weights: QualityWeights = DEFAULT_QUALITY_WEIGHTS,
    ):
        super().__init__(session)
        self._weights = weights

    def cast_talent(self, film: Film) -> list[Talent]:
        ids = list(film.cast_ids or ())
        if not ids:
            return []
        return list(self.session.scalars(select(Talent).where(Talent.id.in_(ids))))

    def score_if_unscored(self, film: Film, rng: random.Random) -> QualityScores | None:
        if film.critic_score is not None and film.audience_score is not None:
            return None

        director = (
            self.session.get(Talent, film.director_id)
            if film.director_id is not None
            else None
        )
        scores = score_film(
            script_quality=film.script_quality,
            director=contributor_for(director, film.genre) if director else None,
            cast=[contributor_for(t, film.genre) for t in self.cast_talent(film)],
            total_budget=film.total_budget,
            rng=rng,
            weights=self._weights,
        )
        film.critic_score = scores.critic_score
        film.audience_score = scores.audience_score
        self.session.flush()

        logger.info(
            "film_scored",
            extra={
                "film_id": str(film.id),
                "critic_score": scores.critic_score,
                "audience_score": scores.audience_score,
            },
        )
        return scores
