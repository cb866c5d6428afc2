"""
DTOs -- Immutable records returned across the kernel boundary.

Responsibility:
    Frozen snapshots of studios, talent, films, roles and releases, plus the
    per-tick summaries produced by the weekly advance.  Selectors and the
    orchestrator return these, never ORM instances.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
    ``from_model()`` class methods are boundary converters invoked only from
    selectors and services.

Invariants enforced:
    - Sequences are tuples and maps are MappingProxyType, so a DTO handed to
      a caller cannot be used to mutate persisted state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping
from uuid import UUID

from studio_kernel.domain.clock import GameClock

if TYPE_CHECKING:
    from studio_kernel.models.film import Film as FilmModel
    from studio_kernel.models.film import FilmRole as FilmRoleModel
    from studio_kernel.models.ledger_entry import LedgerEntry as LedgerEntryModel
    from studio_kernel.models.release import FilmRelease as FilmReleaseModel
    from studio_kernel.models.studio import Studio as StudioModel
    from studio_kernel.models.talent import Talent as TalentModel


def _frozen_map(d: Mapping | None) -> Mapping:
    return MappingProxyType(dict(d or {}))


@dataclass(frozen=True)
class StudioInfo:
    id: UUID
    name: str
    budget: int
    clock: GameClock
    prestige_level: int
    total_earnings: int
    session_id: str | None = None

    @classmethod
    def from_model(cls, model: StudioModel) -> StudioInfo:
        return cls(
            id=model.id,
            name=model.name,
            budget=model.budget,
            clock=GameClock.of(model.current_week, model.current_year),
            prestige_level=model.prestige_level,
            total_earnings=model.total_earnings,
            session_id=model.session_id,
        )


@dataclass(frozen=True)
class TalentInfo:
    id: UUID
    name: str
    talent_type: str
    fame: int
    performance: int
    experience: int
    asking_price: int
    skills: Mapping[str, int] = field(default_factory=dict)
    busy_until: GameClock | None = None

    @classmethod
    def from_model(cls, model: TalentModel) -> TalentInfo:
        busy = None
        if model.busy_until_week is not None and model.busy_until_year is not None:
            busy = GameClock.of(model.busy_until_week, model.busy_until_year)
        return cls(
            id=model.id,
            name=model.name,
            talent_type=model.talent_type,
            fame=model.fame,
            performance=model.performance,
            experience=model.experience,
            asking_price=model.asking_price,
            skills=_frozen_map(model.skills),
            busy_until=busy,
        )


@dataclass(frozen=True)
class RoleInfo:
    id: UUID
    film_id: UUID
    role_name: str
    importance: str
    character_type: str | None
    character_age: int | None
    gender_preference: str | None
    is_cast: bool
    actor_id: UUID | None

    @classmethod
    def from_model(cls, model: FilmRoleModel) -> RoleInfo:
        return cls(
            id=model.id,
            film_id=model.film_id,
            role_name=model.role_name,
            importance=model.importance,
            character_type=model.character_type,
            character_age=model.character_age,
            gender_preference=model.gender_preference,
            is_cast=model.is_cast,
            actor_id=model.actor_id,
        )


@dataclass(frozen=True)
class ReleaseInfo:
    id: UUID
    film_id: UUID
    territory_code: str
    release: GameClock
    production_budget: int
    marketing_budget: int
    distribution_fee: int
    is_released: bool
    is_active: bool
    weekly_box_office: tuple[int, ...]
    total_box_office: int
    opening_gross: int
    theater_count: int
    weeks_in_release: int

    @property
    def legs_multiplier(self) -> float:
        if not self.opening_gross:
            return 0.0
        return self.total_box_office / self.opening_gross

    @classmethod
    def from_model(cls, model: FilmReleaseModel) -> ReleaseInfo:
        return cls(
            id=model.id,
            film_id=model.film_id,
            territory_code=model.territory_code,
            release=GameClock.of(model.release_week, model.release_year),
            production_budget=model.production_budget,
            marketing_budget=model.marketing_budget,
            distribution_fee=model.distribution_fee,
            is_released=model.is_released,
            is_active=model.is_active,
            weekly_box_office=tuple(model.weekly_box_office or ()),
            total_box_office=model.total_box_office,
            opening_gross=model.opening_gross,
            theater_count=model.theater_count,
            weeks_in_release=model.weeks_in_release,
        )


@dataclass(frozen=True)
class FilmInfo:
    id: UUID
    studio_id: UUID
    title: str
    genre: str
    phase: str
    status: str
    weeks_in_current_phase: int
    budgets: Mapping[str, int]
    total_budget: int
    marketing_budget: int
    director_id: UUID | None
    writer_id: UUID | None
    composer_id: UUID | None
    cast_ids: tuple[str, ...]
    audience_score: float | None
    critic_score: int | None
    release: GameClock | None
    total_box_office: int
    total_box_office_by_territory: Mapping[str, int]
    weekly_box_office: tuple[int, ...]
    poster_url: str | None = None

    @classmethod
    def from_model(cls, model: FilmModel) -> FilmInfo:
        from studio_kernel.domain.values import ATTACHED_COST_FIELDS, DEPARTMENT_FIELDS

        budgets = {
            name: getattr(model, name)
            for name in (*DEPARTMENT_FIELDS, *ATTACHED_COST_FIELDS)
        }
        return cls(
            id=model.id,
            studio_id=model.studio_id,
            title=model.title,
            genre=model.genre,
            phase=model.phase,
            status=model.status,
            weeks_in_current_phase=model.weeks_in_current_phase,
            budgets=_frozen_map(budgets),
            total_budget=model.total_budget,
            marketing_budget=model.marketing_budget,
            director_id=model.director_id,
            writer_id=model.writer_id,
            composer_id=model.composer_id,
            cast_ids=tuple(model.cast_ids or ()),
            audience_score=model.audience_score,
            critic_score=model.critic_score,
            release=model.release_clock,
            total_box_office=model.total_box_office,
            total_box_office_by_territory=_frozen_map(model.total_box_office_by_territory),
            weekly_box_office=tuple(model.weekly_box_office or ()),
            poster_url=model.poster_url,
        )


@dataclass(frozen=True)
class LedgerEntryInfo:
    id: UUID
    studio_id: UUID
    amount: int
    reason: str
    balance_after: int
    film_id: UUID | None = None
    territory_code: str | None = None

    @classmethod
    def from_model(cls, model: LedgerEntryModel) -> LedgerEntryInfo:
        return cls(
            id=model.id,
            studio_id=model.studio_id,
            amount=model.amount,
            reason=model.reason,
            balance_after=model.balance_after,
            film_id=model.film_id,
            territory_code=model.territory_code,
        )


# Weekly tick summaries


@dataclass(frozen=True)
class ReleaseWeekSummary:
    """One territory's result for one tick."""

    release_id: UUID
    film_id: UUID
    territory_code: str
    week_number: int
    gross: int
    studio_share: int
    theater_count: int
    closed: bool


@dataclass(frozen=True)
class FilmTickSummary:
    """One film's phase movement for one tick."""

    film_id: UUID
    title: str
    phase: str
    weeks_in_current_phase: int
    transitions: tuple[tuple[str, str], ...] = ()
    archived: bool = False
