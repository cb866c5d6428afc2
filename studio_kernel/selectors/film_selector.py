"""
Module: studio_kernel.selectors.film_selector
Responsibility: Read-only queries over studios, films, roles, releases,
    talent and ledger history.  Everything returned is a frozen DTO.
Architecture position: Kernel > Selectors.

Failure modes:
    - EntityNotFoundError from the single-entity getters.
    - ValidationError for an unknown talent type.
    - List queries return an empty list when nothing matches.
"""

from uuid import UUID

from sqlalchemy import select

from studio_kernel.domain.dtos import (
    FilmInfo,
    LedgerEntryInfo,
    ReleaseInfo,
    RoleInfo,
    StudioInfo,
    TalentInfo,
)
from studio_kernel.domain.values import FilmStatus, TalentType
from studio_kernel.exceptions import ValidationError
from studio_kernel.models.film import Film, FilmRole
from studio_kernel.models.ledger_entry import LedgerEntry
from studio_kernel.models.release import FilmRelease
from studio_kernel.models.studio import Studio
from studio_kernel.models.talent import Talent
from studio_kernel.selectors.base import BaseSelector


class StudioSelector(BaseSelector[Studio]):
    """Studios and their ledger history."""

    model = Studio

    def get_studio(self, studio_id: UUID) -> StudioInfo:
        return StudioInfo.from_model(self._get(studio_id))

    def studios_in_session(self, session_id: str) -> list[StudioInfo]:
        stmt = (
            select(Studio)
            .where(Studio.session_id == session_id)
            .order_by(Studio.name)
        )
        return [StudioInfo.from_model(s) for s in self.session.scalars(stmt)]

    def ledger_entries(
        self,
        studio_id: UUID,
        *,
        film_id: UUID | None = None,
        reason: str | None = None,
    ) -> list[LedgerEntryInfo]:
        """Entries oldest first, optionally narrowed to a film or reason."""
        stmt = select(LedgerEntry).where(LedgerEntry.studio_id == studio_id)
        if film_id is not None:
            stmt = stmt.where(LedgerEntry.film_id == film_id)
        if reason is not None:
            stmt = stmt.where(LedgerEntry.reason == getattr(reason, "value", reason))
        stmt = stmt.order_by(LedgerEntry.created_at, LedgerEntry.id)
        return [LedgerEntryInfo.from_model(e) for e in self.session.scalars(stmt)]


class FilmSelector(BaseSelector[Film]):
    """Films, their roles and their territory releases."""

    model = Film

    def get_film(self, film_id: UUID) -> FilmInfo:
        return FilmInfo.from_model(self._get(film_id))

    def films_for_studio(
        self,
        studio_id: UUID,
        *,
        include_archived: bool = True,
    ) -> list[FilmInfo]:
        stmt = select(Film).where(Film.studio_id == studio_id)
        if not include_archived:
            stmt = stmt.where(Film.status == FilmStatus.ACTIVE.value)
        stmt = stmt.order_by(Film.created_year, Film.created_week, Film.title)
        return [FilmInfo.from_model(f) for f in self.session.scalars(stmt)]

    def get_roles(self, film_id: UUID) -> list[RoleInfo]:
        stmt = (
            select(FilmRole)
            .where(FilmRole.film_id == film_id)
            .order_by(FilmRole.created_at, FilmRole.role_name)
        )
        return [RoleInfo.from_model(r) for r in self.session.scalars(stmt)]

    def get_releases(self, film_id: UUID) -> list[ReleaseInfo]:
        stmt = (
            select(FilmRelease)
            .where(FilmRelease.film_id == film_id)
            .order_by(FilmRelease.release_year, FilmRelease.release_week, FilmRelease.territory_code)
        )
        return [ReleaseInfo.from_model(r) for r in self.session.scalars(stmt)]


class TalentSelector(BaseSelector[Talent]):
    """The talent catalog."""

    model = Talent

    def get_talent(self, talent_id: UUID) -> TalentInfo:
        return TalentInfo.from_model(self._get(talent_id))

    def available_talent(
        self,
        talent_type: str,
        clock_index: int,
    ) -> list[TalentInfo]:
        """Talent of ``talent_type`` free at ``clock_index``, most famous first."""
        try:
            wanted = TalentType(getattr(talent_type, "value", talent_type)).value
        except ValueError:
            raise ValidationError(f"Unknown talent type: {talent_type!r}") from None
        stmt = (
            select(Talent)
            .where(Talent.talent_type == wanted)
            .order_by(Talent.fame.desc(), Talent.name)
        )
        return [
            TalentInfo.from_model(t)
            for t in self.session.scalars(stmt)
            if not t.is_busy_at(clock_index)
        ]
