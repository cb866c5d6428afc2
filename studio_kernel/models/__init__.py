"""Domain models for the studio kernel."""

from studio_kernel.models.casting_offer import CastingOffer
from studio_kernel.models.film import Film, FilmRole
from studio_kernel.models.ledger_entry import LedgerEntry
from studio_kernel.models.release import FilmRelease
from studio_kernel.models.studio import Studio
from studio_kernel.models.talent import Talent

__all__ = [
    "Studio",
    "Talent",
    "Film",
    "FilmRole",
    "FilmRelease",
    "CastingOffer",
    "LedgerEntry",
]
