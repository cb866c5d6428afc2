"""Selectors for the studio kernel (read side)."""

from studio_kernel.selectors.film_selector import (
    FilmSelector,
    StudioSelector,
    TalentSelector,
)

__all__ = [
    "FilmSelector",
    "StudioSelector",
    "TalentSelector",
]
