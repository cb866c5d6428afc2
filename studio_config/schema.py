"""
StudioConfig schema.

Frozen dataclasses the YAML configuration set is parsed into.  The runtime
artifact is ``StudioConfig``; engine coefficient blocks reuse the engines'
own parameter types so a parsed config can be handed straight to an engine.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from studio_engines.box_office import BoxOfficeCurve
from studio_engines.negotiation import NegotiationWeights
from studio_engines.quality import QualityWeights
from studio_kernel.domain.phases import PhaseDurations

OTHER_TERRITORY = "OTHER"


@dataclass(frozen=True)
class TerritoryDef:
    """One release market."""

    code: str
    name: str
    market_share: float
    distribution_fee: int
    max_theaters: int


@dataclass(frozen=True)
class HolidayDef:
    """A calendar week with an opening-weekend modifier."""

    name: str
    week: int
    modifier: float
    genre_modifiers: tuple[tuple[str, float], ...] = ()

    def modifier_for(self, genre: str) -> float:
        genre_key = getattr(genre, "value", genre)
        for name, value in self.genre_modifiers:
            if name == genre_key:
                return self.modifier * value
        return self.modifier


@dataclass(frozen=True)
class StudioDefaults:
    starting_budget: int = 150_000_000
    start_week: int = 1
    start_year: int = 2025
    prestige_level: int = 1
    home_territory: str = "NA"


@dataclass(frozen=True)
class StudioConfig:
    """
    Compiled runtime configuration.

    Contract:
        Immutable.  ``territories`` is in the fixed commit order used by
        the release scheduler.
    """

    config_id: str
    version: int
    territories: tuple[TerritoryDef, ...]
    negotiation: NegotiationWeights = field(default_factory=NegotiationWeights)
    box_office: BoxOfficeCurve = field(default_factory=BoxOfficeCurve)
    quality: QualityWeights = field(default_factory=QualityWeights)
    phase_defaults: PhaseDurations = field(
        default_factory=lambda: PhaseDurations(2, 2, 4, 2)
    )
    studio_defaults: StudioDefaults = field(default_factory=StudioDefaults)
    holidays: tuple[HolidayDef, ...] = ()
    checksum: str = ""

    @property
    def territory_codes(self) -> tuple[str, ...]:
        return tuple(t.code for t in self.territories)

    @property
    def territories_by_code(self) -> Mapping[str, TerritoryDef]:
        return {t.code: t for t in self.territories}

    def territory(self, code: str) -> TerritoryDef | None:
        return self.territories_by_code.get(code)

    def distribution_fee(self, code: str) -> int:
        """Fee for ``code``; unlisted codes pay the OTHER bucket's fee."""
        by_code = self.territories_by_code
        territory = by_code.get(code) or by_code[OTHER_TERRITORY]
        return territory.distribution_fee

    def holiday_for_week(self, week: int) -> HolidayDef | None:
        for holiday in self.holidays:
            if holiday.week == week:
                return holiday
        return None

    def holiday_modifier(self, week: int, genre: str) -> float:
        holiday = self.holiday_for_week(week)
        return holiday.modifier_for(genre) if holiday else 1.0
