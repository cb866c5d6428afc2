"""
Configuration validator (``studio_config.validator``).

Cross-field checks that a single dataclass cannot make on its own.  Field
level checks (retention bounds, role ordering, durations) already ran when
the loader built the dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass

from studio_config.schema import OTHER_TERRITORY, StudioConfig
from studio_kernel.domain.clock import WEEKS_PER_YEAR


@dataclass(frozen=True)
class ConfigValidationResult:
    errors: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_configuration(config: StudioConfig) -> ConfigValidationResult:
    errors: list[str] = []

    if not config.territories:
        errors.append("at least one territory is required")

    seen: set[str] = set()
    for territory in config.territories:
        if territory.code in seen:
            errors.append(f"duplicate territory code: {territory.code}")
        seen.add(territory.code)
        if not 0 < territory.market_share <= 1:
            errors.append(
                f"territory {territory.code}: market_share must be in (0, 1], "
                f"got {territory.market_share}"
            )
        if territory.distribution_fee < 0:
            errors.append(f"territory {territory.code}: distribution_fee must be >= 0")
        if territory.max_theaters <= 0:
            errors.append(f"territory {territory.code}: max_theaters must be positive")

    other_count = sum(1 for t in config.territories if t.code == OTHER_TERRITORY)
    if other_count != 1:
        errors.append(
            f"exactly one '{OTHER_TERRITORY}' territory bucket is required, found {other_count}"
        )

    home = config.studio_defaults.home_territory
    if home not in seen:
        errors.append(f"studio_defaults.home_territory '{home}' is not a configured territory")

    if not 1 <= config.studio_defaults.start_week <= WEEKS_PER_YEAR:
        errors.append("studio_defaults.start_week must be in 1..52")
    if config.studio_defaults.starting_budget < 0:
        errors.append("studio_defaults.starting_budget must be >= 0")

    holiday_weeks: set[int] = set()
    for holiday in config.holidays:
        if not 1 <= holiday.week <= WEEKS_PER_YEAR:
            errors.append(f"holiday '{holiday.name}': week must be in 1..52")
        if holiday.week in holiday_weeks:
            errors.append(f"holiday '{holiday.name}': week {holiday.week} already has a holiday")
        holiday_weeks.add(holiday.week)
        if holiday.modifier <= 0:
            errors.append(f"holiday '{holiday.name}': modifier must be positive")
        for genre, value in holiday.genre_modifiers:
            if value <= 0:
                errors.append(f"holiday '{holiday.name}': {genre} modifier must be positive")

    return ConfigValidationResult(errors=tuple(errors))
