"""
Values -- closed vocabularies shared by models, engines and services.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Enums are ``str`` subclasses so they
    persist as plain strings and compare equal to their stored values.
"""

from enum import Enum


class Genre(str, Enum):
    ACTION = "action"
    COMEDY = "comedy"
    DRAMA = "drama"
    HORROR = "horror"
    SCIFI = "scifi"
    ROMANCE = "romance"
    THRILLER = "thriller"
    ANIMATION = "animation"
    FANTASY = "fantasy"
    MUSICALS = "musicals"


class TalentType(str, Enum):
    ACTOR = "actor"
    DIRECTOR = "director"
    WRITER = "writer"
    COMPOSER = "composer"


class RoleImportance(str, Enum):
    """Role weight in a negotiation.  Declared from most to least important."""

    LEAD = "lead"
    SUPPORTING = "supporting"
    MINOR = "minor"
    CAMEO = "cameo"


class CharacterType(str, Enum):
    HERO = "hero"
    VILLAIN = "villain"
    LOVE_INTEREST = "love_interest"
    MENTOR = "mentor"
    SIDEKICK = "sidekick"
    COMIC_RELIEF = "comic_relief"
    ANTAGONIST = "antagonist"
    OTHER = "other"


class FilmStatus(str, Enum):
    """ACTIVE until every territory run has closed, then ARCHIVED."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class ReleaseScope(str, Enum):
    """WORLDWIDE schedules every configured territory; SINGLE schedules one."""

    WORLDWIDE = "worldwide"
    SINGLE = "single"


class LedgerReason(str, Enum):
    """Why money moved.  Recorded on every ledger entry."""

    CASTING_SALARY = "casting_salary"
    CREW_SALARY = "crew_salary"
    DEPARTMENT_BUDGET = "department_budget"
    POST_PRODUCTION = "post_production"
    PRODUCTION_COST = "production_cost"
    MARKETING = "marketing"
    DISTRIBUTION_FEE = "distribution_fee"
    BOX_OFFICE_SHARE = "box_office_share"


# Department budget fields on Film, in display order.
DEPARTMENT_FIELDS: tuple[str, ...] = (
    "production_budget",
    "sets_budget",
    "costumes_budget",
    "stunts_budget",
    "makeup_budget",
    "practical_effects_budget",
    "sound_budget",
    "talent_budget",
)

# Costs attached during post-production, counted in the total budget.
ATTACHED_COST_FIELDS: tuple[str, ...] = ("composer_cost", "vfx_cost")
