"""
Typed Exception Hierarchy for the Studio Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the kernel (the orchestrator, a web layer, a test) must be able to
tell "could not afford it" apart from "the talent said no" apart from "someone
else got there first" without parsing message strings.  Every error here:

  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (not just a message string)

Example - RIGHT way:
    try:
        scheduler.schedule(film_id, request, clock)
    except TerritoryAlreadyScheduledError as e:
        api_response(code=e.code, territory=e.territory_code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StudioKernelError (base)
    |
    +-- ValidationError
    |   +-- EntityNotFoundError
    |   +-- InvalidPhaseError
    |   +-- InvalidDurationError
    |   +-- AttributeBoundsError
    |   +-- TalentUnavailableError
    |   +-- TalentAlreadyCastError
    |   +-- TalentTypeMismatchError
    |   +-- HiringIncompleteError
    |   +-- InvalidAmountError
    |   +-- ReleaseDateTooEarlyError
    |   +-- TerritoryAlreadyScheduledError
    |   +-- UnknownTerritoryError
    |
    +-- InsufficientFundsError
    |
    +-- ConcurrencyConflictError
        +-- RoleAlreadyCastError
        +-- ReleaseSchedulingConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Validation      | ENTITY_NOT_FOUND              | Studio/film/role/talent id unknown
                | INVALID_PHASE                 | Operation not allowed in film's phase
                | INVALID_DURATION              | Phase duration < 1 week
                | ATTRIBUTE_OUT_OF_BOUNDS       | Talent score outside 0-100
                | TALENT_UNAVAILABLE            | Talent busy until a future week
                | TALENT_ALREADY_CAST           | Talent already holds a role in film
                | TALENT_TYPE_MISMATCH          | e.g. hiring an actor as director
                | HIRING_INCOMPLETE             | Greenlight requirements not met
                | INVALID_AMOUNT                | Negative/zero money amount
                | RELEASE_DATE_TOO_EARLY        | Target week before earliest eligible
                | TERRITORY_ALREADY_SCHEDULED   | (film, territory) release exists
                | UNKNOWN_TERRITORY             | Territory code not configured
----------------|-------------------------------|---------------------------------------
Funds           | INSUFFICIENT_FUNDS            | Ledger funds check failed
----------------|-------------------------------|---------------------------------------
Concurrency     | ROLE_ALREADY_CAST             | Role was cast by a concurrent offer
                | RELEASE_SCHEDULING_CONFLICT   | Concurrent schedule committed first

A declined casting offer is NOT an exception: it is a successful outcome
with ``accepted=False``.

===============================================================================
HANDLING PATTERNS
===============================================================================

All of these are locally recoverable.  A raised error means the kernel has
made no committed change; the caller's transaction is rolled back by the
orchestrator and the caller may retry with different parameters.
"""


class StudioKernelError(Exception):
    """
    Base exception for all studio kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "STUDIO_KERNEL_ERROR"


# Validation exceptions


class ValidationError(StudioKernelError):
    """Malformed or out-of-range input, rejected before any side effect."""

    code: str = "VALIDATION_ERROR"


class EntityNotFoundError(ValidationError):
    """Referenced entity does not exist."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type} not found: {entity_id}")


class InvalidPhaseError(ValidationError):
    """Film is not in a phase that allows the requested operation."""

    code: str = "INVALID_PHASE"

    def __init__(self, film_id: str, phase: str, allowed: tuple[str, ...]):
        self.film_id = str(film_id)
        self.phase = phase
        self.allowed = allowed
        super().__init__(
            f"Film {film_id} is in phase '{phase}'; "
            f"operation requires one of: {', '.join(allowed)}"
        )


class InvalidDurationError(ValidationError):
    """A configured phase duration is not a positive number of weeks."""

    code: str = "INVALID_DURATION"

    def __init__(self, field_name: str, value: int):
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name} must be at least 1 week, got {value}")


class AttributeBoundsError(ValidationError):
    """A bounded 0-100 score is outside its range."""

    code: str = "ATTRIBUTE_OUT_OF_BOUNDS"

    def __init__(self, field_name: str, value: float, low: float = 0, high: float = 100):
        self.field_name = field_name
        self.value = value
        self.low = low
        self.high = high
        super().__init__(f"{field_name}={value} outside [{low}, {high}]")


class TalentUnavailableError(ValidationError):
    """Talent is busy on another production until a future week."""

    code: str = "TALENT_UNAVAILABLE"

    def __init__(self, talent_id: str, busy_until_week: int, busy_until_year: int):
        self.talent_id = str(talent_id)
        self.busy_until_week = busy_until_week
        self.busy_until_year = busy_until_year
        super().__init__(
            f"Talent {talent_id} is busy until week {busy_until_week}/{busy_until_year}"
        )


class TalentAlreadyCastError(ValidationError):
    """Talent already holds a role in this film."""

    code: str = "TALENT_ALREADY_CAST"

    def __init__(self, talent_id: str, film_id: str, role_id: str):
        self.talent_id = str(talent_id)
        self.film_id = str(film_id)
        self.role_id = str(role_id)
        super().__init__(
            f"Talent {talent_id} is already cast in role {role_id} of film {film_id}"
        )


class TalentTypeMismatchError(ValidationError):
    """Talent type does not match the requested position."""

    code: str = "TALENT_TYPE_MISMATCH"

    def __init__(self, talent_id: str, expected: str, actual: str):
        self.talent_id = str(talent_id)
        self.expected = expected
        self.actual = actual
        super().__init__(f"Talent {talent_id} is a {actual}, expected {expected}")


class HiringIncompleteError(ValidationError):
    """Greenlight requirements are not yet satisfied."""

    code: str = "HIRING_INCOMPLETE"

    def __init__(self, film_id: str, missing: list[str]):
        self.film_id = str(film_id)
        self.missing = missing
        super().__init__(
            f"Film {film_id} cannot be greenlit: {'; '.join(missing)}"
        )


class InvalidAmountError(ValidationError):
    """Money amount is not valid for the operation."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field_name: str, amount: int):
        self.field_name = field_name
        self.amount = amount
        super().__init__(f"Invalid amount for {field_name}: {amount}")


class ReleaseDateTooEarlyError(ValidationError):
    """Requested release week is before the film's earliest eligible week."""

    code: str = "RELEASE_DATE_TOO_EARLY"

    def __init__(
        self,
        film_id: str,
        requested_week: int,
        requested_year: int,
        earliest_week: int,
        earliest_year: int,
    ):
        self.film_id = str(film_id)
        self.requested_week = requested_week
        self.requested_year = requested_year
        self.earliest_week = earliest_week
        self.earliest_year = earliest_year
        super().__init__(
            f"Release week {requested_week}/{requested_year} for film {film_id} "
            f"is before earliest eligible week {earliest_week}/{earliest_year}"
        )


class TerritoryAlreadyScheduledError(ValidationError):
    """A release already exists for this (film, territory) pair."""

    code: str = "TERRITORY_ALREADY_SCHEDULED"

    def __init__(self, film_id: str, territory_code: str):
        self.film_id = str(film_id)
        self.territory_code = territory_code
        super().__init__(f"Release already scheduled for {territory_code} (film {film_id})")


class UnknownTerritoryError(ValidationError):
    """Territory code is not part of the configured territory table."""

    code: str = "UNKNOWN_TERRITORY"

    def __init__(self, territory_code: str):
        self.territory_code = territory_code
        super().__init__(f"Unknown territory: {territory_code}")


# Funds exceptions


class InsufficientFundsError(StudioKernelError):
    """
    Ledger funds check failed.

    Distinct from a declined negotiation: the offer never reached the
    acceptance roll.
    """

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, studio_id: str, required: int, available: int, reason: str = ""):
        self.studio_id = str(studio_id)
        self.required = required
        self.available = available
        self.reason = reason
        super().__init__(
            f"Insufficient funds for {reason or 'spend'}: "
            f"required {required}, available {available}"
        )


# Concurrency exceptions


class ConcurrencyConflictError(StudioKernelError):
    """A concurrent request committed first; the named resource is taken."""

    code: str = "CONCURRENCY_CONFLICT"


class RoleAlreadyCastError(ConcurrencyConflictError):
    """Role was already cast (possibly by a concurrent offer)."""

    code: str = "ROLE_ALREADY_CAST"

    def __init__(self, role_id: str, actor_id: str | None = None):
        self.role_id = str(role_id)
        self.actor_id = str(actor_id) if actor_id else None
        super().__init__(
            f"Role {role_id} is already cast"
            + (f" (actor {actor_id})" if actor_id else "")
        )


class ReleaseSchedulingConflictError(ConcurrencyConflictError):
    """A concurrent scheduling request committed a release for this territory first."""

    code: str = "RELEASE_SCHEDULING_CONFLICT"

    def __init__(self, film_id: str, territory_code: str | None = None):
        self.film_id = str(film_id)
        self.territory_code = territory_code
        super().__init__(
            f"Concurrent release scheduling for film {film_id}"
            + (f" already committed territory {territory_code}" if territory_code else "")
        )
