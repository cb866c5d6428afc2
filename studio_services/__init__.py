"""
studio_services -- orchestration layer of the studio core.

``StudioOrchestrator`` is the entry point: weekly tick, casting offers,
release scheduling, film setup and read accessors.  The services beneath
it combine kernel persistence with the pure engines and configuration.
"""

from studio_services.box_office_service import BoxOfficeService, BoxOfficeTick
from studio_services.casting_service import CastingService, NegotiationOutcome
from studio_services.quality_service import QualityService
from studio_services.release_scheduler import (
    ReleaseQuote,
    ReleaseRequest,
    ReleaseScheduler,
    ScheduledReleases,
    split_marketing,
)
from studio_services.studio_orchestrator import (
    AcceptancePreview,
    ActionResult,
    OfferResult,
    ResultStatus,
    ScheduleResult,
    StudioOrchestrator,
    WeekAdvanceResult,
)

__all__ = [
    "AcceptancePreview",
    "ActionResult",
    "BoxOfficeService",
    "BoxOfficeTick",
    "CastingService",
    "NegotiationOutcome",
    "OfferResult",
    "QualityService",
    "ReleaseQuote",
    "ReleaseRequest",
    "ReleaseScheduler",
    "ResultStatus",
    "ScheduleResult",
    "ScheduledReleases",
    "StudioOrchestrator",
    "WeekAdvanceResult",
    "split_marketing",
]
