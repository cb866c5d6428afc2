"""Kernel services (write side).  Each flushes; the caller commits."""

from studio_kernel.services.base import BaseService
from studio_kernel.services.film_locks import FilmLockRegistry, default_film_locks
from studio_kernel.services.ledger_service import BudgetLedger
from studio_kernel.services.phase_service import PhaseService, studio_clock
from studio_kernel.services.production_service import ProductionService

__all__ = [
    "BaseService",
    "BudgetLedger",
    "FilmLockRegistry",
    "PhaseService",
    "ProductionService",
    "default_film_locks",
    "studio_clock",
]
