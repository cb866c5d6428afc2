"""
FilmLockRegistry -- process-wide single-writer lock per film.

Responsibility:
    Serializes casting offers and release-scheduling requests for the same
    film.  The orchestrator holds the film's lock for the whole transaction
    (load, validate, write, commit), so the second of two concurrent
    requests observes the first one's committed state.

Architecture position:
    Kernel > Services -- concurrency infrastructure.

Invariants enforced:
    - At most one holder per film id at a time.
    - Locks for different films never contend.

The database still carries the authoritative guarantees (conditional role
UPDATE, unique (film_id, territory_code), conditional ledger debit); this
registry makes the common case a clean, ordered failure instead of a
constraint violation.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID

from studio_kernel.logging_config import get_logger

logger = get_logger("services.film_locks")


class FilmLockRegistry:
    """
    Map of film id -> threading.Lock, created on first use.

    Entries are never removed, so the map holds one lock per film the
    process has touched.  A studio makes a few films a game year, which
    keeps that small.  Dropping an entry while another thread still holds
    the lock would let a third thread build a second lock for the same
    film.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, film_id: UUID | str) -> threading.Lock:
        key = str(film_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, film_id: UUID | str) -> Iterator[None]:
        lock = self.lock_for(film_id)
        if not lock.acquire(blocking=False):
            logger.debug("film_lock_waiting", extra={"film_id": str(film_id)})
            lock.acquire()
        try:
            yield
        finally:
            lock.release()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


_default_registry = FilmLockRegistry()


def default_film_locks() -> FilmLockRegistry:
    """The registry shared by every orchestrator in this process."""
    return _default_registry
