"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session contract for every service in the
    kernel layer.  Services receive a SQLAlchemy ``Session`` and persist via
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Transaction boundaries belong to the caller (StudioOrchestrator or a
      test).  A service never commits or rolls back, so a multi-step
      operation (check funds, cast role, debit ledger) is one unit of work.
"""

from abc import ABC
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from studio_kernel.db.base import Base
from studio_kernel.exceptions import EntityNotFoundError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a Session from the caller and flushes within the caller's
        transaction.

    Non-goals:
        - Does NOT manage commit/rollback.
        - Does NOT provide DTO read paths; those live in selectors/.
    """

    def __init__(self, session: Session):
        self.session = session

    def _require(
        self,
        model: type[ModelType],
        entity_id: UUID,
        *,
        for_update: bool = False,
    ) -> ModelType:
        """Load ``model`` by primary key or raise EntityNotFoundError."""
        kwargs = {"with_for_update": True} if for_update else {}
        entity = self.session.get(model, entity_id, **kwargs)
        if entity is None:
            raise EntityNotFoundError(model.__name__, entity_id)
        return entity
