"""
Module: studio_kernel.selectors.base
Responsibility: Base class for the read side.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/dtos.py; never from services/.

Invariants enforced:
    - Selectors only read.  They never add, flush or commit.
    - What leaves a selector is a frozen DTO, not an ORM instance.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from studio_kernel.db.base import Base
from studio_kernel.exceptions import EntityNotFoundError

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    model: type[ModelType]

    def __init__(self, session: Session):
        self.session = session

    def _get(self, entity_id: UUID) -> ModelType:
        row = self.session.get(self.model, entity_id)
        if row is None:
            raise EntityNotFoundError(self.model.__name__, entity_id)
        return row
