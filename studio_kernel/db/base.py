"""
Module: studio_kernel.db.base
Responsibility: Declarative base for the studio tables.  Every row gets a
    uuid4 primary key and whole-unit money columns map to BIGINT.
Architecture position: Kernel > DB.  Imported by every model; imports
    nothing from the rest of the kernel.

Invariants enforced:
    - Money is an int of whole currency units.  A blockbuster's lifetime
      gross passes 2**31, so ``int`` columns are BigInteger.
    - Ids are portable String(36) UUIDs on both SQLite and PostgreSQL.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """uuid.UUID in Python, its 36-character text form in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base adding server-side row timestamps.

    ``created_at`` doubles as the ledger's write order, so it is set once
    by the database and never touched by the application.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
