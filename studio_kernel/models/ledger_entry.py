"""
Module: studio_kernel.models.ledger_entry
Responsibility: Append-only audit trail of every committed change to a
    studio's budget.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Written in the same unit of work as the conditional budget UPDATE, so
      an entry exists iff the debit/credit committed.
    - amount is signed: negative for debits, positive for credits.
    - balance_after is the studio budget immediately after this entry.
"""

from uuid import UUID

from sqlalchemy import BigInteger, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from studio_kernel.db.base import TrackedBase, UUIDString


class LedgerEntry(TrackedBase):
    """One debit or credit against a studio budget."""

    __tablename__ = "ledger_entries"

    __table_args__ = (
        Index("idx_ledger_studio", "studio_id"),
        Index("idx_ledger_film", "film_id"),
    )

    studio_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    reason: Mapped[str] = mapped_column(String(30), nullable=False)

    film_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    territory_code: Mapped[str | None] = mapped_column(String(8), nullable=True)

    week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)

    memo: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.reason}: {self.amount}>"
