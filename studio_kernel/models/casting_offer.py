"""
Module: studio_kernel.models.casting_offer
Responsibility: Append-only record of every casting negotiation that reached
    the acceptance roll, accepted or declined.
Architecture position: Kernel > Models.  May import from db/base.py only.

Offers rejected before the roll (busy talent, insufficient funds) are not
recorded; the caller receives a typed error instead.
"""

from uuid import UUID

from sqlalchemy import JSON, BigInteger, Boolean, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from studio_kernel.db.base import TrackedBase, UUIDString


class CastingOffer(TrackedBase):
    """A single negotiation attempt."""

    __tablename__ = "casting_offers"

    __table_args__ = (
        Index("idx_casting_offer_film", "film_id"),
        Index("idx_casting_offer_talent", "talent_id"),
    )

    studio_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    film_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    # NULL for crew attachments, which have no role
    role_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    talent_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    offered_salary: Mapped[int] = mapped_column(BigInteger, nullable=False)
    probability: Mapped[int] = mapped_column(Integer, nullable=False)
    roll: Mapped[float] = mapped_column(Float, nullable=False)
    factors: Mapped[dict[str, int]] = mapped_column(JSON, default=dict, nullable=False)
    accepted: Mapped[bool] = mapped_column(Boolean, nullable=False)

    week: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    outcome: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<CastingOffer talent={self.talent_id} accepted={self.accepted}>"
