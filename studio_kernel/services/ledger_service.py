"""
BudgetLedger -- atomic funds check and debit against a studio budget.

Responsibility:
    The single write path for a studio's cash.  Every spend (casting
    salary, crew salary, department budgets, production cost, marketing,
    distribution fees) and every box-office credit goes through here.

Architecture position:
    Kernel > Services -- imperative shell.
    Leaf dependency of CastingService, ReleaseScheduler and
    BoxOfficeService.

Invariants enforced:
    - Check-and-debit is one statement:
          UPDATE studios SET budget = budget - :amount
          WHERE id = :studio_id AND budget >= :amount
      Two concurrent spends against the same studio cannot both pass a
      stale funds check.  A zero row count means the funds check failed
      and nothing was written.
    - Every committed change writes a LedgerEntry in the same unit of work.
    - Amounts are positive integers; the sign is implied by debit/credit.

Failure modes:
    - InsufficientFundsError when budget < amount (nothing written).
    - EntityNotFoundError when the studio does not exist.
    - InvalidAmountError on a non-positive or non-integer amount.
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from studio_kernel.domain.clock import GameClock
from studio_kernel.domain.values import LedgerReason
from studio_kernel.exceptions import (
    EntityNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
)
from studio_kernel.logging_config import get_logger
from studio_kernel.models.ledger_entry import LedgerEntry
from studio_kernel.models.studio import Studio
from studio_kernel.services.base import BaseService

logger = get_logger("services.ledger")


class BudgetLedger(BaseService):
    """
    Studio cash ledger.

    Contract:
        ``debit()`` either lowers the budget by exactly ``amount`` and
        records it, or raises with no change.  ``ensure_funds()`` is a
        read-only pre-check for multi-part spends; the debit itself still
        re-checks atomically.

    Guarantees:
        - budget never goes below zero through this service.
        - ORM-loaded Studio instances are refreshed after each write, so
          callers never read a stale balance from the identity map.

    Non-goals:
        - Does NOT lock the studio row; the conditional UPDATE is the
          synchronization point.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def balance(self, studio_id: UUID) -> int:
        budget = self.session.execute(
            select(Studio.budget).where(Studio.id == studio_id)
        ).scalar_one_or_none()
        if budget is None:
            raise EntityNotFoundError("Studio", studio_id)
        return budget

    def ensure_funds(self, studio_id: UUID, amount: int, reason: str = "") -> int:
        """
        Raise InsufficientFundsError unless the studio can afford ``amount``.

        Returns:
            The current balance.
        """
        _check_amount(amount, allow_zero=True)
        available = self.balance(studio_id)
        if available < amount:
            logger.info(
                "funds_check_failed",
                extra={
                    "studio_id": str(studio_id),
                    "required": amount,
                    "available": available,
                    "reason": reason,
                },
            )
            raise InsufficientFundsError(studio_id, amount, available, reason)
        return available

    def debit(
        self,
        studio_id: UUID,
        amount: int,
        reason: LedgerReason,
        *,
        film_id: UUID | None = None,
        territory_code: str | None = None,
        clock: GameClock | None = None,
        memo: str | None = None,
    ) -> LedgerEntry:
        """
        Atomically check funds and subtract ``amount``.

        Raises:
            InsufficientFundsError: budget < amount.  Nothing is written.
        """
        _check_amount(amount)

        result = self.session.execute(
            update(Studio)
            .where(Studio.id == studio_id, Studio.budget >= amount)
            .values(budget=Studio.budget - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            available = self.balance(studio_id)
            logger.info(
                "ledger_debit_rejected",
                extra={
                    "studio_id": str(studio_id),
                    "required": amount,
                    "available": available,
                    "reason": _reason_value(reason),
                },
            )
            raise InsufficientFundsError(studio_id, amount, available, _reason_value(reason))

        return self._record(
            studio_id, -amount, reason, film_id, territory_code, clock, memo
        )

    def credit(
        self,
        studio_id: UUID,
        amount: int,
        reason: LedgerReason,
        *,
        film_id: UUID | None = None,
        territory_code: str | None = None,
        clock: GameClock | None = None,
        memo: str | None = None,
        earnings: bool = False,
    ) -> LedgerEntry:
        """Add ``amount``.  With ``earnings`` it also counts toward total_earnings."""
        _check_amount(amount)

        values = {"budget": Studio.budget + amount}
        if earnings:
            values["total_earnings"] = Studio.total_earnings + amount
        result = self.session.execute(
            update(Studio)
            .where(Studio.id == studio_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise EntityNotFoundError("Studio", studio_id)

        return self._record(
            studio_id, amount, reason, film_id, territory_code, clock, memo
        )

    def _record(
        self,
        studio_id: UUID,
        signed_amount: int,
        reason: LedgerReason,
        film_id: UUID | None,
        territory_code: str | None,
        clock: GameClock | None,
        memo: str | None,
    ) -> LedgerEntry:
        balance_after = self.balance(studio_id)
        self._refresh_loaded_studio(studio_id)

        entry = LedgerEntry(
            studio_id=studio_id,
            amount=signed_amount,
            reason=_reason_value(reason),
            film_id=film_id,
            territory_code=territory_code,
            week=clock.week if clock else None,
            year=clock.year if clock else None,
            balance_after=balance_after,
            memo=memo,
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "ledger_debit" if signed_amount < 0 else "ledger_credit",
            extra={
                "studio_id": str(studio_id),
                "amount": signed_amount,
                "reason": entry.reason,
                "film_id": str(film_id) if film_id else None,
                "territory_code": territory_code,
                "balance_after": balance_after,
            },
        )
        return entry

    def _refresh_loaded_studio(self, studio_id: UUID) -> None:
        key = self.session.identity_key(Studio, studio_id)
        studio = self.session.identity_map.get(key)
        if studio is not None:
            self.session.expire(studio, ["budget", "total_earnings"])


def _reason_value(reason: LedgerReason | str) -> str:
    return getattr(reason, "value", reason)


def _check_amount(amount: int, allow_zero: bool = False) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError("amount", amount)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmountError("amount", amount)
