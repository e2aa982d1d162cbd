import logging
from datetime import datetime
from typing import Callable, List

from pydantic import BaseModel

from pos.core.errors import PaymentValidationError, PersistenceError
from pos.models.cash import CashDirection, CashTransaction

logger = logging.getLogger(__name__)


class CashSummary(BaseModel):
    date: str
    total_in: float = 0.0
    total_out: float = 0.0
    net: float = 0.0
    count: int = 0


class CashLedger:
    """Append-only log of manual cash drawer movements."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    async def record(self, direction: CashDirection, amount: float, reason: str) -> CashTransaction:
        if amount <= 0:
            raise PaymentValidationError("Cash amount must be greater than zero")
        if not reason or not reason.strip():
            raise PaymentValidationError("A reason is required for cash movements")

        now = self.clock()
        transaction = CashTransaction(
            type=direction,
            amount=amount,
            reason=reason.strip(),
            timestamp=now,
            date=now.date().isoformat(),
        )
        try:
            await transaction.insert()
        except Exception as exc:
            raise PersistenceError(f"Failed to record cash {direction.value}") from exc

        logger.info("Cash %s of %.2f recorded: %s", direction.value, amount, transaction.reason)
        return transaction

    async def for_day(self, day: str) -> List[CashTransaction]:
        return await CashTransaction.find(
            CashTransaction.date == day
        ).sort(-CashTransaction.timestamp).to_list()

    async def summary(self, day: str) -> CashSummary:
        summary = CashSummary(date=day)
        for transaction in await self.for_day(day):
            summary.count += 1
            if transaction.type == CashDirection.IN:
                summary.total_in += transaction.amount
            else:
                summary.total_out += transaction.amount
        summary.net = summary.total_in - summary.total_out
        return summary
