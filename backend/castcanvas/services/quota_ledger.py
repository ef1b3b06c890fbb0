"""Quota Ledger — per-user daily + purchased pixel counters (memory and SQL backends).

Invariants:
    - available(user) == daily_remaining + purchased_balance, after lazy rollover
    - consume() is a single check-then-decrement per user: N racers against one
      remaining unit yield exactly one success
    - Daily allotment is spent before purchased balance
    - credit() is idempotent by proof id: a replay returns the first result and
      mutates nothing (already_processed=True)
    - Records are created lazily with a full daily allotment and never deleted
    - No timer: rollover is evaluated on every access

Design Decisions:
    - In-memory backend: per-user KeyedLocks around pure quota_rules transitions
    - SQL backend: conditional UPDATE ... WHERE counter > 0 statements (rowcount
      decides success), so atomicity holds across worker processes too; the
      in-process locks only spare the database pointless contention
    - Credit writes the receipt and the balance in ONE transaction; the proof_id
      primary key settles cross-process races (IntegrityError -> replay path)
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from castcanvas.core import quota_rules
from castcanvas.core.domain_types import (
    CreditResult, DayIndex, ProofId, PurchaseReceipt, QuotaRecord, QuotaSource,
    UserId, day_index, utc_now,
)
from castcanvas.infrastructure.database import DatabaseSessionManager
from castcanvas.models.purchase_receipt import PurchaseReceiptRow
from castcanvas.models.quota_record import QuotaRecordRow
from castcanvas.services.keyed_locks import KeyedLocks
from castcanvas.services.receipt_store import InMemoryReceiptStore, to_receipt

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _log_replay(result: CreditResult) -> CreditResult:
    logger.info(
        "Duplicate credit ignored",
        extra={"proof_id": result.proof_id, "user": result.user},
    )
    return result


class InMemoryQuotaLedger:
    """Process-local ledger. Lifetime = process."""

    def __init__(
        self,
        daily_limit: int = 5,
        clock: Clock = utc_now,
        receipts: InMemoryReceiptStore | None = None,
    ):
        self.daily_limit = daily_limit
        self._clock = clock
        self._records: dict[UserId, QuotaRecord] = {}
        self._receipts = receipts or InMemoryReceiptStore()
        self._locks = KeyedLocks()

    def _today(self) -> DayIndex:
        return day_index(self._clock())

    def _load(self, user: UserId) -> QuotaRecord:
        """Current record with rollover applied. Caller holds the user lock."""
        today = self._today()
        record = self._records.get(user) or quota_rules.new_record(
            user, today, self.daily_limit,
        )
        record = quota_rules.apply_rollover(record, today, self.daily_limit)
        self._records[user] = record
        return record

    async def snapshot(self, user: UserId) -> QuotaRecord:
        async with self._locks.acquire(("user", user)):
            return self._load(user)

    async def available(self, user: UserId) -> int:
        return (await self.snapshot(user)).available

    async def consume(self, user: UserId) -> QuotaSource | None:
        async with self._locks.acquire(("user", user)):
            record, source = quota_rules.take_unit(self._load(user))
            if source is not None:
                self._records[user] = record
            return source

    async def refund(self, user: UserId, source: QuotaSource) -> None:
        async with self._locks.acquire(("user", user)):
            self._records[user] = quota_rules.restore_unit(
                self._load(user), source, self.daily_limit,
            )

    async def credit(
        self, proof_id: ProofId, amount: int, user: UserId,
    ) -> CreditResult:
        async with self._locks.acquire_many(("proof", proof_id), ("user", user)):
            existing = await self._receipts.get(proof_id)
            if existing is not None:
                return _log_replay(CreditResult.from_receipt(existing, True))
            record = quota_rules.add_purchased(self._load(user), amount)
            self._records[user] = record
            receipt = await self._receipts.add(PurchaseReceipt(
                proof_id=proof_id,
                user=user,
                credited_pixels=amount,
                total_purchased=record.purchased_balance,
                processed_at=self._clock(),
            ))
            logger.info(
                f"Credited {amount} pixels",
                extra={"proof_id": proof_id, "user": user},
            )
            return CreditResult.from_receipt(receipt, False)


quota_table = QuotaRecordRow.__table__


class SqlQuotaLedger:
    """Ledger persisted in `quota_records` / `purchase_receipts`."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        daily_limit: int = 5,
        clock: Clock = utc_now,
    ):
        self.daily_limit = daily_limit
        self._db = db
        self._clock = clock
        self._locks = KeyedLocks()

    def _today(self) -> DayIndex:
        return day_index(self._clock())

    async def _prepare(self, session: AsyncSession, user: UserId) -> None:
        """Create the row if missing, then apply rollover. Commits."""
        today = self._today()
        exists = await session.execute(
            select(quota_table.c.user_id).where(quota_table.c.user_id == user),
        )
        if exists.scalar_one_or_none() is None:
            session.add(QuotaRecordRow(
                user_id=user,
                daily_remaining=self.daily_limit,
                last_reset_day=today,
                purchased_balance=0,
            ))
            try:
                await session.commit()
            except IntegrityError:
                # another worker created it first
                await session.rollback()
        await session.execute(
            update(quota_table)
            .where(
                quota_table.c.user_id == user,
                quota_table.c.last_reset_day < today,
            )
            .values(daily_remaining=self.daily_limit, last_reset_day=today),
        )
        await session.commit()

    async def _read(self, session: AsyncSession, user: UserId) -> QuotaRecord:
        result = await session.execute(
            select(quota_table).where(quota_table.c.user_id == user),
        )
        row = result.one()
        return QuotaRecord(
            user=UserId(row.user_id),
            daily_remaining=row.daily_remaining,
            last_reset_day=DayIndex(row.last_reset_day),
            purchased_balance=row.purchased_balance,
        )

    async def snapshot(self, user: UserId) -> QuotaRecord:
        async with self._locks.acquire(("user", user)):
            async with self._db.session() as session:
                await self._prepare(session, user)
                return await self._read(session, user)

    async def available(self, user: UserId) -> int:
        return (await self.snapshot(user)).available

    async def consume(self, user: UserId) -> QuotaSource | None:
        async with self._locks.acquire(("user", user)):
            async with self._db.session() as session:
                await self._prepare(session, user)
                for source, column in (
                    (QuotaSource.DAILY, quota_table.c.daily_remaining),
                    (QuotaSource.PURCHASED, quota_table.c.purchased_balance),
                ):
                    result = await session.execute(
                        update(quota_table)
                        .where(quota_table.c.user_id == user, column > 0)
                        .values({column: column - 1}),
                    )
                    if result.rowcount == 1:
                        await session.commit()
                        return source
                await session.rollback()
                return None

    async def refund(self, user: UserId, source: QuotaSource) -> None:
        async with self._locks.acquire(("user", user)):
            async with self._db.session() as session:
                await self._prepare(session, user)
                if source is QuotaSource.PURCHASED:
                    stmt = update(quota_table).where(
                        quota_table.c.user_id == user,
                    ).values(purchased_balance=quota_table.c.purchased_balance + 1)
                else:
                    stmt = update(quota_table).where(
                        quota_table.c.user_id == user,
                        quota_table.c.daily_remaining < self.daily_limit,
                    ).values(daily_remaining=quota_table.c.daily_remaining + 1)
                await session.execute(stmt)
                await session.commit()

    async def credit(
        self, proof_id: ProofId, amount: int, user: UserId,
    ) -> CreditResult:
        if amount < 0:
            raise ValueError("credit amount must be non-negative")
        async with self._locks.acquire_many(("proof", proof_id), ("user", user)):
            async with self._db.session() as session:
                existing = await session.get(PurchaseReceiptRow, proof_id)
                if existing is not None:
                    return _log_replay(
                        CreditResult.from_receipt(to_receipt(existing), True),
                    )
                await self._prepare(session, user)
                await session.execute(
                    update(quota_table)
                    .where(quota_table.c.user_id == user)
                    .values(
                        purchased_balance=quota_table.c.purchased_balance + amount,
                    ),
                )
                balance = (await self._read(session, user)).purchased_balance
                receipt = PurchaseReceipt(
                    proof_id=proof_id,
                    user=user,
                    credited_pixels=amount,
                    total_purchased=balance,
                    processed_at=self._clock(),
                )
                session.add(PurchaseReceiptRow(
                    proof_id=receipt.proof_id,
                    user_id=receipt.user,
                    credited_pixels=receipt.credited_pixels,
                    total_purchased=receipt.total_purchased,
                    processed_at=receipt.processed_at,
                ))
                try:
                    await session.commit()
                except IntegrityError:
                    # another worker recorded this proof first; our balance
                    # update is rolled back with the failed insert
                    await session.rollback()
                    row = await session.get(
                        PurchaseReceiptRow, proof_id, populate_existing=True,
                    )
                    return _log_replay(
                        CreditResult.from_receipt(to_receipt(row), True),
                    )
                logger.info(
                    f"Credited {amount} pixels",
                    extra={"proof_id": proof_id, "user": user},
                )
                return CreditResult.from_receipt(receipt, False)
