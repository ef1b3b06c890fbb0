"""Receipt Stores — insert-only PurchaseReceipt storage keyed by proof id.

Invariants:
    - add() never overwrites: if the proof id already exists, the stored receipt wins
      and is returned (first writer wins, across processes for the SQL store)
    - Receipts are immutable once stored

Design Decisions:
    - Used directly by the in-memory and contract ledgers; the SQL ledger writes
      receipts inside its own balance transaction instead (one commit, not two)
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from castcanvas.core.domain_types import ProofId, PurchaseReceipt, UserId, as_utc
from castcanvas.infrastructure.database import DatabaseSessionManager
from castcanvas.models.purchase_receipt import PurchaseReceiptRow

logger = logging.getLogger(__name__)


class InMemoryReceiptStore:

    def __init__(self):
        self._receipts: dict[ProofId, PurchaseReceipt] = {}

    async def get(self, proof_id: ProofId) -> PurchaseReceipt | None:
        return self._receipts.get(proof_id)

    async def add(self, receipt: PurchaseReceipt) -> PurchaseReceipt:
        return self._receipts.setdefault(receipt.proof_id, receipt)


class SqlReceiptStore:

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def get(self, proof_id: ProofId) -> PurchaseReceipt | None:
        async with self._db.session() as session:
            row = await session.get(PurchaseReceiptRow, proof_id)
            return to_receipt(row) if row else None

    async def add(self, receipt: PurchaseReceipt) -> PurchaseReceipt:
        async with self._db.session() as session:
            session.add(PurchaseReceiptRow(
                proof_id=receipt.proof_id,
                user_id=receipt.user,
                credited_pixels=receipt.credited_pixels,
                total_purchased=receipt.total_purchased,
                processed_at=receipt.processed_at,
            ))
            try:
                await session.commit()
                return receipt
            except IntegrityError:
                await session.rollback()
                logger.info(
                    "Receipt already recorded by another worker",
                    extra={"proof_id": receipt.proof_id},
                )
                result = await session.execute(
                    select(PurchaseReceiptRow).where(
                        PurchaseReceiptRow.proof_id == receipt.proof_id,
                    ),
                )
                return to_receipt(result.scalar_one())


def to_receipt(row: PurchaseReceiptRow) -> PurchaseReceipt:
    return PurchaseReceipt(
        proof_id=ProofId(row.proof_id),
        user=UserId(row.user_id),
        credited_pixels=row.credited_pixels,
        total_purchased=row.total_purchased,
        processed_at=as_utc(row.processed_at),
    )
