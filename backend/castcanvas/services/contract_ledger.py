"""Contract Ledger — QuotaLedger backed by the on-chain CastCanvas contract.

Invariants:
    - The contract is the single authoritative balance: available/snapshot read
      contract views, consume sends usePixel, refund sends addPixelsToUser
    - credit() never adds pixels on chain: purchasePixels() already credited the
      payer inside the payment transaction; the server only records an idempotent
      receipt so the proof cannot be reported twice
    - consume() succeeds only when the mined usePixel transaction emitted PixelUsed;
      the getAvailablePixels read beforehand merely avoids sending a doomed transaction
    - Every user must be an EVM address (InvalidInputError otherwise): the contract
      keys balances by address

Design Decisions:
    - Owner-key model: this process holds the contract owner key, because usePixel
      is owner-only on chain. That centralizes trust in the operator (recorded as an
      open question in DESIGN.md); the payment itself stays trust-minimized
    - The client is typed structurally (ContractClient Protocol) so tests can drive
      this ledger with the pure ContractMirror model instead of a live chain
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from castcanvas.core.domain_types import (
    CreditResult, ProofId, PurchaseReceipt, QuotaRecord, QuotaSource,
    UserId, day_index, utc_now,
)
from castcanvas.core.enforce_input import require_address
from castcanvas.services.keyed_locks import KeyedLocks

logger = logging.getLogger(__name__)


class ContractClient(Protocol):
    async def get_available_pixels(self, user: str) -> int: ...
    async def get_daily_pixels(self, user: str) -> int: ...
    async def get_purchased_pixels(self, user: str) -> int: ...
    async def use_pixel(self, user: str) -> bool: ...
    async def add_pixels_to_user(self, user: str, amount: int) -> str: ...


class ReceiptStore(Protocol):
    async def get(self, proof_id: ProofId) -> PurchaseReceipt | None: ...
    async def add(self, receipt: PurchaseReceipt) -> PurchaseReceipt: ...


class ContractQuotaLedger:
    """QuotaLedger whose counters live in contract storage."""

    def __init__(
        self,
        client: ContractClient,
        receipts: ReceiptStore,
        daily_limit: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.daily_limit = daily_limit
        self._client = client
        self._receipts = receipts
        self._clock = clock
        self._locks = KeyedLocks()

    async def snapshot(self, user: UserId) -> QuotaRecord:
        user = require_address(user)
        daily = await self._client.get_daily_pixels(user)
        purchased = await self._client.get_purchased_pixels(user)
        # views already apply rollover, so the record is always "fresh" as of today
        return QuotaRecord(
            user=user,
            daily_remaining=daily,
            last_reset_day=day_index(self._clock()),
            purchased_balance=purchased,
        )

    async def available(self, user: UserId) -> int:
        return await self._client.get_available_pixels(require_address(user))

    async def consume(self, user: UserId) -> QuotaSource | None:
        user = require_address(user)
        async with self._locks.acquire(("user", user)):
            daily = await self._client.get_daily_pixels(user)
            available = await self._client.get_available_pixels(user)
            if available <= 0:
                return None
            # another owner transaction may have spent the unit since the read
            if not await self._client.use_pixel(user):
                logger.warning(
                    "usePixel mined without PixelUsed, quota already spent",
                    extra={"user": user},
                )
                return None
            return QuotaSource.DAILY if daily > 0 else QuotaSource.PURCHASED

    async def refund(self, user: UserId, source: QuotaSource) -> None:
        user = require_address(user)
        # the contract exposes no daily increment; a refunded unit lands in
        # the purchased bucket, which never expires
        async with self._locks.acquire(("user", user)):
            await self._client.add_pixels_to_user(user, 1)
            logger.info(
                "Refunded pixel on chain",
                extra={"user": user, "source": source.value},
            )

    async def credit(
        self, proof_id: ProofId, amount: int, user: UserId,
    ) -> CreditResult:
        user = require_address(user)
        async with self._locks.acquire_many(("proof", proof_id), ("user", user)):
            existing = await self._receipts.get(proof_id)
            if existing is not None:
                logger.info(
                    "Duplicate credit ignored",
                    extra={"proof_id": proof_id, "user": user},
                )
                return CreditResult.from_receipt(existing, True)
            balance = await self._client.get_purchased_pixels(user)
            receipt = PurchaseReceipt(
                proof_id=proof_id,
                user=user,
                credited_pixels=amount,
                total_purchased=balance,
                processed_at=self._clock(),
            )
            stored = await self._receipts.add(receipt)
            return CreditResult.from_receipt(stored, stored is not receipt)
