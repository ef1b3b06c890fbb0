"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Every store/ledger backend (memory, SQL, contract) satisfies these Protocols
    - PlacementService and PurchaseVerifier depend on the Protocols, never on a backend

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO
      (database, chain); the in-memory backends are async too so callers never branch
"""

from typing import Protocol

from castcanvas.core.domain_types import (
    CreditResult, Pixel, ProofId, QuotaRecord, QuotaSource, UserId,
)


class CanvasStore(Protocol):
    """Coordinate -> latest Pixel. Last-write-wins, no history."""
    canvas_size: int

    async def get(self) -> list[Pixel]: ...
    async def place(self, x: int, y: int, color: str, owner: UserId) -> Pixel: ...
    async def count(self) -> int: ...
    def validate(self, x: int, y: int, color: str) -> None: ...


class QuotaLedger(Protocol):
    """Per-user daily + purchased counters with lazy day rollover."""
    daily_limit: int

    async def available(self, user: UserId) -> int: ...
    async def snapshot(self, user: UserId) -> QuotaRecord: ...
    async def consume(self, user: UserId) -> QuotaSource | None: ...
    async def credit(
        self, proof_id: ProofId, amount: int, user: UserId,
    ) -> CreditResult: ...
    async def refund(self, user: UserId, source: QuotaSource) -> None: ...


class ChainReader(Protocol):
    """Read-only chain access needed to verify a payment."""
    async def get_transaction(self, tx_hash: str) -> dict | None: ...
    async def get_transaction_receipt(self, tx_hash: str) -> dict | None: ...
