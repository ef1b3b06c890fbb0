"""Service Container — builds the store, ledger and verifier once per process.

Invariants:
    - Exactly one CanvasStore, one QuotaLedger and one PurchaseVerifier per process,
      shared by every request (kept on app.state, injected via api/dependencies.py)
    - Backend selection comes from Settings only (store_backend, ledger_backend)
    - The contract ledger requires contract_address and contract_owner_private_key

Design Decisions:
    - Explicit container over module-level globals: tests build their own
      container with injected clock/chain and swap it onto app.state
    - PaymentTerms target the contract address when the ledger is contract-backed,
      because purchasePixels() is what credits the payer on chain
"""

import logging
from dataclasses import dataclass

from castcanvas.config import Settings
from castcanvas.core.domain_types import LedgerBackend, StoreBackend
from castcanvas.core.enforce_payment import PaymentTerms
from castcanvas.core.repository_protocols import CanvasStore, ChainReader, QuotaLedger
from castcanvas.infrastructure.chain_client import JsonRpcChainClient
from castcanvas.infrastructure.database import DatabaseSessionManager
from castcanvas.services.canvas_store import InMemoryCanvasStore, SqlCanvasStore
from castcanvas.services.placement_service import PlacementService
from castcanvas.services.purchase_verifier import PurchaseVerifier
from castcanvas.services.quota_ledger import InMemoryQuotaLedger, SqlQuotaLedger
from castcanvas.services.receipt_store import InMemoryReceiptStore, SqlReceiptStore

logger = logging.getLogger(__name__)


@dataclass
class CanvasServices:
    settings: Settings
    store: CanvasStore
    ledger: QuotaLedger
    chain: ChainReader
    verifier: PurchaseVerifier
    placement: PlacementService
    db: DatabaseSessionManager | None = None

    @property
    def payment_wallet(self) -> str:
        return self.verifier.terms.payment_wallet

    async def aclose(self) -> None:
        aclose = getattr(self.chain, "aclose", None)
        if aclose is not None:
            await aclose()


def build_services(
    settings: Settings,
    db: DatabaseSessionManager | None = None,
    chain: ChainReader | None = None,
) -> CanvasServices:
    """Wire backends from settings. `db` is required for any SQL-backed part."""
    if settings.uses_database and db is None:
        raise ValueError("a DatabaseSessionManager is required for SQL backends")

    if settings.store_backend is StoreBackend.DATABASE:
        store = SqlCanvasStore(db, canvas_size=settings.canvas_size)
    else:
        store = InMemoryCanvasStore(canvas_size=settings.canvas_size)

    payment_wallet = settings.payment_wallet
    if settings.ledger_backend is LedgerBackend.CONTRACT:
        ledger = _build_contract_ledger(settings, db)
        payment_wallet = settings.contract_address
    elif settings.ledger_backend is LedgerBackend.DATABASE:
        ledger = SqlQuotaLedger(db, daily_limit=settings.daily_pixel_limit)
    else:
        ledger = InMemoryQuotaLedger(daily_limit=settings.daily_pixel_limit)

    chain = chain or JsonRpcChainClient(
        settings.chain_rpc_url, timeout_seconds=settings.chain_rpc_timeout_seconds,
    )
    verifier = PurchaseVerifier(
        chain,
        ledger,
        PaymentTerms(
            payment_wallet=payment_wallet,
            price_wei=settings.price_wei,
            chain_id=settings.required_chain_id,
            require_sender_match=settings.require_sender_match,
        ),
        pixels_per_purchase=settings.pixels_per_purchase,
    )
    logger.info(
        f"Services built: store={settings.store_backend.value} "
        f"ledger={settings.ledger_backend.value}",
        extra={"backend": settings.ledger_backend.value},
    )
    return CanvasServices(
        settings=settings,
        store=store,
        ledger=ledger,
        chain=chain,
        verifier=verifier,
        placement=PlacementService(store, ledger),
        db=db,
    )


def _build_contract_ledger(settings: Settings, db: DatabaseSessionManager | None):
    # imported lazily: web3's async provider stack is only needed for this backend
    from castcanvas.infrastructure.contract_client import CastCanvasContractClient
    from castcanvas.services.contract_ledger import ContractQuotaLedger

    if not settings.contract_address or not settings.contract_owner_private_key:
        raise ValueError(
            "ledger_backend=contract requires contract_address "
            "and contract_owner_private_key",
        )
    client = CastCanvasContractClient(
        settings.chain_rpc_url,
        settings.contract_address,
        settings.contract_owner_private_key,
        chain_id=settings.required_chain_id,
        tx_timeout_seconds=settings.contract_tx_timeout_seconds,
    )
    receipts = SqlReceiptStore(db) if db is not None else InMemoryReceiptStore()
    return ContractQuotaLedger(
        client, receipts, daily_limit=settings.daily_pixel_limit,
    )
