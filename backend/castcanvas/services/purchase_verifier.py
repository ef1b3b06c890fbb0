"""Purchase Verifier — turns a submitted transaction hash into exactly one credit.

Invariants:
    - Chain RPC reads happen BEFORE any ledger lock is taken; only the final
      ledger.credit() call is serialized
    - Every rejection is a PaymentVerificationError subclass (400); RPC failures
      are ChainRPCError (500) — both leave the ledger untouched
    - No in-process retry: re-submitting the same proof is safe because
      ledger.credit() is idempotent by proof id

Design Decisions:
    - Verification is re-run on every submission (even for known proofs): a replay
      by a different user fails the sender check instead of echoing someone else's
      receipt back
    - Malformed RPC payloads (bad hex) are the RPC's fault -> ChainRPCError
"""

import logging

from castcanvas.core.domain_types import CreditResult, UserId
from castcanvas.core.enforce_input import normalize_proof_id
from castcanvas.core.enforce_payment import PaymentTerms, check_found, check_payment
from castcanvas.core.errors import ChainRPCError, PaymentVerificationError
from castcanvas.core.repository_protocols import ChainReader, QuotaLedger

logger = logging.getLogger(__name__)


class PurchaseVerifier:
    """Validates a payment proof against PaymentTerms, then credits the ledger."""

    def __init__(
        self,
        chain: ChainReader,
        ledger: QuotaLedger,
        terms: PaymentTerms,
        pixels_per_purchase: int = 10,
    ):
        self._chain = chain
        self._ledger = ledger
        self.terms = terms
        self.pixels_per_purchase = pixels_per_purchase

    async def verify(self, user: UserId, proof_id: str) -> CreditResult:
        proof = normalize_proof_id(proof_id)

        tx = await self._chain.get_transaction(proof)
        receipt = await self._chain.get_transaction_receipt(proof) if tx else None
        try:
            tx, receipt = check_found(proof, tx, receipt)
            check_payment(proof, user, tx, receipt, self.terms)
        except PaymentVerificationError as e:
            logger.warning(
                f"Payment rejected: {e.message}",
                extra={"proof_id": proof, "user": user, "error_code": e.code},
            )
            raise
        except ValueError as e:
            raise ChainRPCError(f"malformed transaction data: {e}", "verify") from e

        result = await self._ledger.credit(proof, self.pixels_per_purchase, user)
        if not result.already_processed:
            logger.info(
                "Payment verified",
                extra={"proof_id": proof, "user": user},
            )
        return result
