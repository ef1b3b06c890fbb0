"""Payment Enforcement — pure checks of a fetched transaction against the expected payment.

Invariants:
    - All functions are PURE: they inspect JSON-RPC dicts already fetched by the shell
    - check_payment chains all checks in a fixed order — first error wins:
      chain -> recipient -> amount -> sender -> execution status
    - Amounts compared in wei as integers (exact match, no tolerance)
    - Addresses compared case-insensitively

Design Decisions:
    - Separate from PurchaseVerifier: the verifier owns IO and locking, this module
      owns the rules, so every rejection reason is testable with plain dicts
    - chainId is only checked when the transaction carries one (legacy pre-EIP-155
      transactions omit it; the RPC endpoint's own chain is then authoritative)
"""

from dataclasses import dataclass
from typing import Any

from castcanvas.core.domain_types import ProofId, UserId
from castcanvas.core.enforce_input import same_address
from castcanvas.core.errors import (
    PaymentFailedError, PaymentNotFoundError, WrongAmountError, WrongChainError,
    WrongRecipientError, WrongSenderError,
)

SUCCESS_STATUS = 1


@dataclass(frozen=True)
class PaymentTerms:
    """What a valid purchase transaction must look like."""
    payment_wallet: str
    price_wei: int
    chain_id: int
    require_sender_match: bool = True


def parse_quantity(value: Any, field_name: str) -> int:
    """Decode a JSON-RPC hex quantity ("0x1a") into an int."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError(f"invalid {field_name} quantity: {value!r}")
    return int(value, 16) if len(value) > 2 else 0


def check_found(
    proof_id: ProofId, tx: dict | None, receipt: dict | None,
) -> tuple[dict, dict]:
    """A pending transaction has no receipt yet — treated as not found."""
    if not tx or not receipt:
        raise PaymentNotFoundError(proof_id)
    return tx, receipt


def check_payment(
    proof_id: ProofId,
    user: UserId,
    tx: dict,
    receipt: dict,
    terms: PaymentTerms,
) -> int:
    """Raise the first PaymentVerificationError that applies; return value in wei."""
    if tx.get("chainId") is not None:
        chain_id = parse_quantity(tx["chainId"], "chainId")
        if chain_id != terms.chain_id:
            raise WrongChainError(proof_id, terms.chain_id, chain_id)

    if not same_address(tx.get("to"), terms.payment_wallet):
        raise WrongRecipientError(proof_id, terms.payment_wallet, tx.get("to"))

    value = parse_quantity(tx.get("value", "0x0"), "value")
    if value != terms.price_wei:
        raise WrongAmountError(proof_id, terms.price_wei, value)

    if terms.require_sender_match and not same_address(tx.get("from"), user):
        raise WrongSenderError(proof_id)

    status = receipt.get("status")
    if status is None or parse_quantity(status, "status") != SUCCESS_STATUS:
        raise PaymentFailedError(proof_id)
    return value
