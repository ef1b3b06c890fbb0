"""Error Hierarchy — typed, categorized exceptions for all CastCanvas failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope used by every error response
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with CastCanvasError base: FastAPI global handler catches all
    - PaymentVerificationError subclasses carry the specific reason in `code`,
      so a client can tell "wrong amount" from "not mined yet" without parsing text
    - ContractRevertError is NOT a CastCanvasError: it models a reverted call inside
      the contract model and never reaches the HTTP layer
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    PAYMENT = "payment"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user: str | None = None
    proof_id: str | None = None
    field: str | None = None
    debug_info: dict[str, Any] | None = None


class CastCanvasError(Exception):
    """Base exception for all CastCanvas errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "user": self.context.user,
                    "proof_id": self.context.proof_id,
                    "field": self.context.field,
                },
            },
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidInputError(CastCanvasError):
    """Bad coordinates, malformed colour, malformed proof id or missing field."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.field = field
        super().__init__(
            message, "INVALID_INPUT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )
        self.field = field


class QuotaExceededError(CastCanvasError):
    """User has no daily or purchased pixels left."""
    def __init__(self, user: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.user = user
        super().__init__(
            "No pixels remaining. Wait for the daily reset or purchase more pixels.",
            "QUOTA_EXCEEDED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx, 429,
        )
        self.user = user


class PaymentVerificationError(CastCanvasError):
    """Base for all reasons a payment proof is rejected."""
    def __init__(
        self, message: str, code: str, proof_id: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.proof_id = proof_id
        super().__init__(
            message, code, ErrorCategory.PAYMENT,
            ErrorSeverity.ERROR, ctx, 400,
        )
        self.proof_id = proof_id


class PaymentNotFoundError(PaymentVerificationError):
    """Transaction (or its receipt) could not be resolved on chain."""
    def __init__(self, proof_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Transaction {proof_id} not found or not yet mined",
            "PAYMENT_NOT_FOUND", proof_id, context,
        )


class WrongChainError(PaymentVerificationError):
    """Transaction was sent on a different chain."""
    def __init__(
        self, proof_id: str, expected: int, actual: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Transaction is on chain {actual}, expected chain {expected}",
            "WRONG_CHAIN", proof_id, context,
        )


class WrongRecipientError(PaymentVerificationError):
    """Transaction destination is not the payment wallet."""
    def __init__(
        self, proof_id: str, expected: str, actual: str | None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Transaction was sent to {actual}, expected {expected}",
            "WRONG_RECIPIENT", proof_id, context,
        )


class WrongAmountError(PaymentVerificationError):
    """Transferred value differs from the purchase price."""
    def __init__(
        self, proof_id: str, expected_wei: int, actual_wei: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Transaction value {actual_wei} wei does not match price {expected_wei} wei",
            "WRONG_AMOUNT", proof_id, context,
        )


class WrongSenderError(PaymentVerificationError):
    """Transaction was not sent by the user claiming the credit."""
    def __init__(self, proof_id: str, context: ErrorContext | None = None):
        super().__init__(
            "Transaction sender does not match the purchasing user",
            "WRONG_SENDER", proof_id, context,
        )


class PaymentFailedError(PaymentVerificationError):
    """Transaction was mined but its execution reverted."""
    def __init__(self, proof_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Transaction {proof_id} did not execute successfully",
            "PAYMENT_FAILED", proof_id, context,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class ExternalServiceError(CastCanvasError):
    """External dependency unreachable or misbehaving. Safe to retry."""
    def __init__(
        self, message: str, code: str = "EXTERNAL_SERVICE_ERROR",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, context, 500,
        )


class ChainRPCError(ExternalServiceError):
    """Chain JSON-RPC call failed or timed out."""
    def __init__(self, message: str, method: str, context: ErrorContext | None = None):
        super().__init__(
            f"Chain RPC {method} failed: {message}", "CHAIN_RPC_ERROR", context,
        )
        self.method = method


class DatabaseError(CastCanvasError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


# ─── Contract Model ─────────────────────────────────────────────

class ContractRevertError(Exception):
    """A `require` failed inside the contract model; no state was changed."""
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
