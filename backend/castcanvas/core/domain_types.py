"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, ProofId, DayIndex wrap primitives — never pass bare strings/ints in domain logic
    - Pixel, PurchaseReceipt and CreditResult are immutable once built
    - QuotaRecord.daily_remaining stays within [0, daily limit]; purchased_balance >= 0
    - Day index is floor(unix_seconds / 86400) — the same UTC-day rule the contract uses

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
    - CreditResult is derived from the stored receipt only, so a replayed credit
      returns a value equal to the first one (except the already_processed flag)
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", str)      # checksummed address, or opaque id verbatim
ProofId = NewType("ProofId", str)    # lower-case 0x-prefixed transaction hash
DayIndex = NewType("DayIndex", int)

SECONDS_PER_DAY = 86_400


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo; we only ever write UTC)."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def day_index(moment: datetime) -> DayIndex:
    """UTC day number of `moment` (naive datetimes are read as UTC)."""
    return DayIndex(int(as_utc(moment).timestamp()) // SECONDS_PER_DAY)


def day_index_from_timestamp(unix_seconds: int) -> DayIndex:
    return DayIndex(unix_seconds // SECONDS_PER_DAY)


# ─── Enums ───────────────────────────────────────────────────────

class QuotaSource(str, Enum):
    """Which bucket a consumed quota unit came from."""
    DAILY = "daily"
    PURCHASED = "purchased"


class StoreBackend(str, Enum):
    MEMORY = "memory"
    DATABASE = "database"


class LedgerBackend(str, Enum):
    MEMORY = "memory"
    DATABASE = "database"
    CONTRACT = "contract"


# ─── Value Types ─────────────────────────────────────────────────

@dataclass(frozen=True)
class Pixel:
    """A single written cell. At most one per (x, y)."""
    x: int
    y: int
    color: str
    owner: UserId
    written_at: datetime

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "color": self.color,
            "user": self.owner,
            "timestamp": int(self.written_at.timestamp() * 1000),
            "writtenAt": self.written_at.isoformat(),
        }


@dataclass(frozen=True)
class QuotaRecord:
    """Per-user quota counters. Mutations always produce a new record."""
    user: UserId
    daily_remaining: int
    last_reset_day: DayIndex
    purchased_balance: int

    @property
    def available(self) -> int:
        return self.daily_remaining + self.purchased_balance

    def evolve(self, **changes) -> "QuotaRecord":
        return replace(self, **changes)


@dataclass(frozen=True)
class PurchaseReceipt:
    """Idempotency record — one per proof id, ever."""
    proof_id: ProofId
    user: UserId
    credited_pixels: int
    total_purchased: int
    processed_at: datetime


@dataclass(frozen=True)
class CreditResult:
    """Outcome of a credit; identical across replays of the same proof."""
    proof_id: ProofId
    user: UserId
    credited_pixels: int
    total_purchased: int
    already_processed: bool = False

    @classmethod
    def from_receipt(
        cls, receipt: PurchaseReceipt, already_processed: bool,
    ) -> "CreditResult":
        return cls(
            proof_id=receipt.proof_id,
            user=receipt.user,
            credited_pixels=receipt.credited_pixels,
            total_purchased=receipt.total_purchased,
            already_processed=already_processed,
        )
