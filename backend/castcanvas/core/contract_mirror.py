"""Contract Mirror — executable model of the CastCanvas on-chain contract.

Invariants:
    - Every entry point takes an explicit CallContext (sender, value, timestamp)
    - A failed require raises ContractRevertError and leaves ALL state unchanged
    - purchase_pixels requires value == price exactly; no partial or over-payment
    - use_pixel / reset_daily_pixels / add_pixels_to_user / withdraw /
      emergency_withdraw are owner-only
    - Payable and withdrawal paths are non-reentrant; effects are applied before
      the external transfer (checks-effects-interactions)
    - Day boundary = block.timestamp // 86400

Design Decisions:
    - Pure in-memory model, no web3: it is the reference semantics the deployed
      contract is expected to match, and the oracle the ledger tests compare against
    - Transfers go through an injectable `transfer` callback so tests can simulate a
      recipient that re-enters the contract mid-withdrawal
    - Views apply rollover without writing (Solidity `view` cannot mutate state)
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from castcanvas.core.domain_types import (
    DayIndex, QuotaRecord, UserId, day_index_from_timestamp,
)
from castcanvas.core.errors import ContractRevertError
from castcanvas.core import quota_rules

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class CallContext:
    """msg.sender, msg.value and block.timestamp for one call."""
    sender: str
    value: int = 0
    timestamp: int = 0

    @property
    def today(self) -> DayIndex:
        return day_index_from_timestamp(self.timestamp)


@dataclass(frozen=True)
class ContractEvent:
    name: str
    args: dict


def _require(condition: bool, reason: str) -> None:
    if not condition:
        raise ContractRevertError(reason)


@dataclass
class ContractMirror:
    """Per-user purchased/daily pixel state plus an ETH balance held by the contract."""

    owner: str
    price_wei: int
    pixels_per_purchase: int = 10
    daily_pixel_limit: int = 5
    transfer: Callable[[str, int], None] = lambda recipient, amount: None

    balance_wei: int = 0
    purchased_pixels: dict[str, int] = field(default_factory=dict)
    daily_pixels: dict[str, int] = field(default_factory=dict)
    last_reset_day: dict[str, int] = field(default_factory=dict)
    events: list[ContractEvent] = field(default_factory=list)
    _locked: bool = False

    # ─── Views ──────────────────────────────────────────────────

    def get_daily_pixels(self, user: str, timestamp: int) -> int:
        return self._record(user, day_index_from_timestamp(timestamp)).daily_remaining

    def get_available_pixels(self, user: str, timestamp: int) -> int:
        return self._record(user, day_index_from_timestamp(timestamp)).available

    # ─── Payable ────────────────────────────────────────────────

    def purchase_pixels(self, ctx: CallContext) -> None:
        with self._non_reentrant():
            _require(ctx.value == self.price_wei, "Incorrect payment amount")
            record = self._record(ctx.sender, ctx.today)
            record = quota_rules.add_purchased(record, self.pixels_per_purchase)
            self._store(record)
            self.balance_wei += ctx.value
            self.events.append(ContractEvent("PixelsPurchased", {
                "user": ctx.sender,
                "amount": self.pixels_per_purchase,
                "cost": ctx.value,
            }))

    # ─── Owner-only ─────────────────────────────────────────────

    def use_pixel(self, ctx: CallContext, user: str) -> bool:
        self._only_owner(ctx)
        record = self._record(user, ctx.today)
        record, source = quota_rules.take_unit(record)
        if source is None:
            return False
        self._store(record)
        self.events.append(ContractEvent("PixelUsed", {
            "user": user, "source": source.value,
        }))
        return True

    def reset_daily_pixels(self, ctx: CallContext, user: str) -> None:
        self._only_owner(ctx)
        record = self._record(user, ctx.today)
        self._store(record.evolve(
            daily_remaining=self.daily_pixel_limit, last_reset_day=ctx.today,
        ))
        self.events.append(ContractEvent("DailyPixelsReset", {"user": user}))

    def add_pixels_to_user(self, ctx: CallContext, user: str, amount: int) -> None:
        self._only_owner(ctx)
        _require(amount > 0, "Amount must be positive")
        record = self._record(user, ctx.today)
        self._store(quota_rules.add_purchased(record, amount))
        self.events.append(ContractEvent("PixelsAdded", {
            "user": user, "amount": amount,
        }))

    def withdraw(self, ctx: CallContext) -> int:
        self._only_owner(ctx)
        return self._send_balance(self.owner)

    def emergency_withdraw(self, ctx: CallContext, recipient: str) -> int:
        self._only_owner(ctx)
        _require(
            bool(recipient) and recipient.lower() != ZERO_ADDRESS,
            "Invalid recipient",
        )
        return self._send_balance(recipient)

    # ─── Internals ──────────────────────────────────────────────

    def _send_balance(self, recipient: str) -> int:
        with self._non_reentrant():
            amount = self.balance_wei
            _require(amount > 0, "No funds to withdraw")
            # effects before interaction
            self.balance_wei = 0
            try:
                self.transfer(recipient, amount)
            except ContractRevertError:
                self.balance_wei = amount
                raise
            except Exception as e:
                self.balance_wei = amount
                raise ContractRevertError("Transfer failed") from e
            self.events.append(ContractEvent("Withdrawal", {
                "recipient": recipient, "amount": amount,
            }))
            return amount

    def _only_owner(self, ctx: CallContext) -> None:
        _require(ctx.sender.lower() == self.owner.lower(), "Not the contract owner")

    def _record(self, user: str, today: DayIndex) -> QuotaRecord:
        key = user.lower()
        if key not in self.last_reset_day:
            record = quota_rules.new_record(UserId(user), today, self.daily_pixel_limit)
        else:
            record = QuotaRecord(
                user=UserId(user),
                daily_remaining=self.daily_pixels[key],
                last_reset_day=DayIndex(self.last_reset_day[key]),
                purchased_balance=self.purchased_pixels.get(key, 0),
            )
        return quota_rules.apply_rollover(record, today, self.daily_pixel_limit)

    def _store(self, record: QuotaRecord) -> None:
        key = record.user.lower()
        self.daily_pixels[key] = record.daily_remaining
        self.last_reset_day[key] = record.last_reset_day
        self.purchased_pixels[key] = record.purchased_balance

    def _non_reentrant(self):
        return _ReentrancyGuard(self)


class _ReentrancyGuard:
    """OpenZeppelin-style nonReentrant modifier."""

    def __init__(self, contract: ContractMirror):
        self._contract = contract

    def __enter__(self):
        _require(not self._contract._locked, "ReentrancyGuard: reentrant call")
        self._contract._locked = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self._contract._locked = False
        return False
